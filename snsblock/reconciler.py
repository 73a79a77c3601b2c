"""
Reconciliation driver for the SNS subscription lifecycle.

Each host invocation (scheduled tick, prompt re-sync, drain or
reconfiguration) is one short call on ``SubscriptionReconciler``. There is
no background loop and no retry loop: repetition happens only when the host
honours ``SyncResult.next_schedule_delay`` or a sync hook request.

The host guarantees that invocations for one block never overlap, so the
read-decide-write sequence below takes no locks.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from .config import BlockConfig, SubscriptionTimingConfig
from .constants import (
    DEFAULT_MAX_LIST_PAGES,
    SUBSCRIPTION_CONFIRMATION_KEY,
    SUBSCRIPTION_RESET_KEY,
)
from .db import StateStore
from .db.utils import utc_now
from .errors import StateDecodeError, TopicProviderError
from .handshake import HandshakeState, decode_state, encode_state
from .interface.hooks import HookRegistry, LifecycleEvent
from .lifecycle import Action, BlockStatus, SyncResult, decide
from .sns_client import TopicClient

logger = logging.getLogger(__name__)


def check_topic_subscription_exists(
    client: TopicClient,
    topic_arn: str,
    subscription_arn: str,
    max_pages: int = DEFAULT_MAX_LIST_PAGES,
) -> bool:
    """Return True if SNS lists subscription_arn as a subscription of topic_arn.

    SNS returns an ARN from Subscribe immediately but lists it only once the
    confirmation handshake completed, so False means "not confirmed (yet)".

    Raises:
        TopicProviderError: if a ListSubscriptionsByTopic call fails
    """
    next_token: str | None = None
    for page_number in range(1, max_pages + 1):
        page = client.list_subscriptions(topic_arn, next_token)
        if subscription_arn in page.subscription_arns:
            logger.debug(f"Found {subscription_arn} on page {page_number}")
            return True
        if not page.next_token:
            return False
        next_token = page.next_token
    logger.warning(
        f"Stopped listing subscriptions of {topic_arn} after {max_pages} pages"
    )
    return False


class SubscriptionReconciler:
    """Drives one block's subscription towards ``ready``.

    Args:
        block_config: Topic and subscription attributes
        client: SNS client
        store: State store scoped to this block
        endpoint_url: Public URL SNS should deliver to
        timing: Handshake timeout and recheck interval
        hooks: Host hooks, used to request prompt re-syncs
        clock: Returns the current timezone-aware time
    """

    def __init__(
        self,
        block_config: BlockConfig,
        client: TopicClient,
        store: StateStore,
        endpoint_url: str,
        timing: SubscriptionTimingConfig | None = None,
        hooks: HookRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_list_pages: int = DEFAULT_MAX_LIST_PAGES,
    ) -> None:
        self.block_config = block_config
        self.client = client
        self.store = store
        self.endpoint_url = endpoint_url
        self.timing = timing or SubscriptionTimingConfig()
        self.hooks = hooks or HookRegistry()
        self._clock = clock
        self._max_list_pages = max_list_pages

    @property
    def protocol(self) -> str:
        return "https" if self.endpoint_url.startswith("https") else "http"

    def load_state(self) -> HandshakeState | None:
        """Read the handshake record, None if absent, expired or corrupt."""
        data = self.store.get(SUBSCRIPTION_CONFIRMATION_KEY)
        if data is None:
            return None
        try:
            return decode_state(data)
        except StateDecodeError as e:
            logger.warning(f"Discarding unreadable handshake record: {e}")
            return None

    def _reset_pending(self) -> bool:
        return bool(self.store.get(SUBSCRIPTION_RESET_KEY))

    def _store_unavailable(self, subscription_arn: str | None, e: Exception) -> SyncResult:
        logger.warning(f"State store unavailable for {subscription_arn}: {e}")
        return SyncResult(
            status=BlockStatus.IN_PROGRESS,
            subscription_arn=subscription_arn,
            description=f"Couldn't access subscription state: {e}",
            next_schedule_delay=self.timing.recheck_seconds,
        )

    def sync(self, subscription_arn: str | None) -> SyncResult:
        """Run one reconciliation tick."""
        now = self._clock()
        try:
            reset_pending = self._reset_pending()
        except Exception as e:
            return self._store_unavailable(subscription_arn, e)

        exists = False
        state = None
        if not reset_pending and subscription_arn is not None:
            try:
                exists = check_topic_subscription_exists(
                    self.client,
                    self.block_config.topic_arn,
                    subscription_arn,
                    max_pages=self._max_list_pages,
                )
            except TopicProviderError as e:
                logger.warning(f"Couldn't check subscription {subscription_arn}: {e}")
                return SyncResult(
                    status=BlockStatus.IN_PROGRESS,
                    subscription_arn=subscription_arn,
                    description=f"Couldn't verify SNS subscription: {e}",
                    next_schedule_delay=self.timing.recheck_seconds,
                )
            if not exists:
                try:
                    state = self.load_state()
                except Exception as e:
                    return self._store_unavailable(subscription_arn, e)

        action = decide(
            subscription_arn,
            exists,
            state,
            now,
            self.timing.timeout_seconds,
            reset_pending=reset_pending,
        )
        logger.debug(f"Sync of {subscription_arn} decided {action.value}")

        if action is Action.REPORT_DRAFT:
            try:
                self.store.delete(SUBSCRIPTION_RESET_KEY)
            except Exception as e:
                # Draft is reported only once the marker is gone
                return self._store_unavailable(subscription_arn, e)
            logger.info("Reconfiguration reset consumed, block back to draft")
            return SyncResult(status=BlockStatus.DRAFT, subscription_arn=None)

        if action is Action.REPORT_READY:
            try:
                self.store.delete(SUBSCRIPTION_CONFIRMATION_KEY)
            except Exception as e:
                # A leftover record is ignored while the subscription exists
                logger.warning(f"Failed to delete handshake state for {subscription_arn}: {e}")
            return SyncResult(status=BlockStatus.READY, subscription_arn=subscription_arn)

        if action is Action.REPORT_FAILED:
            assert state is not None
            logger.error(f"SNS subscription {subscription_arn} failed: {state.description}")
            return SyncResult(
                status=BlockStatus.FAILED,
                subscription_arn=None,
                description=state.description,
            )

        if action is Action.WAIT:
            return SyncResult(
                status=BlockStatus.IN_PROGRESS,
                subscription_arn=subscription_arn,
                next_schedule_delay=self.timing.recheck_seconds,
            )

        if subscription_arn is not None:
            logger.info(f"Handshake for {subscription_arn} stalled or expired, re-subscribing")
        return self._subscribe(now)

    def _subscribe(self, now: datetime) -> SyncResult:
        try:
            subscription_arn = self.client.subscribe(
                self.block_config.topic_arn,
                self.endpoint_url,
                self.protocol,
                self.block_config.attributes,
            )
        except TopicProviderError as e:
            logger.error(str(e))
            return SyncResult(
                status=BlockStatus.FAILED,
                subscription_arn=None,
                description=str(e),
            )

        try:
            self.store.set(
                SUBSCRIPTION_CONFIRMATION_KEY,
                encode_state(HandshakeState.pending(now)),
                ttl_seconds=self.timing.timeout_seconds,
            )
        except Exception as e:
            # Next tick finds no record and re-subscribes, which SNS treats idempotently
            logger.error(f"Failed to persist handshake state for {subscription_arn}: {e}")

        self.hooks.execute_lifecycle_hooks(
            LifecycleEvent.SUBSCRIBED, subscription_arn=subscription_arn
        )
        return SyncResult(
            status=BlockStatus.IN_PROGRESS,
            subscription_arn=subscription_arn,
            next_schedule_delay=self.timing.recheck_seconds,
        )

    def drain(self, subscription_arn: str | None) -> SyncResult:
        """Tear the subscription down before the block is removed."""
        try:
            self.store.delete(SUBSCRIPTION_CONFIRMATION_KEY, SUBSCRIPTION_RESET_KEY)
        except Exception as e:
            logger.warning(f"Failed to delete handshake state while draining: {e}")

        if subscription_arn is None:
            return SyncResult(status=BlockStatus.DRAINED, subscription_arn=None)

        try:
            self.client.unsubscribe(subscription_arn)
        except TopicProviderError as e:
            logger.error(str(e))
            return SyncResult(
                status=BlockStatus.DRAINING_FAILED,
                subscription_arn=subscription_arn,
                description=str(e),
            )

        self.hooks.execute_lifecycle_hooks(
            LifecycleEvent.UNSUBSCRIBED, subscription_arn=subscription_arn
        )
        return SyncResult(status=BlockStatus.DRAINED, subscription_arn=None)

    def reset(self, subscription_arn: str | None) -> SyncResult:
        """Drop the current subscription after a configuration change.

        The next sync reports ``draft`` instead of re-subscribing right away.
        """
        if subscription_arn is not None:
            try:
                self.client.unsubscribe(subscription_arn)
            except TopicProviderError as e:
                logger.warning(f"Ignoring unsubscribe failure during reset: {e}")

        try:
            self.store.delete(SUBSCRIPTION_CONFIRMATION_KEY)
            self.store.set(SUBSCRIPTION_RESET_KEY, {"reset": True})
        except Exception as e:
            logger.error(f"Failed to record reconfiguration reset: {e}")
            return SyncResult(
                status=BlockStatus.IN_PROGRESS,
                subscription_arn=None,
                description=f"Reconfiguration pending, couldn't record reset: {e}",
                next_schedule_delay=self.timing.recheck_seconds,
            )
        self.hooks.execute_lifecycle_hooks(
            LifecycleEvent.RESET, subscription_arn=subscription_arn
        )
        self.hooks.request_sync()
        return SyncResult(
            status=BlockStatus.IN_PROGRESS,
            subscription_arn=None,
            description="Reconfiguration pending",
            next_schedule_delay=0,
        )
