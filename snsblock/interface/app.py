"""
SnsSubscriptionBlock: the host-facing entry points with a fluent setup API.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from .. import request_context
from ..config import AppConfig, BlockConfig, SubscriptionTimingConfig
from ..db import StateStore, get_state_store
from ..handlers.callbacks import CallbackResponse, CallbacksHandler
from ..lifecycle import SyncResult
from ..reconciler import SubscriptionReconciler
from ..signature import SignatureVerifier
from ..sns_client import SnsTopicClient, TopicClient
from .hooks import HookRegistry, LifecycleEvent

logger = logging.getLogger(__name__)


class SnsSubscriptionBlock:
    """
    One "Subscribe to SNS topic" block instance.

    Example usage:

    .. code-block:: python

        block = (
            SnsSubscriptionBlock(
                block_id="block-1",
                block_config=BlockConfig(topic_arn="arn:aws:sns:eu-west-1:123456789012:orders"),
                endpoint_url="https://hooks.example.com/blocks/block-1",
            )
            .with_app_config(AppConfig.from_env())
        )

        @block.event_hook
        def forward(event):
            host.emit(event)

        @block.sync_hook
        def resync():
            host.schedule_sync(block_id="block-1")

        result = block.on_sync(stored_subscription_arn)
    """

    def __init__(
        self,
        block_id: str,
        block_config: BlockConfig,
        endpoint_url: str,
        app_config: AppConfig | None = None,
        strict_topic: bool = False,
    ) -> None:
        self.block_id = block_id
        self.block_config = block_config
        self.endpoint_url = endpoint_url
        self.app_config = app_config or AppConfig()
        self.strict_topic = strict_topic
        self.timing = SubscriptionTimingConfig()
        self.hooks = HookRegistry()

        self.block_config.validate()
        self.app_config.validate()

        self._store: StateStore | None = None
        self._client: TopicClient | None = None
        self._client_injected = False
        self._verifier: SignatureVerifier | None = None
        self._clock: Callable[[], datetime] | None = None

    # Fluent configuration

    def with_app_config(self, app_config: AppConfig) -> "SnsSubscriptionBlock":
        app_config.validate()
        self.app_config = app_config
        if not self._client_injected:
            self._client = None
        return self

    def with_state_store(self, store: StateStore) -> "SnsSubscriptionBlock":
        self._store = store
        return self

    def with_topic_client(self, client: TopicClient) -> "SnsSubscriptionBlock":
        self._client = client
        self._client_injected = True
        return self

    def with_signature_verifier(self, verifier: SignatureVerifier) -> "SnsSubscriptionBlock":
        self._verifier = verifier
        return self

    def with_timing(
        self, timeout_seconds: int | None = None, recheck_seconds: int | None = None
    ) -> "SnsSubscriptionBlock":
        if timeout_seconds is None:
            timeout_seconds = self.timing.timeout_seconds
        if recheck_seconds is None:
            recheck_seconds = self.timing.recheck_seconds
        timing = SubscriptionTimingConfig(
            timeout_seconds=timeout_seconds, recheck_seconds=recheck_seconds
        )
        timing.validate()
        self.timing = timing
        return self

    def with_clock(self, clock: Callable[[], datetime]) -> "SnsSubscriptionBlock":
        self._clock = clock
        return self

    # Hook decorators

    def event_hook(self, func: Callable[[dict[str, Any]], Any]) -> Callable[[dict[str, Any]], Any]:
        self.hooks.register_event_hook(func)
        return func

    def sync_hook(self, func: Callable[[], Any]) -> Callable[[], Any]:
        self.hooks.register_sync_hook(func)
        return func

    def lifecycle_hook(self, event: str | LifecycleEvent) -> Callable[..., Any]:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.hooks.register_lifecycle_hook(event, func)
            return func

        return decorator

    # Components

    @property
    def store(self) -> StateStore:
        if self._store is None:
            self._store = get_state_store(self.block_id)
        return self._store

    @property
    def client(self) -> TopicClient:
        if self._client is None:
            self._client = SnsTopicClient.from_config(self.app_config, self.block_config)
        return self._client

    @property
    def verifier(self) -> SignatureVerifier:
        if self._verifier is None:
            self._verifier = SignatureVerifier()
        return self._verifier

    def _reconciler(self) -> SubscriptionReconciler:
        kwargs: dict[str, Any] = {}
        if self._clock is not None:
            kwargs["clock"] = self._clock
        return SubscriptionReconciler(
            block_config=self.block_config,
            client=self.client,
            store=self.store,
            endpoint_url=self.endpoint_url,
            timing=self.timing,
            hooks=self.hooks,
            **kwargs,
        )

    def _callbacks(self) -> CallbacksHandler:
        return CallbacksHandler(
            block_config=self.block_config,
            store=self.store,
            verifier=self.verifier,
            hooks=self.hooks,
        )

    @contextmanager
    def _invocation(self, subscription_arn: str | None = None) -> Iterator[None]:
        request_context.set_invocation_context(
            block_id=self.block_id, subscription_arn=subscription_arn
        )
        try:
            yield
        finally:
            request_context.clear_invocation_context()

    # Host entry points

    def on_sync(self, subscription_arn: str | None) -> SyncResult:
        """Reconciliation tick. Returns the status and the identity to hold."""
        with self._invocation(subscription_arn):
            result = self._reconciler().sync(subscription_arn)
            request_context.set_subscription_arn(result.subscription_arn)
            logger.info(f"Sync finished with status {result.status.value}")
            return result

    def on_drain(self, subscription_arn: str | None) -> SyncResult:
        """Teardown before the block is removed."""
        with self._invocation(subscription_arn):
            result = self._reconciler().drain(subscription_arn)
            logger.info(f"Drain finished with status {result.status.value}")
            return result

    def on_config_change(
        self, block_config: BlockConfig, subscription_arn: str | None
    ) -> SyncResult | None:
        """Apply a new block config.

        Returns None when nothing had to be reset, otherwise the reset result
        whose cleared identity the host must store.

        Raises:
            ConfigurationError: if the new config is invalid, or changes the
                topic while ``strict_topic`` is set
        """
        if block_config == self.block_config:
            return None
        block_config.validate_update(self.block_config, strict_topic=self.strict_topic)

        result = None
        with self._invocation(subscription_arn):
            if subscription_arn is not None:
                logger.info("Block configuration changed, resetting subscription")
                result = self._reconciler().reset(subscription_arn)

        self.block_config = block_config
        if not self._client_injected:
            self._client = None
        return result

    def on_http_request(
        self,
        body: str | bytes | dict[str, Any] | None,
        headers: dict[str, str] | None = None,
    ) -> CallbackResponse:
        """Inbound delivery from SNS."""
        with self._invocation():
            return self._callbacks().handle_request(body, headers)
