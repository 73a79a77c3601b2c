"""
Subscription lifecycle state machine.

``decide()`` is the pure decision core: given the held subscription ARN,
whether SNS lists it as confirmed, the persisted handshake state and the
current time, it picks the next ``Action``. The reconciler carries out the
action and turns it into a ``SyncResult`` for the host.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .handshake import HandshakeState, HandshakeStatus


class BlockStatus(str, Enum):
    """Block status reported to the host after every invocation."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    FAILED = "failed"
    DRAINING_FAILED = "draining_failed"
    DRAINED = "drained"


class Action(Enum):
    SUBSCRIBE = "subscribe"
    WAIT = "wait"
    REPORT_READY = "report_ready"
    REPORT_FAILED = "report_failed"
    REPORT_DRAFT = "report_draft"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one reconciliation, drain or reset.

    ``subscription_arn`` is the identity the host must hold from now on;
    None means the identity is cleared.
    """

    status: BlockStatus
    subscription_arn: str | None = None
    description: str | None = None
    next_schedule_delay: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Host wire format."""
        result: dict[str, Any] = {
            "newStatus": self.status.value,
            "subscriptionArn": self.subscription_arn,
        }
        if self.description is not None:
            result["customStatusDescription"] = self.description
        if self.next_schedule_delay is not None:
            result["nextScheduleDelay"] = self.next_schedule_delay
        return result


def decide(
    subscription_arn: str | None,
    exists: bool,
    state: HandshakeState | None,
    now: datetime,
    timeout_seconds: float,
    reset_pending: bool = False,
) -> Action:
    """Pick the next lifecycle action.

    Args:
        subscription_arn: Identity currently held by the host
        exists: Whether SNS lists subscription_arn as a confirmed subscription
        state: Persisted handshake state, None if absent or expired
        now: Current time (timezone aware)
        timeout_seconds: Handshake timeout window
        reset_pending: Whether a reconfiguration reset marker is stored
    """
    if reset_pending:
        return Action.REPORT_DRAFT
    if subscription_arn is None:
        return Action.SUBSCRIBE
    if exists:
        return Action.REPORT_READY
    if state is None:
        # Record expired through TTL or never written
        return Action.SUBSCRIBE
    if state.status is HandshakeStatus.FAILED:
        return Action.REPORT_FAILED
    if state.has_timed_out(now, timeout_seconds):
        return Action.SUBSCRIBE
    return Action.WAIT
