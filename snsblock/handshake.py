"""
Subscription handshake state and its storage encoding.

One record per block is kept under ``SUBSCRIPTION_CONFIRMATION_KEY`` while a
Subscribe is waiting for SNS to deliver and accept the confirmation request.
A confirmed subscription has no record: confirmation is established by the
existence check during reconciliation, never by this record.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .db.utils import ensure_timezone_aware_iso, parse_timezone_aware_iso
from .errors import StateDecodeError

logger = logging.getLogger(__name__)


class HandshakeStatus(Enum):
    """Handshake states. Stored by name, never by position."""

    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class HandshakeState:
    status: HandshakeStatus
    created_at: datetime | None = None
    description: str | None = None

    @classmethod
    def pending(cls, created_at: datetime) -> "HandshakeState":
        return cls(status=HandshakeStatus.PENDING, created_at=created_at)

    @classmethod
    def failed(cls, description: str) -> "HandshakeState":
        return cls(status=HandshakeStatus.FAILED, description=description)

    @property
    def is_pending(self) -> bool:
        return self.status is HandshakeStatus.PENDING

    def elapsed_seconds(self, now: datetime) -> float | None:
        """Seconds since the Subscribe call, None if created_at is missing."""
        if self.created_at is None:
            return None
        return (now - self.created_at).total_seconds()

    def has_timed_out(self, now: datetime, timeout_seconds: float) -> bool:
        """True once strictly more than timeout_seconds have passed.

        A PENDING record without created_at counts as timed out.
        """
        elapsed = self.elapsed_seconds(now)
        if elapsed is None:
            return True
        return elapsed > timeout_seconds


def encode_state(state: HandshakeState) -> dict[str, Any]:
    """Encode a handshake state as a JSON-compatible dict."""
    data: dict[str, Any] = {"status": state.status.value}
    if state.created_at is not None:
        data["created_at"] = ensure_timezone_aware_iso(state.created_at)
    if state.description is not None:
        data["description"] = state.description
    return data


def decode_state(data: Any) -> HandshakeState:
    """Decode a stored record.

    Raises:
        StateDecodeError: if the record is not a dict or has an unknown status
    """
    if not isinstance(data, dict):
        raise StateDecodeError(f"Handshake record must be an object, got {type(data).__name__}")
    try:
        status = HandshakeStatus(data.get("status"))
    except ValueError as e:
        raise StateDecodeError(f"Unknown handshake status {data.get('status')!r}") from e
    created_at = parse_timezone_aware_iso(data.get("created_at"))
    if status is HandshakeStatus.PENDING and created_at is None:
        logger.warning("PENDING handshake record without created_at, treating as timed out")
    description = data.get("description")
    if description is not None:
        description = str(description)
    return HandshakeState(status=status, created_at=created_at, description=description)
