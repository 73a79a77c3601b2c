"""Persistent state backends for the SNS subscription block.

Every backend is scoped to one block instance and stores JSON-compatible
values under string keys, with an optional per-key TTL. Backends only store
values; interpretation belongs to the reconciler.
"""

import os
from typing import Any, Protocol, runtime_checkable

from ..constants import StateBackend
from ..errors import ConfigurationError

__all__ = ["StateStore", "get_state_store"]


@runtime_checkable
class StateStore(Protocol):
    """Key/value store scoped to one block instance."""

    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent or expired."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store value under key, expiring after ttl_seconds if given."""
        ...

    def delete(self, *keys: str) -> None:
        """Delete keys. Missing keys are ignored."""
        ...


def get_state_store(block_id: str, backend: str | None = None) -> StateStore:
    """Return a state store for block_id.

    The backend defaults to the ``STATE_BACKEND`` environment variable,
    falling back to DynamoDB.
    """
    name = backend or os.getenv("STATE_BACKEND", StateBackend.DYNAMODB.value)
    try:
        selected = StateBackend(name)
    except ValueError as e:
        raise ConfigurationError(f"Unknown state backend: {name}") from e
    if selected is StateBackend.MEMORY:
        from .memory import MemoryStateStore

        return MemoryStateStore(block_id)
    from .dynamodb.block_state import DynamoDbStateStore

    return DynamoDbStateStore(block_id)
