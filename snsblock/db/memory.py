"""In-process state store, used in tests and for local runs."""

import copy
import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class MemoryStateStore:
    """Dict-backed StateStore with TTL support.

    Args:
        block_id: Block instance the store is scoped to
        clock: Returns the current time in epoch seconds
    """

    def __init__(self, block_id: str, clock: Callable[[], float] = time.time) -> None:
        self.block_id = block_id
        self._clock = clock
        self._items: dict[str, tuple[Any, float | None]] = {}

    def get(self, key: str) -> Any | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() > expires_at:
            logger.debug(f"Key {key} expired for block {self.block_id}")
            del self._items[key]
            return None
        return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._items[key] = (copy.deepcopy(value), expires_at)

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._items.pop(key, None)

    def keys(self) -> list[str]:
        """Keys currently stored and not expired."""
        return [key for key in list(self._items) if self.get(key) is not None]
