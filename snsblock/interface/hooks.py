"""
Hook system connecting the block to its host.

The host runtime owns event emission and scheduling. The block reaches them
only through hooks registered here:

- event hooks receive every output event (one per SNS Notification)
- sync hooks are called when the block wants reconciliation to run again
  promptly instead of waiting for the next scheduled tick
- lifecycle hooks observe subscription lifecycle events
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class LifecycleEvent(Enum):
    """Lifecycle events that can be hooked."""

    SUBSCRIBED = "subscribed"
    CONFIRMATION_FAILED = "confirmation_failed"
    UNSUBSCRIBED = "unsubscribed"
    RESET = "reset"


class HookRegistry:
    """
    Registry for managing block hooks.

    Event hooks are not isolated: an exception raised by an event hook
    propagates to the callback handler so the delivery is not acknowledged
    and SNS redelivers it. Sync and lifecycle hooks are best-effort and their
    errors are logged.
    """

    def __init__(self) -> None:
        self._event_hooks: list[Callable[[dict[str, Any]], Any]] = []
        self._sync_hooks: list[Callable[[], Any]] = []
        self._lifecycle_hooks: dict[str, list[Callable[..., Any]]] = {}

    def register_event_hook(self, func: Callable[[dict[str, Any]], Any]) -> None:
        """
        Register an output event hook.

        Args:
            func: Function with signature (event) -> Any
        """
        self._event_hooks.append(func)

    def register_sync_hook(self, func: Callable[[], Any]) -> None:
        """
        Register a hook that asks the host to re-run reconciliation.

        Args:
            func: Function with signature () -> Any
        """
        self._sync_hooks.append(func)

    def register_lifecycle_hook(self, event: str | LifecycleEvent, func: Callable[..., Any]) -> None:
        """
        Register a lifecycle hook function.

        Args:
            event: Lifecycle event name
            func: Function with signature (**kwargs) -> Any
        """
        name = event.value if isinstance(event, LifecycleEvent) else event
        self._lifecycle_hooks.setdefault(name, []).append(func)

    def emit_event(self, event: dict[str, Any]) -> int:
        """Deliver an output event to all event hooks.

        Returns:
            Number of hooks the event was delivered to
        """
        if not self._event_hooks:
            logger.warning("No event hook registered, output event dropped")
            return 0
        for hook in self._event_hooks:
            hook(event)
        return len(self._event_hooks)

    def request_sync(self) -> bool:
        """Ask the host to re-run reconciliation. Returns True if any hook ran."""
        requested = False
        for hook in self._sync_hooks:
            try:
                hook()
                requested = True
            except Exception as e:
                logger.error(f"Error in sync hook: {e}")
        if not self._sync_hooks:
            logger.debug("No sync hook registered, relying on scheduled reconciliation")
        return requested

    def execute_lifecycle_hooks(self, event: str | LifecycleEvent, **kwargs: Any) -> Any:
        """Execute lifecycle hooks, returning the last non-None result."""
        name = event.value if isinstance(event, LifecycleEvent) else event
        result = None
        for hook in self._lifecycle_hooks.get(name, []):
            try:
                hook_result = hook(**kwargs)
                if hook_result is not None:
                    result = hook_result
            except Exception as e:
                logger.error(f"Error in lifecycle hook for {name}: {e}")
        return result
