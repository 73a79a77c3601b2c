"""
Host-facing interface of the SNS subscription block.

The block facade lives in ``snsblock.interface.app`` and is exported from
the top-level package.
"""

from .hooks import HookRegistry, LifecycleEvent

__all__ = [
    "HookRegistry",
    "LifecycleEvent",
]
