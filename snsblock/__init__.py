"""
snsblock: lifecycle management for one Amazon SNS push subscription.

Creates the subscription, completes the confirmation handshake, verifies
every inbound delivery, reconciles against SNS on each host tick and tears
the subscription down on drain.
"""

__version__ = "1.0.0"

from .config import AppConfig, BlockConfig, SubscriptionTimingConfig
from .errors import (
    ConfigurationError,
    SignatureVerificationError,
    SnsBlockError,
    TopicProviderError,
)
from .interface.app import SnsSubscriptionBlock
from .interface.hooks import HookRegistry, LifecycleEvent
from .lifecycle import BlockStatus, SyncResult

__all__ = [
    "AppConfig",
    "BlockConfig",
    "BlockStatus",
    "ConfigurationError",
    "HookRegistry",
    "LifecycleEvent",
    "SignatureVerificationError",
    "SnsBlockError",
    "SnsSubscriptionBlock",
    "SubscriptionTimingConfig",
    "SyncResult",
    "TopicProviderError",
]
