"""
Configuration for the SNS subscription block.

Three layers of configuration are consumed:

- ``AppConfig``: credentials and endpoint shared by every block of the app
- ``BlockConfig``: per-block topic, region and subscription attributes
- ``SubscriptionTimingConfig``: handshake timeout and recheck interval
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    DEFAULT_SUBSCRIPTION_RECHECK_SECONDS,
    DEFAULT_SUBSCRIPTION_TIMEOUT_SECONDS,
)
from .errors import ConfigurationError

# arn:aws:sns:us-east-1:123456789012:my-topic
_TOPIC_ARN_PATTERN = re.compile(
    r"^arn:(?P<partition>aws[a-zA-Z-]*):sns:(?P<region>[a-z0-9-]+):"
    r"(?P<account>\d{12}):(?P<name>[A-Za-z0-9_.-]{1,256})$"
)


def parse_topic_region(topic_arn: str) -> str | None:
    """Return the region embedded in a topic ARN, or None if it does not parse."""
    match = _TOPIC_ARN_PATTERN.match(topic_arn or "")
    if not match:
        return None
    return match.group("region")


@dataclass
class AppConfig:
    """App-wide provider settings.

    Attributes:
        access_key_id: AWS access key id
        secret_access_key: AWS secret access key
        session_token: Optional session token for temporary credentials
        endpoint: Optional custom SNS endpoint URL, for SNS-compatible
            services used in testing
    """

    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    endpoint: str | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            session_token=os.getenv("AWS_SESSION_TOKEN") or None,
            endpoint=os.getenv("SNS_ENDPOINT_URL") or None,
        )

    def validate(self) -> None:
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ConfigurationError(
                "access_key_id and secret_access_key must be set together"
            )
        if self.session_token and not self.access_key_id:
            raise ConfigurationError("session_token requires access_key_id")
        if self.endpoint and not self.endpoint.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid SNS endpoint URL: {self.endpoint}")


@dataclass
class BlockConfig:
    """Per-block subscription settings.

    Attributes:
        topic_arn: ARN of the SNS topic to subscribe to
        region: AWS region of the topic, defaults to the region in topic_arn
        attributes: Subscription attributes passed to Subscribe
            (e.g. ``RawMessageDelivery``, ``FilterPolicy``)
    """

    topic_arn: str
    region: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.region and self.topic_arn:
            self.region = parse_topic_region(self.topic_arn)
        if self.attributes is None:
            self.attributes = {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockConfig":
        """Build from the host's config mapping (camelCase keys)."""
        return cls(
            topic_arn=data.get("topicArn", ""),
            region=data.get("region"),
            attributes=dict(data.get("attributes") or {}),
        )

    def validate(self) -> None:
        if not self.topic_arn:
            raise ConfigurationError("topic_arn is required")
        if parse_topic_region(self.topic_arn) is None:
            raise ConfigurationError(f"Invalid SNS topic ARN: {self.topic_arn}")
        if not self.region:
            raise ConfigurationError("region is required")
        for key, value in self.attributes.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ConfigurationError(
                    f"Subscription attribute {key!r} must map a string to a string"
                )

    def validate_update(self, previous: "BlockConfig", strict_topic: bool) -> None:
        """Check that a config change is allowed.

        With ``strict_topic`` the topic is immutable once the block exists.
        """
        self.validate()
        if strict_topic and previous.topic_arn != self.topic_arn:
            raise ConfigurationError(
                f"topic_arn cannot be changed from {previous.topic_arn} "
                f"to {self.topic_arn}"
            )


@dataclass
class SubscriptionTimingConfig:
    """Handshake timing.

    Attributes:
        timeout_seconds: How long a PENDING handshake may wait for
            confirmation before re-subscribing. Also used as the state TTL.
        recheck_seconds: Reschedule delay requested while in progress
    """

    timeout_seconds: int = DEFAULT_SUBSCRIPTION_TIMEOUT_SECONDS
    recheck_seconds: int = DEFAULT_SUBSCRIPTION_RECHECK_SECONDS

    def validate(self) -> None:
        if self.timeout_seconds <= 0 or self.recheck_seconds <= 0:
            raise ConfigurationError("timeout_seconds and recheck_seconds must be > 0")
        if self.recheck_seconds > self.timeout_seconds:
            raise ConfigurationError(
                f"recheck_seconds ({self.recheck_seconds}) cannot exceed "
                f"timeout_seconds ({self.timeout_seconds})"
            )
