"""
Inbound SNS delivery handling.

Every delivery is verified before anything else happens. Verified
deliveries are dispatched on their ``Type``:

- ``SubscriptionConfirmation``: visit ``SubscribeURL`` to accept the
  subscription, record a FAILED handshake if that does not work, and ask the
  host for a prompt re-sync
- ``Notification``: emit one output event
- anything else: log and acknowledge
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

from ..config import BlockConfig
from ..constants import (
    CALLBACK_ACK_BODY,
    DEFAULT_HTTP_TIMEOUT,
    SUBSCRIPTION_CONFIRMATION_KEY,
)
from ..db import StateStore
from ..errors import CallbackRejectedError, InvalidPayloadError
from ..handshake import HandshakeState, encode_state
from ..interface.hooks import HookRegistry, LifecycleEvent
from ..signature import SignatureVerifier

logger = logging.getLogger(__name__)


class MessageType(Enum):
    SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
    NOTIFICATION = "Notification"
    UNSUBSCRIBE_CONFIRMATION = "UnsubscribeConfirmation"
    UNKNOWN = "Unknown"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MessageType":
        try:
            message_type = cls(payload.get("Type"))
        except ValueError:
            return cls.UNKNOWN
        return message_type


class CallbackOutcome(Enum):
    CONFIRMED = "confirmed"
    CONFIRMATION_FAILED = "confirmation_failed"
    UNEXPECTED_CONFIRMATION = "unexpected_confirmation"
    EMITTED = "emitted"
    IGNORED = "ignored"
    TOPIC_MISMATCH = "topic_mismatch"


@dataclass(frozen=True)
class CallbackResponse:
    status_code: int
    body: str
    outcome: CallbackOutcome | None = None


def parse_body(body: str | bytes | dict[str, Any] | None) -> dict[str, Any]:
    """Parse an inbound body. SNS posts JSON with Content-Type text/plain.

    Raises:
        InvalidPayloadError: if the body is not a JSON object
    """
    if isinstance(body, dict):
        return body
    if body is None:
        raise InvalidPayloadError("Empty request body")
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPayloadError("Request body is not UTF-8") from e
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise InvalidPayloadError(f"Request body is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Request body is not a JSON object")
    return payload


def notification_event(payload: dict[str, Any]) -> dict[str, Any]:
    """Output event for a Notification payload."""
    missing = [name for name in ("Message", "MessageId", "Timestamp") if payload.get(name) is None]
    if missing:
        raise InvalidPayloadError(f"Notification is missing {', '.join(missing)}")
    return {
        "payload": {
            "message": str(payload["Message"]),
            "messageId": str(payload["MessageId"]),
            "timestamp": str(payload["Timestamp"]),
        }
    }


class CallbacksHandler:
    """Handles deliveries SNS posts to the block's endpoint."""

    def __init__(
        self,
        block_config: BlockConfig,
        store: StateStore,
        verifier: SignatureVerifier,
        hooks: HookRegistry | None = None,
        timeout: tuple[int | float, int | float] = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self.block_config = block_config
        self.store = store
        self.verifier = verifier
        self.hooks = hooks or HookRegistry()
        self.timeout = timeout

    def handle_request(
        self,
        body: str | bytes | dict[str, Any] | None,
        headers: dict[str, str] | None = None,
    ) -> CallbackResponse:
        """Handle one HTTP delivery and build the response for the host.

        Rejected deliveries get 400/403 so SNS does not count them as
        delivered. Any other exception propagates and the host answers 5xx.
        """
        try:
            payload = parse_body(body)
            lowered = {key.lower(): value for key, value in (headers or {}).items()}
            header_type = lowered.get("x-amz-sns-message-type")
            if header_type and payload.get("Type") and header_type != payload.get("Type"):
                raise InvalidPayloadError(
                    f"Message type header {header_type} does not match body {payload.get('Type')}"
                )
            outcome = self.process(payload)
        except CallbackRejectedError as e:
            logger.warning(f"Rejected SNS delivery: {e}")
            return CallbackResponse(status_code=e.status_code, body=str(e))
        return CallbackResponse(status_code=200, body=CALLBACK_ACK_BODY, outcome=outcome)

    def process(self, payload: dict[str, Any]) -> CallbackOutcome:
        """Verify and dispatch a parsed delivery.

        Raises:
            SignatureVerificationError: if the signature does not verify
            InvalidPayloadError: if a verified Notification lacks output fields
        """
        self.verifier.verify(payload)

        topic_arn = payload.get("TopicArn")
        if topic_arn != self.block_config.topic_arn:
            logger.warning(f"Dropping delivery for unexpected topic {topic_arn}")
            return CallbackOutcome.TOPIC_MISMATCH

        message_type = MessageType.from_payload(payload)
        if message_type is MessageType.SUBSCRIPTION_CONFIRMATION:
            return self._confirm_subscription(payload)
        if message_type is MessageType.NOTIFICATION:
            self.hooks.emit_event(notification_event(payload))
            return CallbackOutcome.EMITTED
        if message_type is MessageType.UNSUBSCRIBE_CONFIRMATION:
            logger.info(f"Received UnsubscribeConfirmation for {topic_arn}")
            return CallbackOutcome.IGNORED
        logger.warning(f"Unexpected SNS message type: {payload.get('Type')}")
        return CallbackOutcome.IGNORED

    def _confirm_subscription(self, payload: dict[str, Any]) -> CallbackOutcome:
        if self.store.get(SUBSCRIPTION_CONFIRMATION_KEY) is None:
            logger.warning("Received unexpected subscription confirmation request")
            return CallbackOutcome.UNEXPECTED_CONFIRMATION

        subscribe_url = payload.get("SubscribeURL")
        failure: str | None = None
        if not subscribe_url:
            failure = "SNS subscription confirmation did not include a SubscribeURL"
        else:
            try:
                response = requests.get(subscribe_url, timeout=self.timeout)
                if response.status_code != 200:
                    failure = (
                        "Rejected SNS subscription confirmation, "
                        f"status code: {response.status_code}"
                    )
            except requests.RequestException as e:
                failure = f"Failed to confirm SNS subscription: {e}"

        if failure is not None:
            logger.error(failure)
            self.store.set(
                SUBSCRIPTION_CONFIRMATION_KEY, encode_state(HandshakeState.failed(failure))
            )
            self.hooks.execute_lifecycle_hooks(
                LifecycleEvent.CONFIRMATION_FAILED, description=failure
            )
            outcome = CallbackOutcome.CONFIRMATION_FAILED
        else:
            # PENDING stays until the next sync sees SNS list the subscription
            logger.info(f"Confirmed SNS subscription to {payload.get('TopicArn')}")
            outcome = CallbackOutcome.CONFIRMED

        self.hooks.request_sync()
        return outcome
