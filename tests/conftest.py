"""
Root conftest for all tests.

Sets up the environment BEFORE any snsblock modules are imported, and
provides fakes for the host collaborators (SNS, clock, state store) plus a
throwaway signing certificate for SNS signature tests.
"""

import base64
import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest


def pytest_configure(config):
    """
    Pytest hook that runs before test collection and module imports.

    PynamoDB models read their table name and host at import time, so the
    environment must be in place before snsblock.db.dynamodb is imported.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "test"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "test"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    os.environ["AWS_DB_PREFIX"] = "test"
    os.environ["STATE_BACKEND"] = "memory"

    if "AWS_DB_HOST" not in os.environ:
        os.environ["AWS_DB_HOST"] = "http://localhost:8001"


TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:orders"
CERT_URL = "https://sns.us-east-1.amazonaws.com/SimpleNotificationService-test.pem"
ENDPOINT_URL = "https://hooks.example.com/blocks/block-1"


class FakeClock:
    """Timezone-aware clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def epoch(self) -> float:
        return self.now.timestamp()


class FakeTopicClient:
    """In-memory TopicClient recording every call."""

    def __init__(self) -> None:
        self.subscription_arn = "sub-1"
        self.confirmed: list[str] = []
        self.page_size = 100
        self.subscribe_error: Exception | None = None
        self.unsubscribe_error: Exception | None = None
        self.list_error: Exception | None = None
        self.subscribe_calls: list[dict[str, Any]] = []
        self.unsubscribe_calls: list[str] = []
        self.list_calls: list[str | None] = []

    def subscribe(
        self,
        topic_arn: str,
        endpoint_url: str,
        protocol: str,
        attributes: dict[str, str] | None = None,
    ) -> str:
        self.subscribe_calls.append(
            {
                "topic_arn": topic_arn,
                "endpoint_url": endpoint_url,
                "protocol": protocol,
                "attributes": attributes,
            }
        )
        if self.subscribe_error:
            raise self.subscribe_error
        return self.subscription_arn

    def unsubscribe(self, subscription_arn: str) -> None:
        self.unsubscribe_calls.append(subscription_arn)
        if self.unsubscribe_error:
            raise self.unsubscribe_error

    def list_subscriptions(self, topic_arn: str, next_token: str | None = None) -> Any:
        from snsblock.sns_client import SubscriptionPage

        self.list_calls.append(next_token)
        if self.list_error:
            raise self.list_error
        start = int(next_token or 0)
        end = start + self.page_size
        return SubscriptionPage(
            subscription_arns=self.confirmed[start:end],
            next_token=str(end) if end < len(self.confirmed) else None,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> Any:
    from snsblock.db.memory import MemoryStateStore

    return MemoryStateStore("block-1", clock=clock.epoch)


@pytest.fixture
def topic_client() -> FakeTopicClient:
    return FakeTopicClient()


@pytest.fixture
def block_config() -> Any:
    from snsblock.config import BlockConfig

    return BlockConfig(topic_arn=TOPIC_ARN, attributes={"RawMessageDelivery": "true"})


@pytest.fixture
def hooks() -> Any:
    from snsblock.interface.hooks import HookRegistry

    return HookRegistry()


@pytest.fixture(scope="session")
def signing_identity() -> tuple[Any, bytes]:
    """RSA key and matching self-signed PEM certificate."""
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import rsa
    from cryptography.x509.oid import NameOID

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "sns.amazonaws.com")])
    now = datetime.now(UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return key, cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def sign(signing_identity: tuple[Any, bytes]) -> Callable[..., dict[str, Any]]:
    """Return a function that signs a payload the way SNS does."""
    from cryptography.hazmat.primitives import hashes
    from cryptography.hazmat.primitives.asymmetric import padding

    from snsblock.signature import canonical_string

    key, _ = signing_identity

    def _sign(payload: dict[str, Any], version: str = "1") -> dict[str, Any]:
        signed = dict(payload)
        signed["SignatureVersion"] = version
        signed["SigningCertURL"] = CERT_URL
        algorithm = hashes.SHA1() if version == "1" else hashes.SHA256()
        signature = key.sign(
            canonical_string(signed).encode("utf-8"), padding.PKCS1v15(), algorithm
        )
        signed["Signature"] = base64.b64encode(signature).decode("ascii")
        return signed

    return _sign


@pytest.fixture
def mocked_responses() -> Generator[Any, None, None]:
    import responses

    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def cert_server(mocked_responses: Any, signing_identity: tuple[Any, bytes]) -> Any:
    """Serve the test signing certificate at CERT_URL."""
    _, pem = signing_identity
    mocked_responses.get(CERT_URL, body=pem, status=200)
    return mocked_responses


@pytest.fixture(autouse=True)
def _clear_certificate_cache() -> Generator[None, None, None]:
    from snsblock.signature import clear_certificate_cache

    clear_certificate_cache()
    yield
    clear_certificate_cache()


def notification_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "Type": "Notification",
        "MessageId": "m1",
        "TopicArn": TOPIC_ARN,
        "Message": "hi",
        "Timestamp": "t1",
    }
    payload.update(overrides)
    return payload


def confirmation_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "Type": "SubscriptionConfirmation",
        "MessageId": "c1",
        "Token": "token-1",
        "TopicArn": TOPIC_ARN,
        "Message": "You have chosen to subscribe to the topic.",
        "SubscribeURL": "https://sns.us-east-1.amazonaws.com/?Action=ConfirmSubscription&Token=token-1",
        "Timestamp": "2024-01-15T10:30:00.000Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_notification() -> Callable[..., dict[str, Any]]:
    return notification_payload


@pytest.fixture
def make_confirmation() -> Callable[..., dict[str, Any]]:
    return confirmation_payload
