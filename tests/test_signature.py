"""Unit tests for SNS signature verification."""

from collections.abc import Callable
from typing import Any

import pytest
import requests

from snsblock.errors import SignatureVerificationError
from snsblock.signature import SignatureVerifier, canonical_string

CERT_URL = "https://sns.us-east-1.amazonaws.com/SimpleNotificationService-test.pem"


class TestCanonicalString:
    """Tests for canonical_string()."""

    def test_notification_fields(self, make_notification: Callable[..., dict[str, Any]]) -> None:
        payload = make_notification(Subject="greeting")

        assert canonical_string(payload) == (
            "Message\nhi\n"
            "MessageId\nm1\n"
            "Subject\ngreeting\n"
            "Timestamp\nt1\n"
            "TopicArn\narn:aws:sns:us-east-1:123456789012:orders\n"
            "Type\nNotification\n"
        )

    def test_notification_without_subject(
        self, make_notification: Callable[..., dict[str, Any]]
    ) -> None:
        assert "Subject" not in canonical_string(make_notification())

    def test_confirmation_fields(self, make_confirmation: Callable[..., dict[str, Any]]) -> None:
        text = canonical_string(make_confirmation())

        assert text.startswith("Message\n")
        assert "SubscribeURL\n" in text
        assert "Token\ntoken-1\n" in text
        assert text.endswith("Type\nSubscriptionConfirmation\n")

    def test_missing_required_field(
        self, make_confirmation: Callable[..., dict[str, Any]]
    ) -> None:
        payload = make_confirmation()
        del payload["Token"]

        with pytest.raises(SignatureVerificationError, match="Token"):
            canonical_string(payload)


class TestSignatureVerifier:
    """Tests for SignatureVerifier.verify()."""

    @pytest.mark.parametrize("version", ["1", "2"])
    def test_valid_signature(
        self,
        cert_server: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
        version: str,
    ) -> None:
        SignatureVerifier().verify(sign(make_notification(), version))

    def test_valid_confirmation_signature(
        self,
        cert_server: Any,
        sign: Callable[..., dict[str, Any]],
        make_confirmation: Callable[..., dict[str, Any]],
    ) -> None:
        SignatureVerifier().verify(sign(make_confirmation()))

    def test_tampered_message(
        self,
        cert_server: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        payload = sign(make_notification())
        payload["Message"] = "tampered"

        with pytest.raises(SignatureVerificationError, match="Signature mismatch"):
            SignatureVerifier().verify(payload)

    def test_version_mismatch(
        self,
        cert_server: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        """A SHA1 signature claimed as version 2 does not verify."""
        payload = sign(make_notification(), "1")
        payload["SignatureVersion"] = "2"

        with pytest.raises(SignatureVerificationError):
            SignatureVerifier().verify(payload)

    def test_unsupported_version(
        self, sign: Callable[..., dict[str, Any]], make_notification: Callable[..., dict[str, Any]]
    ) -> None:
        payload = sign(make_notification())
        payload["SignatureVersion"] = "3"

        with pytest.raises(SignatureVerificationError, match="Unsupported SignatureVersion"):
            SignatureVerifier().verify(payload)

    @pytest.mark.parametrize(
        "cert_url",
        [
            "http://sns.us-east-1.amazonaws.com/cert.pem",
            "https://sns.eu-west-1.amazonaws.com/cert.pem",
            "https://sns.us-east-1.amazonaws.com.evil.example/cert.pem",
            "https://evil.example/sns.us-east-1.amazonaws.com/cert.pem",
            "https://sns.us-east-1.amazonaws.com/cert.txt",
            "",
        ],
    )
    def test_rejects_foreign_certificate_url(
        self,
        mocked_responses: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
        cert_url: str,
    ) -> None:
        payload = sign(make_notification())
        payload["SigningCertURL"] = cert_url

        with pytest.raises(SignatureVerificationError):
            SignatureVerifier().verify(payload)

        assert len(mocked_responses.calls) == 0

    def test_china_partition_host(self) -> None:
        SignatureVerifier()._check_cert_url(
            "https://sns.cn-north-1.amazonaws.com.cn/cert.pem", "cn-north-1"
        )

    def test_custom_host_pattern(
        self,
        mocked_responses: Any,
        signing_identity: tuple[Any, bytes],
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        local_url = "https://localstack.test/cert.pem"
        mocked_responses.get(local_url, body=signing_identity[1])
        payload = sign(make_notification())
        payload["SigningCertURL"] = local_url

        SignatureVerifier(cert_host_pattern=r"^localstack\.test$").verify(payload)

    def test_missing_signature(
        self, sign: Callable[..., dict[str, Any]], make_notification: Callable[..., dict[str, Any]]
    ) -> None:
        payload = sign(make_notification())
        del payload["Signature"]

        with pytest.raises(SignatureVerificationError, match="Signature is missing"):
            SignatureVerifier().verify(payload)

    def test_signature_not_base64(
        self, sign: Callable[..., dict[str, Any]], make_notification: Callable[..., dict[str, Any]]
    ) -> None:
        payload = sign(make_notification())
        payload["Signature"] = "not base64!"

        with pytest.raises(SignatureVerificationError, match="base64"):
            SignatureVerifier().verify(payload)

    def test_invalid_topic_arn(
        self, sign: Callable[..., dict[str, Any]], make_notification: Callable[..., dict[str, Any]]
    ) -> None:
        payload = sign(make_notification(TopicArn="orders"))

        with pytest.raises(SignatureVerificationError, match="Invalid TopicArn"):
            SignatureVerifier().verify(payload)

    def test_certificate_is_cached(
        self,
        cert_server: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        verifier = SignatureVerifier()
        verifier.verify(sign(make_notification()))
        SignatureVerifier().verify(sign(make_notification(MessageId="m2")))

        assert len(cert_server.calls) == 1

    def test_certificate_fetch_failure(
        self,
        mocked_responses: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        mocked_responses.get(CERT_URL, status=404)

        with pytest.raises(SignatureVerificationError, match="status code: 404"):
            SignatureVerifier().verify(sign(make_notification()))

    def test_certificate_network_error(
        self,
        mocked_responses: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        mocked_responses.get(CERT_URL, body=requests.ConnectionError("refused"))

        with pytest.raises(SignatureVerificationError, match="Failed to fetch"):
            SignatureVerifier().verify(sign(make_notification()))

    def test_certificate_not_pem(
        self,
        mocked_responses: Any,
        sign: Callable[..., dict[str, Any]],
        make_notification: Callable[..., dict[str, Any]],
    ) -> None:
        mocked_responses.get(CERT_URL, body="hello")

        with pytest.raises(SignatureVerificationError, match="not valid PEM"):
            SignatureVerifier().verify(sign(make_notification()))

    def test_disabled_verifier_accepts_anything(self) -> None:
        SignatureVerifier(enabled=False).verify({"Type": "Notification"})
