"""
SNS message signature verification.

SNS signs every HTTP delivery with the private key of a certificate it
publishes at ``SigningCertURL``. Verification rebuilds the canonical string
for the message type, fetches (and caches) the certificate, and checks the
RSA signature:

- ``SignatureVersion`` "1": SHA1 with RSA
- ``SignatureVersion`` "2": SHA256 with RSA

The certificate URL must be https and hosted by SNS in the region of the
claimed ``TopicArn``, so a payload cannot point at a certificate of the
attacker's choosing.
"""

import base64
import binascii
import logging
import re
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import requests
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import parse_topic_region
from .constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_SIGNING_CERT_HOST_PATTERN
from .errors import SignatureVerificationError

logger = logging.getLogger(__name__)

NOTIFICATION_SIGNED_FIELDS = ("Message", "MessageId", "Subject", "Timestamp", "TopicArn", "Type")
CONFIRMATION_SIGNED_FIELDS = (
    "Message",
    "MessageId",
    "SubscribeURL",
    "Timestamp",
    "Token",
    "TopicArn",
    "Type",
)
_OPTIONAL_SIGNED_FIELDS = {"Subject"}
_CONFIRMATION_TYPES = {"SubscriptionConfirmation", "UnsubscribeConfirmation"}

_SIGNATURE_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "1": hashes.SHA1,
    "2": hashes.SHA256,
}

# Certificates keyed by SigningCertURL, shared by all verifiers in the process
_certificate_cache: dict[str, x509.Certificate] = {}


def clear_certificate_cache() -> None:
    _certificate_cache.clear()


def canonical_string(payload: dict[str, Any]) -> str:
    """Build the string SNS signed for this payload.

    Raises:
        SignatureVerificationError: if a signed field is missing
    """
    if payload.get("Type") in _CONFIRMATION_TYPES:
        signed_fields = CONFIRMATION_SIGNED_FIELDS
    else:
        signed_fields = NOTIFICATION_SIGNED_FIELDS
    parts = []
    for name in signed_fields:
        value = payload.get(name)
        if value is None:
            if name in _OPTIONAL_SIGNED_FIELDS:
                continue
            raise SignatureVerificationError(f"Signed field {name} is missing")
        parts.append(f"{name}\n{value}\n")
    return "".join(parts)


class SignatureVerifier:
    """Verifies SNS delivery signatures.

    Args:
        cert_host_pattern: Regex the certificate host must match. ``{region}``
            is replaced with the escaped region of the payload's TopicArn.
        timeout: (connect, read) timeout for certificate downloads
        enabled: Set to False only for local emulators that do not sign
    """

    def __init__(
        self,
        cert_host_pattern: str = DEFAULT_SIGNING_CERT_HOST_PATTERN,
        timeout: tuple[int | float, int | float] = DEFAULT_HTTP_TIMEOUT,
        enabled: bool = True,
    ) -> None:
        self.cert_host_pattern = cert_host_pattern
        self.timeout = timeout
        self.enabled = enabled
        if not enabled:
            logger.warning("SNS signature verification is disabled")

    def verify(self, payload: dict[str, Any]) -> None:
        """Verify payload or raise SignatureVerificationError."""
        if not self.enabled:
            return

        version = str(payload.get("SignatureVersion", ""))
        hash_algorithm = _SIGNATURE_HASHES.get(version)
        if hash_algorithm is None:
            raise SignatureVerificationError(f"Unsupported SignatureVersion {version!r}")

        topic_arn = payload.get("TopicArn") or ""
        region = parse_topic_region(topic_arn)
        if region is None:
            raise SignatureVerificationError(f"Invalid TopicArn {topic_arn!r}")

        cert_url = payload.get("SigningCertURL") or ""
        self._check_cert_url(cert_url, region)

        signature_b64 = payload.get("Signature")
        if not signature_b64:
            raise SignatureVerificationError("Signature is missing")
        try:
            signature = base64.b64decode(signature_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SignatureVerificationError("Signature is not valid base64") from e

        message = canonical_string(payload).encode("utf-8")
        public_key = self._get_certificate(cert_url).public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise SignatureVerificationError("Signing certificate does not hold an RSA key")
        try:
            public_key.verify(signature, message, padding.PKCS1v15(), hash_algorithm())
        except InvalidSignature as e:
            raise SignatureVerificationError(
                f"Signature mismatch for message {payload.get('MessageId')}"
            ) from e
        logger.debug(f"Verified signature of {payload.get('Type')} {payload.get('MessageId')}")

    def _check_cert_url(self, cert_url: str, region: str) -> None:
        parsed = urlparse(cert_url)
        if parsed.scheme != "https":
            raise SignatureVerificationError(f"SigningCertURL must use https: {cert_url!r}")
        host_pattern = self.cert_host_pattern.replace("{region}", re.escape(region))
        if not parsed.hostname or not re.match(host_pattern, parsed.hostname):
            raise SignatureVerificationError(
                f"SigningCertURL host {parsed.hostname!r} is not an SNS host for {region}"
            )
        if not parsed.path.endswith(".pem"):
            raise SignatureVerificationError(f"SigningCertURL is not a PEM file: {cert_url!r}")

    def _get_certificate(self, cert_url: str) -> x509.Certificate:
        cert = _certificate_cache.get(cert_url)
        if cert is None:
            cert = self._fetch_certificate(cert_url)
            _certificate_cache[cert_url] = cert
        if cert.not_valid_after_utc < datetime.now(UTC):
            _certificate_cache.pop(cert_url, None)
            raise SignatureVerificationError(f"Signing certificate expired: {cert_url}")
        return cert

    def _fetch_certificate(self, cert_url: str) -> x509.Certificate:
        logger.debug(f"Fetching SNS signing certificate from {cert_url}")
        try:
            response = requests.get(cert_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise SignatureVerificationError(f"Failed to fetch signing certificate: {e}") from e
        if response.status_code != 200:
            raise SignatureVerificationError(
                f"Failed to fetch signing certificate, status code: {response.status_code}"
            )
        try:
            return x509.load_pem_x509_certificate(response.content)
        except ValueError as e:
            raise SignatureVerificationError("Signing certificate is not valid PEM") from e
