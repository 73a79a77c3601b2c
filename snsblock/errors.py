"""Exception hierarchy for the SNS subscription block."""


class SnsBlockError(Exception):
    """Base exception class for snsblock errors."""

    pass


class ConfigurationError(SnsBlockError, ValueError):
    """Raised when block or app configuration is invalid."""

    pass


class TopicProviderError(SnsBlockError):
    """Raised when a Subscribe, Unsubscribe or List call to SNS fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StateDecodeError(SnsBlockError):
    """Raised when a persisted handshake record cannot be decoded."""

    pass


class CallbackRejectedError(SnsBlockError):
    """Base class for inbound deliveries that must not be acknowledged."""

    status_code = 400


class InvalidPayloadError(CallbackRejectedError):
    """Raised when an inbound delivery body is not a JSON object."""

    status_code = 400


class SignatureVerificationError(CallbackRejectedError):
    """Raised when an inbound delivery fails SNS signature verification."""

    status_code = 403
