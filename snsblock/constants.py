"""Constants shared across the SNS subscription block."""

from enum import Enum

# Persistent state keys, scoped to one block instance
SUBSCRIPTION_CONFIRMATION_KEY = "subscription-confirmation"
SUBSCRIPTION_RESET_KEY = "subscription-reset"

# Handshake timing
DEFAULT_SUBSCRIPTION_TIMEOUT_SECONDS = 180
DEFAULT_SUBSCRIPTION_RECHECK_SECONDS = 5

# Upper bound on ListSubscriptionsByTopic pages walked per existence check
DEFAULT_MAX_LIST_PAGES = 1000

# (connect, read) timeout for outbound HTTP calls
DEFAULT_HTTP_TIMEOUT = (5, 20)

# SNS returns this placeholder instead of an ARN for unconfirmed subscriptions
PENDING_CONFIRMATION_ARN = "PendingConfirmation"

CALLBACK_ACK_BODY = "OK"

# Default signing certificate host pattern, {region} is taken from TopicArn
DEFAULT_SIGNING_CERT_HOST_PATTERN = r"^sns\.{region}\.amazonaws\.com(\.cn)?$"


class StateBackend(str, Enum):
    """Available persistent state backends."""

    DYNAMODB = "dynamodb"
    MEMORY = "memory"


class Environment(str, Enum):
    """Deployment environments, used to pick logging presets."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TESTING = "testing"
