"""Invocation context for logging correlation.

Each host entry point (sync, drain, reconfigure, HTTP delivery) runs with a
request ID, the block ID and the subscription ARN it acts on stored in
contextvars, so log lines from every module can be correlated without
passing these values around.
"""

import uuid
from contextvars import ContextVar
from typing import Any

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_block_id: ContextVar[str | None] = ContextVar("block_id", default=None)
_subscription_arn: ContextVar[str | None] = ContextVar("subscription_arn", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    return _request_id.get()


def get_short_request_id() -> str:
    """
    Last 8 hex characters of the request ID, or "-" if unset.

    Example:
        >>> set_invocation_context(request_id="550e8400-e29b-41d4-a716-446655440000")
        '550e8400-e29b-41d4-a716-446655440000'
        >>> get_short_request_id()
        '55440000'
    """
    request_id = _request_id.get()
    if request_id:
        return request_id.replace("-", "")[-8:]
    return "-"


def get_block_id() -> str | None:
    return _block_id.get()


def get_subscription_arn() -> str | None:
    return _subscription_arn.get()


def set_subscription_arn(subscription_arn: str | None) -> None:
    """Update the subscription ARN, e.g. after a Subscribe call returned one."""
    _subscription_arn.set(subscription_arn)


def get_short_subscription_id() -> str:
    """
    Last segment of the subscription ARN (the subscription UUID), or "-".

    Example:
        >>> set_subscription_arn("arn:aws:sns:us-east-1:123456789012:topic:0b1c")
        >>> get_short_subscription_id()
        '0b1c'
    """
    subscription_arn = _subscription_arn.get()
    if subscription_arn:
        return subscription_arn.split(":")[-1]
    return "-"


def set_invocation_context(
    request_id: str | None = None,
    block_id: str | None = None,
    subscription_arn: str | None = None,
    *,
    generate_id: bool = True,
) -> str:
    """
    Set all context values at the start of a host invocation.

    Returns:
        The request ID that was set (either provided or generated)
    """
    if request_id is None and generate_id:
        request_id = generate_request_id()

    _request_id.set(request_id)
    _block_id.set(block_id)
    _subscription_arn.set(subscription_arn)

    return request_id or ""


def clear_invocation_context() -> None:
    """Clear all context values at the end of a host invocation."""
    _request_id.set(None)
    _block_id.set(None)
    _subscription_arn.set(None)


def get_context_dict() -> dict[str, Any]:
    return {
        "request_id": _request_id.get(),
        "block_id": _block_id.get(),
        "subscription_arn": _subscription_arn.get(),
    }


def format_context_compact() -> str:
    """
    Format context as ``[short_request_id:block_id:short_subscription_id]``.

    Example:
        >>> clear_invocation_context()
        >>> format_context_compact()
        '[-:-:-]'
    """
    short_req = get_short_request_id()
    block = get_block_id() or "-"
    short_sub = get_short_subscription_id()

    return f"[{short_req}:{block}:{short_sub}]"
