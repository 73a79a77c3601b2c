"""Logging filters that inject the invocation context into log records."""

import logging

from snsblock import request_context


class InvocationContextFilter(logging.Filter):
    """
    Adds a ``context`` attribute formatted as
    ``[req_id:block_id:subscription_id]``, for text log formats using
    ``%(context)s``. Missing values are shown as "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = request_context.format_context_compact()  # type: ignore[attr-defined]
        return True


class StructuredContextFilter(logging.Filter):
    """
    Adds ``request_id``, ``block_id`` and ``subscription_arn`` as separate
    record attributes, for JSON formatters.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = request_context.get_context_dict()

        record.request_id = context["request_id"]  # type: ignore[attr-defined]
        record.block_id = context["block_id"]  # type: ignore[attr-defined]
        record.subscription_arn = context["subscription_arn"]  # type: ignore[attr-defined]

        return True
