"""Centralized logging configuration for snsblock.

Logger hierarchy:

- ``snsblock``: everything
- ``snsblock.db``: state store backends
- ``snsblock.handlers``: inbound SNS deliveries
- ``snsblock.sns_client`` / ``snsblock.signature``: calls to AWS
"""

import logging

from .constants import Environment


def configure_snsblock_logging(
    level: int = logging.INFO,
    *,
    db_level: int | None = None,
    handlers_level: int | None = None,
    provider_level: int | None = None,
) -> None:
    """
    Configure snsblock logging levels.

    Args:
        level: Default level for all snsblock loggers (default: INFO)
        db_level: Override for state store backends (default: WARNING)
        handlers_level: Override for inbound delivery handling
        provider_level: Override for SNS API and certificate calls

    Example:
        >>> import logging
        >>> configure_snsblock_logging(logging.DEBUG, db_level=logging.INFO)
    """
    logging.getLogger("snsblock").setLevel(level)

    if db_level is not None:
        logging.getLogger("snsblock.db").setLevel(db_level)
    else:
        # State reads happen on every tick, keep them at WARNING unless ERROR is asked for
        logging.getLogger("snsblock.db").setLevel(
            max(level, logging.WARNING) if level < logging.ERROR else level
        )

    if handlers_level is not None:
        logging.getLogger("snsblock.handlers").setLevel(handlers_level)

    if provider_level is not None:
        logging.getLogger("snsblock.sns_client").setLevel(provider_level)
        logging.getLogger("snsblock.signature").setLevel(provider_level)

    _configure_third_party_loggers()


def _configure_third_party_loggers() -> None:
    """Set chatty third-party libraries to WARNING."""
    noisy_libraries = [
        "pynamodb",
        "botocore",
        "boto3",
        "urllib3",
        "urllib3.connectionpool",
        "requests",
    ]

    for library in noisy_libraries:
        logging.getLogger(library).setLevel(logging.WARNING)


def configure_production_logging(*, deliveries: bool = True) -> None:
    """
    Production preset: warnings everywhere, optionally INFO for deliveries.

    Args:
        deliveries: If True, log inbound SNS deliveries at INFO level
    """
    configure_snsblock_logging(
        level=logging.WARNING,
        handlers_level=logging.INFO if deliveries else logging.WARNING,
        db_level=logging.ERROR,
        provider_level=logging.WARNING,
    )


def configure_development_logging(*, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO

    configure_snsblock_logging(
        level=level,
        db_level=logging.INFO if verbose else logging.WARNING,
    )


def configure_testing_logging(*, debug: bool = False) -> None:
    """Only errors during tests, unless debug=True."""
    if debug:
        configure_development_logging(verbose=True)
    else:
        configure_snsblock_logging(logging.ERROR)


def configure_for_environment(environment: Environment | str) -> None:
    """Apply the preset matching a deployment environment."""
    env = Environment(environment)
    if env is Environment.PRODUCTION:
        configure_production_logging()
    elif env is Environment.DEVELOPMENT:
        configure_development_logging()
    else:
        configure_testing_logging()


def get_context_format(
    *,
    include_timestamp: bool = True,
    include_context: bool = True,
    include_logger: bool = True,
    include_level: bool = True,
) -> str:
    """
    Build a log format string, optionally with the ``%(context)s`` field
    filled in by InvocationContextFilter.

    Example:
        >>> get_context_format()
        '%(asctime)s %(context)s %(name)s:%(levelname)s: %(message)s'
        >>> get_context_format(include_timestamp=False, include_context=False)
        '%(name)s:%(levelname)s: %(message)s'
    """
    parts = []

    if include_timestamp:
        parts.append("%(asctime)s")

    if include_context:
        parts.append("%(context)s")

    logger_level = []
    if include_logger:
        logger_level.append("%(name)s")
    if include_level:
        logger_level.append("%(levelname)s")

    if logger_level:
        parts.append(":".join(logger_level) + ":")

    parts.append("%(message)s")

    return " ".join(parts)


def enable_invocation_context_filter(
    *,
    logger: str | logging.Logger = "snsblock",
    structured: bool = False,
) -> None:
    """
    Add the invocation context filter to every handler of ``logger``.

    Args:
        logger: Logger name or Logger object (default: "snsblock")
        structured: Use StructuredContextFilter for JSON logging instead of
            the compact text filter
    """
    from snsblock.log_filter import InvocationContextFilter, StructuredContextFilter

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    filter_class = StructuredContextFilter if structured else InvocationContextFilter

    for handler in logger.handlers:
        handler.addFilter(filter_class())


def configure_snsblock_logging_with_context(
    level: int = logging.INFO,
    *,
    structured: bool = False,
) -> None:
    """
    Configure levels, make sure the root logger has a handler, and attach the
    invocation context filter to the root handlers.
    """
    configure_snsblock_logging(level=level)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(get_context_format()))
        root_logger.addHandler(handler)

    enable_invocation_context_filter(logger=root_logger, structured=structured)

    if not structured:
        for handler in root_logger.handlers:
            current_format = handler.formatter._fmt if handler.formatter else None  # type: ignore[attr-defined]
            if current_format and "%(context)s" not in current_format:
                handler.setFormatter(logging.Formatter(get_context_format()))
