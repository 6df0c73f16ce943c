"""Structured logging for the tracker: structlog over stdlib logging.

Request and fetch scoped fields travel through structlog.contextvars, so
an event logged deep inside a service carries the user_id of the request
or the symbol of the index fetch that caused it without passing them down.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

#: Third-party loggers that are chatty below WARNING (httpx logs every request).
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def setup_logging(log_level: str = "INFO") -> None:
    """Route structlog and stdlib records through one rendering handler.

    LOG_FORMAT=json renders one JSON object per line; anything else uses
    structlog's console renderer.
    """
    renderer: structlog.types.Processor
    if os.environ.get("LOG_FORMAT", "console").lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


def bind_request_context(**fields: object) -> None:
    """Start a fresh logging context for one request.

    Clears whatever an earlier request on the same context left behind,
    then binds the given fields. None values are skipped.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in fields.items() if value is not None}
    )


@contextmanager
def bound_context(**fields: object) -> Iterator[None]:
    """Bind fields for the duration of a block, restoring the outer context after."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
