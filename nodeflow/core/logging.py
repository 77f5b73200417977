"""Structured logging.

Run-scoped fields (``run_id``, ``workflow_id``, ``node_id``, ``node_type``) live
in structlog context variables, so an event logged anywhere while a node runs
(handler, step runner, cache) carries them without explicit binding. Records
from stdlib loggers (uvicorn, httpx, temporalio) go through the same renderer.
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars

from nodeflow.core.config import Settings

__all__ = ["configure_logging", "get_logger", "log_context", "log_duration"]

# Binds key/values to every event logged inside the ``with`` block
log_context = bound_contextvars


def _shared_processors() -> List[Any]:
    return [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer_chain(log_format: str) -> List[Any]:
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=False, pad_event=35)]


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib logging through one formatter per ``settings``."""
    level = getattr(logging, settings.log_level)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer_chain(settings.log_format),
        ],
    )

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_duration(logger: structlog.stdlib.BoundLogger, operation: str,
                 **fields) -> Iterator[Dict[str, Any]]:
    """Log ``operation`` with its duration when the block exits cleanly.

    Yields a dict; keys added to it inside the block are logged as well.
    """
    extra: Dict[str, Any] = dict(fields)
    start = time.perf_counter()
    yield extra
    logger.info("Operation completed", operation=operation,
                duration_ms=round((time.perf_counter() - start) * 1000, 1), **extra)
