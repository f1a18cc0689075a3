"""
Structured logging for the statement ingestion service.

Both processes (the API and the RQ worker) render through one structlog
ProcessorFormatter, so RQ's own stdlib records come out in the same JSON or
console shape as ours. Every event carries the service, version and process
role. Ingestion code binds owner/batch/job identifiers with
ingestion_context, and anything logged inside that block (adapters,
categorizer, store) picks them up through contextvars.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog

from statement_ingest.config import settings

PROCESS_ROLES = ("api", "worker")


def add_service_info(role: str):
    """Processor stamping service/version/process onto every event."""

    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("version", settings.APP_VERSION)
        event_dict.setdefault("process", role)
        return event_dict

    return processor


@contextmanager
def ingestion_context(**identifiers) -> Iterator[None]:
    """
    Bind owner_id, upload_batch_id, storage_path, job_id and the like for
    the duration of the block. None values are not bound.
    """
    bound = {key: value for key, value in identifiers.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def setup_logging(role: str = "api") -> None:
    """Configure structlog and the stdlib root logger for one process role."""
    if role not in PROCESS_ROLES:
        raise ValueError(f"Unknown process role {role!r}; expected one of {PROCESS_ROLES}")

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_info(role),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives rq/uvicorn/sqlalchemy records the same fields
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    if role == "worker":
        # RQ skips its own colourised handler when an ancestor already has one
        logging.getLogger("rq.worker").setLevel(level)
    else:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("rq").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )
