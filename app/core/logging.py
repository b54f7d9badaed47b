"""
structlog setup shared by the API process and the arq worker.

Every record, whether it comes from structlog or from a plain stdlib logger,
goes through the same processor chain and carries:

    service     "interest-api" or "interest-worker"
    request_id  bound by the HTTP middleware
    actor_id    bound once the bearer token is resolved

Development renders coloured console lines; every other environment renders
one JSON object per line.
"""

import logging
import sys
from typing import Optional

import structlog

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "arq.worker", "httpx")


def _add_service(service: str):
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        return event_dict
    return processor


def configure_logging(
    app_env: str = "dev",
    level: Optional[str] = None,
    service: str = "interest-api"
) -> None:
    """
    Route stdlib and structlog output through one structlog formatter.

    Args:
        app_env: "dev" selects the console renderer, anything else JSON
        level: Root log level name; defaults to DEBUG in dev, INFO otherwise
        service: Value of the ``service`` key on every record
    """
    level_name = (level or ("DEBUG" if app_env == "dev" else "INFO")).upper()

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        _add_service(service),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if app_env == "dev":
        final_processors = [structlog.dev.ConsoleRenderer()]
    else:
        final_processors = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + final_processors,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level_name)

    if app_env != "dev":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
