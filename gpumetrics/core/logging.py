import logging
import os
from logging.handlers import TimedRotatingFileHandler

import structlog
from structlog.contextvars import merge_contextvars

from gpumetrics.core.config import Settings, settings as default_settings

LOG_FILE = "exporter.log"


def _handlers(settings: Settings) -> list[logging.Handler]:
    # stdout carries the metrics stream; logs go to stderr
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                filename=os.path.join(settings.log_dir, LOG_FILE),
                when="D",
                interval=1,
                backupCount=14,
                encoding="utf-8",
                utc=True,
            )
        )
    return handlers


def _shared_processors() -> list:
    return [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog through the stdlib root logger, rendered as plain key=value lines."""
    settings = settings or default_settings
    shared = _shared_processors()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False, pad_event_to=0, pad_level=False),
        ],
    )

    root = logging.getLogger()
    root.setLevel(settings.log_level)
    root.handlers.clear()
    for handler in _handlers(settings):
        handler.setLevel(settings.log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
