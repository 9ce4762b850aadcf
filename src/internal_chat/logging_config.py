from __future__ import annotations

import logging
from logging.config import dictConfig

from internal_chat.api.middleware.correlation_id import correlation_id_ctx

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | [%(correlation_id)s] %(message)s"
JSON_FORMAT = (
    '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s",'
    '"correlation_id":"%(correlation_id)s","message":"%(message)s"}'
)


class CorrelationIdFilter(logging.Filter):
    """Stamp the current request's X-Request-ID onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get() or "-"
        return True


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "correlation_id": {"()": CorrelationIdFilter},
            },
            "formatters": {
                "text": {"format": TEXT_FORMAT},
                "json": {"format": JSON_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": fmt if fmt in ("text", "json") else "text",
                    "filters": ["correlation_id"],
                },
            },
            "root": {
                "level": level.upper(),
                "handlers": ["console"],
            },
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
