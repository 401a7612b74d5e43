import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

from .config import Settings, get_settings

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure process logging for the application shell.

    Telemetry stays at INFO whatever the root level, and class focus
    breakdowns are raised to INFO when focus debugging is on.
    """
    settings = settings or get_settings()
    level = settings.log_level.upper()

    loggers: Dict[str, Dict[str, Any]] = {
        "skillquest.telemetry": {"level": "INFO"},
        "skillquest.class_focus": {"level": "INFO" if settings.debug_class_focus else level},
    }
    if settings.debug_sql:
        loggers["sqlalchemy.engine"] = {"level": "INFO"}
        loggers["uvicorn.access"] = {"level": "DEBUG"}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": loggers,
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s", level)
