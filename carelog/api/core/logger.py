import logging
import logging.config
from typing import Optional

from carelog.api.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(module)s:%(lineno)d: %(message)s"

# Loggers that write straight to the console and do not propagate to root.
_SERVICE_LOGGERS = ("app", "uvicorn", "uvicorn.error", "uvicorn.access", "celery", "celery.task")


def build_log_config(level: Optional[str] = None) -> dict:
    level = (level or settings.LOG_LEVEL).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            }
        },
        "loggers": {
            name: {"handlers": ["console"], "level": level, "propagate": False}
            for name in _SERVICE_LOGGERS
        },
        "root": {"handlers": ["console"], "level": level},
    }


def setup_logging(level: Optional[str] = None):
    logging.config.dictConfig(build_log_config(level))
