import logging.config

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure the root logger for the API process and the ops scripts."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": (level or settings.LOG_LEVEL).upper(),
        },
        "loggers": {
            # APScheduler logs every job run at INFO
            "apscheduler": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
        },
    })
