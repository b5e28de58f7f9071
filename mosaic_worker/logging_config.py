import copy
import logging
from logging.config import dictConfig

from paths import LOG_DIR

LOG_FILE = LOG_DIR / "mosaic_worker.log"

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s [%(levelname)s] %(processName)s %(name)s: %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": "INFO",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": str(LOG_FILE),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
            "level": "DEBUG",
        },
    },
    "loggers": {
        "mosaic_worker": {
            "level": "DEBUG",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file"],
    },
}

_configured = False


def configure_logging(console_level: str = "INFO") -> None:
    """(Re)aplica la configuración con el nivel indicado para la consola."""
    global _configured
    config = copy.deepcopy(_DICT_CONFIG)
    config["handlers"]["console"]["level"] = console_level.upper()
    dictConfig(config)
    _configured = True


def get_logger(name: str = "mosaic_worker") -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
