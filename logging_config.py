import logging
import logging.config
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure the root logger for the service and uvicorn."""
    log_level = (log_level or "INFO").upper()
    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": LOG_FORMAT, "datefmt": LOG_DATEFMT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "text",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": {"level": log_level, "propagate": True},
            "uvicorn.error": {"level": log_level, "propagate": True},
            "uvicorn.access": {"level": log_level, "propagate": True},
        },
        "root": {"level": log_level, "handlers": handlers},
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "text",
            "filename": log_file,
            "encoding": "utf-8",
        }
        handlers.append("file")

    for name in QUIET_LOGGERS:
        config["loggers"][name] = {"level": "WARNING", "propagate": True}

    try:
        logging.config.dictConfig(config)
    except (ValueError, OSError) as e:
        # Bad log file path or level, fall back to stdout only
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stdout)
        logging.getLogger(__name__).error(f"Could not apply logging config: {e}")
        return None

    return config


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
