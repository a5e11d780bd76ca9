"""Logging configuration for the client core."""
import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict

from foodswipe.config.settings import Settings, settings as default_settings


def build_logging_config(config: Settings) -> Dict[str, Any]:
    """Build the dictConfig mapping for the given settings."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    detailed_format = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": config.LOG_LEVEL.upper(),
            "formatter": "simple",
            "stream": sys.stdout
        }
    }
    app_handlers = ["console"]
    error_handlers = ["console"]

    if config.LOG_TO_FILE:
        logs_dir = Path(config.LOG_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "detailed",
            "filename": str(logs_dir / "foodswipe.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5
        }
        handlers["error_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "detailed",
            "filename": str(logs_dir / "error.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5
        }
        app_handlers.append("file")
        error_handlers.append("error_file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": log_format,
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "detailed": {
                "format": detailed_format,
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "json": {
                "format": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": handlers,
        "loggers": {
            # Root logger
            "": {
                "level": config.LOG_LEVEL.upper(),
                "handlers": app_handlers,
                "propagate": False
            },
            # Package logger
            "foodswipe": {
                "level": "DEBUG" if config.DEBUG else config.LOG_LEVEL.upper(),
                "handlers": app_handlers,
                "propagate": False
            },
            # Pub/sub traffic is chatty
            "foodswipe.services.realtime": {
                "level": "INFO",
                "handlers": app_handlers,
                "propagate": False
            },
            # HTTP client library
            "aiohttp": {
                "level": "WARNING",
                "handlers": app_handlers,
                "propagate": False
            },
            # Error logger
            "foodswipe.errors": {
                "level": "ERROR",
                "handlers": error_handlers,
                "propagate": False
            }
        }
    }


def setup_logging(config: Settings = None) -> logging.Logger:
    """Setup logging configuration."""
    config = config or default_settings
    logging.config.dictConfig(build_logging_config(config))

    logger = logging.getLogger("foodswipe")
    logger.info(f"Logging configured with level: {config.LOG_LEVEL}")

    return logger
