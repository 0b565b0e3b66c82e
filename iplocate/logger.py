import os
from logging import NullHandler, config, getLogger
from typing import Any

LOGGER_NAME = "iplocate"
DEFAULT_LOG_LEVEL = "INFO"

# Until the embedding application configures logging, records propagate to its root logger.
logger = getLogger(LOGGER_NAME)
logger.addHandler(NullHandler())


def build_log_config(level: str | None = None) -> dict[str, Any]:
    """Logging config for running the location service under uvicorn.

    `level` defaults to the LOG_LEVEL environment variable (DEBUG, INFO, WARNING, ERROR).
    The `iplocate` logger gets its own handler and stops propagating, so uvicorn's
    handlers don't print its records twice.
    """
    log_level = (level or os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s',
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "use_colors": True,
            },
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "use_colors": True,
            },
        },
        "handlers": {
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
            "default": {"class": "logging.StreamHandler", "formatter": "default", "stream": "ext://sys.stderr"},
        },
        "loggers": {
            LOGGER_NAME: {"handlers": ["default"], "level": log_level, "propagate": False},
            "uvicorn": {"handlers": ["default"], "level": log_level, "propagate": True},
            "uvicorn.access": {"handlers": ["access"], "level": log_level, "propagate": False},
            "uvicorn.error": {"level": log_level, "propagate": False},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Apply `build_log_config`; called by the service, never by the lookup core."""
    config.dictConfig(build_log_config(level))
