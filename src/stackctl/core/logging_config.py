"""stackctl - Logging Configuration.

Console logging for the orchestrator. Log records go to stderr so that the
operator-facing progress output on stdout stays readable.
"""

import logging
import logging.config
import sys
from typing import Any

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", *, debug: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        level: Log level name applied to the package and root loggers
        debug: Use the detailed formatter with source locations
    """
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if debug else "simple",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            "stackctl": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

    logging.config.dictConfig(logging_config)
    logger.debug("Logging configured with level %s", level)
