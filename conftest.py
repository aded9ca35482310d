"""Global pytest configuration for logging setup.

The CLI configures the ``stackctl`` logger with ``propagate=False``; this
resets it before every test so caplog keeps seeing package records.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging() -> None:
    """Restore propagation and levels on the package loggers."""
    for logger_name in ("stackctl", "stackctl.startup", "stackctl.runtime"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = True

    logging.getLogger().setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def configure_caplog(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)
    caplog.set_level(logging.DEBUG, logger="stackctl")
