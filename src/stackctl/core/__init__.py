"""Core utilities shared across stackctl."""

from stackctl.core.exceptions import (
    ConfigurationError,
    EnvFileMissingError,
    ExitCode,
    RuntimeCommandError,
    RuntimeUnavailableError,
    StackError,
)

__all__ = [
    "ConfigurationError",
    "EnvFileMissingError",
    "ExitCode",
    "RuntimeCommandError",
    "RuntimeUnavailableError",
    "StackError",
]
