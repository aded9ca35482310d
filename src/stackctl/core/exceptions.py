"""Exception hierarchy and process exit codes for stackctl.

Bring-up and validation outcomes are returned as values (see
``stackctl.startup.models``). Exceptions are reserved for infrastructure
faults: an unusable configuration, or a container runtime that cannot be
reached or refuses a command.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Process exit codes returned by the ``stackctl`` CLI."""

    SUCCESS = 0
    FAILURE = 1
    CONFIG_INVALID = 2
    SERVICE_FAILED = 3
    TIMED_OUT = 4
    RUNTIME_UNAVAILABLE = 5
    INTERRUPTED = 130


class StackError(Exception):
    """Base exception for stackctl with structured context."""

    exit_code: ExitCode = ExitCode.FAILURE
    error_code: str | None = None

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(StackError):
    """Raised when the stack configuration or stage plan is unusable."""

    exit_code = ExitCode.CONFIG_INVALID
    error_code = "CONFIG_002"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


class EnvFileMissingError(ConfigurationError):
    """Raised when the environment file handed to the runtime does not exist."""

    error_code = "CONFIG_001"

    def __init__(self, env_file: str) -> None:
        super().__init__(
            f"Environment file '{env_file}' not found",
            [f"env_file: {env_file} does not exist"],
        )
        self.env_file = env_file


class RuntimeUnavailableError(StackError):
    """Raised when the container runtime cannot be invoked at all.

    Covers a missing ``docker`` binary, an unreachable daemon and commands
    that exceed their timeout.
    """

    exit_code = ExitCode.RUNTIME_UNAVAILABLE
    error_code = "RT_001"

    def __init__(self, message: str, command: list[str] | None = None) -> None:
        super().__init__(message, {"command": " ".join(command or [])})
        self.command = command or []


class RuntimeCommandError(StackError):
    """Raised when a runtime command runs but exits non-zero."""

    error_code = "RT_002"

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stderr: str = "",
    ) -> None:
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        super().__init__(
            f"'{' '.join(command)}' exited with code {returncode}: {detail}",
            {"returncode": returncode, "stderr": stderr},
        )
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
