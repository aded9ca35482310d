"""Docker Compose runtime adapter.

Thin async wrapper around the ``docker compose`` CLI. Every command is a
blocking subprocess bounded by ``command_timeout`` and moved off the event
loop with ``asyncio.to_thread``. Output is parsed from JSON, never from the
human-readable tables.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
from pathlib import Path
import subprocess  # noqa: S404 - the runtime is an external command
from typing import Any

from stackctl.core.exceptions import RuntimeCommandError, RuntimeUnavailableError
from stackctl.ports.runtime import ContainerRuntimePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerState:
    """One row of ``docker compose ps --format json``."""

    service: str
    state: str
    health: str = ""
    exit_code: int | None = None
    name: str = ""
    status: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ContainerState:
        exit_code = data.get("ExitCode")
        return cls(
            service=str(data.get("Service", "")),
            state=str(data.get("State", "")).lower(),
            health=str(data.get("Health", "") or "").lower(),
            exit_code=int(exit_code) if exit_code is not None else None,
            name=str(data.get("Name", "")),
            status=str(data.get("Status", "")),
        )


@dataclass(frozen=True)
class CommandResult:
    """Completed runtime command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def parse_ps_output(output: str) -> list[ContainerState]:
    """Parse ``ps --format json`` output.

    Compose v2.21+ prints one JSON object per line; older releases print a
    single JSON array. Both are accepted.
    """
    text = output.strip()
    if not text:
        return []
    if text.startswith("["):
        rows = json.loads(text)
    else:
        rows = [json.loads(line) for line in text.splitlines() if line.strip()]
    return [ContainerState.from_json(row) for row in rows if isinstance(row, dict)]


class ComposeRuntime(ContainerRuntimePort):
    """Runs ``docker compose`` commands for one project."""

    def __init__(
        self,
        compose_file: str,
        *,
        env_file: str | None = None,
        project_name: str | None = None,
        project_dir: str = ".",
        command_timeout: float = 15.0,
        lifecycle_timeout: float = 600.0,
        docker_binary: str = "docker",
    ) -> None:
        """Initialize the runtime adapter.

        Args:
            compose_file: Compose file path, relative to ``project_dir``
            env_file: Environment file handed to compose with ``--env-file``
            project_name: Optional compose project name
            project_dir: Working directory for every command
            command_timeout: Timeout for a single query or exec command
            lifecycle_timeout: Timeout for up and down, which may pull images
            docker_binary: Docker executable
        """
        self.compose_file = compose_file
        self.env_file = env_file
        self.project_name = project_name
        self.project_dir = Path(project_dir)
        self.command_timeout = command_timeout
        self.lifecycle_timeout = lifecycle_timeout
        self.docker_binary = docker_binary

    def base_command(self) -> list[str]:
        argv = [self.docker_binary, "compose", "-f", self.compose_file]
        if self.env_file:
            argv += ["--env-file", self.env_file]
        if self.project_name:
            argv += ["-p", self.project_name]
        return argv

    def _run_sync(self, args: list[str], timeout: float | None) -> CommandResult:
        argv = self.base_command() + args
        logger.debug("Running: %s", " ".join(argv))
        try:
            completed = subprocess.run(  # noqa: S603 - argv is built, not shell-parsed
                argv,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            msg = f"Container runtime '{self.docker_binary}' not found"
            raise RuntimeUnavailableError(msg, argv) from e
        except subprocess.TimeoutExpired as e:
            msg = f"Runtime command timed out after {timeout}s"
            raise RuntimeUnavailableError(msg, argv) from e
        return CommandResult(
            argv=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    async def run(
        self, args: list[str], *, timeout: float | None = None, check: bool = True
    ) -> CommandResult:
        """Run ``docker compose <args>`` off the event loop.

        Raises:
            RuntimeUnavailableError: If the runtime cannot be invoked or times out
            RuntimeCommandError: If ``check`` is set and the command exits non-zero
        """
        result = await asyncio.to_thread(
            self._run_sync, args, timeout if timeout is not None else self.command_timeout
        )
        if check and not result.ok:
            raise RuntimeCommandError(list(result.argv), result.returncode, result.stderr)
        return result

    async def ps(self, services: list[str] | None = None) -> list[ContainerState]:
        """List containers of the project, including exited ones."""
        result = await self.run(["ps", "--all", "--format", "json", *(services or [])])
        try:
            return parse_ps_output(result.stdout)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            msg = f"Unparseable runtime listing: {e}"
            raise RuntimeUnavailableError(msg, list(result.argv)) from e

    async def up(self, services: list[str]) -> CommandResult:
        """Start ``services`` detached, without starting their dependencies."""
        return await self.run(
            ["up", "-d", "--no-deps", *services], timeout=self.lifecycle_timeout
        )

    async def down(self) -> CommandResult:
        return await self.run(["down"], timeout=self.lifecycle_timeout)

    async def exec(self, service: str, argv: list[str]) -> CommandResult:
        """Run ``argv`` inside the service's container; never raises on non-zero."""
        return await self.run(["exec", "-T", service, *argv], check=False)

    async def config_check(self) -> CommandResult:
        """Validate the compose file with ``config --quiet``."""
        return await self.run(["config", "--quiet"])

    async def ps_table(self) -> str:
        result = await self.run(["ps", "--all"])
        return result.stdout

    def logs(self, services: list[str] | None = None, *, follow: bool = True) -> int:
        """Stream logs to the terminal; blocks until interrupted when following."""
        argv = self.base_command() + ["logs"]
        if follow:
            argv.append("--follow")
        argv += services or []
        logger.debug("Running: %s", " ".join(argv))
        try:
            return subprocess.call(argv, cwd=self.project_dir)  # noqa: S603
        except FileNotFoundError as e:
            msg = f"Container runtime '{self.docker_binary}' not found"
            raise RuntimeUnavailableError(msg, argv) from e
