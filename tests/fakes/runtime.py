"""Fake container runtime for testing.

An in-memory stand-in for ``docker compose``: listings are scripted per
service, starts and probes are recorded, nothing touches a real daemon.
"""

from __future__ import annotations

from collections import defaultdict, deque

from stackctl.core.exceptions import RuntimeCommandError, RuntimeUnavailableError
from stackctl.ports.runtime import ContainerRuntimePort
from stackctl.runtime.compose import CommandResult, ContainerState


def running(service: str, health: str = "healthy") -> ContainerState:
    return ContainerState(service=service, state="running", health=health)


def exited(service: str, exit_code: int = 0) -> ContainerState:
    return ContainerState(service=service, state="exited", exit_code=exit_code)


class FakeRuntime(ContainerRuntimePort):
    """Scripted runtime.

    ``script(service, *states)`` queues the rows returned by successive
    observations of ``service``; once the queue is down to its last entry that
    entry is repeated. ``None`` in a script means "not listed". Services that
    were never scripted are absent.
    """

    def __init__(self) -> None:
        self.scripts: dict[str, deque[ContainerState | None]] = {}
        self.up_calls: list[list[str]] = []
        self.down_calls = 0
        self.exec_calls: list[tuple[str, list[str]]] = []
        self.ps_calls: list[list[str] | None] = []
        self.exec_results: dict[tuple[str, str], int] = {}
        self.exec_errors: dict[tuple[str, str], Exception] = {}
        self.up_errors: dict[str, Exception] = {}
        self.ps_error: Exception | None = None
        self.down_error: Exception | None = None
        self.config_error: Exception | None = None
        self.logs_calls: list[tuple[list[str], bool]] = []
        self.table = "NAME   SERVICE   STATUS\n"
        self.observations: defaultdict[str, int] = defaultdict(int)

    def script(self, service: str, *states: ContainerState | None) -> None:
        self.scripts[service] = deque(states)

    def set_exec_result(self, service: str, marker: str, returncode: int) -> None:
        """Make any exec in ``service`` whose argv contains ``marker`` exit with ``returncode``."""
        self.exec_results[(service, marker)] = returncode

    def set_exec_error(self, service: str, marker: str, error: Exception) -> None:
        self.exec_errors[(service, marker)] = error

    def _current(self, service: str) -> ContainerState | None:
        queue = self.scripts.get(service)
        if not queue:
            return None
        if len(queue) > 1:
            return queue.popleft()
        return queue[0]

    def _peek(self, service: str) -> ContainerState | None:
        queue = self.scripts.get(service)
        return queue[0] if queue else None

    async def ps(self, services: list[str] | None = None) -> list[ContainerState]:
        self.ps_calls.append(services)
        if self.ps_error is not None:
            raise self.ps_error
        if services is None:
            rows = [self._peek(name) for name in self.scripts]
        else:
            rows = []
            for name in services:
                self.observations[name] += 1
                rows.append(self._current(name))
        return [row for row in rows if row is not None]

    async def up(self, services: list[str]) -> CommandResult:
        self.up_calls.append(list(services))
        for name in services:
            if name in self.up_errors:
                raise self.up_errors[name]
        return CommandResult(argv=("up", *services), returncode=0)

    async def down(self) -> CommandResult:
        self.down_calls += 1
        if self.down_error is not None:
            raise self.down_error
        return CommandResult(argv=("down",), returncode=0)

    async def exec(self, service: str, argv: list[str]) -> CommandResult:
        self.exec_calls.append((service, list(argv)))
        for (target, marker), error in self.exec_errors.items():
            if target == service and any(marker in arg for arg in argv):
                raise error
        returncode = 0
        for (target, marker), code in self.exec_results.items():
            if target == service and any(marker in arg for arg in argv):
                returncode = code
        stderr = "" if returncode == 0 else "connection refused"
        return CommandResult(
            argv=("exec", service, *argv), returncode=returncode, stderr=stderr
        )

    async def config_check(self) -> CommandResult:
        if self.config_error is not None:
            raise self.config_error
        return CommandResult(argv=("config", "--quiet"), returncode=0)

    async def ps_table(self) -> str:
        if self.ps_error is not None:
            raise self.ps_error
        return self.table

    def logs(self, services: list[str] | None = None, *, follow: bool = True) -> int:
        self.logs_calls.append((list(services or []), follow))
        return 0


def unavailable() -> RuntimeUnavailableError:
    return RuntimeUnavailableError("Container runtime 'docker' not found", ["docker"])


def rejected(service: str) -> RuntimeCommandError:
    return RuntimeCommandError(
        ["docker", "compose", "up", "-d", service], 1, f"no such service: {service}\n"
    )
