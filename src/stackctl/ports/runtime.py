"""Container runtime port.

The orchestrator depends on this interface rather than on a concrete runtime,
so that bring-up and validation logic can be exercised against in-memory
fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackctl.runtime.compose import CommandResult, ContainerState


class ContainerRuntimePort(ABC):
    """Abstract interface for the runtime that actually runs the stack."""

    @abstractmethod
    async def ps(self, services: list[str] | None = None) -> list[ContainerState]:
        """List containers, including exited ones.

        Args:
            services: Restrict the listing to these services

        Returns:
            One entry per container
        """

    @abstractmethod
    async def up(self, services: list[str]) -> CommandResult:
        """Start the given services detached.

        Raises:
            RuntimeCommandError: If the runtime refuses to start them
        """

    @abstractmethod
    async def down(self) -> CommandResult:
        """Stop and remove the whole stack."""

    @abstractmethod
    async def exec(self, service: str, argv: list[str]) -> CommandResult:
        """Run a command inside a running service.

        Args:
            service: Target service
            argv: Command and arguments

        Returns:
            The completed command; a non-zero exit is not an exception
        """
