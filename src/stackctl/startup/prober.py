"""stackctl State Prober.

Read-only queries against the runtime. A failed query never propagates out of
``observe``: it becomes an ABSENT/UNKNOWN observation carrying the error text,
and the caller's polling loop decides whether to keep waiting.
"""

from __future__ import annotations

import logging

from stackctl.core.exceptions import RuntimeCommandError, RuntimeUnavailableError
from stackctl.ports.runtime import ContainerRuntimePort
from stackctl.runtime.compose import ContainerState
from stackctl.startup.models import HealthState, LifecycleState, Observation

logger = logging.getLogger(__name__)

RUNNING_STATES = frozenset({"created", "running", "restarting", "paused", "removing"})
EXITED_STATES = frozenset({"exited", "dead"})

HEALTH_STATES = {
    "healthy": HealthState.HEALTHY,
    "unhealthy": HealthState.UNHEALTHY,
}


def observation_from_container(service: str, container: ContainerState | None) -> Observation:
    """Map one runtime row to an observation."""
    if container is None:
        return Observation(service=service, lifecycle=LifecycleState.ABSENT)

    if container.state in EXITED_STATES:
        return Observation(
            service=service,
            lifecycle=LifecycleState.EXITED,
            exit_code=container.exit_code if container.exit_code is not None else -1,
        )

    if container.state not in RUNNING_STATES:
        logger.debug(
            "Unrecognised state %r for %s; treating as running", container.state, service
        )

    return Observation(
        service=service,
        lifecycle=LifecycleState.RUNNING,
        health=HEALTH_STATES.get(container.health, HealthState.UNKNOWN),
    )


class StateProber:
    """Observes services through a container runtime."""

    def __init__(self, runtime: ContainerRuntimePort) -> None:
        self.runtime = runtime

    async def observe(self, service: str) -> Observation:
        """Return the current lifecycle/health/exit code of ``service``."""
        try:
            containers = await self.runtime.ps([service])
        except (RuntimeUnavailableError, RuntimeCommandError) as e:
            logger.debug("Observation of %s failed: %s", service, e)
            return Observation(
                service=service,
                lifecycle=LifecycleState.ABSENT,
                error=str(e),
            )

        matching = [c for c in containers if c.service == service]
        # Stale one-off containers linger in `ps --all`; report the one closest to ready.
        best = max(matching, key=_readiness_rank) if matching else None
        return observation_from_container(service, best)

    async def list_services(self) -> tuple[set[str], str | None]:
        """Return every service the runtime lists, plus the query error if any."""
        try:
            containers = await self.runtime.ps()
        except (RuntimeUnavailableError, RuntimeCommandError) as e:
            logger.warning("Runtime listing failed: %s", e)
            return set(), str(e)
        return {c.service for c in containers}, None


def _readiness_rank(container: ContainerState) -> int:
    if container.state in EXITED_STATES:
        return 0 if container.exit_code else 2
    if container.health == "healthy":
        return 3
    return 1
