"""Tests for the state prober."""

from __future__ import annotations

import pytest

from stackctl.runtime.compose import ContainerState
from stackctl.startup.models import HealthState, LifecycleState, ServiceKind
from stackctl.startup.prober import StateProber, observation_from_container
from stackctl.startup.readiness import predicate_for
from tests.fakes.runtime import FakeRuntime, exited, running, unavailable


class TestObservationFromContainer:
    def test_missing_row_is_absent(self) -> None:
        observation = observation_from_container("engine", None)
        assert observation.lifecycle is LifecycleState.ABSENT
        assert observation.health is HealthState.UNKNOWN

    @pytest.mark.parametrize(
        ("health", "expected"),
        [
            ("healthy", HealthState.HEALTHY),
            ("unhealthy", HealthState.UNHEALTHY),
            ("starting", HealthState.UNKNOWN),
            ("", HealthState.UNKNOWN),
        ],
    )
    def test_running_health(self, health: str, expected: HealthState) -> None:
        observation = observation_from_container("engine", running("engine", health))
        assert observation.lifecycle is LifecycleState.RUNNING
        assert observation.health is expected

    def test_exited_keeps_exit_code(self) -> None:
        observation = observation_from_container("bootstrap", exited("bootstrap", 2))
        assert observation.lifecycle is LifecycleState.EXITED
        assert observation.exit_code == 2

    def test_exited_without_exit_code_is_not_success(self) -> None:
        row = ContainerState(service="bootstrap", state="dead")
        observation = observation_from_container("bootstrap", row)
        assert observation.lifecycle is LifecycleState.EXITED
        assert observation.exit_code == -1

    @pytest.mark.parametrize("state", ["created", "restarting", "paused"])
    def test_transitional_states_count_as_running(self, state: str) -> None:
        row = ContainerState(service="engine", state=state)
        observation = observation_from_container("engine", row)
        assert observation.lifecycle is LifecycleState.RUNNING


class TestStateProber:
    def setup_method(self) -> None:
        self.runtime = FakeRuntime()
        self.prober = StateProber(self.runtime)

    @pytest.mark.asyncio
    async def test_observe_queries_only_that_service(self) -> None:
        self.runtime.script("engine", running("engine"))

        observation = await self.prober.observe("engine")

        assert observation.service == "engine"
        assert observation.health is HealthState.HEALTHY
        assert self.runtime.ps_calls == [["engine"]]

    @pytest.mark.asyncio
    async def test_runtime_error_becomes_absent_observation(self) -> None:
        self.runtime.ps_error = unavailable()

        observation = await self.prober.observe("engine")

        assert observation.lifecycle is LifecycleState.ABSENT
        assert observation.error is not None
        assert "not found" in observation.error

    @pytest.mark.asyncio
    async def test_readiest_container_is_reported(self) -> None:
        class TwoReplicas(FakeRuntime):
            async def ps(self, services=None):  # noqa: ANN001, ANN202
                return [running("ai", "unhealthy"), running("ai")]

        prober = StateProber(TwoReplicas())
        observation = await prober.observe("ai")

        assert observation.health is HealthState.HEALTHY

    @pytest.mark.asyncio
    async def test_stale_failed_container_does_not_mask_clean_exit(self) -> None:
        class LeftoverRun(FakeRuntime):
            async def ps(self, services=None):  # noqa: ANN001, ANN202
                return [exited("bootstrap", 1), exited("bootstrap", 0)]

        observation = await StateProber(LeftoverRun()).observe("bootstrap")
        outcome = predicate_for("bootstrap", ServiceKind.RUN_TO_COMPLETION)(observation)

        assert observation.exit_code == 0
        assert outcome.is_ready

    @pytest.mark.asyncio
    async def test_list_services(self) -> None:
        self.runtime.script("engine", running("engine"))
        self.runtime.script("bootstrap", exited("bootstrap"))

        names, error = await self.prober.list_services()

        assert names == {"engine", "bootstrap"}
        assert error is None

    @pytest.mark.asyncio
    async def test_list_services_reports_runtime_error(self) -> None:
        self.runtime.ps_error = unavailable()

        names, error = await self.prober.list_services()

        assert names == set()
        assert error == "Container runtime 'docker' not found"
