"""Shared test fixtures for the stackctl test suite."""

from __future__ import annotations

from collections.abc import Iterator
import io
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from stackctl.startup.config_schema import (
    ArtifactCheck,
    GroupSpec,
    LivenessTarget,
    ServiceSpec,
    StackConfig,
    StackPlan,
)
from stackctl.startup.models import ServiceKind
from stackctl.startup.progress_reporter import StartupProgressReporter
from tests.fakes.runtime import FakeRuntime


@pytest.fixture(autouse=True)
def clean_stack_env() -> Iterator[None]:
    """Keep host STACK_* / LOG_LEVEL / DEBUG variables out of the settings."""
    env = {
        key: value
        for key, value in os.environ.items()
        if not key.upper().startswith("STACK_") and key.upper() not in {"LOG_LEVEL", "DEBUG"}
    }
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def three_group_plan() -> StackPlan:
    """init (one-shot) -> backend (engine, ai) -> frontend (ui)."""
    return StackPlan(
        groups=(
            GroupSpec(
                name="init",
                services=(ServiceSpec(name="bootstrap", kind=ServiceKind.RUN_TO_COMPLETION),),
            ),
            GroupSpec(
                name="backend",
                services=(ServiceSpec(name="engine"), ServiceSpec(name="ai")),
            ),
            GroupSpec(name="frontend", services=(ServiceSpec(name="ui"),)),
        ),
        liveness_targets=(
            LivenessTarget(service="engine", endpoint="http://localhost:8080/health"),
            LivenessTarget(service="ai", endpoint="http://localhost:5555/health"),
            LivenessTarget(service="ui", endpoint="http://localhost:3000"),
        ),
        artifacts=(
            ArtifactCheck(
                proxy_service="engine",
                root="/app/etc",
                paths=("config.properties", "mdl/sample.json"),
            ),
        ),
        access_points={"UI": "http://localhost:3000"},
    )


@pytest.fixture
def config(three_group_plan: StackPlan) -> StackConfig:
    return StackConfig(
        poll_interval=1.0,
        startup_timeout=5.0,
        plan=three_group_plan,
    )


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def reporter() -> StartupProgressReporter:
    return StartupProgressReporter(io.StringIO(), enable_colors=False)


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    path = tmp_path / ".env.multi-llm"
    path.write_text("OPENAI_API_KEY=test\n", encoding="utf-8")
    return path
