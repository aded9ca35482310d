"""Tests for the configuration schema and stage plan validation."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError
import pytest

from stackctl.startup.config_schema import (
    DEFAULT_COMPOSE_FILE,
    DEFAULT_ENV_FILE,
    ArtifactCheck,
    GroupSpec,
    LivenessTarget,
    LogLevel,
    ServiceSpec,
    StackConfig,
    StackPlan,
    default_plan,
)
from stackctl.startup.models import ServiceKind


class TestStackConfig:
    """Settings loading and validation."""

    def test_defaults(self) -> None:
        config = StackConfig()

        assert config.compose_file == DEFAULT_COMPOSE_FILE
        assert config.env_file == DEFAULT_ENV_FILE
        assert config.poll_interval == 2.0
        assert config.startup_timeout == 180.0
        assert config.max_attempts == 90
        assert config.log_level == LogLevel.INFO
        assert config.plan == default_plan()

    def test_environment_variables(self) -> None:
        env_vars = {
            "STACK_COMPOSE_FILE": "compose.yaml",
            "STACK_ENV_FILE": ".env",
            "STACK_POLL_INTERVAL": "0.5",
            "STACK_STARTUP_TIMEOUT": "10",
            "STACK_PROJECT_NAME": "wren",
            "LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = StackConfig()

        assert config.compose_file == "compose.yaml"
        assert config.env_file == ".env"
        assert config.project_name == "wren"
        assert config.max_attempts == 20
        assert config.log_level == LogLevel.DEBUG

    @pytest.mark.parametrize(
        ("interval", "timeout", "expected"),
        [(2.0, 180.0, 90), (2.0, 5.0, 3), (10.0, 1.0, 1), (0.3, 1.0, 4)],
    )
    def test_max_attempts(self, interval: float, timeout: float, expected: int) -> None:
        config = StackConfig(poll_interval=interval, startup_timeout=timeout)
        assert config.max_attempts == expected

    def test_probe_argv_appends_endpoint(self) -> None:
        config = StackConfig(probe_command="curl -fsS --max-time 5")
        assert config.probe_argv("http://localhost:3000") == [
            "curl",
            "-fsS",
            "--max-time",
            "5",
            "http://localhost:3000",
        ]

    def test_env_file_path_is_relative_to_project_dir(self, tmp_path: Path) -> None:
        config = StackConfig(project_dir=str(tmp_path))
        assert config.env_file_path() == tmp_path / DEFAULT_ENV_FILE

        absolute = StackConfig(env_file="/etc/stack.env", project_dir=str(tmp_path))
        assert absolute.env_file_path() == Path("/etc/stack.env")

    def test_validate_from_env_collects_errors(self) -> None:
        config, errors = StackConfig.validate_from_env(poll_interval=0, startup_timeout=-1)

        assert config is None
        assert len(errors) == 2
        assert any("poll_interval" in e or "STACK_POLL_INTERVAL" in e for e in errors)

    def test_validate_from_env_ignores_unset_overrides(self) -> None:
        config, errors = StackConfig.validate_from_env(compose_file=None, env_file="custom.env")

        assert errors == []
        assert config is not None
        assert config.compose_file == DEFAULT_COMPOSE_FILE
        assert config.env_file == "custom.env"

    def test_unrelated_plan_variable_is_ignored(self) -> None:
        with patch.dict(os.environ, {"PLAN": "garbage"}):
            config, errors = StackConfig.validate_from_env()

        assert errors == []
        assert config is not None
        assert config.plan == default_plan()

    def test_startup_summary(self) -> None:
        summary = StackConfig().get_startup_summary()

        assert summary["groups"] == "init -> backend -> workers -> frontend"
        assert summary["services"] == 12
        assert summary["max_attempts"] == 90


class TestPlanFile:
    def write_plan(self, tmp_path: Path, data: dict) -> Path:
        path = tmp_path / "plan.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_plan_file_replaces_default_plan(self, tmp_path: Path) -> None:
        path = self.write_plan(
            tmp_path,
            {
                "groups": [
                    {"name": "init", "services": [{"name": "seed", "kind": "run_to_completion"}]},
                    {"name": "app", "services": [{"name": "api"}]},
                ],
                "liveness_targets": [{"service": "api", "endpoint": "http://localhost:80"}],
            },
        )

        config = StackConfig(plan_file=str(path))

        assert config.plan.service_names() == ["seed", "api"]
        assert [s.kind for s in config.plan.services()] == [
            ServiceKind.RUN_TO_COMPLETION,
            ServiceKind.LONG_RUNNING,
        ]

    def test_missing_plan_file(self, tmp_path: Path) -> None:
        config, errors = StackConfig.validate_from_env(plan_file=str(tmp_path / "nope.json"))

        assert config is None
        assert any("Plan file not found" in e for e in errors)

    def test_invalid_plan_file(self, tmp_path: Path) -> None:
        path = self.write_plan(tmp_path, {"groups": []})

        config, errors = StackConfig.validate_from_env(plan_file=str(path))

        assert config is None
        assert any("Invalid plan file" in e for e in errors)


class TestStackPlan:
    """Structural rules of the stage plan."""

    def test_default_plan_shape(self) -> None:
        plan = default_plan()

        assert [g.name for g in plan.groups] == ["init", "backend", "workers", "frontend"]
        assert plan.groups[0].services[0].kind is ServiceKind.RUN_TO_COMPLETION
        assert len(plan.liveness_targets) == 10
        assert plan.access_points["Claude Sonnet 4"] == "http://localhost:2004"

    def test_empty_group_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GroupSpec(name="empty", services=())

    def test_no_groups_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StackPlan(groups=())

    def test_duplicate_service_rejected(self) -> None:
        with pytest.raises(ValidationError, match="planned more than once: api"):
            StackPlan(
                groups=(
                    GroupSpec(name="a", services=(ServiceSpec(name="api"),)),
                    GroupSpec(name="b", services=(ServiceSpec(name="api"),)),
                )
            )

    def test_duplicate_group_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate group name"):
            StackPlan(
                groups=(
                    GroupSpec(name="a", services=(ServiceSpec(name="x"),)),
                    GroupSpec(name="a", services=(ServiceSpec(name="y"),)),
                )
            )

    def test_liveness_target_must_be_planned(self) -> None:
        with pytest.raises(ValidationError, match="unknown service: ghost"):
            StackPlan(
                groups=(GroupSpec(name="a", services=(ServiceSpec(name="api"),)),),
                liveness_targets=(LivenessTarget(service="ghost", endpoint="http://x"),),
            )

    def test_artifact_proxy_must_be_long_running(self) -> None:
        with pytest.raises(ValidationError, match="must be a long-running service: seed"):
            StackPlan(
                groups=(
                    GroupSpec(
                        name="a",
                        services=(
                            ServiceSpec(name="seed", kind=ServiceKind.RUN_TO_COMPLETION),
                        ),
                    ),
                ),
                artifacts=(ArtifactCheck(proxy_service="seed", paths=("x",)),),
            )

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside", ""])
    def test_artifact_paths_must_be_relative(self, path: str) -> None:
        with pytest.raises(ValidationError):
            ArtifactCheck(proxy_service="api", paths=(path,))

    def test_artifact_resolve(self) -> None:
        check = ArtifactCheck(proxy_service="api", root="/data", paths=("mdl/sample.json",))
        assert check.resolve("mdl/sample.json") == "/data/mdl/sample.json"

    def test_service_name_without_whitespace(self) -> None:
        with pytest.raises(ValidationError):
            ServiceSpec(name="wren ui")
