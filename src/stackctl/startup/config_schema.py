"""stackctl Configuration Schema.

Pydantic-based validation of the orchestrator settings and the stage plan.
Everything is validated before the runtime is touched so that a bad plan is
reported as a list of errors instead of a half-started stack.
"""

from __future__ import annotations

from enum import StrEnum
import logging
import math
from pathlib import Path, PurePosixPath
import shlex
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from stackctl.startup.models import ServiceKind

logger = logging.getLogger(__name__)

DEFAULT_COMPOSE_FILE = "docker-compose-multi-llm.yaml"
DEFAULT_ENV_FILE = ".env.multi-llm"
DEFAULT_PROBE_COMMAND = "wget -q -T 5 -O /dev/null"


class LogLevel(StrEnum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ServiceSpec(BaseModel):
    """A planned service and how its readiness is judged."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Service name as known to the runtime", min_length=1)
    kind: ServiceKind = Field(
        default=ServiceKind.LONG_RUNNING, description="Readiness semantics"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            msg = f"Service name must not contain whitespace: {v!r}"
            raise ValueError(msg)
        return v


class GroupSpec(BaseModel):
    """An ordered group of services started and awaited together."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Group name", min_length=1)
    services: tuple[ServiceSpec, ...] = Field(
        description="Members of the group", min_length=1
    )

    def service_names(self) -> list[str]:
        return [service.name for service in self.services]


class LivenessTarget(BaseModel):
    """An application-level liveness endpoint probed from inside a service."""

    model_config = ConfigDict(frozen=True)

    service: str = Field(description="Service whose container runs the probe")
    endpoint: str = Field(description="Address probed, e.g. http://localhost:5555/health")


class ArtifactCheck(BaseModel):
    """Paths an initializer must leave on storage shared with a proxy service."""

    model_config = ConfigDict(frozen=True)

    proxy_service: str = Field(
        description="Running service that mounts the initializer's storage"
    )
    root: str = Field(default="/", description="Mount point inside the proxy service")
    paths: tuple[str, ...] = Field(description="Relative paths that must exist")

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: str) -> str:
        if not v.startswith("/"):
            msg = f"Artifact root must be an absolute path: {v}"
            raise ValueError(msg)
        return v

    @field_validator("paths")
    @classmethod
    def validate_paths(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for path in v:
            pure = PurePosixPath(path)
            if pure.is_absolute() or ".." in pure.parts or not path.strip():
                msg = f"Artifact path must be relative to the shared root: {path!r}"
                raise ValueError(msg)
        return v

    def resolve(self, path: str) -> str:
        """Return the absolute path of ``path`` inside the proxy service."""
        return str(PurePosixPath(self.root) / path)


class StackPlan(BaseModel):
    """The fixed bring-up order plus the post-start expectations."""

    model_config = ConfigDict(frozen=True)

    groups: tuple[GroupSpec, ...] = Field(description="Groups in bring-up order", min_length=1)
    liveness_targets: tuple[LivenessTarget, ...] = Field(default=())
    artifacts: tuple[ArtifactCheck, ...] = Field(default=())
    access_points: dict[str, str] = Field(
        default_factory=dict, description="Published URLs printed after start"
    )

    @model_validator(mode="after")
    def validate_references(self) -> StackPlan:
        """Check uniqueness and that validation targets are planned services."""
        errors: list[str] = []

        group_names = [group.name for group in self.groups]
        duplicates = sorted({n for n in group_names if group_names.count(n) > 1})
        if duplicates:
            errors.append(f"Duplicate group name(s): {', '.join(duplicates)}")

        names = [s.name for group in self.groups for s in group.services]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            errors.append(f"Service(s) planned more than once: {', '.join(duplicates)}")

        kinds = {s.name: s.kind for group in self.groups for s in group.services}
        for target in self.liveness_targets:
            if target.service not in kinds:
                errors.append(f"Liveness target references unknown service: {target.service}")
            elif kinds[target.service] is not ServiceKind.LONG_RUNNING:
                errors.append(
                    f"Liveness target must be a long-running service: {target.service}"
                )
        for check in self.artifacts:
            if check.proxy_service not in kinds:
                errors.append(
                    f"Artifact proxy references unknown service: {check.proxy_service}"
                )
            elif kinds[check.proxy_service] is not ServiceKind.LONG_RUNNING:
                errors.append(
                    f"Artifact proxy must be a long-running service: {check.proxy_service}"
                )

        if errors:
            raise ValueError("; ".join(errors))
        return self

    def services(self) -> list[ServiceSpec]:
        """All planned services in bring-up order."""
        return [service for group in self.groups for service in group.services]

    def service_names(self) -> list[str]:
        return [service.name for service in self.services()]

    def expected_services(self) -> list[str]:
        """Services that must be listed by the runtime once the stack is up."""
        return self.service_names()


def default_plan() -> StackPlan:
    """Built-in plan for the WrenAI multi-LLM stack.

    One-shot bootstrap, then the engine tier, one AI service per model and one
    UI per AI service.
    """
    variants = [
        ("GPT-4.1-mini", "gpt41mini", 1041),
        ("GPT-o4-mini", "o4mini", 1004),
        ("GPT-o3", "o3", 1003),
        ("Claude Sonnet 4", "claude", 2004),
    ]
    ai_services = [f"wren-ai-service-{suffix}" for _, suffix, _ in variants]
    ui_services = [f"wren-ui-{suffix}" for _, suffix, _ in variants]

    return StackPlan(
        groups=(
            GroupSpec(
                name="init",
                services=(ServiceSpec(name="bootstrap", kind=ServiceKind.RUN_TO_COMPLETION),),
            ),
            GroupSpec(
                name="backend",
                services=(
                    ServiceSpec(name="wren-engine"),
                    ServiceSpec(name="ibis-server"),
                    ServiceSpec(name="qdrant"),
                ),
            ),
            GroupSpec(
                name="workers",
                services=tuple(ServiceSpec(name=name) for name in ai_services),
            ),
            GroupSpec(
                name="frontend",
                services=tuple(ServiceSpec(name=name) for name in ui_services),
            ),
        ),
        liveness_targets=(
            LivenessTarget(service="wren-engine", endpoint="http://localhost:8080/health"),
            LivenessTarget(service="ibis-server", endpoint="http://localhost:8000/health"),
            *(
                LivenessTarget(service=name, endpoint="http://localhost:5555/health")
                for name in ai_services
            ),
            *(
                LivenessTarget(service=name, endpoint="http://localhost:3000")
                for name in ui_services
            ),
        ),
        artifacts=(
            ArtifactCheck(
                proxy_service="wren-engine",
                root="/usr/src/app/etc",
                paths=("config.properties", "mdl/sample.json"),
            ),
        ),
        access_points={label: f"http://localhost:{port}" for label, _, port in variants},
    )


class StackConfig(BaseSettings):
    """Orchestrator settings.

    Read from ``STACK_*`` environment variables; CLI flags override by field
    name. The stage plan is the built-in one unless ``plan_file`` points to a
    JSON document.
    """

    compose_file: str = Field(
        default=DEFAULT_COMPOSE_FILE,
        description="Compose file describing the stack",
        alias="STACK_COMPOSE_FILE",
        min_length=1,
    )
    env_file: str = Field(
        default=DEFAULT_ENV_FILE,
        description="Environment file passed to the runtime",
        alias="STACK_ENV_FILE",
        min_length=1,
    )
    project_name: str | None = Field(
        default=None, description="Compose project name", alias="STACK_PROJECT_NAME"
    )
    project_dir: str = Field(
        default=".",
        description="Directory the runtime is invoked from",
        alias="STACK_PROJECT_DIR",
    )
    poll_interval: float = Field(
        default=2.0,
        description="Seconds between readiness observations",
        gt=0,
        le=60,
        alias="STACK_POLL_INTERVAL",
    )
    startup_timeout: float = Field(
        default=180.0,
        description="Maximum seconds to wait for one group",
        gt=0,
        le=3600,
        alias="STACK_STARTUP_TIMEOUT",
    )
    command_timeout: float = Field(
        default=15.0,
        description="Timeout for a single runtime command",
        gt=0,
        le=120,
        alias="STACK_COMMAND_TIMEOUT",
    )
    probe_command: str = Field(
        default=DEFAULT_PROBE_COMMAND,
        description="Liveness probe command; the endpoint is appended",
        alias="STACK_PROBE_COMMAND",
        min_length=1,
    )
    plan_file: str | None = Field(
        default=None, description="JSON stage plan", alias="STACK_PLAN_FILE"
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Logging level", alias="LOG_LEVEL"
    )
    debug: bool = Field(default=False, description="Enable debug output", alias="DEBUG")

    plan: StackPlan = Field(
        default_factory=default_plan, description="Stage plan", alias="STACK_PLAN"
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def load_plan_file(self) -> StackConfig:
        """Replace the built-in plan with the one from ``plan_file``."""
        if self.plan_file:
            path = Path(self.plan_file)
            if not path.is_file():
                msg = f"Plan file not found: {self.plan_file}"
                raise ValueError(msg)
            try:
                self.plan = StackPlan.model_validate_json(path.read_text(encoding="utf-8"))
            except ValidationError as e:
                problems = "; ".join(
                    f"{'.'.join(str(loc) for loc in err['loc']) or 'plan'}: {err['msg']}"
                    for err in e.errors()
                )
                msg = f"Invalid plan file {self.plan_file}: {problems}"
                raise ValueError(msg) from None
            logger.debug("Loaded stage plan from %s", path)
        return self

    @property
    def max_attempts(self) -> int:
        """Attempt ceiling per service so a group waits at most ``startup_timeout``."""
        return max(1, math.ceil(self.startup_timeout / self.poll_interval))

    def probe_argv(self, endpoint: str) -> list[str]:
        return [*shlex.split(self.probe_command), endpoint]

    def env_file_path(self) -> Path:
        path = Path(self.env_file)
        return path if path.is_absolute() else Path(self.project_dir) / path

    def get_startup_summary(self) -> dict[str, Any]:
        """Get startup configuration summary."""
        return {
            "compose_file": self.compose_file,
            "env_file": self.env_file,
            "project": self.project_name or "(default)",
            "groups": " -> ".join(group.name for group in self.plan.groups),
            "services": len(self.plan.services()),
            "poll_interval": f"{self.poll_interval:g}s",
            "max_attempts": self.max_attempts,
        }

    @classmethod
    def validate_from_env(cls, **overrides: Any) -> tuple[StackConfig | None, list[str]]:
        """Validate configuration from environment variables plus overrides.

        Returns:
            Tuple of (config, errors). Config is None if validation fails.
        """
        values = {key: value for key, value in overrides.items() if value is not None}
        try:
            return cls(**values), []
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field_path = ".".join(str(loc) for loc in error["loc"])
                message = error["msg"]
                errors.append(f"{field_path}: {message}" if field_path else message)
            return None, errors
        except (ValueError, OSError) as e:
            return None, [str(e)]
