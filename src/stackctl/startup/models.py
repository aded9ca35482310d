"""stackctl Startup Models.

Observed service state, readiness outcomes and the reports produced by
bring-up and post-start validation. Everything here is a plain value: outcomes
are recomputed from fresh observations and never mutated after creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import time


class ServiceKind(StrEnum):
    """How a service signals that it is ready."""

    RUN_TO_COMPLETION = "run_to_completion"
    LONG_RUNNING = "long_running"


class LifecycleState(StrEnum):
    """Lifecycle state of a service as reported by the runtime."""

    ABSENT = "absent"
    RUNNING = "running"
    EXITED = "exited"


class HealthState(StrEnum):
    """Health indicator of a running service."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class ReadinessStatus(StrEnum):
    """Readiness of a single service at one observation."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class PollStatus(StrEnum):
    """Terminal result of a bounded polling loop."""

    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class FailureKind(StrEnum):
    """Failure taxonomy shared by bring-up and validation."""

    DEFINITIVE_FAILURE = "definitive_failure"
    TIMEOUT = "timeout"
    START_FAILURE = "start_failure"
    MISSING_SERVICE = "missing_service"
    LIVENESS_FAILURE = "liveness_failure"
    ARTIFACT_MISSING = "artifact_missing"


@dataclass(frozen=True)
class Observation:
    """Point-in-time snapshot of one service."""

    service: str
    lifecycle: LifecycleState
    health: HealthState = HealthState.UNKNOWN
    exit_code: int | None = None
    error: str | None = None
    observed_at: float = field(default_factory=time.time, compare=False)

    def describe(self) -> str:
        """Human-readable summary used in progress output and diagnostics."""
        if self.lifecycle is LifecycleState.ABSENT:
            text = "not created yet"
        elif self.lifecycle is LifecycleState.EXITED:
            text = f"exited with code {self.exit_code}"
        elif self.health is HealthState.UNKNOWN:
            text = "running, health unknown"
        else:
            text = f"running, health {self.health.value}"
        if self.error:
            text += f" (runtime error: {self.error})"
        return text


@dataclass(frozen=True)
class ReadinessOutcome:
    """Readiness derived from one observation."""

    status: ReadinessStatus
    reason: str = ""

    @classmethod
    def pending(cls, reason: str = "") -> ReadinessOutcome:
        return cls(ReadinessStatus.PENDING, reason)

    @classmethod
    def ready(cls, reason: str = "") -> ReadinessOutcome:
        return cls(ReadinessStatus.READY, reason)

    @classmethod
    def failed(cls, reason: str) -> ReadinessOutcome:
        return cls(ReadinessStatus.FAILED, reason)

    @property
    def is_ready(self) -> bool:
        return self.status is ReadinessStatus.READY

    @property
    def is_failed(self) -> bool:
        return self.status is ReadinessStatus.FAILED


@dataclass(frozen=True)
class PollResult:
    """Result of a bounded polling loop over one service."""

    status: PollStatus
    attempts: int
    reason: str = ""
    last_observation: Observation | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is PollStatus.READY


@dataclass(frozen=True)
class ServiceResult:
    """Bring-up result for one service in a group."""

    service: str
    kind: ServiceKind
    poll: PollResult
    duration_ms: float = 0.0

    @property
    def is_ready(self) -> bool:
        return self.poll.is_ready

    @property
    def failure_kind(self) -> FailureKind | None:
        if self.poll.status is PollStatus.FAILED:
            return FailureKind.DEFINITIVE_FAILURE
        if self.poll.status is PollStatus.TIMED_OUT:
            return FailureKind.TIMEOUT
        return None


@dataclass(frozen=True)
class GroupResult:
    """Bring-up result for one group of the stage plan."""

    group: str
    services: tuple[ServiceResult, ...] = ()
    start_error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.start_error is None and all(s.is_ready for s in self.services)

    def first_failure(self) -> ServiceResult | None:
        """Return the member that caused the group to fail.

        Definitive failures win over timeouts, which win over members that
        were cancelled because a sibling failed. Ties go to plan order.
        """
        for status in (PollStatus.FAILED, PollStatus.TIMED_OUT, PollStatus.CANCELLED):
            for result in self.services:
                if result.poll.status is status:
                    return result
        return None


@dataclass(frozen=True)
class StageReport:
    """Aggregated outcome of a full bring-up."""

    groups: tuple[GroupResult, ...] = ()
    failed_group: str | None = None
    failed_service: str | None = None
    failure_kind: FailureKind | None = None
    reason: str = ""
    skipped_groups: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.failure_kind is None

    def service_results(self) -> dict[str, ServiceResult]:
        """Flatten per-service results across all attempted groups."""
        return {s.service: s for g in self.groups for s in g.services}

    def summary(self) -> str:
        if self.success:
            return f"{len(self.groups)} group(s) ready"
        target = self.failed_service or self.failed_group
        return f"{target}: {self.reason}"


@dataclass(frozen=True)
class ServiceHealth:
    """Current readiness of one planned service, outside of a bring-up."""

    service: str
    kind: ServiceKind
    observation: Observation
    outcome: ReadinessOutcome


@dataclass(frozen=True)
class LivenessResult:
    """Result of one liveness probe."""

    service: str
    endpoint: str
    ok: bool
    message: str = ""


@dataclass(frozen=True)
class ValidationFinding:
    """A single validation failure naming the offending item."""

    kind: FailureKind
    subject: str
    message: str


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of the post-start validator.

    ``checked_*`` counters record how much work was actually performed so
    that short-circuiting is observable.
    """

    missing_service: str | None = None
    liveness: tuple[LivenessResult, ...] = ()
    missing_artifact: str | None = None
    checked_services: int = 0
    checked_artifacts: int = 0
    runtime_error: str | None = None
    artifact_error: str | None = None

    @property
    def presence_ok(self) -> bool:
        return self.missing_service is None

    @property
    def liveness_ok(self) -> bool:
        return all(result.ok for result in self.liveness)

    @property
    def artifacts_ok(self) -> bool:
        return self.missing_artifact is None

    @property
    def passed(self) -> bool:
        return self.presence_ok and self.liveness_ok and self.artifacts_ok

    def findings(self) -> list[ValidationFinding]:
        """List every failure in the order the checks ran."""
        findings: list[ValidationFinding] = []
        if self.missing_service is not None:
            message = f"Service '{self.missing_service}' is not present in the runtime"
            if self.runtime_error:
                message += f" (runtime listing failed: {self.runtime_error})"
            findings.append(
                ValidationFinding(FailureKind.MISSING_SERVICE, self.missing_service, message)
            )
        findings.extend(
            ValidationFinding(
                FailureKind.LIVENESS_FAILURE,
                f"{result.service} {result.endpoint}",
                f"Liveness probe for '{result.service}' at {result.endpoint} failed: "
                f"{result.message}",
            )
            for result in self.liveness
            if not result.ok
        )
        if self.missing_artifact is not None:
            message = f"Expected artifact '{self.missing_artifact}' was not found"
            if self.artifact_error:
                message = (
                    f"Artifact check for '{self.missing_artifact}' could not run: "
                    f"{self.artifact_error}"
                )
            findings.append(
                ValidationFinding(FailureKind.ARTIFACT_MISSING, self.missing_artifact, message)
            )
        return findings
