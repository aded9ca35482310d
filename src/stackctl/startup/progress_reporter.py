"""stackctl Startup Progress Reporter.

Operator-facing progress output for bring-up, teardown and validation:
phases, steps with durations, one progress mark per readiness attempt and a
final verdict.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
import logging
import sys
import time
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from stackctl.startup.config_schema import StackConfig
    from stackctl.startup.models import (
        GroupResult,
        Observation,
        ReadinessOutcome,
        ValidationReport,
    )

logger = logging.getLogger(__name__)

RULE_WIDTH = 60

ANSI = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
    "gray": "\033[90m",
}


class ProgressPhase(StrEnum):
    """Phases of a stackctl run."""

    INITIALIZING = "initializing"
    VALIDATING_CONFIG = "validating_config"
    STARTING_GROUP = "starting_group"
    WAITING_FOR_GROUP = "waiting_for_group"
    VALIDATING_STACK = "validating_stack"
    STOPPING = "stopping"
    READY = "ready"
    FAILED = "failed"


class StepStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


PHASE_EMOJI = {
    ProgressPhase.INITIALIZING: "🚀",
    ProgressPhase.VALIDATING_CONFIG: "⚙️",
    ProgressPhase.STARTING_GROUP: "🔧",
    ProgressPhase.WAITING_FOR_GROUP: "⏳",
    ProgressPhase.VALIDATING_STACK: "🔍",
    ProgressPhase.STOPPING: "🛑",
    ProgressPhase.READY: "✅",
    ProgressPhase.FAILED: "❌",
}

STATUS_SYMBOL = {
    StepStatus.RUNNING: "🔄",
    StepStatus.COMPLETED: "✅",
    StepStatus.FAILED: "❌",
    StepStatus.SKIPPED: "⏭️",
}


@dataclass
class ProgressStep:
    """One reported unit of work, e.g. starting or waiting for a group."""

    name: str
    phase: ProgressPhase
    status: StepStatus = StepStatus.RUNNING
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at) * 1000

    def finish(
        self, status: StepStatus, message: str = "", details: dict[str, Any] | None = None
    ) -> None:
        self.status = status
        self.finished_at = time.monotonic()
        if message:
            self.message = message
        self.details.update(details or {})


class StartupProgressReporter:
    """Prints run progress for an operator watching the terminal."""

    def __init__(
        self,
        output: TextIO | None = None,
        *,
        enable_colors: bool = True,
        show_attempts: bool = False,
    ) -> None:
        """Initialize progress reporter.

        Args:
            output: Stream to write to (defaults to stdout)
            enable_colors: Use ANSI colors when the stream is a TTY
            show_attempts: Print one line per attempt instead of a dot
        """
        self.output = output or sys.stdout
        isatty = getattr(self.output, "isatty", None)
        self.enable_colors = enable_colors and bool(isatty and isatty())
        self.show_attempts = show_attempts
        self.steps: list[ProgressStep] = []
        self.current_phase = ProgressPhase.INITIALIZING
        self.started_at = time.monotonic()
        self.finished_at: float | None = None
        self.attempt_marks = 0
        self._line_open = False

    def _paint(self, text: str, color: str) -> str:
        if not self.enable_colors:
            return text
        return f"{ANSI[color]}{text}{ANSI['reset']}"

    def _print(self, message: str) -> None:
        # Close a row of attempt dots before anything else is written.
        if self._line_open:
            print(file=self.output)
            self._line_open = False
        print(message, file=self.output, flush=True)

    def _elapsed_ms(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return (end - self.started_at) * 1000

    def start_startup(self, title: str) -> None:
        """Print the run header and reset timing."""
        self.started_at = time.monotonic()
        self.finished_at = None
        self._print(f"\n{self._paint('🚀', 'bold')} {self._paint(title, 'cyan')}")
        self._print(self._paint("=" * RULE_WIDTH, "gray"))

    def start_phase(self, phase: ProgressPhase, message: str = "") -> None:
        self.current_phase = phase
        title = self._paint(phase.value.replace("_", " ").title(), "bold")
        line = f"{PHASE_EMOJI[phase]} {title}"
        if message:
            line += f": {message}"
        self._print(f"\n{line}")
        logger.info("Phase %s %s", phase.value, message)

    def start_step(self, name: str, message: str = "") -> ProgressStep:
        step = ProgressStep(name=name, phase=self.current_phase)
        self.steps.append(step)

        line = f"  {STATUS_SYMBOL[StepStatus.RUNNING]} {name}"
        if message:
            line += f": {self._paint(message, 'gray')}"
        self._print(line)
        return step

    def complete_step(
        self,
        step: ProgressStep,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        step.finish(StepStatus.COMPLETED, message, details)

        line = f"  {STATUS_SYMBOL[step.status]} {self._paint(step.name, 'green')}"
        if message:
            line += f": {message}"
        line += " " + self._paint(f"({step.duration_ms:.0f}ms)", "gray")
        self._print(line)
        logger.info("%s done in %.0fms", step.name, step.duration_ms)

    def fail_step(
        self,
        step: ProgressStep,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        step.finish(StepStatus.FAILED, message, details)

        name = self._paint(step.name, "red")
        self._print(f"  {STATUS_SYMBOL[step.status]} {name}: {self._paint(message, 'red')}")
        logger.error("%s failed: %s", step.name, message)

    def skip_step(self, name: str, reason: str) -> ProgressStep:
        """Record a step that was never attempted."""
        step = ProgressStep(name=name, phase=self.current_phase)
        self.steps.append(step)
        step.finish(StepStatus.SKIPPED, reason)

        label = self._paint(name, "yellow")
        self._print(f"  {STATUS_SYMBOL[step.status]} {label}: {self._paint(reason, 'gray')}")
        logger.info("%s skipped: %s", name, reason)
        return step

    def report_attempt(
        self,
        attempt: int,
        max_attempts: int,
        observation: Observation,
        outcome: ReadinessOutcome,
    ) -> None:
        """Emit one progress mark for a readiness attempt."""
        self.attempt_marks += 1
        logger.debug(
            "%s attempt %d/%d: %s (%s)",
            observation.service,
            attempt,
            max_attempts,
            outcome.status.value,
            outcome.reason,
        )
        if self.show_attempts:
            self._print(
                self._paint(
                    f"    · {observation.service} [{attempt}/{max_attempts}] "
                    f"{outcome.status.value}: {outcome.reason}",
                    "gray",
                )
            )
            return
        if not self._line_open:
            print("    ", end="", file=self.output)
            self._line_open = True
        print(".", end="", file=self.output, flush=True)

    def report_group(self, step: ProgressStep, result: GroupResult) -> None:
        """Close the wait step of a group and list each member's outcome."""
        if result.start_error is not None:
            self.fail_step(step, f"start failed: {result.start_error}")
            return

        if result.is_ready:
            self.complete_step(step, f"{len(result.services)} service(s) ready")
        else:
            failure = result.first_failure()
            reason = failure.poll.reason if failure else "not ready"
            target = failure.service if failure else result.group
            self.fail_step(step, f"{target}: {reason}")

        for service in result.services:
            symbol = "✅" if service.is_ready else "❌"
            color = "green" if service.is_ready else "red"
            detail = service.poll.reason or service.poll.status.value
            self._print(
                f"    {symbol} {self._paint(service.service, color)}: {detail} "
                f"{self._paint(f'(attempts: {service.poll.attempts})', 'gray')}"
            )

    def report_config_validation(
        self, config: StackConfig | None, validation_errors: list[str]
    ) -> None:
        """Report settings and stage plan validation."""
        self.start_phase(ProgressPhase.VALIDATING_CONFIG)
        step = self.start_step("Settings and stage plan")

        if validation_errors or config is None:
            self.fail_step(
                step,
                f"Found {len(validation_errors)} configuration error(s)",
                {"errors": validation_errors},
            )
            for number, error in enumerate(validation_errors, 1):
                self._print(f"    {number}. {self._paint(error, 'red')}")
            return

        summary = config.get_startup_summary()
        self.complete_step(step, "Configuration valid", summary)
        for key, value in summary.items():
            self._print(f"    • {key}: {value}")

    def report_validation(self, report: ValidationReport) -> None:
        """Report post-start validation findings, one line per check."""
        self.start_phase(ProgressPhase.VALIDATING_STACK)

        step = self.start_step("Presence")
        if report.presence_ok:
            self.complete_step(step, f"{report.checked_services} service(s) present")
        else:
            self.fail_step(step, f"service '{report.missing_service}' is missing")
            self.skip_step("Liveness", "presence check failed")
            self.skip_step("Artifacts", "presence check failed")
            return

        for result in report.liveness:
            step = self.start_step(f"Liveness: {result.service}", result.endpoint)
            if result.ok:
                self.complete_step(step, "reachable")
            else:
                self.fail_step(step, result.message or "unreachable")

        step = self.start_step("Artifacts")
        if report.artifacts_ok:
            self.complete_step(step, f"{report.checked_artifacts} artifact(s) present")
        else:
            reason = f"'{report.missing_artifact}' is missing"
            if report.artifact_error:
                reason = f"'{report.missing_artifact}' not checked: {report.artifact_error}"
            self.fail_step(step, reason)

    def report_access_points(self, access_points: dict[str, str]) -> None:
        if not access_points:
            return
        self._print(f"\n🌐 {self._paint('Access points:', 'bold')}")
        width = max(len(label) for label in access_points) + 1
        for label, url in access_points.items():
            self._print(f"   {label + ':':<{width}}  {self._paint(url, 'cyan')}")

    def report_startup_complete(self, *, success: bool = True, message: str = "") -> None:
        """Print the final verdict of a run."""
        self.finished_at = time.monotonic()
        elapsed = self._elapsed_ms()

        if success:
            self.current_phase = ProgressPhase.READY
            verdict = self._paint("Complete", "green")
            logger.info("Run completed in %.0fms", elapsed)
        else:
            self.current_phase = ProgressPhase.FAILED
            verdict = self._paint("Failed", "red")
            logger.error("Run failed after %.0fms: %s", elapsed, message)

        line = f"{PHASE_EMOJI[self.current_phase]} {verdict} ({elapsed:.0f}ms)"
        if message:
            line += f": {message}"
        self._print(f"\n{line}")
        self._print(self._paint("=" * RULE_WIDTH, "gray") + "\n")

    def get_startup_summary(self) -> dict[str, Any]:
        """Step counts, attempt count and the final phase of the run."""
        counts = Counter(step.status for step in self.steps)
        return {
            "total_duration_ms": self._elapsed_ms() if self.finished_at else 0.0,
            "total_steps": len(self.steps),
            "completed_steps": counts[StepStatus.COMPLETED],
            "failed_steps": counts[StepStatus.FAILED],
            "skipped_steps": counts[StepStatus.SKIPPED],
            "attempts": self.attempt_marks,
            "final_phase": self.current_phase.value,
            "success": not counts[StepStatus.FAILED]
            and self.current_phase is ProgressPhase.READY,
        }

    def print_startup_summary(self) -> None:
        summary = self.get_startup_summary()

        self._print(self._paint("Summary:", "bold"))
        self._print(
            f"  {summary['total_steps']} steps in {summary['total_duration_ms']:.0f}ms, "
            f"{summary['attempts']} readiness attempts"
        )
        self._print(
            f"  ✅ {summary['completed_steps']} completed  "
            f"❌ {summary['failed_steps']} failed  "
            f"⏭️  {summary['skipped_steps']} skipped"
        )
        failed = [step for step in self.steps if step.status is StepStatus.FAILED]
        for step in failed:
            self._print(f"  • {self._paint(step.name, 'red')}: {step.message}")
