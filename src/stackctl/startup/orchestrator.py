"""stackctl Startup Orchestrator.

Brings the stack up group by group. Every member of a group is started
together and polled concurrently; the next group is only started once every
member of the current one is ready. A definitive failure or a timeout aborts
the run without starting later groups.
"""

from __future__ import annotations

import asyncio
import logging
import time

from stackctl.core.exceptions import RuntimeCommandError, RuntimeUnavailableError
from stackctl.ports.runtime import ContainerRuntimePort
from stackctl.startup.config_schema import GroupSpec, ServiceSpec, StackConfig, StackPlan
from stackctl.startup.models import (
    FailureKind,
    GroupResult,
    Observation,
    PollResult,
    PollStatus,
    ReadinessOutcome,
    ServiceHealth,
    ServiceResult,
    StageReport,
)
from stackctl.startup.polling import Sleep, poll_until
from stackctl.startup.prober import StateProber
from stackctl.startup.progress_reporter import ProgressPhase, StartupProgressReporter
from stackctl.startup.readiness import policy_for, predicate_for

logger = logging.getLogger(__name__)


class StackOrchestrator:
    """Orchestrates dependency-ordered, health-gated bring-up of the stack."""

    def __init__(
        self,
        config: StackConfig,
        runtime: ContainerRuntimePort,
        *,
        reporter: StartupProgressReporter | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Validated settings, including the stage plan
            runtime: Runtime that starts and reports on services
            reporter: Progress reporter (creates default if not provided)
            sleep: Sleep coroutine used between readiness attempts
        """
        self.config = config
        self.runtime = runtime
        self.reporter = reporter or StartupProgressReporter()
        self.prober = StateProber(runtime)
        self.sleep = sleep

    async def bring_up(self, plan: StackPlan | None = None) -> StageReport:
        """Start every group in order, waiting for readiness in between."""
        plan = plan or self.config.plan
        completed: list[GroupResult] = []

        for index, group in enumerate(plan.groups):
            result = await self._bring_up_group(group)
            completed.append(result)

            if result.is_ready:
                continue

            skipped = tuple(g.name for g in plan.groups[index + 1 :])
            if skipped:
                logger.info("Not starting group(s) %s", ", ".join(skipped))
            for name in skipped:
                self.reporter.skip_step(
                    f"Starting {name}", f"{group.name} did not become ready"
                )

            if result.start_error is not None:
                return StageReport(
                    groups=tuple(completed),
                    failed_group=group.name,
                    failure_kind=FailureKind.START_FAILURE,
                    reason=f"start of group '{group.name}' failed: {result.start_error}",
                    skipped_groups=skipped,
                )

            failure = result.first_failure()
            return StageReport(
                groups=tuple(completed),
                failed_group=group.name,
                failed_service=failure.service if failure else None,
                failure_kind=(failure.failure_kind if failure else None)
                or FailureKind.TIMEOUT,
                reason=failure.poll.reason if failure else "group not ready",
                skipped_groups=skipped,
            )

        return StageReport(groups=tuple(completed))

    async def _bring_up_group(self, group: GroupSpec) -> GroupResult:
        names = group.service_names()

        self.reporter.start_phase(ProgressPhase.STARTING_GROUP, group.name)
        step = self.reporter.start_step(f"Starting {group.name}", ", ".join(names))
        try:
            await self.runtime.up(names)
        except (RuntimeCommandError, RuntimeUnavailableError) as e:
            result = GroupResult(group=group.name, start_error=str(e))
            self.reporter.report_group(step, result)
            return result
        self.reporter.complete_step(step, f"{len(names)} service(s) started")

        self.reporter.start_phase(
            ProgressPhase.WAITING_FOR_GROUP,
            f"{group.name} (every {self.config.poll_interval:g}s, "
            f"up to {self.config.max_attempts} attempts)",
        )
        step = self.reporter.start_step(f"Waiting for {group.name}")
        services = await self._await_group(group)
        result = GroupResult(group=group.name, services=services)
        self.reporter.report_group(step, result)
        return result

    async def _await_group(self, group: GroupSpec) -> tuple[ServiceResult, ...]:
        """Poll all members concurrently; cancel the rest on a definitive failure."""
        tasks = {
            asyncio.create_task(self._await_service(spec), name=f"await-{spec.name}"): spec
            for spec in group.services
        }
        results: dict[str, ServiceResult] = {}
        pending: set[asyncio.Task[ServiceResult]] = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    result = task.result()
                    results[result.service] = result

                failed = [r for r in results.values() if r.poll.status is PollStatus.FAILED]
                if failed and pending:
                    await self._cancel(pending)
                    for task in pending:
                        spec = tasks[task]
                        results[spec.name] = ServiceResult(
                            service=spec.name,
                            kind=spec.kind,
                            poll=PollResult(
                                PollStatus.CANCELLED,
                                0,
                                f"cancelled after {failed[0].service} failed",
                            ),
                        )
                    pending = set()
        finally:
            if pending:
                await self._cancel(pending)

        return tuple(results[spec.name] for spec in group.services)

    @staticmethod
    async def _cancel(tasks: set[asyncio.Task[ServiceResult]]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _await_service(self, spec: ServiceSpec) -> ServiceResult:
        started = time.monotonic()
        max_attempts = self.config.max_attempts

        def on_attempt(
            attempt: int, observation: Observation, outcome: ReadinessOutcome
        ) -> None:
            self.reporter.report_attempt(attempt, max_attempts, observation, outcome)

        poll = await poll_until(
            lambda: self.prober.observe(spec.name),
            predicate_for(spec.name, spec.kind),
            self.config.poll_interval,
            max_attempts,
            on_attempt=on_attempt,
            sleep=self.sleep,
        )
        return ServiceResult(
            service=spec.name,
            kind=spec.kind,
            poll=poll,
            duration_ms=(time.monotonic() - started) * 1000,
        )

    async def start(self, plan: StackPlan | None = None) -> StageReport:
        """Run a full bring-up with header, verdict and access points."""
        plan = plan or self.config.plan
        self.reporter.start_startup(f"Starting stack ({self.config.compose_file})")
        report = await self.bring_up(plan)

        if report.success:
            self.reporter.report_startup_complete(
                success=True, message=f"All {len(plan.services())} services ready"
            )
            self.reporter.report_access_points(plan.access_points)
        else:
            message = report.summary()
            if report.skipped_groups:
                message += f" (not started: {', '.join(report.skipped_groups)})"
            self.reporter.report_startup_complete(success=False, message=message)
        return report

    async def tear_down(self) -> None:
        """Stop and remove the whole stack.

        Raises:
            RuntimeCommandError: If the runtime refuses to stop the stack
            RuntimeUnavailableError: If the runtime cannot be invoked
        """
        self.reporter.start_phase(ProgressPhase.STOPPING)
        step = self.reporter.start_step("Stopping services")
        try:
            await self.runtime.down()
        except (RuntimeCommandError, RuntimeUnavailableError) as e:
            self.reporter.fail_step(step, str(e))
            raise
        self.reporter.complete_step(step, "Services stopped")

    async def restart(self, plan: StackPlan | None = None) -> StageReport:
        await self.tear_down()
        return await self.start(plan)

    async def snapshot(self, plan: StackPlan | None = None) -> list[ServiceHealth]:
        """Observe every planned service once; nothing is started or waited for."""
        plan = plan or self.config.plan
        specs = plan.services()
        observations = await asyncio.gather(*(self.prober.observe(s.name) for s in specs))
        return [
            ServiceHealth(
                service=spec.name,
                kind=spec.kind,
                observation=observation,
                outcome=policy_for(spec.kind).assess(observation),
            )
            for spec, observation in zip(specs, observations, strict=True)
        ]
