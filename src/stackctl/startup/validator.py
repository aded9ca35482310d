"""stackctl Post-Start Validator.

Re-verifies a running stack independently of bring-up:

1. Presence - every expected service is listed by the runtime. The first
   missing service stops validation; nothing after it is meaningful.
2. Liveness - every target answers a probe run inside its own container.
   All targets are probed even after a failure.
3. Artifacts - the one-shot initializer left the expected files on storage
   shared with a running proxy service. The first missing path is reported.

Validation is read-only and safe to repeat against a degraded stack.
"""

from __future__ import annotations

import logging

from stackctl.core.exceptions import RuntimeCommandError, RuntimeUnavailableError
from stackctl.ports.runtime import ContainerRuntimePort
from stackctl.startup.config_schema import ArtifactCheck, LivenessTarget, StackConfig
from stackctl.startup.models import LivenessResult, ValidationReport
from stackctl.startup.prober import StateProber

logger = logging.getLogger(__name__)


class PostStartValidator:
    """Checks presence, liveness and initializer artifacts of a running stack."""

    def __init__(self, config: StackConfig, runtime: ContainerRuntimePort) -> None:
        self.config = config
        self.runtime = runtime
        self.prober = StateProber(runtime)

    async def validate(
        self,
        expected_services: list[str] | None = None,
        liveness_targets: tuple[LivenessTarget, ...] | None = None,
        artifact_checks: tuple[ArtifactCheck, ...] | None = None,
    ) -> ValidationReport:
        """Run all three checks; arguments default to the configured plan."""
        plan = self.config.plan
        expected = (
            expected_services if expected_services is not None else plan.expected_services()
        )
        targets = liveness_targets if liveness_targets is not None else plan.liveness_targets
        checks = artifact_checks if artifact_checks is not None else plan.artifacts

        listed, runtime_error = await self.prober.list_services()
        for index, name in enumerate(expected):
            if name not in listed:
                logger.warning("Expected service %s is not present", name)
                return ValidationReport(
                    missing_service=name,
                    checked_services=index,
                    runtime_error=runtime_error,
                )

        liveness = [await self._probe(target) for target in targets]
        missing_artifact, checked_artifacts, artifact_error = await self._check_artifacts(checks)

        return ValidationReport(
            liveness=tuple(liveness),
            missing_artifact=missing_artifact,
            checked_services=len(expected),
            checked_artifacts=checked_artifacts,
            artifact_error=artifact_error,
        )

    async def _probe(self, target: LivenessTarget) -> LivenessResult:
        argv = self.config.probe_argv(target.endpoint)
        try:
            result = await self.runtime.exec(target.service, argv)
        except (RuntimeUnavailableError, RuntimeCommandError) as e:
            logger.warning("Liveness probe of %s could not run: %s", target.service, e)
            return LivenessResult(target.service, target.endpoint, ok=False, message=str(e))

        if result.ok:
            return LivenessResult(target.service, target.endpoint, ok=True)

        stderr = result.stderr.strip().splitlines()
        message = f"probe exited with code {result.returncode}"
        if stderr:
            message += f": {stderr[-1]}"
        logger.warning(
            "Liveness probe of %s at %s failed: %s", target.service, target.endpoint, message
        )
        return LivenessResult(target.service, target.endpoint, ok=False, message=message)

    async def _check_artifacts(
        self, checks: tuple[ArtifactCheck, ...]
    ) -> tuple[str | None, int, str | None]:
        """Return the first missing artifact, how many were checked and any runtime error."""
        checked = 0
        for check in checks:
            for path in check.paths:
                checked += 1
                full_path = check.resolve(path)
                try:
                    result = await self.runtime.exec(
                        check.proxy_service, ["test", "-e", full_path]
                    )
                except (RuntimeUnavailableError, RuntimeCommandError) as e:
                    logger.warning(
                        "Artifact check via %s could not run: %s", check.proxy_service, e
                    )
                    return full_path, checked, str(e)
                if not result.ok:
                    logger.warning(
                        "Artifact %s missing (checked via %s)", full_path, check.proxy_service
                    )
                    return full_path, checked, None
        return None, checked, None
