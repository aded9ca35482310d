"""stackctl Startup Error Catalog.

Catalog of orchestration errors with clear messages and solutions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from stackctl.startup.models import FailureKind


class ErrorCategory(StrEnum):
    """Error categories for organization."""

    CONFIGURATION = "configuration"
    RUNTIME = "runtime"
    SERVICE = "service"
    VALIDATION = "validation"


class ErrorSeverity(StrEnum):
    """Error severity levels."""

    CRITICAL = "critical"  # Stack cannot be brought up
    HIGH = "high"  # Stack is up but not usable
    MEDIUM = "medium"  # Part of the stack is degraded


@dataclass
class ErrorSolution:
    """Suggested solution for an error."""

    description: str
    steps: list[str]


@dataclass
class StartupErrorInfo:
    """Comprehensive error information."""

    code: str
    title: str
    description: str
    category: ErrorCategory
    severity: ErrorSeverity
    solutions: list[ErrorSolution]
    common_causes: list[str]
    related_errors: list[str] = field(default_factory=list)


FAILURE_CODES: dict[FailureKind, str] = {
    FailureKind.DEFINITIVE_FAILURE: "SVC_001",
    FailureKind.TIMEOUT: "SVC_002",
    FailureKind.START_FAILURE: "RT_002",
    FailureKind.MISSING_SERVICE: "VAL_001",
    FailureKind.LIVENESS_FAILURE: "VAL_002",
    FailureKind.ARTIFACT_MISSING: "VAL_003",
}


class StartupErrorCatalog:
    """Catalog of orchestration errors with solutions."""

    def __init__(self) -> None:
        self.errors: dict[str, StartupErrorInfo] = self._build_error_catalog()

    def _build_error_catalog(self) -> dict[str, StartupErrorInfo]:
        errors = {}

        errors["CONFIG_001"] = StartupErrorInfo(
            code="CONFIG_001",
            title="Environment File Not Found",
            description="The environment file passed to the runtime does not exist.",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "The example env file was never copied",
                "Command run from a different directory",
                "Typo in --env-file or STACK_ENV_FILE",
            ],
            solutions=[
                ErrorSolution(
                    description="Create the environment file from the example",
                    steps=[
                        "cp .env.multi-llm .env",
                        "Edit the file and add your API keys",
                        "Pass it with --env-file or set STACK_ENV_FILE",
                    ],
                ),
            ],
        )

        errors["CONFIG_002"] = StartupErrorInfo(
            code="CONFIG_002",
            title="Invalid Configuration",
            description="A setting or the stage plan failed validation.",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Polling interval or timeout out of range",
                "Plan file is not valid JSON",
                "Service planned twice or group left empty",
                "Liveness target or artifact proxy not in the plan",
            ],
            solutions=[
                ErrorSolution(
                    description="Fix the reported values",
                    steps=[
                        "Read each configuration error printed above",
                        "Correct the environment variable, flag or plan file",
                        "Run 'stackctl config' to re-check before starting",
                    ],
                ),
            ],
        )

        errors["RT_001"] = StartupErrorInfo(
            code="RT_001",
            title="Container Runtime Unavailable",
            description="The docker compose command could not be run or timed out.",
            category=ErrorCategory.RUNTIME,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Docker is not installed or not on PATH",
                "The Docker daemon is not running",
                "The current user cannot access the Docker socket",
            ],
            solutions=[
                ErrorSolution(
                    description="Make the runtime reachable",
                    steps=[
                        "Run 'docker compose version'",
                        "Start Docker Desktop or the docker service",
                        "Raise STACK_COMMAND_TIMEOUT on slow hosts",
                    ],
                ),
            ],
        )

        errors["RT_002"] = StartupErrorInfo(
            code="RT_002",
            title="Runtime Command Failed",
            description="docker compose rejected a command (start, stop or config).",
            category=ErrorCategory.RUNTIME,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Service name in the plan does not exist in the compose file",
                "Image could not be pulled or built",
                "Port already in use",
            ],
            solutions=[
                ErrorSolution(
                    description="Inspect the compose file and runtime output",
                    steps=[
                        "Run 'stackctl config' to validate the compose file",
                        "Check the last line of the runtime error above",
                        "Free the conflicting port or fix the image reference",
                    ],
                ),
            ],
            related_errors=["CONFIG_002"],
        )

        errors["SVC_001"] = StartupErrorInfo(
            code="SVC_001",
            title="Initializer Failed",
            description="A run-to-completion service exited with a non-zero code.",
            category=ErrorCategory.SERVICE,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Bootstrap script error",
                "Shared volume not writable",
                "Missing variable in the environment file",
            ],
            solutions=[
                ErrorSolution(
                    description="Read the initializer's output",
                    steps=[
                        "Run 'stackctl logs --no-follow <service>'",
                        "Fix the cause and run 'stackctl restart'",
                    ],
                ),
            ],
        )

        errors["SVC_002"] = StartupErrorInfo(
            code="SVC_002",
            title="Timed Out Waiting For Service",
            description="A service did not become ready within the attempt budget.",
            category=ErrorCategory.SERVICE,
            severity=ErrorSeverity.HIGH,
            common_causes=[
                "Service still starting (slow image, large model)",
                "Healthcheck failing inside the container",
                "Long-running service crashed and did not restart",
                "No healthcheck defined, so health never becomes healthy",
            ],
            solutions=[
                ErrorSolution(
                    description="Inspect the last observed state",
                    steps=[
                        "Compare the reported last state with 'stackctl health'",
                        "Check 'stackctl logs <service>'",
                        "Increase --timeout if the service is merely slow",
                    ],
                ),
            ],
            related_errors=["SVC_001"],
        )

        errors["VAL_001"] = StartupErrorInfo(
            code="VAL_001",
            title="Expected Service Missing",
            description="An expected service is not listed by the runtime.",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.HIGH,
            common_causes=[
                "Stack not started, or started with a different project name",
                "Container removed after a crash",
            ],
            solutions=[
                ErrorSolution(
                    description="Bring the stack up",
                    steps=[
                        "Run 'stackctl status'",
                        "Run 'stackctl start' (or 'restart')",
                    ],
                ),
            ],
        )

        errors["VAL_002"] = StartupErrorInfo(
            code="VAL_002",
            title="Liveness Probe Failed",
            description="A service did not answer its application-level probe.",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            common_causes=[
                "Application up but its dependencies are not",
                "Wrong port or path in the liveness endpoint",
                "Probe command (wget) not available in the image",
            ],
            solutions=[
                ErrorSolution(
                    description="Probe by hand from inside the container",
                    steps=[
                        "docker compose exec <service> wget -O- <endpoint>",
                        "Adjust STACK_PROBE_COMMAND for images without wget",
                    ],
                ),
            ],
        )

        errors["VAL_003"] = StartupErrorInfo(
            code="VAL_003",
            title="Initializer Artifact Missing",
            description="A file the initializer should have written was not found.",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.HIGH,
            common_causes=[
                "Initializer wrote to a different volume",
                "Proxy service mounts the volume at another path",
                "Volume was recreated after bootstrap",
            ],
            solutions=[
                ErrorSolution(
                    description="Re-run the initializer",
                    steps=[
                        "Check the volume mounts of both services in the compose file",
                        "Run 'stackctl restart'",
                    ],
                ),
            ],
            related_errors=["SVC_001"],
        )

        return errors

    def get_error_info(self, error_code: str) -> StartupErrorInfo | None:
        return self.errors.get(error_code)

    def code_for_failure(self, kind: FailureKind) -> str:
        return FAILURE_CODES[kind]

    def find_errors_by_category(self, category: ErrorCategory) -> list[StartupErrorInfo]:
        return [error for error in self.errors.values() if error.category == category]

    def format_error_help(self, error_code: str, context: dict[str, str] | None = None) -> str:
        """Format comprehensive error help message."""
        error_info = self.get_error_info(error_code)
        if not error_info:
            return f"Unknown error code: {error_code}"

        lines: list[str] = []
        lines.extend(
            (
                f"🚨 {error_info.title} ({error_info.code})",
                "=" * 60,
                "",
                f"📝 Description: {error_info.description}",
                f"📊 Severity: {error_info.severity.value.upper()}",
                f"🏷️  Category: {error_info.category.value.title()}",
                "",
            )
        )

        if error_info.common_causes:
            lines.append("🔍 Common Causes:")
            lines.extend(f"  • {cause}" for cause in error_info.common_causes)
            lines.append("")

        if error_info.solutions:
            lines.append("💡 Solutions:")
            for i, solution in enumerate(error_info.solutions, 1):
                lines.append(f"\n  {i}. {solution.description}")
                lines.extend(f"     • {step}" for step in solution.steps)

        if context:
            lines.extend(("", "🔧 Context:"))
            for key, value in context.items():
                lines.append(f"  • {key}: {value}")

        if error_info.related_errors:
            lines.extend(("", "🔗 Related Errors:"))
            for related_code in error_info.related_errors:
                related_error = self.get_error_info(related_code)
                if related_error:
                    lines.append(f"  • {related_code}: {related_error.title}")

        return "\n".join(lines)


error_catalog = StartupErrorCatalog()
