"""stackctl CLI Tool.

Command-line interface for bringing the multi-LLM stack up in dependency
order, stopping it, and checking its health.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
import logging
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from stackctl.core.exceptions import (
    ConfigurationError,
    EnvFileMissingError,
    ExitCode,
    StackError,
)
from stackctl.core.logging_config import setup_logging
from stackctl.runtime.compose import ComposeRuntime
from stackctl.startup.config_schema import StackConfig
from stackctl.startup.error_catalog import ErrorCategory, error_catalog
from stackctl.startup.models import FailureKind, ServiceKind, StageReport
from stackctl.startup.orchestrator import StackOrchestrator
from stackctl.startup.progress_reporter import StartupProgressReporter
from stackctl.startup.validator import PostStartValidator
from stackctl.version import get_version

logger = logging.getLogger(__name__)

console = Console()

REPORT_EXIT_CODES = {
    FailureKind.DEFINITIVE_FAILURE: ExitCode.SERVICE_FAILED,
    FailureKind.TIMEOUT: ExitCode.TIMED_OUT,
    FailureKind.START_FAILURE: ExitCode.FAILURE,
}

RuntimeFactory = Callable[[StackConfig], ComposeRuntime]


def runtime_from_config(config: StackConfig) -> ComposeRuntime:
    return ComposeRuntime(
        config.compose_file,
        env_file=config.env_file,
        project_name=config.project_name,
        project_dir=config.project_dir,
        command_timeout=config.command_timeout,
    )


@click.group()
@click.option(
    "--env-file",
    help="Environment file passed to the runtime (default: .env.multi-llm)",
)
@click.option("--compose-file", help="Compose file describing the stack")
@click.option("--project-name", "-p", help="Compose project name")
@click.option("--plan-file", type=click.Path(), help="JSON stage plan")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(get_version(), prog_name="stackctl")
@click.pass_context
def cli(
    ctx: click.Context,
    env_file: str | None,
    compose_file: str | None,
    project_name: str | None,
    plan_file: str | None,
    verbose: bool,  # noqa: FBT001
) -> None:
    """Ordered, health-gated control of the WrenAI multi-LLM stack."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "env_file": env_file,
        "compose_file": compose_file,
        "project_name": project_name,
        "plan_file": plan_file,
    }
    ctx.obj["verbose"] = verbose
    ctx.obj.setdefault("runtime_factory", runtime_from_config)


@contextmanager
def _handle_errors(ctx: click.Context) -> Iterator[None]:
    """Turn infrastructure errors and Ctrl-C into exit codes."""
    try:
        yield
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        ctx.exit(ExitCode.INTERRUPTED)
    except StackError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]✗[/red] {e}", highlight=False, soft_wrap=True)
        if e.error_code:
            context = {
                key: str(value)
                for key, value in e.details.items()
                if key in {"command", "returncode"} and value
            }
            _print_help(e.error_code, context)
        ctx.exit(e.exit_code)


def _print_help(error_code: str, context: dict[str, str] | None = None) -> None:
    console.print()
    console.print(
        error_catalog.format_error_help(error_code, context),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _load_config(
    ctx: click.Context,
    reporter: StartupProgressReporter | None = None,
    **overrides: Any,
) -> StackConfig:
    """Build and validate settings from the environment and CLI flags.

    Raises:
        ConfigurationError: If any setting or the stage plan is invalid
        EnvFileMissingError: If the env file does not exist
    """
    values = {**ctx.obj["overrides"], **overrides}
    if ctx.obj["verbose"]:
        values.update(log_level="DEBUG", debug=True)

    config, errors = StackConfig.validate_from_env(**values)
    if config is None:
        (reporter or StartupProgressReporter()).report_config_validation(None, errors)
        msg = f"Invalid configuration ({len(errors)} error(s))"
        raise ConfigurationError(msg, errors)

    setup_logging(config.log_level.value, debug=config.debug)

    if not config.env_file_path().is_file():
        raise EnvFileMissingError(config.env_file)
    return config


def _runtime(ctx: click.Context, config: StackConfig) -> ComposeRuntime:
    factory: RuntimeFactory = ctx.obj["runtime_factory"]
    return factory(config)


def _exit_for_report(
    ctx: click.Context, report: StageReport, reporter: StartupProgressReporter
) -> None:
    if ctx.obj["verbose"]:
        reporter.print_startup_summary()
    if report.success:
        ctx.exit(ExitCode.SUCCESS)

    kind = report.failure_kind or FailureKind.TIMEOUT
    context = {
        "group": report.failed_group or "",
        "service": report.failed_service or "",
        "reason": report.reason,
    }
    _print_help(error_catalog.code_for_failure(kind), {k: v for k, v in context.items() if v})
    ctx.exit(REPORT_EXIT_CODES.get(kind, ExitCode.FAILURE))


@cli.command()
@click.option("--interval", type=float, help="Seconds between readiness checks")
@click.option("--timeout", type=float, help="Maximum seconds to wait for each group")
@click.pass_context
def start(ctx: click.Context, interval: float | None, timeout: float | None) -> None:
    """Start the stack group by group, waiting for readiness in between."""
    reporter = StartupProgressReporter(show_attempts=ctx.obj["verbose"])
    with _handle_errors(ctx):
        config = _load_config(
            ctx, reporter, poll_interval=interval, startup_timeout=timeout
        )
        runtime = _runtime(ctx, config)
        orchestrator = StackOrchestrator(config, runtime, reporter=reporter)
        report = asyncio.run(orchestrator.start())
    _exit_for_report(ctx, report, reporter)


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop and remove all services."""
    with _handle_errors(ctx):
        config = _load_config(ctx)
        orchestrator = StackOrchestrator(config, _runtime(ctx, config))
        asyncio.run(orchestrator.tear_down())
    console.print("[green]✓[/green] Services stopped")


@cli.command()
@click.option("--interval", type=float, help="Seconds between readiness checks")
@click.option("--timeout", type=float, help="Maximum seconds to wait for each group")
@click.pass_context
def restart(ctx: click.Context, interval: float | None, timeout: float | None) -> None:
    """Stop the stack, then start it again in order."""
    reporter = StartupProgressReporter(show_attempts=ctx.obj["verbose"])
    with _handle_errors(ctx):
        config = _load_config(
            ctx, reporter, poll_interval=interval, startup_timeout=timeout
        )
        runtime = _runtime(ctx, config)
        orchestrator = StackOrchestrator(config, runtime, reporter=reporter)
        report = asyncio.run(orchestrator.restart())
    _exit_for_report(ctx, report, reporter)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the runtime listing and the state of every planned service."""
    with _handle_errors(ctx):
        config = _load_config(ctx)
        runtime = _runtime(ctx, config)
        listing = asyncio.run(runtime.ps_table())
        entries = asyncio.run(StackOrchestrator(config, runtime).snapshot())

    console.print("📊 Service status:")
    console.print(listing.rstrip(), markup=False, highlight=False)

    group_of = {s.name: g.name for g in config.plan.groups for s in g.services}
    table = Table(title="Planned Services")
    table.add_column("Group", style="blue")
    table.add_column("Service", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("State", style="yellow")
    for entry in entries:
        table.add_row(
            group_of[entry.service],
            entry.service,
            entry.kind.value,
            entry.observation.describe(),
        )
    console.print(table)


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check readiness of every planned service once; exit 1 if any is not ready."""
    with _handle_errors(ctx):
        config = _load_config(ctx)
        orchestrator = StackOrchestrator(config, _runtime(ctx, config))
        entries = asyncio.run(orchestrator.snapshot())

    table = Table(title="Service Health")
    table.add_column("Service", style="cyan")
    table.add_column("Readiness")
    table.add_column("Detail", style="dim")
    for entry in entries:
        color = {"ready": "green", "failed": "red"}.get(entry.outcome.status.value, "yellow")
        table.add_row(
            entry.service,
            f"[{color}]{entry.outcome.status.value}[/{color}]",
            entry.outcome.reason,
        )
    console.print(table)

    not_ready = [entry.service for entry in entries if not entry.outcome.is_ready]
    if not_ready:
        console.print(f"[yellow]Not ready:[/yellow] {', '.join(not_ready)}")
        ctx.exit(ExitCode.FAILURE)
    console.print(f"[green]✓[/green] All {len(entries)} services ready")


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Verify presence, liveness and initializer artifacts of the running stack."""
    reporter = StartupProgressReporter()
    with _handle_errors(ctx):
        config = _load_config(ctx, reporter)
        validator = PostStartValidator(config, _runtime(ctx, config))
        report = asyncio.run(validator.validate())

    reporter.report_validation(report)
    findings = report.findings()
    if not findings:
        reporter.report_startup_complete(success=True, message="Stack is valid")
        ctx.exit(ExitCode.SUCCESS)

    reporter.report_startup_complete(
        success=False, message=f"{len(findings)} validation finding(s)"
    )
    for finding in findings:
        console.print(f"[red]✗[/red] {finding.message}", highlight=False, soft_wrap=True)
    _print_help(
        error_catalog.code_for_failure(findings[0].kind), {"subject": findings[0].subject}
    )
    ctx.exit(ExitCode.FAILURE)


@cli.command()
@click.option("--follow/--no-follow", default=True, help="Keep streaming new output")
@click.argument("services", nargs=-1)
@click.pass_context
def logs(ctx: click.Context, follow: bool, services: tuple[str, ...]) -> None:  # noqa: FBT001
    """Show logs for all services, or only the named ones."""
    with _handle_errors(ctx):
        config = _load_config(ctx)
        console.print(f"📋 Showing logs for {', '.join(services) or 'all services'}...")
        returncode = _runtime(ctx, config).logs(list(services), follow=follow)
    ctx.exit(returncode)


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Validate the settings, the stage plan and the compose file."""
    reporter = StartupProgressReporter()
    with _handle_errors(ctx):
        stack_config = _load_config(ctx, reporter)
        reporter.report_config_validation(stack_config, [])
        console.print("🔍 Validating Docker Compose configuration...")
        asyncio.run(_runtime(ctx, stack_config).config_check())

    table = Table(title="Stage Plan")
    table.add_column("#", style="dim")
    table.add_column("Group", style="blue")
    table.add_column("Services", style="cyan")
    for index, group in enumerate(stack_config.plan.groups, 1):
        members = ", ".join(
            f"{s.name} (once)" if s.kind is ServiceKind.RUN_TO_COMPLETION else s.name
            for s in group.services
        )
        table.add_row(str(index), group.name, members)
    console.print(table)
    console.print("[green]✓[/green] Configuration is valid!")


@cli.command()
@click.argument("code", required=False)
@click.option(
    "--category",
    type=click.Choice([c.value for c in ErrorCategory]),
    help="Only list errors in this category",
)
@click.pass_context
def errors(ctx: click.Context, code: str | None, category: str | None) -> None:
    """List error codes, or explain one."""
    if code:
        info = error_catalog.get_error_info(code.upper())
        if info is None:
            console.print(f"[red]✗[/red] Unknown error code: {code}")
            ctx.exit(ExitCode.FAILURE)
        console.print(error_catalog.format_error_help(info.code), markup=False)
        return

    if category:
        entries = error_catalog.find_errors_by_category(ErrorCategory(category))
    else:
        entries = list(error_catalog.errors.values())

    table = Table(title="Error Codes")
    table.add_column("Code", style="cyan")
    table.add_column("Title")
    table.add_column("Category", style="blue")
    table.add_column("Severity", style="yellow")
    for info in entries:
        table.add_row(info.code, info.title, info.category.value, info.severity.value)
    console.print(table)


def main() -> None:
    """Main CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
