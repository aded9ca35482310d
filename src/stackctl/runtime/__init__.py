"""Container runtime adapters."""

from stackctl.runtime.compose import (
    CommandResult,
    ComposeRuntime,
    ContainerState,
    parse_ps_output,
)

__all__ = [
    "CommandResult",
    "ComposeRuntime",
    "ContainerState",
    "parse_ps_output",
]
