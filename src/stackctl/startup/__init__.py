"""stackctl Startup System.

Dependency-ordered, health-gated bring-up of a multi-service stack and
post-start validation of the running stack.
"""

from __future__ import annotations

from stackctl.startup.config_schema import StackConfig, StackPlan
from stackctl.startup.orchestrator import StackOrchestrator
from stackctl.startup.polling import poll_until
from stackctl.startup.prober import StateProber
from stackctl.startup.progress_reporter import StartupProgressReporter
from stackctl.startup.readiness import predicate_for
from stackctl.startup.validator import PostStartValidator

__all__ = [
    "PostStartValidator",
    "StackConfig",
    "StackOrchestrator",
    "StackPlan",
    "StartupProgressReporter",
    "StateProber",
    "poll_until",
    "predicate_for",
]
