"""stackctl - ordered, health-gated bring-up for a multi-service compose stack.

Starts the WrenAI multi-LLM stack one tier at a time (initializer, backend,
workers, frontend), waits on completion and health signals between tiers, and
re-validates the running stack on demand.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
