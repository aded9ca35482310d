"""Service readiness policies.

Each ``ServiceKind`` maps to its own policy class. A run-to-completion
service fails definitively on a non-zero exit; a long-running service is only
ever pending until it reports healthy, so transient unhealthiness is absorbed
by the polling budget rather than aborting bring-up.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from stackctl.startup.models import (
    HealthState,
    LifecycleState,
    Observation,
    ReadinessOutcome,
    ServiceKind,
)


class ReadinessPolicy(ABC):
    """Derives a readiness outcome from one observation."""

    kind: ServiceKind

    @abstractmethod
    def assess(self, observation: Observation) -> ReadinessOutcome:
        """Classify ``observation`` as pending, ready or failed."""


class RunToCompletionPolicy(ReadinessPolicy):
    """Ready once exited with code 0; failed on any other exit code."""

    kind = ServiceKind.RUN_TO_COMPLETION

    def assess(self, observation: Observation) -> ReadinessOutcome:
        if observation.lifecycle is LifecycleState.EXITED:
            if observation.exit_code == 0:
                return ReadinessOutcome.ready("completed successfully")
            return ReadinessOutcome.failed(f"exit code {observation.exit_code}")
        return ReadinessOutcome.pending(observation.describe())


class LongRunningPolicy(ReadinessPolicy):
    """Ready while the health indicator reports healthy.

    Unhealthy is treated like unknown: the service may still recover within
    the attempt budget. An exited long-running service stays pending as well,
    since a restart policy can bring it back; the eventual timeout carries the
    exit code in its reason.
    """

    kind = ServiceKind.LONG_RUNNING

    def assess(self, observation: Observation) -> ReadinessOutcome:
        if (
            observation.lifecycle is LifecycleState.RUNNING
            and observation.health is HealthState.HEALTHY
        ):
            return ReadinessOutcome.ready("healthy")
        return ReadinessOutcome.pending(observation.describe())


POLICIES: dict[ServiceKind, ReadinessPolicy] = {
    ServiceKind.RUN_TO_COMPLETION: RunToCompletionPolicy(),
    ServiceKind.LONG_RUNNING: LongRunningPolicy(),
}


def policy_for(kind: ServiceKind) -> ReadinessPolicy:
    return POLICIES[kind]


def predicate_for(
    name: str, kind: ServiceKind
) -> Callable[[Observation], ReadinessOutcome]:
    """Return the readiness predicate for service ``name`` of ``kind``.

    Observations of other services are rejected, which catches wiring mistakes
    where a predicate is paired with the wrong probe.
    """
    policy = policy_for(kind)

    def predicate(observation: Observation) -> ReadinessOutcome:
        if observation.service != name:
            msg = f"Predicate for {name} received an observation of {observation.service}"
            raise ValueError(msg)
        return policy.assess(observation)

    return predicate
