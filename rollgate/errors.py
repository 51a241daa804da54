"""Error taxonomy for rollgate.

Errors fall into two severities:

- Fatal, never retried: ``BuildError``, ``RegistrationError``, ``UpdateError``.
  A malformed task definition or a missing service will not fix itself.
- Transient, retried within a deadline: ``PollError``.  A failed query says
  nothing authoritative about the rollout itself.

Terminal rollout results are reported as typed ``DeploymentOutcome`` values,
not raised.  ``RolloutFailed``, ``TimeoutExceeded`` and ``RolloutCancelled`` exist
for callers that prefer exceptions (see ``DeploymentOutcome.raise_for_state``).
"""

from __future__ import annotations

from enum import Enum


class RollgateError(Exception):
    """Base exception for rollgate."""


class BuildError(RollgateError):
    """The upstream build/push collaborator failed.  Deployment never started."""


class RegistrationError(RollgateError):
    """The scheduler rejected the task-definition document."""


class UpdateError(RollgateError):
    """The scheduler rejected the service update (or the service is missing)."""


class PollError(RollgateError):
    """A rollout-state query failed or returned an ambiguous result."""


class RolloutFailed(RollgateError):
    """The scheduler reported the PRIMARY deployment as FAILED."""


class TimeoutExceeded(RollgateError):
    """The deadline passed while the rollout was still in a non-terminal state."""


class RolloutCancelled(RollgateError):
    """The caller's cancellation token stopped the deploy before a terminal state."""


class ConcurrentDeploymentError(RollgateError):
    """Another deploy attempt already holds the (cluster, service) lock."""


class InvalidTransitionError(RollgateError):
    """Raised when a requested run-state transition is not valid."""


class HarnessErrorKind(str, Enum):
    """Why the ephemeral harness gave up before (or instead of) the workload."""

    NOT_READY = "not_ready"
    START_FAILED = "start_failed"
    CANCELLED = "cancelled"


class HarnessError(RollgateError):
    """The ephemeral dependency never became usable.

    Workload failures are never wrapped in this type; they propagate
    unchanged so callers can tell a broken dependency from broken logic.
    """

    def __init__(self, kind: HarnessErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __repr__(self) -> str:
        return f"HarnessError(kind={self.kind.value!r}, message={str(self)!r})"
