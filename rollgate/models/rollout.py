"""Rollout observation and outcome models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from rollgate.errors import (
    RegistrationError,
    RolloutCancelled,
    RolloutFailed,
    TimeoutExceeded,
    UpdateError,
)
from rollgate.models.task_definition import TaskDefinitionRevision


class RolloutState(str, Enum):
    """Rollout state of the PRIMARY deployment, as observed on the scheduler."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (RolloutState.COMPLETED, RolloutState.FAILED)


class OutcomeState(str, Enum):
    """Terminal result of one rollout attempt."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


class DeploymentOutcome(BaseModel):
    """What happened to one rollout attempt.  Created once, never mutated.

    ``error_kind`` is ``"registration"`` or ``"update"`` when ``state`` is
    ``ERROR``; empty otherwise.
    """

    model_config = ConfigDict(frozen=True)

    state: OutcomeState
    last_observed_state: RolloutState | None = None
    elapsed: float = 0.0  # seconds
    polls: int = 0
    revision: TaskDefinitionRevision | None = None
    error_kind: str = ""
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == OutcomeState.COMPLETED

    def raise_for_state(self) -> None:
        """Raise the matching typed error unless the rollout completed."""
        if self.state == OutcomeState.FAILED:
            raise RolloutFailed(
                f"rollout failed after {self.polls} polls ({self.elapsed:.1f}s)"
            )
        if self.state == OutcomeState.TIMED_OUT:
            last = self.last_observed_state.value if self.last_observed_state else "unknown"
            raise TimeoutExceeded(
                f"rollout still {last} after {self.elapsed:.1f}s"
            )
        if self.state == OutcomeState.ERROR:
            error_type = RegistrationError if self.error_kind == "registration" else UpdateError
            raise error_type(self.error_message)
        if self.state == OutcomeState.CANCELLED:
            raise RolloutCancelled(f"deploy cancelled after {self.elapsed:.1f}s")
