"""Per-run orchestration models — run state machine, descriptor, report."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from rollgate.models.artifacts import ArtifactRef
from rollgate.models.rollout import DeploymentOutcome, OutcomeState
from rollgate.models.task_definition import LogConfig, TaskDefinitionSpec


class RunState(str, Enum):
    """State of a single orchestrator run."""

    START = "start"
    BUILT = "built"
    DEPLOYING = "deploying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    BUILD_ERROR = "build_error"
    CLEANED_UP = "cleaned_up"


_RESULT_STATES = {
    RunState.SUCCEEDED,
    RunState.FAILED,
    RunState.TIMED_OUT,
    RunState.REJECTED,
    RunState.CANCELLED,
    RunState.BUILD_ERROR,
}

# CLEANED_UP is reachable from every state except START and is terminal.
VALID_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.START: {RunState.BUILT, RunState.BUILD_ERROR},
    RunState.BUILT: {RunState.DEPLOYING, RunState.CANCELLED, RunState.CLEANED_UP},
    RunState.DEPLOYING: {
        RunState.SUCCEEDED,
        RunState.FAILED,
        RunState.TIMED_OUT,
        RunState.REJECTED,
        RunState.CANCELLED,
        RunState.CLEANED_UP,
    },
    **{state: {RunState.CLEANED_UP} for state in _RESULT_STATES},
    RunState.CLEANED_UP: set(),  # terminal
}

OUTCOME_TO_RUN_STATE: dict[OutcomeState, RunState] = {
    OutcomeState.COMPLETED: RunState.SUCCEEDED,
    OutcomeState.FAILED: RunState.FAILED,
    OutcomeState.TIMED_OUT: RunState.TIMED_OUT,
    OutcomeState.ERROR: RunState.REJECTED,
    OutcomeState.CANCELLED: RunState.CANCELLED,
}


class Verdict(str, Enum):
    """Operator-facing summary; each value is a distinct situation."""

    NEVER_STARTED = "never_started"  # build/push failed
    REJECTED = "rejected"  # registration or update refused
    UNHEALTHY = "unhealthy"  # rollout ran but did not reach healthy
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"


_VERDICTS: dict[RunState, Verdict] = {
    RunState.BUILD_ERROR: Verdict.NEVER_STARTED,
    RunState.REJECTED: Verdict.REJECTED,
    RunState.FAILED: Verdict.UNHEALTHY,
    RunState.TIMED_OUT: Verdict.UNHEALTHY,
    RunState.SUCCEEDED: Verdict.SUCCEEDED,
    RunState.CANCELLED: Verdict.CANCELLED,
}


def verdict_for(result_state: RunState) -> Verdict:
    """Map a run's result state to its verdict."""
    try:
        return _VERDICTS[result_state]
    except KeyError:
        raise ValueError(f"{result_state.value} is not a result state") from None


class RunTransition(BaseModel):
    """Records a single run-state transition."""

    model_config = ConfigDict(frozen=True)

    from_state: RunState
    to_state: RunState
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    note: str = ""


class DeploymentDescriptor(BaseModel):
    """Everything needed to deploy a service except the image itself."""

    model_config = ConfigDict(frozen=True)

    cluster: str
    service: str
    family: str
    container_name: str
    cpu: int = 256
    memory: int = 512
    port: int = 5000
    env_vars: dict[str, str] = Field(default_factory=dict)
    log_config: LogConfig
    execution_role_arn: str
    task_role_arn: str
    overall_timeout: float = 900.0  # seconds
    poll_interval: float | None = None  # seconds; None keeps the controller's

    def to_task_definition(self, artifact: ArtifactRef) -> TaskDefinitionSpec:
        return TaskDefinitionSpec(
            family=self.family,
            container_name=self.container_name,
            image=artifact,
            cpu=self.cpu,
            memory=self.memory,
            port=self.port,
            env_vars=dict(self.env_vars),
            log_config=self.log_config,
            execution_role_arn=self.execution_role_arn,
            task_role_arn=self.task_role_arn,
        )


class DeploymentReport(BaseModel):
    """Final report of one orchestrator run, handed to reporting sinks."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"rg-{uuid.uuid4().hex[:12]}")
    cluster: str
    service: str
    artifact: ArtifactRef | None = None
    outcome: DeploymentOutcome | None = None  # None when the build failed
    result_state: RunState
    final_state: RunState
    verdict: Verdict
    transitions: list[RunTransition] = []
    cleanup_errors: list[str] = []
    error_message: str = ""
    started_at: datetime
    finished_at: datetime

    @property
    def succeeded(self) -> bool:
        return self.verdict == Verdict.SUCCEEDED
