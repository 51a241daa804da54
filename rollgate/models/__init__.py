"""rollgate data models — all Pydantic v2."""

from rollgate.models.artifacts import ArtifactRef, derive_tag
from rollgate.models.harness import HarnessSession
from rollgate.models.rollout import DeploymentOutcome, OutcomeState, RolloutState
from rollgate.models.run import (
    OUTCOME_TO_RUN_STATE,
    VALID_TRANSITIONS,
    DeploymentDescriptor,
    DeploymentReport,
    RunState,
    RunTransition,
    Verdict,
    verdict_for,
)
from rollgate.models.task_definition import (
    LogConfig,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)

__all__ = [
    # artifacts
    "ArtifactRef",
    "derive_tag",
    # task definitions
    "LogConfig",
    "TaskDefinitionSpec",
    "TaskDefinitionRevision",
    # rollout
    "RolloutState",
    "OutcomeState",
    "DeploymentOutcome",
    # harness
    "HarnessSession",
    # run
    "RunState",
    "RunTransition",
    "VALID_TRANSITIONS",
    "OUTCOME_TO_RUN_STATE",
    "Verdict",
    "verdict_for",
    "DeploymentDescriptor",
    "DeploymentReport",
]
