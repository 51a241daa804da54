"""rollgate: health-gated container rollouts and ephemeral test dependencies.

Two control loops with fixed shapes:
  - RolloutController: register a task-definition revision, force a new
    deployment, and wait on the PRIMARY deployment under a deadline
  - EphemeralHarness: start a dependency, wait for its health endpoint,
    run a workload against it, and always stop it

DeploymentOrchestrator sequences build -> rollout -> cleanup -> report.
"""

__version__ = "0.1.0"

from rollgate.core.harness import EphemeralHarness, ReadinessProbe
from rollgate.core.orchestrator import DeploymentOrchestrator
from rollgate.core.rollout_controller import RolloutController

__all__ = [
    "DeploymentOrchestrator",
    "EphemeralHarness",
    "ReadinessProbe",
    "RolloutController",
    "__version__",
]
