"""Deployment orchestrator — build, roll out, always clean up, report.

One ``execute()`` call is one run:

    START -> BUILT -> DEPLOYING -> {SUCCEEDED | FAILED | TIMED_OUT |
                                    REJECTED | CANCELLED}
    BUILT -> CANCELLED   (token set before any scheduler write)
    START -> BUILD_ERROR
    (any state but START) -> CLEANED_UP   (terminal)

Cleanup runs on every path, including unexpected exceptions.  Cleanup and
reporting are best-effort: their failures are logged and recorded on the
report, and never change the deployment outcome.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from rollgate.clients import ContainerRuntime
from rollgate.core.locks import ServiceLocks
from rollgate.core.rollout_controller import RolloutController
from rollgate.core.run_machine import RunMachine
from rollgate.errors import BuildError
from rollgate.models.artifacts import ArtifactRef
from rollgate.models.rollout import DeploymentOutcome, OutcomeState
from rollgate.models.run import (
    OUTCOME_TO_RUN_STATE,
    DeploymentDescriptor,
    DeploymentReport,
    RunState,
    verdict_for,
)
from rollgate.reporting.dispatcher import ReportDispatcher

logger = logging.getLogger(__name__)

CleanupStep = Callable[[ArtifactRef | None], None]


class DeploymentOrchestrator:
    """Sequences one deployment run.

    Parameters
    ----------
    controller:
        The rollout controller used for the deploy step.
    runtime:
        Optional container runtime; when given, the local image reference
        of the built artifact is removed during cleanup.
    dispatcher:
        Receives the final report.  A dispatcher with no sinks is used if
        not provided.
    locks:
        Per-(cluster, service) lock registry.  Share one instance between
        orchestrators that may run concurrently.
    """

    def __init__(
        self,
        controller: RolloutController,
        *,
        runtime: ContainerRuntime | None = None,
        dispatcher: ReportDispatcher | None = None,
        locks: ServiceLocks | None = None,
    ) -> None:
        self._controller = controller
        self._dispatcher = dispatcher or ReportDispatcher()
        self._locks = locks or ServiceLocks()
        self._cleanup_steps: list[tuple[str, CleanupStep]] = []
        if runtime is not None:
            self.add_cleanup_step("remove_local_image", _image_remover(runtime))

    def add_cleanup_step(self, name: str, step: CleanupStep) -> None:
        """Register a best-effort cleanup step.  Steps run in registration order."""
        self._cleanup_steps.append((name, step))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def execute(
        self,
        build_artifact: Callable[[], ArtifactRef],
        descriptor: DeploymentDescriptor,
        *,
        cancel: threading.Event | None = None,
        run_id: str | None = None,
    ) -> DeploymentReport:
        """Build, deploy and clean up; return the final report.

        Raises ``ConcurrentDeploymentError`` (before building) if another
        run holds the (cluster, service) lock.  Unexpected exceptions
        propagate after cleanup has run.
        """
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        run_id = run_id or f"rg-{ts}-{uuid.uuid4().hex[:6]}"
        machine = RunMachine(run_id)
        started_at = datetime.now(timezone.utc)

        artifact: ArtifactRef | None = None
        outcome: DeploymentOutcome | None = None
        error_message = ""
        cleanup_errors: list[str] = []

        with self._locks.hold(descriptor.cluster, descriptor.service):
            try:
                try:
                    artifact = build_artifact()
                except Exception as exc:
                    error = exc if isinstance(exc, BuildError) else BuildError(str(exc))
                    error_message = str(error)
                    logger.error("Run %s: build failed: %s", run_id, error_message)
                    machine.transition(RunState.BUILD_ERROR, note=error_message)
                else:
                    machine.transition(RunState.BUILT, note=artifact.image_uri)
                    outcome = self._deploy(machine, artifact, descriptor, cancel)
                    error_message = outcome.error_message
            finally:
                cleanup_errors = self._cleanup(run_id, artifact)
                if machine.can_transition(RunState.CLEANED_UP):
                    machine.transition(RunState.CLEANED_UP)

        result_state = machine.result_state
        report = DeploymentReport(
            run_id=run_id,
            cluster=descriptor.cluster,
            service=descriptor.service,
            artifact=artifact,
            outcome=outcome,
            result_state=result_state,
            final_state=machine.state,
            verdict=verdict_for(result_state),
            transitions=machine.transitions,
            cleanup_errors=cleanup_errors,
            error_message=error_message,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        logger.info("Run %s finished: %s", run_id, report.verdict.value)
        self._dispatcher.dispatch(report)
        return report

    def _deploy(
        self,
        machine: RunMachine,
        artifact: ArtifactRef,
        descriptor: DeploymentDescriptor,
        cancel: threading.Event | None,
    ) -> DeploymentOutcome:
        if cancel is not None and cancel.is_set():
            logger.info("Run %s: cancelled before deploying", machine.run_id)
            machine.transition(RunState.CANCELLED, note="cancelled before deploy")
            return DeploymentOutcome(state=OutcomeState.CANCELLED)

        spec = descriptor.to_task_definition(artifact)
        machine.transition(RunState.DEPLOYING, note=f"{descriptor.cluster}/{descriptor.service}")
        outcome = self._controller.deploy(
            spec,
            descriptor.cluster,
            descriptor.service,
            descriptor.overall_timeout,
            cancel=cancel,
            poll_interval=descriptor.poll_interval,
        )
        note = outcome.error_message or (
            outcome.last_observed_state.value if outcome.last_observed_state else ""
        )
        machine.transition(OUTCOME_TO_RUN_STATE[outcome.state], note=note)
        return outcome

    def _cleanup(self, run_id: str, artifact: ArtifactRef | None) -> list[str]:
        errors: list[str] = []
        for name, step in self._cleanup_steps:
            try:
                step(artifact)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Run %s: cleanup step %s failed: %s", run_id, name, exc)
                errors.append(f"{name}: {exc}")
        return errors


def _image_remover(runtime: ContainerRuntime) -> CleanupStep:
    def _remove(artifact: ArtifactRef | None) -> None:
        if artifact is not None:
            runtime.remove_image(artifact.image_uri)

    return _remove
