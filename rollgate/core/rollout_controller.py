"""Rollout controller — register, update, wait for the PRIMARY deployment.

Lifecycle of one ``deploy()`` call:

    register_task_definition -> update_service(force) -> poll describe_rollout

Registration and update errors end the attempt immediately with an
``ERROR`` outcome; nothing is retried because a rejected document or a
missing service will not fix itself.  Poll errors are transient and are
absorbed until the deadline.  There is no rollback: ``FAILED`` and
``TIMED_OUT`` are reported upward and the caller decides.

A registered revision stays registered even if the update or the rollout
fails.  Revisions are append-only on the scheduler side.

A set cancellation token is honoured before registration, before the update
and during the wait.  Once the token is set no further scheduler write is
issued.
"""

from __future__ import annotations

import logging
import threading
import time

from rollgate.clients import SchedulerClient
from rollgate.core.polling import Clock, PollStatus, Sleep, poll_until
from rollgate.errors import PollError, RegistrationError, UpdateError
from rollgate.models.rollout import DeploymentOutcome, OutcomeState, RolloutState
from rollgate.models.task_definition import TaskDefinitionRevision, TaskDefinitionSpec

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class RolloutController:
    """Drives a single service rollout on the cluster scheduler.

    Parameters
    ----------
    scheduler:
        The scheduler client (see ``rollgate.clients.SchedulerClient``).
    poll_interval:
        Seconds between rollout-state queries.
    clock, sleep:
        Injectable time sources, forwarded to ``poll_until``.
    """

    def __init__(
        self,
        scheduler: SchedulerClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Clock = time.monotonic,
        sleep: Sleep | None = None,
    ) -> None:
        self._scheduler = scheduler
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def deploy(
        self,
        spec: TaskDefinitionSpec,
        cluster: str,
        service: str,
        overall_timeout: float,
        *,
        cancel: threading.Event | None = None,
        poll_interval: float | None = None,
    ) -> DeploymentOutcome:
        """Register *spec*, point *service* at it, and wait for the rollout.

        Returns a terminal ``DeploymentOutcome``; typed collaborator errors
        never escape as exceptions.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        if interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {interval}")
        started = self._clock()

        # 1. Register
        if _cancelled(cancel):
            logger.info("Deploy of %s cancelled before registration", spec.family)
            return self._cancelled_outcome(started)
        try:
            revision = self._scheduler.register_task_definition(spec)
        except RegistrationError as exc:
            logger.error("Registration of %s rejected: %s", spec.family, exc)
            return DeploymentOutcome(
                state=OutcomeState.ERROR,
                elapsed=self._clock() - started,
                error_kind="registration",
                error_message=str(exc),
            )
        logger.info("Registered %s", revision.revision_arn)

        # 2. Update, forcing a new deployment even without a spec diff
        if _cancelled(cancel):
            logger.info(
                "Update of %s/%s cancelled; %s stays registered but unused",
                cluster, service, revision.revision_arn,
            )
            return self._cancelled_outcome(started, revision)
        try:
            self._scheduler.update_service(
                cluster, service, revision.revision_arn, force_new_deployment=True
            )
        except UpdateError as exc:
            logger.error(
                "Update of %s/%s to %s rejected: %s",
                cluster, service, revision.revision_arn, exc,
            )
            return DeploymentOutcome(
                state=OutcomeState.ERROR,
                elapsed=self._clock() - started,
                revision=revision,
                error_kind="update",
                error_message=str(exc),
            )
        logger.info("Updated %s/%s to %s", cluster, service, revision.revision_arn)

        # 3. Wait on the PRIMARY deployment
        remaining = overall_timeout - (self._clock() - started)
        if remaining <= 0:
            logger.warning(
                "Deadline of %.1fs spent before polling %s/%s",
                overall_timeout, cluster, service,
            )
            return DeploymentOutcome(
                state=OutcomeState.TIMED_OUT,
                elapsed=self._clock() - started,
                revision=revision,
            )
        return self._wait(
            revision, cluster, service, remaining, interval, started, cancel
        )

    def _cancelled_outcome(
        self, started: float, revision: TaskDefinitionRevision | None = None
    ) -> DeploymentOutcome:
        return DeploymentOutcome(
            state=OutcomeState.CANCELLED,
            elapsed=self._clock() - started,
            revision=revision,
        )

    def _wait(
        self,
        revision: TaskDefinitionRevision,
        cluster: str,
        service: str,
        timeout: float,
        interval: float,
        started: float,
        cancel: threading.Event | None,
    ) -> DeploymentOutcome:
        def _query() -> RolloutState:
            state = self._scheduler.describe_rollout(cluster, service)
            logger.info("%s/%s rollout: %s", cluster, service, state.value)
            return state

        result = poll_until(
            _query,
            lambda state: state.is_terminal,
            interval=interval,
            timeout=timeout,
            retry_on=(PollError,),
            cancel=cancel,
            clock=self._clock,
            sleep=self._sleep,
            label=f"rollout {cluster}/{service}",
        )

        last: RolloutState | None = result.last_value
        if result.status == PollStatus.SATISFIED:
            state = (
                OutcomeState.COMPLETED
                if last == RolloutState.COMPLETED
                else OutcomeState.FAILED
            )
        elif result.status == PollStatus.CANCELLED:
            state = OutcomeState.CANCELLED
        else:
            state = OutcomeState.TIMED_OUT

        outcome = DeploymentOutcome(
            state=state,
            last_observed_state=last,
            elapsed=self._clock() - started,
            polls=result.attempts,
            revision=revision,
        )
        logger.info(
            "Rollout of %s/%s finished: %s after %d polls (%.1fs)",
            cluster, service, outcome.state.value, outcome.polls, outcome.elapsed,
        )
        return outcome


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()
