"""Tests for RolloutController — register, update, PRIMARY polling, outcomes."""

from __future__ import annotations

import threading

import pytest

from rollgate.core.rollout_controller import RolloutController
from rollgate.errors import PollError, RegistrationError, UpdateError
from rollgate.models.rollout import OutcomeState, RolloutState

IN_PROGRESS = RolloutState.IN_PROGRESS
COMPLETED = RolloutState.COMPLETED
FAILED = RolloutState.FAILED
PENDING = RolloutState.PENDING


class TestDeployScenarios:
    def test_completed_after_three_polls(self, make_scheduler, make_controller, make_spec):
        scheduler = make_scheduler([IN_PROGRESS, IN_PROGRESS, COMPLETED])
        controller = make_controller(scheduler)

        outcome = controller.deploy(make_spec(family="svc-test"), "c1", "s1", 60.0)

        assert outcome.state == OutcomeState.COMPLETED
        assert outcome.polls == 3
        assert scheduler.describe_calls == 3
        assert outcome.revision.revision_arn.endswith("svc-test:7")

    def test_timed_out_when_never_terminal(self, make_scheduler, make_controller, spec, clock):
        scheduler = make_scheduler([IN_PROGRESS])
        controller = make_controller(scheduler, poll_interval=5.0)
        started = clock.now

        outcome = controller.deploy(spec, "c1", "s1", 2 * 5.0)

        assert outcome.state == OutcomeState.TIMED_OUT
        assert outcome.last_observed_state == IN_PROGRESS
        # not earlier than the deadline, and within one interval of it
        assert 10.0 <= clock.now - started < 15.0
        assert 10.0 <= outcome.elapsed < 15.0

    def test_failed_rollout_reported(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler([PENDING, IN_PROGRESS, FAILED])
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)
        assert outcome.state == OutcomeState.FAILED
        assert outcome.last_observed_state == FAILED
        assert outcome.polls == 3


class TestRegistrationAndUpdate:
    def test_registered_arn_is_passed_to_update(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler([COMPLETED])
        make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)
        assert scheduler.updates == [("c1", "s1", scheduler.revision_arn, True)]

    def test_update_always_forces_new_deployment(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler([COMPLETED])
        make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)
        _, _, _, force = scheduler.updates[0]
        assert force is True

    def test_registration_error_is_terminal_without_retry(
        self, make_scheduler, make_controller, spec
    ):
        scheduler = make_scheduler(register_error=RegistrationError("invalid cpu"))
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)

        assert outcome.state == OutcomeState.ERROR
        assert outcome.error_kind == "registration"
        assert "invalid cpu" in outcome.error_message
        assert outcome.revision is None
        assert scheduler.events == ["register"]

    def test_update_error_is_terminal_and_keeps_revision(
        self, make_scheduler, make_controller, spec
    ):
        scheduler = make_scheduler(update_error=UpdateError("ServiceNotFoundException"))
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)

        assert outcome.state == OutcomeState.ERROR
        assert outcome.error_kind == "update"
        assert outcome.revision is not None
        assert scheduler.events == ["register", "update"]
        assert scheduler.describe_calls == 0

    def test_registration_precedes_update_precedes_polling(
        self, make_scheduler, make_controller, spec
    ):
        scheduler = make_scheduler([IN_PROGRESS, COMPLETED])
        make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)
        assert scheduler.events == ["register", "update", "describe", "describe"]


class TestPollErrors:
    def test_transient_poll_errors_are_tolerated(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler(
            [PollError("throttled"), IN_PROGRESS, PollError("no PRIMARY"), COMPLETED]
        )
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)
        assert outcome.state == OutcomeState.COMPLETED
        assert outcome.polls == 4

    def test_poll_errors_until_deadline_time_out(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler([PollError("throttled")])
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 20.0)
        assert outcome.state == OutcomeState.TIMED_OUT
        assert outcome.last_observed_state is None
        assert scheduler.describe_calls == 4

    def test_unexpected_errors_propagate(self, make_scheduler, make_controller, spec):
        scheduler = make_scheduler([RuntimeError("bug")])
        with pytest.raises(RuntimeError):
            make_controller(scheduler).deploy(spec, "c1", "s1", 60.0)


class TestCancellationAndInterval:
    def test_cancellation_short_circuits(self, make_scheduler, spec, clock):
        cancel = threading.Event()

        def sleep(seconds):
            clock.sleep(seconds)
            cancel.set()

        scheduler = make_scheduler([IN_PROGRESS])
        controller = RolloutController(scheduler, poll_interval=5.0, clock=clock, sleep=sleep)
        outcome = controller.deploy(spec, "c1", "s1", 600.0, cancel=cancel)

        assert outcome.state == OutcomeState.CANCELLED
        assert scheduler.describe_calls == 1

    def test_poll_interval_override(self, make_scheduler, make_controller, spec, clock):
        scheduler = make_scheduler([IN_PROGRESS, COMPLETED])
        make_controller(scheduler, poll_interval=5.0).deploy(
            spec, "c1", "s1", 60.0, poll_interval=2.0
        )
        assert clock.sleeps == [2.0]


class TestNoWritesAfterCancel:
    def test_token_set_before_deploy_touches_nothing(
        self, make_scheduler, make_controller, spec
    ):
        scheduler = make_scheduler([COMPLETED])
        cancel = threading.Event()
        cancel.set()

        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0, cancel=cancel)

        assert outcome.state == OutcomeState.CANCELLED
        assert outcome.revision is None
        assert scheduler.events == []

    def test_token_set_during_registration_skips_update(
        self, make_scheduler, make_controller, spec
    ):
        cancel = threading.Event()

        class CancelOnRegister(make_scheduler):
            def register_task_definition(self, spec):
                revision = super().register_task_definition(spec)
                cancel.set()
                return revision

        scheduler = CancelOnRegister([COMPLETED])
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 60.0, cancel=cancel)

        assert outcome.state == OutcomeState.CANCELLED
        assert outcome.revision.revision_arn == scheduler.revision_arn
        assert scheduler.events == ["register"]
        assert scheduler.updates == []


class TestDeadlineBeforePolling:
    def test_slow_update_times_out_without_polling(
        self, make_scheduler, make_controller, spec, clock
    ):
        class SlowUpdate(make_scheduler):
            def update_service(self, *args, **kwargs):
                super().update_service(*args, **kwargs)
                clock.sleep(30.0)

        scheduler = SlowUpdate([COMPLETED])
        outcome = make_controller(scheduler).deploy(spec, "c1", "s1", 10.0)

        assert outcome.state == OutcomeState.TIMED_OUT
        assert outcome.polls == 0
        assert outcome.revision is not None
        assert scheduler.describe_calls == 0

    @pytest.mark.parametrize("interval", [0.0, -1.0])
    def test_non_positive_interval_rejected_before_any_write(
        self, make_scheduler, make_controller, spec, interval
    ):
        scheduler = make_scheduler([COMPLETED])
        with pytest.raises(ValueError, match="poll_interval"):
            make_controller(scheduler).deploy(spec, "c1", "s1", 60.0, poll_interval=interval)
        assert scheduler.events == []
