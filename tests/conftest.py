"""Shared test fixtures for rollgate.

Collaborators are replaced by in-memory fakes and time by a fake clock, so
the control loops run instantly and deterministically.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from rollgate.core.rollout_controller import RolloutController
from rollgate.models.artifacts import ArtifactRef
from rollgate.models.rollout import RolloutState
from rollgate.models.run import DeploymentDescriptor
from rollgate.models.task_definition import (
    LogConfig,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)

REGISTRY_URI = "123456789012.dkr.ecr.us-east-1.amazonaws.com/svc-test"
REVISION_ARN = "arn:aws:ecs:us-east-1:123456789012:task-definition/svc-test:7"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeScheduler:
    """In-memory ``SchedulerClient``.

    ``rollout_states`` is consumed one item per ``describe_rollout`` call;
    the last item repeats forever.  Exception instances are raised.
    """

    def __init__(
        self,
        rollout_states: list[Any] | None = None,
        *,
        revision_arn: str = REVISION_ARN,
        register_error: Exception | None = None,
        update_error: Exception | None = None,
    ) -> None:
        self.rollout_states = list(rollout_states or [RolloutState.COMPLETED])
        self.revision_arn = revision_arn
        self.register_error = register_error
        self.update_error = update_error
        self.registered: list[TaskDefinitionSpec] = []
        self.updates: list[tuple[str, str, str, bool]] = []
        self.describe_calls = 0
        self.events: list[str] = []

    def register_task_definition(self, spec: TaskDefinitionSpec) -> TaskDefinitionRevision:
        self.events.append("register")
        if self.register_error is not None:
            raise self.register_error
        self.registered.append(spec)
        return TaskDefinitionRevision(family=spec.family, revision_arn=self.revision_arn)

    def update_service(
        self, cluster: str, service: str, revision_arn: str, *, force_new_deployment: bool = True
    ) -> None:
        self.events.append("update")
        if self.update_error is not None:
            raise self.update_error
        self.updates.append((cluster, service, revision_arn, force_new_deployment))

    def describe_rollout(self, cluster: str, service: str) -> RolloutState:
        self.events.append("describe")
        self.describe_calls += 1
        item = self.rollout_states.pop(0) if len(self.rollout_states) > 1 else self.rollout_states[0]
        if isinstance(item, BaseException):
            raise item
        return item


class FakeRuntime:
    """In-memory ``ContainerRuntime`` recording calls into ``events``."""

    def __init__(
        self,
        *,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
        remove_error: Exception | None = None,
        events: list[str] | None = None,
    ) -> None:
        self.start_error = start_error
        self.stop_error = stop_error
        self.remove_error = remove_error
        self.events = events if events is not None else []
        self.started: list[tuple[str, dict[int, int], str | None]] = []
        self.stopped: list[Any] = []
        self.removed: list[str] = []

    def start(self, image: str, ports: dict[int, int], shm_size: str | None = None) -> str:
        self.events.append("start")
        if self.start_error is not None:
            raise self.start_error
        self.started.append((image, ports, shm_size))
        return f"container-{len(self.started)}"

    def stop(self, handle: Any) -> None:
        self.events.append("stop")
        self.stopped.append(handle)
        if self.stop_error is not None:
            raise self.stop_error

    def remove_image(self, image_uri: str) -> None:
        self.events.append("remove_image")
        if self.remove_error is not None:
            raise self.remove_error
        self.removed.append(image_uri)


class FakeTransport:
    """``ProbeTransport`` returning scripted status codes (or raising).

    The last item repeats forever.
    """

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.urls: list[str] = []

    def get(self, url: str, timeout: float) -> int:
        self.urls.append(url)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSink:
    def __init__(self, name: str = "recording") -> None:
        self.name = name
        self.reports: list[Any] = []

    @property
    def sink_name(self) -> str:
        return self.name

    def accept(self, report: Any) -> None:
        self.reports.append(report)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def artifact() -> ArtifactRef:
    return ArtifactRef(registry_uri=REGISTRY_URI, tag="a1b2c3d-42")


@pytest.fixture
def log_config() -> LogConfig:
    return LogConfig(group="/ecs/svc-test", region="us-east-1", stream_prefix="svc")


@pytest.fixture
def make_spec(
    artifact: ArtifactRef, log_config: LogConfig
) -> Callable[..., TaskDefinitionSpec]:
    """Factory fixture: build a TaskDefinitionSpec with sensible defaults."""

    def _factory(**overrides: Any) -> TaskDefinitionSpec:
        defaults: dict[str, Any] = {
            "family": "svc-test",
            "container_name": "web",
            "image": artifact,
            "cpu": 256,
            "memory": 512,
            "port": 5000,
            "env_vars": {"FLASK_APP": "app.py", "FLASK_RUN_HOST": "0.0.0.0"},
            "log_config": log_config,
            "execution_role_arn": "arn:aws:iam::123456789012:role/ecsTaskExecutionRole",
            "task_role_arn": "arn:aws:iam::123456789012:role/svc-test-task",
        }
        defaults.update(overrides)
        return TaskDefinitionSpec(**defaults)

    return _factory


@pytest.fixture
def spec(make_spec: Callable[..., TaskDefinitionSpec]) -> TaskDefinitionSpec:
    return make_spec()


@pytest.fixture
def make_descriptor(log_config: LogConfig) -> Callable[..., DeploymentDescriptor]:
    """Factory fixture: build a DeploymentDescriptor targeting c1/s1."""

    def _factory(**overrides: Any) -> DeploymentDescriptor:
        defaults: dict[str, Any] = {
            "cluster": "c1",
            "service": "s1",
            "family": "svc-test",
            "container_name": "web",
            "log_config": log_config,
            "execution_role_arn": "arn:aws:iam::123456789012:role/ecsTaskExecutionRole",
            "task_role_arn": "arn:aws:iam::123456789012:role/svc-test-task",
            "overall_timeout": 60.0,
        }
        defaults.update(overrides)
        return DeploymentDescriptor(**defaults)

    return _factory


@pytest.fixture
def descriptor(make_descriptor: Callable[..., DeploymentDescriptor]) -> DeploymentDescriptor:
    return make_descriptor()


@pytest.fixture
def make_scheduler() -> Callable[..., FakeScheduler]:
    return FakeScheduler


@pytest.fixture
def make_controller(clock: FakeClock) -> Callable[..., RolloutController]:
    """Factory fixture: a RolloutController on the fake clock (5s interval)."""

    def _factory(scheduler: FakeScheduler, poll_interval: float = 5.0) -> RolloutController:
        return RolloutController(
            scheduler, poll_interval=poll_interval, clock=clock, sleep=clock.sleep
        )

    return _factory


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def make_runtime() -> Callable[..., FakeRuntime]:
    return FakeRuntime


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()

