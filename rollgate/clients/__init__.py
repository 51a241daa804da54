"""Collaborator contracts consumed by the rollout controller and harness.

Each contract is a ``Protocol``: any object with the right methods
satisfies it.  Concrete adapters:

- ``EcsSchedulerClient`` (boto3 ``ecs``)           -> ``SchedulerClient``
- ``EcrRegistryClient`` (boto3 ``ecr`` + docker)   -> ``RegistryClient``
- ``DockerCliRuntime`` (docker CLI)                -> ``ContainerRuntime``
- ``RequestsProbeTransport`` (requests)            -> ``ProbeTransport``

Adapters live in their own modules; importing this package does not pull
in boto3 or requests.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from rollgate.models.rollout import RolloutState
from rollgate.models.task_definition import TaskDefinitionRevision, TaskDefinitionSpec


@runtime_checkable
class SchedulerClient(Protocol):
    """Cluster scheduler operations used by ``RolloutController``.

    Implementations raise ``RegistrationError``, ``UpdateError`` and
    ``PollError`` respectively; raw transport errors must not escape.
    """

    def register_task_definition(
        self, spec: TaskDefinitionSpec
    ) -> TaskDefinitionRevision:
        ...

    def update_service(
        self,
        cluster: str,
        service: str,
        revision_arn: str,
        *,
        force_new_deployment: bool = True,
    ) -> None:
        ...

    def describe_rollout(self, cluster: str, service: str) -> RolloutState:
        """Rollout state of the PRIMARY deployment only."""
        ...


@runtime_checkable
class RegistryClient(Protocol):
    """Container registry operations."""

    def ensure_repository(self, name: str) -> None:
        """Create the repository if absent.  Idempotent."""
        ...

    def push(self, image_uri: str) -> None:
        ...


@runtime_checkable
class ProbeTransport(Protocol):
    """Minimal HTTP GET used by the readiness probe."""

    def get(self, url: str, timeout: float) -> int:
        """Return the HTTP status code.  Raise on connection failure."""
        ...


@runtime_checkable
class ContainerRuntime(Protocol):
    """Local process/container runtime."""

    def start(
        self, image: str, ports: dict[int, int], shm_size: str | None = None
    ) -> Any:
        """Start a detached container and return its handle."""
        ...

    def stop(self, handle: Any) -> None:
        """Stop a container.  Stopping an already-stopped handle is not an error."""
        ...

    def remove_image(self, image_uri: str) -> None:
        """Remove a local image reference."""
        ...


__all__ = [
    "ContainerRuntime",
    "ProbeTransport",
    "RegistryClient",
    "SchedulerClient",
]
