"""Task-definition models and the scheduler registration document.

``TaskDefinitionSpec.to_document()`` produces the JSON object accepted by the
scheduler's registration API.  Key order is fixed so that rendering the same
spec always yields the same bytes, and ``from_document`` parses a rendered
document back into an equal spec.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rollgate.models.artifacts import ArtifactRef


class LogConfig(BaseModel):
    """Container log routing (``awslogs`` driver options)."""

    model_config = ConfigDict(frozen=True)

    log_driver: str = "awslogs"
    group: str
    region: str
    stream_prefix: str = "ecs"

    def to_document(self) -> dict[str, Any]:
        return {
            "logDriver": self.log_driver,
            "options": {
                "awslogs-group": self.group,
                "awslogs-region": self.region,
                "awslogs-stream-prefix": self.stream_prefix,
            },
        }


class TaskDefinitionSpec(BaseModel):
    """Immutable input to task-definition registration.

    One container per task; the container image is the built ``ArtifactRef``.
    """

    model_config = ConfigDict(frozen=True)

    family: str
    container_name: str
    image: ArtifactRef
    cpu: int = 256
    memory: int = 512
    port: int = 5000
    env_vars: dict[str, str] = Field(default_factory=dict)  # insertion-ordered
    log_config: LogConfig
    execution_role_arn: str
    task_role_arn: str
    network_mode: str = "awsvpc"
    requires_compatibilities: tuple[str, ...] = ("FARGATE",)
    protocol: str = "tcp"
    essential: bool = True

    @field_validator("family", "container_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be non-empty")
        return value

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port out of range: {value}")
        return value

    # ------------------------------------------------------------------
    # Document rendering
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Render the registration document."""
        container = {
            "name": self.container_name,
            "image": self.image.image_uri,
            "essential": self.essential,
            "portMappings": [
                {"containerPort": self.port, "protocol": self.protocol},
            ],
            "environment": [
                {"name": name, "value": value}
                for name, value in self.env_vars.items()
            ],
            "logConfiguration": self.log_config.to_document(),
        }
        return {
            "family": self.family,
            "networkMode": self.network_mode,
            "requiresCompatibilities": list(self.requires_compatibilities),
            "cpu": str(self.cpu),
            "memory": str(self.memory),
            "executionRoleArn": self.execution_role_arn,
            "taskRoleArn": self.task_role_arn,
            "containerDefinitions": [container],
        }

    def render_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_document(), indent=indent)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> TaskDefinitionSpec:
        """Parse a single-container registration document."""
        containers = document.get("containerDefinitions") or []
        if len(containers) != 1:
            raise ValueError(
                f"expected exactly one container definition, got {len(containers)}"
            )
        container = containers[0]

        image = container["image"]
        repository, sep, tag = image.rpartition(":")
        if not sep or "/" in tag:
            raise ValueError(f"image reference has no tag: {image!r}")

        mappings = container.get("portMappings") or []
        if len(mappings) != 1:
            raise ValueError(
                f"expected exactly one port mapping, got {len(mappings)}"
            )

        log_document = container["logConfiguration"]
        options = log_document.get("options", {})

        return cls(
            family=document["family"],
            container_name=container["name"],
            image=ArtifactRef(registry_uri=repository, tag=tag),
            cpu=int(document["cpu"]),
            memory=int(document["memory"]),
            port=int(mappings[0]["containerPort"]),
            protocol=mappings[0].get("protocol", "tcp"),
            env_vars={
                item["name"]: item["value"]
                for item in container.get("environment", [])
            },
            log_config=LogConfig(
                log_driver=log_document["logDriver"],
                group=options["awslogs-group"],
                region=options["awslogs-region"],
                stream_prefix=options["awslogs-stream-prefix"],
            ),
            execution_role_arn=document["executionRoleArn"],
            task_role_arn=document["taskRoleArn"],
            network_mode=document.get("networkMode", "awsvpc"),
            requires_compatibilities=tuple(
                document.get("requiresCompatibilities", ["FARGATE"])
            ),
            essential=container.get("essential", True),
        )


class TaskDefinitionRevision(BaseModel):
    """A registered revision.  Revisions are append-only per family."""

    model_config = ConfigDict(frozen=True)

    family: str
    revision_arn: str

    @property
    def revision(self) -> int | None:
        """Numeric revision parsed from ``...:task-definition/<family>:<n>``."""
        _, _, tail = self.revision_arn.rpartition(":")
        return int(tail) if tail.isdigit() else None
