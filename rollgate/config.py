"""Runtime configuration — env-driven, immutable once loaded.

Centralized config using pydantic-settings.  Reads from a .env file and
ROLLGATE_* environment variables.  Pipeline-wide values (account, region,
cluster, roles) live here and are passed explicitly into the orchestrator;
nothing reads process environment after construction.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from rollgate.models.run import DeploymentDescriptor
from rollgate.models.task_definition import LogConfig


class RollgateSettings(BaseSettings):
    """Deployment and harness settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export ROLLGATE_AWS_REGION=eu-west-1
        export ROLLGATE_CLUSTER=prod-cluster
        export ROLLGATE_ROLLOUT_TIMEOUT_SECONDS=1200

    Or via .env file::

        ROLLGATE_ACCOUNT_ID=123456789012
        ROLLGATE_SERVICE=web
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ROLLGATE_",
        env_file_encoding="utf-8",
        frozen=True,
    )

    log_level: str = "INFO"

    # AWS account / region
    account_id: str = ""
    aws_region: str = "us-east-1"

    # Registry
    repository: str = "app"

    # Scheduler target
    cluster: str = "default"
    service: str = "app"
    family: str = "app"
    container_name: str = "app"
    cpu: int = 256
    memory: int = 512
    container_port: int = 5000
    execution_role_arn: str = ""
    task_role_arn: str = ""
    log_group: str = "/ecs/app"
    log_stream_prefix: str = "ecs"

    # Rollout wait
    rollout_timeout_seconds: float = 900.0
    rollout_poll_interval_seconds: float = 5.0

    # Ephemeral harness (browser automation dependency)
    harness_image: str = "selenium/standalone-chrome:latest"
    harness_port: int = 4444
    harness_shm_size: str = "2g"
    harness_health_path: str = "/wd/hub/status"
    harness_ready_timeout_seconds: float = 60.0
    harness_probe_interval_seconds: float = 1.0

    # Reporting
    report_dir: Path = Path(".rollgate/reports")

    @property
    def registry_uri(self) -> str:
        """``<account>.dkr.ecr.<region>.amazonaws.com/<repository>``."""
        if not self.account_id:
            return self.repository
        return (
            f"{self.account_id}.dkr.ecr.{self.aws_region}.amazonaws.com/"
            f"{self.repository}"
        )

    @property
    def harness_endpoint(self) -> str:
        return f"http://localhost:{self.harness_port}"

    def descriptor(self, env_vars: dict[str, str] | None = None) -> DeploymentDescriptor:
        """Build the deployment descriptor for the configured service."""
        return DeploymentDescriptor(
            cluster=self.cluster,
            service=self.service,
            family=self.family,
            container_name=self.container_name,
            cpu=self.cpu,
            memory=self.memory,
            port=self.container_port,
            env_vars=env_vars or {},
            log_config=LogConfig(
                group=self.log_group,
                region=self.aws_region,
                stream_prefix=self.log_stream_prefix,
            ),
            execution_role_arn=self.execution_role_arn,
            task_role_arn=self.task_role_arn,
            overall_timeout=self.rollout_timeout_seconds,
            poll_interval=self.rollout_poll_interval_seconds,
        )
