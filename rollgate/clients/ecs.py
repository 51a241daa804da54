"""ECS scheduler adapter (boto3).

Maps the three scheduler operations onto ``RegisterTaskDefinition``,
``UpdateService`` and ``DescribeServices``.  botocore errors are translated
into the rollgate taxonomy here so no raw transport error reaches the
controller.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rollgate.errors import PollError, RegistrationError, UpdateError
from rollgate.models.rollout import RolloutState
from rollgate.models.task_definition import TaskDefinitionRevision, TaskDefinitionSpec

logger = logging.getLogger(__name__)

PRIMARY = "PRIMARY"


class EcsSchedulerClient:
    """``SchedulerClient`` backed by the ECS API.

    Parameters
    ----------
    client:
        A boto3 ``ecs`` client.  Created from the default session if omitted.
    region_name:
        Region for the default client.
    """

    def __init__(self, client: Any | None = None, *, region_name: str | None = None) -> None:
        self._client = client or boto3.client("ecs", region_name=region_name)

    def register_task_definition(
        self, spec: TaskDefinitionSpec
    ) -> TaskDefinitionRevision:
        try:
            response = self._client.register_task_definition(**spec.to_document())
        except (ClientError, BotoCoreError) as exc:
            raise RegistrationError(
                f"register_task_definition({spec.family}) failed: {exc}"
            ) from exc

        task_definition = response["taskDefinition"]
        return TaskDefinitionRevision(
            family=task_definition.get("family", spec.family),
            revision_arn=task_definition["taskDefinitionArn"],
        )

    def update_service(
        self,
        cluster: str,
        service: str,
        revision_arn: str,
        *,
        force_new_deployment: bool = True,
    ) -> None:
        try:
            self._client.update_service(
                cluster=cluster,
                service=service,
                taskDefinition=revision_arn,
                forceNewDeployment=force_new_deployment,
            )
        except (ClientError, BotoCoreError) as exc:
            raise UpdateError(
                f"update_service({cluster}/{service}) failed: {exc}"
            ) from exc

    def describe_rollout(self, cluster: str, service: str) -> RolloutState:
        """Rollout state of the PRIMARY deployment.

        ACTIVE (draining) deployments are ignored.  A missing service or a
        moment with no PRIMARY deployment is ambiguous and raised as
        ``PollError`` so the caller retries.
        """
        try:
            response = self._client.describe_services(cluster=cluster, services=[service])
        except (ClientError, BotoCoreError) as exc:
            raise PollError(f"describe_services({cluster}/{service}) failed: {exc}") from exc

        services = response.get("services") or []
        if not services:
            reasons = [f.get("reason", "") for f in response.get("failures") or []]
            raise PollError(
                f"service {cluster}/{service} not described: {', '.join(reasons) or 'no result'}"
            )

        primary = [
            d for d in services[0].get("deployments") or [] if d.get("status") == PRIMARY
        ]
        if len(primary) != 1:
            raise PollError(
                f"expected one PRIMARY deployment for {cluster}/{service}, found {len(primary)}"
            )

        rollout_state = primary[0].get("rolloutState")
        if rollout_state is None:
            # Services without the deployment circuit breaker report no state.
            return RolloutState.PENDING
        try:
            return RolloutState(rollout_state)
        except ValueError:
            raise PollError(f"unknown rolloutState {rollout_state!r}") from None
