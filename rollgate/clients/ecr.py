"""ECR registry adapter — repository management via boto3, push via docker."""

from __future__ import annotations

import base64
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rollgate.clients.docker import DockerCli, DockerError
from rollgate.errors import BuildError

logger = logging.getLogger(__name__)


class EcrRegistryClient:
    """``RegistryClient`` backed by ECR.

    Parameters
    ----------
    client:
        A boto3 ``ecr`` client.  Created from the default session if omitted.
    docker:
        Docker CLI used for ``login`` and ``push``.
    region_name:
        Region for the default client.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        docker: DockerCli | None = None,
        region_name: str | None = None,
    ) -> None:
        self._client = client or boto3.client("ecr", region_name=region_name)
        self._docker = docker or DockerCli(timeout=None)

    def ensure_repository(self, name: str) -> None:
        """Create *name* if it does not exist.  Idempotent."""
        try:
            self._client.create_repository(repositoryName=name)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "RepositoryAlreadyExistsException":
                logger.debug("Repository %s already exists", name)
                return
            raise BuildError(f"create_repository({name}) failed: {exc}") from exc
        except BotoCoreError as exc:
            raise BuildError(f"create_repository({name}) failed: {exc}") from exc
        logger.info("Created repository %s", name)

    def login(self) -> str:
        """Log the docker CLI into the registry.  Returns the registry endpoint."""
        try:
            response = self._client.get_authorization_token()
        except (ClientError, BotoCoreError) as exc:
            raise BuildError(f"get_authorization_token failed: {exc}") from exc

        auth = response["authorizationData"][0]
        username, _, password = (
            base64.b64decode(auth["authorizationToken"]).decode("utf-8").partition(":")
        )
        endpoint = auth["proxyEndpoint"]
        try:
            self._docker.run(
                "login", "--username", username, "--password-stdin", endpoint,
                input_text=password,
            )
        except DockerError as exc:
            raise BuildError(f"docker login to {endpoint} failed: {exc}") from exc
        return endpoint

    def push(self, image_uri: str) -> None:
        try:
            self._docker.run("push", image_uri)
        except DockerError as exc:
            raise BuildError(f"docker push {image_uri} failed: {exc}") from exc
        logger.info("Pushed %s", image_uri)
