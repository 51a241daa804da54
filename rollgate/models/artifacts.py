"""Built image identity (immutable once assigned)."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

# Docker/OCI tag grammar.
_TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")

SHORT_REVISION_LENGTH = 7


def derive_tag(revision: str, build_id: str | int) -> str:
    """Return ``"<shortRevision>-<buildID>"``.

    Unique per (revision, build) pair.  This is not a content hash: two
    builds of the same revision get different tags.
    """
    revision = revision.strip()
    build_id = str(build_id).strip()
    if not revision:
        raise ValueError("revision must be non-empty")
    if not build_id:
        raise ValueError("build_id must be non-empty")
    return f"{revision[:SHORT_REVISION_LENGTH]}-{build_id}"


class ArtifactRef(BaseModel):
    """A built container image, identified by repository URI and tag.

    Frozen: the tag is assigned once, upstream of the deploy, and is never
    regenerated mid-pipeline.
    """

    model_config = ConfigDict(frozen=True)

    registry_uri: str  # e.g. "123456789012.dkr.ecr.us-east-1.amazonaws.com/web"
    tag: str

    @field_validator("registry_uri")
    @classmethod
    def _registry_uri_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("registry_uri must be non-empty")
        return value

    @field_validator("tag")
    @classmethod
    def _tag_is_valid(cls, value: str) -> str:
        if not _TAG_PATTERN.match(value):
            raise ValueError(f"invalid image tag: {value!r}")
        return value

    @classmethod
    def from_build(
        cls, registry_uri: str, revision: str, build_id: str | int
    ) -> ArtifactRef:
        """Build a ref whose tag is derived from a source revision and build ID."""
        return cls(registry_uri=registry_uri, tag=derive_tag(revision, build_id))

    @property
    def repository_name(self) -> str:
        """Repository path without the registry host (``"web"`` above).

        The first path component is a host only if it looks like one
        (contains ``.`` or ``:``, or is ``localhost``), as docker decides.
        """
        host, sep, path = self.registry_uri.partition("/")
        if sep and ("." in host or ":" in host or host == "localhost"):
            return path
        return self.registry_uri

    @property
    def image_uri(self) -> str:
        return f"{self.registry_uri}:{self.tag}"

    def __str__(self) -> str:
        return self.image_uri
