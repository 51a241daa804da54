"""Ephemeral harness session model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class HarnessSession(BaseModel):
    """A running dependency, owned by ``EphemeralHarness`` for its lifetime.

    Never handed to the workload; the workload only receives ``endpoint``.
    """

    endpoint: str
    process_handle: Any
    ready: bool = False
