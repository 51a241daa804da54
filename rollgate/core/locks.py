"""Run-one-at-a-time locks per (cluster, service).

Pointing a service at a new revision is not idempotent under concurrent
writers and the scheduler offers no compare-and-swap on the current
revision, so attempts on the same pair are serialized here.  The lock is
process-local; runs in separate processes need an external lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from rollgate.errors import ConcurrentDeploymentError


class ServiceLocks:
    """Non-blocking lock registry keyed by (cluster, service)."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: set[tuple[str, str]] = set()

    def is_locked(self, cluster: str, service: str) -> bool:
        with self._guard:
            return (cluster, service) in self._held

    @contextmanager
    def hold(self, cluster: str, service: str) -> Iterator[None]:
        """Hold the lock for the block.  Raises if already held."""
        key = (cluster, service)
        with self._guard:
            if key in self._held:
                raise ConcurrentDeploymentError(
                    f"a deploy to {cluster}/{service} is already in progress"
                )
            self._held.add(key)
        try:
            yield
        finally:
            with self._guard:
                self._held.discard(key)
