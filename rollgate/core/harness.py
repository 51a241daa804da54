"""Ephemeral dependency harness — start, wait until ready, run, always stop.

Typical use is a browser-automation container that a test workload needs
for the duration of one run::

    harness = EphemeralHarness(DockerCliRuntime())
    probe = ReadinessProbe("http://localhost:4444", "/wd/hub/status",
                           RequestsProbeTransport())
    result = harness.run_container(
        "selenium/standalone-chrome", {4444: 4444}, "2g",
        probe, run_browser_checks, ready_timeout=60,
    )

Failure semantics:

- ``HarnessError(kind=NOT_READY)``: the probe never saw a 2xx before the
  deadline.  The workload was not invoked.
- ``HarnessError(kind=START_FAILED)``: the runtime could not start the
  dependency.  Nothing was started, so nothing is stopped.
- Any exception raised by the workload propagates as-is.

In every case where ``start`` succeeded, ``stop`` is called exactly once
before control returns to the caller.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import urljoin

from rollgate.clients import ContainerRuntime, ProbeTransport
from rollgate.core.polling import Clock, PollStatus, Sleep, poll_until
from rollgate.errors import HarnessError, HarnessErrorKind
from rollgate.models.harness import HarnessSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROBE_INTERVAL = 1.0
DEFAULT_REQUEST_TIMEOUT = 2.0


class ReadinessProbe:
    """Polls an HTTP(S) health endpoint until it answers 2xx.

    Parameters
    ----------
    endpoint:
        Base URL of the dependency, handed to the workload.
    health_path:
        Path (or absolute URL) of the health check, resolved against *endpoint*.
    transport:
        HTTP GET implementation (see ``rollgate.clients.ProbeTransport``).
    interval:
        Seconds between probe attempts.
    request_timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        endpoint: str,
        health_path: str,
        transport: ProbeTransport,
        *,
        interval: float = DEFAULT_PROBE_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        clock: Clock = time.monotonic,
        sleep: Sleep | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.health_url = urljoin(endpoint, health_path)
        self.interval = interval
        self.request_timeout = request_timeout
        self._transport = transport
        self._clock = clock
        self._sleep = sleep

    def check(self) -> bool:
        """One probe attempt.  Any failure means "not ready yet"."""
        try:
            status = self._transport.get(self.health_url, self.request_timeout)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Probe %s: %s", self.health_url, exc)
            return False
        if 200 <= status < 300:
            return True
        logger.debug("Probe %s: HTTP %d", self.health_url, status)
        return False

    def wait_ready(
        self, timeout: float, cancel: threading.Event | None = None
    ) -> int:
        """Block until ready.  Returns the number of attempts taken.

        Raises ``HarnessError`` (``NOT_READY`` or ``CANCELLED``).
        """
        result = poll_until(
            self.check,
            bool,
            interval=self.interval,
            timeout=timeout,
            cancel=cancel,
            clock=self._clock,
            sleep=self._sleep,
            label=f"probe {self.health_url}",
        )
        if result.status == PollStatus.SATISFIED:
            return result.attempts
        if result.status == PollStatus.CANCELLED:
            raise HarnessError(
                HarnessErrorKind.CANCELLED,
                f"readiness wait on {self.health_url} cancelled",
            )
        raise HarnessError(
            HarnessErrorKind.NOT_READY,
            f"{self.health_url} not ready after {timeout:.1f}s "
            f"({result.attempts} attempts)",
        )


class EphemeralHarness:
    """Scoped lifetime for a transient dependency.

    Parameters
    ----------
    runtime:
        The runtime that owns ``stop``.  Handles returned by ``start``
        callables passed to ``run`` must belong to this runtime.
    """

    def __init__(self, runtime: ContainerRuntime) -> None:
        self._runtime = runtime

    def run(
        self,
        start: Callable[[], Any],
        probe: ReadinessProbe,
        workload: Callable[[str], T],
        ready_timeout: float,
        *,
        cancel: threading.Event | None = None,
    ) -> T:
        """Start the dependency, wait for *probe*, run *workload*, stop.

        Returns whatever *workload* returns.
        """
        try:
            handle = start()
        except Exception as exc:
            raise HarnessError(
                HarnessErrorKind.START_FAILED, f"dependency failed to start: {exc}"
            ) from exc

        session = HarnessSession(endpoint=probe.endpoint, process_handle=handle)
        logger.info("Started dependency %s for %s", handle, session.endpoint)
        try:
            attempts = probe.wait_ready(ready_timeout, cancel)
            session.ready = True
            logger.info("Dependency ready after %d probe attempts", attempts)
            return workload(session.endpoint)
        finally:
            self._teardown(session)

    def run_container(
        self,
        image: str,
        ports: dict[int, int],
        shm_size: str | None,
        probe: ReadinessProbe,
        workload: Callable[[str], T],
        ready_timeout: float,
        *,
        cancel: threading.Event | None = None,
    ) -> T:
        """``run`` with ``start`` bound to ``runtime.start(image, ports, shm_size)``."""
        return self.run(
            lambda: self._runtime.start(image, ports, shm_size),
            probe,
            workload,
            ready_timeout,
            cancel=cancel,
        )

    def _teardown(self, session: HarnessSession) -> None:
        # Stop failures must not mask the workload's result or error.
        try:
            self._runtime.stop(session.process_handle)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to stop dependency %s: %s", session.process_handle, exc)
        else:
            logger.info("Stopped dependency %s", session.process_handle)
        session.ready = False
