"""Bounded polling with a hard deadline.

The scheduler and the harness dependency offer no push notifications, so
both control loops wait by polling: query, inspect, sleep a fixed interval,
repeat until the condition holds or the deadline passes.

Rules enforced here:

- At least one query is issued, then one per ``interval``.
- The last sleep is clipped to the deadline; once the deadline is reached
  no further query is issued.
- A set cancellation token wakes the sleep early and stops the loop the
  same way a deadline does.
- Exceptions listed in ``retry_on`` are logged and absorbed; anything else
  propagates.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]


class PollStatus(str, Enum):
    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class PollResult(BaseModel):
    """How a polling loop ended."""

    model_config = ConfigDict(frozen=True)

    status: PollStatus
    last_value: Any = None  # last successfully queried value
    attempts: int = 0
    errors: int = 0
    elapsed: float = 0.0


def poll_until(
    query: Callable[[], Any],
    is_done: Callable[[Any], bool],
    *,
    interval: float,
    timeout: float,
    retry_on: tuple[type[BaseException], ...] = (),
    cancel: threading.Event | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep | None = None,
    label: str = "poll",
) -> PollResult:
    """Call *query* until ``is_done(value)`` holds, the deadline passes, or *cancel* is set.

    Parameters
    ----------
    query:
        Blocking call returning the observed value.
    is_done:
        Predicate on the observed value; ``True`` ends the loop.
    interval:
        Seconds between queries.  Must be positive.
    timeout:
        Seconds from the first query until the hard deadline.
    retry_on:
        Exception types that count as a failed attempt and are retried.
    cancel:
        Optional external cancellation token.
    clock, sleep:
        Injectable time sources.  When *sleep* is omitted, waiting is done
        on the cancellation token (or ``time.sleep`` without one) so that
        cancellation interrupts the wait.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    if timeout < 0:
        raise ValueError(f"timeout must be non-negative, got {timeout}")

    wait = sleep or _default_sleep(cancel)
    started = clock()
    deadline = started + timeout
    attempts = 0
    errors = 0
    last_value: Any = None

    def _result(status: PollStatus) -> PollResult:
        return PollResult(
            status=status,
            last_value=last_value,
            attempts=attempts,
            errors=errors,
            elapsed=clock() - started,
        )

    while True:
        if cancel is not None and cancel.is_set():
            logger.info("%s: cancelled after %d attempts", label, attempts)
            return _result(PollStatus.CANCELLED)

        attempts += 1
        try:
            value = query()
        except retry_on as exc:
            errors += 1
            logger.warning("%s: attempt %d failed: %s", label, attempts, exc)
        else:
            last_value = value
            if is_done(value):
                logger.debug("%s: satisfied on attempt %d", label, attempts)
                return _result(PollStatus.SATISFIED)

        remaining = deadline - clock()
        if remaining <= 0:
            break
        wait(min(interval, remaining))

        if cancel is not None and cancel.is_set():
            logger.info("%s: cancelled after %d attempts", label, attempts)
            return _result(PollStatus.CANCELLED)
        if clock() >= deadline:
            break

    logger.info("%s: deadline of %.1fs reached after %d attempts", label, timeout, attempts)
    return _result(PollStatus.TIMED_OUT)


def _default_sleep(cancel: threading.Event | None) -> Sleep:
    if cancel is None:
        return time.sleep
    return lambda seconds: cancel.wait(seconds)
