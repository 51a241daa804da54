"""Orchestrator run state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- CLEANED_UP is terminal and reachable from every state except START
- Every transition is recorded, in order, for the final report
"""

from __future__ import annotations

import logging

from rollgate.errors import InvalidTransitionError
from rollgate.models.run import VALID_TRANSITIONS, RunState, RunTransition

logger = logging.getLogger(__name__)


class RunMachine:
    """Tracks one orchestrator run through its states.

    Parameters
    ----------
    run_id:
        Identifier used in log lines.
    """

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self._state = RunState.START
        self._result_state: RunState | None = None
        self._transitions: list[RunTransition] = []

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result_state(self) -> RunState | None:
        """The state held just before CLEANED_UP, once a result is known."""
        return self._result_state

    @property
    def transitions(self) -> list[RunTransition]:
        return list(self._transitions)

    def can_transition(self, target: RunState) -> bool:
        return target in VALID_TRANSITIONS.get(self._state, set())

    def transition(self, target: RunState, note: str = "") -> RunTransition:
        """Move to *target*, recording the transition.

        Raises ``InvalidTransitionError`` if the table does not allow it.
        """
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Run {self.run_id}: cannot transition from {self._state.value} "
                f"to {target.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        record = RunTransition(from_state=self._state, to_state=target, note=note)
        self._transitions.append(record)
        logger.info(
            "Run %s: %s -> %s%s",
            self.run_id, self._state.value, target.value,
            f" ({note})" if note else "",
        )
        if target == RunState.CLEANED_UP:
            self._result_state = self._result_state or self._state
        elif VALID_TRANSITIONS.get(target) == {RunState.CLEANED_UP}:
            self._result_state = target
        self._state = target
        return record
