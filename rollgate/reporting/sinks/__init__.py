"""Sink protocol for deployment report routing.

All sinks implement the ``BaseSink`` protocol: a ``sink_name`` property
and an ``accept(report)`` method.  The dispatcher calls ``accept`` on every
registered sink for every dispatched report.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rollgate.models.run import DeploymentReport


@runtime_checkable
class BaseSink(Protocol):
    """Protocol that every report sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance
        (e.g. ``"local_file"``, ``"console"``).
    """

    @property
    def sink_name(self) -> str:
        ...

    def accept(self, report: DeploymentReport) -> None:
        """Persist, print or forward the report.

        May raise; the dispatcher logs the failure and moves on.
        """
        ...
