"""ReportDispatcher — routes a deployment report to ALL configured sinks.

Reporting is a side channel: a failing sink is logged and never changes
the outcome of the deployment it describes.
"""

from __future__ import annotations

import logging

from rollgate.models.run import DeploymentReport
from rollgate.reporting.sinks import BaseSink

logger = logging.getLogger(__name__)


class ReportDispatcher:
    """Fans a report out to every registered sink.

    Usage
    -----
    >>> dispatcher = ReportDispatcher()
    >>> dispatcher.register_sink(LocalFileSink(".rollgate/reports"))
    >>> dispatcher.dispatch(report)
    """

    def __init__(self, sinks: list[BaseSink] | None = None) -> None:
        self._sinks: list[BaseSink] = []
        for sink in sinks or []:
            self.register_sink(sink)

    def register_sink(self, sink: BaseSink) -> None:
        """Register a sink.  Duplicate registration of the same instance is ignored."""
        if sink not in self._sinks:
            self._sinks.append(sink)
            logger.debug("Registered sink: %s", sink.sink_name)

    @property
    def registered_sinks(self) -> list[BaseSink]:
        return list(self._sinks)

    def dispatch(self, report: DeploymentReport) -> list[str]:
        """Deliver *report* to every sink.

        Returns the names of the sinks that accepted it.  Never raises for
        sink failures.
        """
        if not self._sinks:
            logger.warning("No sinks registered — report %s not delivered", report.run_id)
            return []

        delivered: list[str] = []
        for sink in self._sinks:
            try:
                sink.accept(report)
                delivered.append(sink.sink_name)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Sink %s failed for report %s: %s",
                    sink.sink_name, report.run_id, exc,
                )

        if len(delivered) < len(self._sinks):
            logger.warning(
                "Report %s: %d/%d sinks succeeded",
                report.run_id, len(delivered), len(self._sinks),
            )
        return delivered
