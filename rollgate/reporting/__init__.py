"""Deployment report routing."""

from rollgate.reporting.dispatcher import ReportDispatcher
from rollgate.reporting.sinks import BaseSink
from rollgate.reporting.sinks.console import ConsoleSink
from rollgate.reporting.sinks.local_file import LocalFileSink

__all__ = ["BaseSink", "ConsoleSink", "LocalFileSink", "ReportDispatcher"]
