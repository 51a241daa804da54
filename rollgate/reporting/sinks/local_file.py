"""Local file sink — writes reports as JSON files.

Layout: {base_path}/{cluster}/{service}/{run_id}.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rollgate.models.run import DeploymentReport

logger = logging.getLogger(__name__)


class LocalFileSink:
    """Writes reports to local JSON files.

    Parameters
    ----------
    base_path:
        Root directory for report files.  Defaults to ``.rollgate/reports``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        self._base = Path(base_path) if base_path else Path(".rollgate/reports")

    @property
    def sink_name(self) -> str:
        return "local_file"

    def path_for(self, report: DeploymentReport) -> Path:
        return self._base / report.cluster / report.service / f"{report.run_id}.json"

    def accept(self, report: DeploymentReport) -> None:
        target = self.path_for(report)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("LocalFileSink: wrote %s", target)

    def list_reports(self, cluster: str, service: str) -> list[Path]:
        service_dir = self._base / cluster / service
        if not service_dir.exists():
            return []
        return sorted(service_dir.glob("*.json"))

    def read_report(self, path: Path) -> dict:
        return json.loads(path.read_text(encoding="utf-8"))
