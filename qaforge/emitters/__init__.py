"""Report emitter — renders every report family from one bundle.

Families and their paths under the report root:

- ``test-results.json``                  normalized JSON
- ``test-report.html``                   CI HTML report
- ``junit-results.xml``                  JUnit XML
- ``executive-summary.{json,html}``      executive summary
- ``dashboard/``                         dashboard page + embedded data
- ``comprehensive/``                     media-rich report
- ``metrics/``                           latest metrics (+ preserved history file)
"""

from __future__ import annotations

import logging
from pathlib import Path

from qaforge.emitters.dashboard import render_dashboard, render_dashboard_data
from qaforge.emitters.executive import render_executive_html, render_executive_json
from qaforge.emitters.html_report import render_comprehensive, render_test_report
from qaforge.emitters.junit import render_junit
from qaforge.emitters.metrics_files import render_latest_metrics
from qaforge.emitters.normalized import render_normalized
from qaforge.emitters.views import ReportBundle
from qaforge.emitters.writer import ReportEmissionError, write_family, write_file

logger = logging.getLogger(__name__)

HISTORY_FILE_NAME = "historical-data.json"


class ReportEmitter:
    """Writes all report families under ``report_root``.

    Parameters
    ----------
    report_root:
        Output directory.  Created by ``ensure_directories()``, never by
        the constructor.
    """

    def __init__(self, report_root: Path) -> None:
        self.report_root = Path(report_root)

    @property
    def dashboard_dir(self) -> Path:
        return self.report_root / "dashboard"

    @property
    def comprehensive_dir(self) -> Path:
        return self.report_root / "comprehensive"

    @property
    def metrics_dir(self) -> Path:
        return self.report_root / "metrics"

    def ensure_directories(self) -> None:
        try:
            self.report_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ReportEmissionError(f"Cannot create report root {self.report_root}: {exc}") from exc

    def emit(self, bundle: ReportBundle) -> dict[str, Path]:
        """Render and write every family.  Raises ``ReportEmissionError``."""
        root = self.report_root
        written = {
            "normalized": write_file(root / "test-results.json", render_normalized(bundle)),
            "test_report": write_file(root / "test-report.html", render_test_report(bundle)),
            "junit": write_file(root / "junit-results.xml", render_junit(bundle)),
            "executive_json": write_file(root / "executive-summary.json", render_executive_json(bundle)),
            "executive_html": write_file(root / "executive-summary.html", render_executive_html(bundle)),
        }
        written["dashboard"] = write_family(
            self.dashboard_dir,
            {
                "index.html": render_dashboard(bundle, self.dashboard_dir),
                "data/dashboard-data.json": render_dashboard_data(bundle),
            },
        )
        written["comprehensive"] = write_family(
            self.comprehensive_dir,
            {"index.html": render_comprehensive(bundle, self.comprehensive_dir)},
        )
        written["metrics"] = write_family(
            self.metrics_dir,
            {"latest-metrics.json": render_latest_metrics(bundle)},
            preserve=[HISTORY_FILE_NAME],
        )
        logger.info("Wrote %d report outputs to %s", len(written), root)
        return written


__all__ = [
    "ReportBundle",
    "ReportEmissionError",
    "ReportEmitter",
]
