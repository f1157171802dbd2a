"""
Portex Report Generator
========================

Serialises a :class:`~portex.core.models.DecodeReport` to JSON, either
as a string for stdout or as a file on disk.

The COFF ``TimeDateStamp`` is stored as a raw 32-bit ``time_t``; the
report adds its UTC calendar form next to it.  Many toolchains write a
build hash instead of a time there (reproducible builds), so the
conversion is informative only.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from portex.core.models import DecodeReport

REPORT_TYPE = "portex_pe_headers"
REPORT_VERSION = "1.0.0"


def timestamp_to_datetime(time_date_stamp: int) -> Optional[datetime]:
    """UTC datetime for a COFF ``TimeDateStamp``; ``None`` when it is zero."""
    if time_date_stamp == 0:
        return None
    return datetime.fromtimestamp(time_date_stamp, tz=timezone.utc)


class PortexReportGenerator:
    """Build and write JSON reports.

    Usage::

        gen = PortexReportGenerator()
        path = gen.generate_json(report, "reports/app.json")
    """

    def report_data(self, report: DecodeReport) -> dict[str, Any]:
        """The JSON document as a plain dictionary."""
        body = report.model_dump(mode="json")

        if report.coff is not None:
            built = timestamp_to_datetime(report.coff.time_date_stamp)
            body["coff"]["time_date_stamp_utc"] = built.isoformat() if built else None

        return {
            "report_type": REPORT_TYPE,
            "version": REPORT_VERSION,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            **body,
        }

    def to_json(self, report: DecodeReport, indent: int = 2) -> str:
        return json.dumps(self.report_data(report), indent=indent, ensure_ascii=False)

    def generate_json(self, report: DecodeReport, output_path: str | Path) -> str:
        """Write the JSON report to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.report_data(report), f, indent=2, ensure_ascii=False)

        return str(path.resolve())
