"""
Render report documents for export.

CSV output covers CLO and PLO reports only: one row per outcome under the
header ``Code,Description,Target,Average Attainment,Status``.
"""

import csv
import io
import json
from typing import Dict, List

CSV_HEADER = ["Code", "Description", "Target", "Average Attainment", "Status"]

# report_type -> (outcome collection, code field)
CSV_LAYOUTS = {
    "CLO_ATTAINMENT": ("clo_attainment", "clo_number"),
    "PLO_ATTAINMENT": ("plo_attainment", "plo_number"),
}


def _field(value) -> str:
    return "" if value is None else str(value)


def csv_rows(report: Dict) -> List[List[str]]:
    """Header plus one row per outcome of a CLO or PLO report."""
    report_type = report.get("report_type")
    if report_type not in CSV_LAYOUTS:
        raise ValueError(f"CSV export is not supported for report type {report_type!r}")

    collection, code_field = CSV_LAYOUTS[report_type]
    rows = [list(CSV_HEADER)]
    for outcome in report.get(collection) or []:
        rows.append([
            _field(outcome.get(code_field)),
            _field(outcome.get("description")),
            _field(outcome.get("target_attainment")),
            _field(outcome.get("average_attainment")),
            _field(outcome.get("attainment_status")),
        ])
    return rows


def render_csv(report: Dict) -> str:
    """
    Render a CLO or PLO report as CSV text.

    Fields containing commas, quotes or newlines are quoted; missing values
    become empty fields.

    Raises:
        ValueError: For any other report type
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(csv_rows(report))
    return buffer.getvalue()


def render_json(report: Dict, indent: int = 2) -> str:
    """Render any report document as JSON text."""
    return json.dumps(report, indent=indent, ensure_ascii=False)
