"""
Tests for CSV / JSON rendering of report documents.

Run: pytest tests/test_renderers.py -v
"""

import csv
import io
import json

import pytest

from infrastructure.reporting.assembler import ReportAssembler
from infrastructure.reporting.renderers import CSV_HEADER, render_csv, render_json


def _clo_report(*outcomes):
    return {"report_type": "CLO_ATTAINMENT", "clo_attainment": list(outcomes)}


class TestRenderCsv:

    def test_header_row(self):
        assert render_csv(_clo_report()) == "Code,Description,Target,Average Attainment,Status\n"
        assert CSV_HEADER == ["Code", "Description", "Target", "Average Attainment", "Status"]

    def test_one_row_per_outcome(self):
        text = render_csv(_clo_report(
            {"clo_number": "CLO1", "description": "Write programs", "target_attainment": 75.0,
             "average_attainment": 76.67, "attainment_status": "Achieved"},
        ))
        assert text.splitlines()[1] == "CLO1,Write programs,75.0,76.67,Achieved"

    def test_quotes_commas_quotes_and_newlines(self):
        description = 'Analyse "linked" lists,\ntrees'
        text = render_csv(_clo_report(
            {"clo_number": "CLO2", "description": description, "target_attainment": 60.0,
             "average_attainment": 50.0, "attainment_status": "Not Achieved"},
        ))

        assert '"Analyse ""linked"" lists,\ntrees"' in text
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[1][1] == description

    def test_null_fields_are_empty(self):
        text = render_csv(_clo_report(
            {"clo_number": "CLO3", "description": None, "target_attainment": 50.0,
             "average_attainment": None, "attainment_status": None},
        ))
        assert text.splitlines()[1] == "CLO3,,50.0,,"

    def test_plo_report(self):
        report = {"report_type": "PLO_ATTAINMENT", "plo_attainment": [
            {"plo_number": "PLO1", "description": "Knowledge", "target_attainment": 70.0,
             "average_attainment": 66.0, "attainment_status": "Not Achieved"},
        ]}
        assert render_csv(report).splitlines()[1] == "PLO1,Knowledge,70.0,66.0,Not Achieved"

    @pytest.mark.parametrize("report_type", ["COURSE_REPORT", "PROGRAM_REPORT", None])
    def test_other_report_types_rejected(self, report_type):
        with pytest.raises(ValueError, match="not supported"):
            render_csv({"report_type": report_type})


class TestRenderJson:

    def test_round_trips_report(self):
        report = _clo_report({"clo_number": "CLO1", "average_attainment": None})
        assert json.loads(render_json(report)) == report

    @pytest.mark.parametrize("method, arg", [
        ("generate_clo_report", 1),
        ("generate_plo_report", 1),
        ("generate_course_report", 1),
        ("generate_program_report", 1),
        ("generate_clo_trends", 1),
    ])
    def test_generated_reports_are_serialisable(self, seeded_session, fixed_clock, method, arg):
        assembler = ReportAssembler(seeded_session, clock=fixed_clock)
        report = getattr(assembler, method)(arg)

        assert json.loads(render_json(report)) == report

    def test_seeded_clo_report_as_csv(self, seeded_session, fixed_clock):
        report = ReportAssembler(seeded_session, clock=fixed_clock).generate_clo_report(1)
        rows = list(csv.reader(io.StringIO(render_csv(report))))

        assert rows[1] == ["CLO1", "Write structured programs", "75.0", "76.67", "Achieved"]
        assert rows[2] == ["CLO2", "Debug programs", "50.0", "", ""]
