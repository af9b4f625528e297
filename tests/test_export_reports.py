"""
Tests for the report export command line.

Run: pytest tests/test_export_reports.py -v
"""

import json
import sys
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from infrastructure.reporting import export_reports


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "attainment.yaml"
    path.write_text(f"reports:\n  max_workers: 2\n  export_dir: {tmp_path / 'out'}\n")
    return path


@pytest.fixture
def use_session(seeded_session):
    """Route snapshot_scope() to the seeded test session."""
    @contextmanager
    def fake_scope():
        yield seeded_session

    with patch.object(export_reports, "snapshot_scope", fake_scope):
        yield


class TestExportReports:

    def test_clo_report_json(self, use_session, config_file, tmp_path):
        exit_code = export_reports.main(["--config", str(config_file), "clo", "1", "--students"])

        assert exit_code == 0
        data = json.loads((tmp_path / "out" / "clo_report_1.json").read_text())
        assert data["report_type"] == "CLO_ATTAINMENT"
        assert len(data["student_data"]) == 4

    def test_plo_report_csv(self, use_session, config_file, tmp_path):
        output = tmp_path / "plo.csv"
        exit_code = export_reports.main([
            "--config", str(config_file), "--format", "csv", "--output", str(output),
            "plo", "1", "--session-id", "2",
        ])

        assert exit_code == 0
        lines = output.read_text().splitlines()
        assert lines[0] == "Code,Description,Target,Average Attainment,Status"
        assert lines[1] == "PLO1,Engineering knowledge,70.0,66.0,Not Achieved"

    def test_student_report(self, use_session, config_file, tmp_path):
        exit_code = export_reports.main(["--config", str(config_file), "student", "1", "--degree-id", "1"])

        assert exit_code == 0
        data = json.loads((tmp_path / "out" / "student_report_1.json").read_text())
        assert data["report_type"] == "STUDENT_PLO_ATTAINMENT"
        assert data["plo_attainment"][0]["attainment_percentage"] == 66.25

    def test_unknown_session_exit_code(self, use_session, config_file, caplog):
        assert export_reports.main(["--config", str(config_file), "plo", "1", "--session-id", "99"]) == 1
        assert "Academic session 99 not found" in caplog.text

    def test_src_on_path_for_direct_runs(self):
        assert str(export_reports.PROJECT_ROOT / "src") in sys.path

    def test_compare_default_name(self, use_session, config_file, tmp_path):
        assert export_reports.main(["--config", str(config_file), "compare", "1", "3"]) == 0
        assert (tmp_path / "out" / "compare_report_1_3.json").exists()

    def test_csv_for_course_report_fails(self, use_session, config_file):
        assert export_reports.main(["--config", str(config_file), "--format", "csv", "course", "1"]) == 1

    def test_not_found_exit_code(self, use_session, config_file, caplog):
        assert export_reports.main(["--config", str(config_file), "program", "999"]) == 1
        assert "Degree 999 not found" in caplog.text

    def test_database_error_exit_code(self, config_file):
        @contextmanager
        def failing_scope():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
            yield

        with patch.object(export_reports, "snapshot_scope", failing_scope):
            assert export_reports.main(["--config", str(config_file), "course", "1"]) == 1

    def test_requires_report_kind(self):
        with pytest.raises(SystemExit):
            export_reports.main([])
