"""
Tests for CLO attainment statistics.

Run: pytest tests/test_clo_attainment.py -v
"""

import pytest

from obe_attainment.calculators.clo_attainment import attainment_status, calculate_clo_summary
from obe_attainment.records import AttainmentStatus, OutcomeTarget


class TestCalculateCloSummary:
    """Statistics over per-student percentages"""

    def test_end_to_end_example(self, sample_clo):
        """Target 75, students [80, 60, 90]"""
        summary = calculate_clo_summary(sample_clo, {1: 80, 2: 60, 3: 90}, course_offering_id=1)

        assert summary.total_students == 3
        assert summary.students_achieved == 2
        assert summary.students_not_achieved == 1
        assert summary.average_attainment == 76.67
        assert summary.min_attainment == 60.0
        assert summary.max_attainment == 90.0
        assert summary.std_deviation == 12.47
        assert summary.achievement_rate == 66.67
        assert summary.attainment_status == AttainmentStatus.ACHIEVED
        assert summary.course_offering_id == 1

    def test_single_student_excluded_peer(self, sample_clo):
        """Only the assessed student counts: average 90, Achieved"""
        summary = calculate_clo_summary(sample_clo, {1: 90.0})

        assert summary.total_students == 1
        assert summary.average_attainment == 90.0
        assert summary.attainment_status == AttainmentStatus.ACHIEVED

    def test_std_deviation_null_for_single_student(self, sample_clo):
        assert calculate_clo_summary(sample_clo, {1: 90.0}).std_deviation is None

    def test_zero_data_sentinel(self, sample_clo):
        """No students: null statistics and null status, never 0"""
        summary = calculate_clo_summary(sample_clo, {})

        assert summary.total_students == 0
        assert summary.average_attainment is None
        assert summary.min_attainment is None
        assert summary.max_attainment is None
        assert summary.std_deviation is None
        assert summary.achievement_rate is None
        assert summary.attainment_status is None
        assert summary.has_data is False

    def test_boundary_at_target_is_achieved(self, sample_clo):
        summary = calculate_clo_summary(sample_clo, {1: 75.0, 2: 75.0})
        assert summary.students_achieved == 2
        assert summary.attainment_status == AttainmentStatus.ACHIEVED

    def test_below_target_not_achieved(self, sample_clo):
        summary = calculate_clo_summary(sample_clo, {1: 74.99})
        assert summary.attainment_status == AttainmentStatus.NOT_ACHIEVED

    @pytest.mark.parametrize("values", [
        {1: 10.0, 2: 55.5, 3: 99.99},
        {1: 33.33, 2: 33.33, 3: 33.34},
        {1: 0.0, 2: 100.0},
    ])
    def test_average_bounded_by_min_and_max(self, sample_clo, values):
        summary = calculate_clo_summary(sample_clo, values)
        assert summary.min_attainment <= summary.average_attainment <= summary.max_attainment

    @pytest.mark.parametrize("target", [-1, 100.5])
    def test_target_out_of_range_raises(self, target):
        clo = OutcomeTarget(outcome_id=9, code="CLO9", description=None, target_attainment=target)
        with pytest.raises(ValueError, match="target_attainment"):
            calculate_clo_summary(clo, {1: 50})

    def test_to_dict_omits_student_detail(self, sample_clo):
        data = calculate_clo_summary(sample_clo, {1: 80, 2: 60}).to_dict()

        assert "student_attainment" not in data
        assert data["attainment_status"] == "Not Achieved"
        assert data["average_attainment"] == 70.0
        assert data["clo_number"] == "CLO1"

    def test_to_dict_null_status(self, sample_clo):
        assert calculate_clo_summary(sample_clo, {}).to_dict()["attainment_status"] is None


class TestAttainmentStatus:

    def test_none_average_is_no_data(self):
        assert attainment_status(None, 50) is None

    def test_status_values_are_strings(self):
        assert attainment_status(80, 50) == "Achieved"
        assert attainment_status(40, 50) == "Not Achieved"
