"""
Tests for shared descriptive statistics and pandas summaries.

Run: pytest tests/test_descriptive.py -v
"""

import pytest

from obe_attainment.calculators.descriptive import (
    attainment_distribution,
    band_for,
    percentage_of,
    population_std,
    round_attainment,
    safe_mean,
    summarize_components,
    summarize_grades,
    summarize_results,
)


class TestRounding:

    @pytest.mark.parametrize("value, expected", [
        (76.66666, 76.67),
        (76.665, 76.67),
        (2.675, 2.68),
        (-4.005, -4.01),
        (50, 50.0),
    ])
    def test_half_up_on_printed_value(self, value, expected):
        assert round_attainment(value) == expected

    def test_none_passes_through(self):
        assert round_attainment(None) is None


class TestGuards:
    """No division by zero anywhere"""

    def test_mean_of_nothing(self):
        assert safe_mean([]) is None

    def test_std_needs_two_values(self):
        assert population_std([]) is None
        assert population_std([42.0]) is None

    def test_population_not_sample_std(self):
        assert population_std([2, 4, 4, 4, 5, 5, 7, 9]) == 2.0

    def test_percentage_of_zero(self):
        assert percentage_of(3, 0) is None
        assert percentage_of(1, 3) == 33.33


class TestDistribution:

    @pytest.mark.parametrize("value, band", [
        (100, "90-100%"),
        (90, "90-100%"),
        (89.99, "80-89%"),
        (50, "50-59%"),
        (49.99, "Below 50%"),
        (0, "Below 50%"),
    ])
    def test_band_for(self, value, band):
        assert band_for(value) == band

    def test_every_band_listed(self):
        result = attainment_distribution([95, 55, 10, 12])

        assert [b["attainment_range"] for b in result] == [
            "90-100%", "80-89%", "70-79%", "60-69%", "50-59%", "Below 50%",
        ]
        assert result[-1] == {"attainment_range": "Below 50%", "student_count": 2, "percentage": 50.0}

    def test_empty(self):
        result = attainment_distribution([])
        assert all(b["student_count"] == 0 and b["percentage"] is None for b in result)


def _component_row(component_id, name, student_id, marks, conducted="2024-03-01", kind="Quiz"):
    return {
        "component_id": component_id,
        "assessment_type": kind,
        "component_name": name,
        "weightage": 10.0,
        "total_marks": 20.0,
        "conducted_date": conducted,
        "student_id": student_id,
        "marks_obtained": marks,
    }


class TestSummarizeComponents:

    def test_per_student_totals(self):
        rows = [
            _component_row(1, "Quiz 1", 1, 5.0),
            _component_row(1, "Quiz 1", 1, 5.0),
            _component_row(1, "Quiz 1", 2, 4.0),
        ]
        result = summarize_components(rows)[0]

        assert result["students_assessed"] == 2
        assert result["average_marks"] == 7.0
        assert result["min_marks"] == 4.0
        assert result["max_marks"] == 10.0

    def test_component_without_marks(self):
        rows = [
            _component_row(1, "Quiz 1", 1, 5.0, conducted="2024-03-01"),
            _component_row(2, "Final", None, None, conducted=None, kind="Final"),
        ]
        empty = [c for c in summarize_components(rows) if c["component_id"] == 2][0]

        assert empty["students_assessed"] == 0
        assert empty["average_marks"] is None
        assert empty["conducted_date"] is None

    def test_ordered_by_date(self):
        rows = [
            _component_row(1, "Quiz 2", 1, 5.0, conducted="2024-04-01"),
            _component_row(2, "Quiz 1", 1, 5.0, conducted="2024-02-01"),
        ]
        assert [c["component_name"] for c in summarize_components(rows)] == ["Quiz 1", "Quiz 2"]

    def test_values_are_plain_python(self):
        result = summarize_components([_component_row(1, "Quiz 1", 1, 5.0)])[0]
        assert type(result["component_id"]) is int
        assert type(result["weightage"]) is float

    def test_empty(self):
        assert summarize_components([]) == []


class TestResultSummaries:

    @pytest.fixture
    def results(self):
        return [
            {"grade": "A", "grade_point": 4.0, "total_marks_obtained": 90.0, "status": "Pass"},
            {"grade": "B", "grade_point": 3.0, "total_marks_obtained": 75.0, "status": "Pass"},
            {"grade": "A", "grade_point": 4.0, "total_marks_obtained": 86.0, "status": "Pass"},
            {"grade": "F", "grade_point": 0.0, "total_marks_obtained": 20.0, "status": "Fail"},
        ]

    def test_grades_best_first(self, results):
        grades = summarize_grades(results)

        assert [g["grade"] for g in grades] == ["A", "B", "F"]
        assert grades[0] == {"grade": "A", "grade_point": 4.0, "student_count": 2, "avg_marks": 88.0}

    def test_result_statistics(self, results):
        stats = summarize_results(results)

        assert stats["total_results"] == 4
        assert stats["average_marks"] == 67.75
        assert stats["highest_marks"] == 90.0
        assert stats["lowest_marks"] == 20.0
        assert stats["average_gpa"] == 2.75
        assert stats["passed_students"] == 3
        assert stats["failed_students"] == 1

    def test_no_results(self):
        stats = summarize_results([])

        assert stats["average_marks"] is None
        assert stats["std_deviation"] is None
        assert summarize_grades([]) == []

    def test_ungraded_results_have_no_nan(self, results):
        """A pending result keeps its own band with None in place of NaN"""
        results.append({"grade": None, "grade_point": None, "total_marks_obtained": None, "status": None})
        grades = summarize_grades(results)

        assert [g["grade"] for g in grades] == ["A", "B", "F", None]
        assert grades[-1] == {"grade": None, "grade_point": None, "student_count": 1, "avg_marks": None}

    def test_only_ungraded_results(self):
        grades = summarize_grades([
            {"grade": None, "grade_point": None, "total_marks_obtained": None, "status": None},
            {"grade": None, "grade_point": None, "total_marks_obtained": 55.0, "status": None},
        ])

        assert grades == [{"grade": None, "grade_point": None, "student_count": 2, "avg_marks": 55.0}]
