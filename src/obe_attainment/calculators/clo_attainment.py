"""
CLO Attainment Calculator

Turns the per-student percentages of one CLO into summary statistics and
an attainment status against the CLO's target.
"""

from typing import Dict, Optional

from ..records import AttainmentStatus, CLOAttainmentSummary, OutcomeTarget
from .descriptive import percentage_of, population_std, round_attainment, safe_mean


def attainment_status(average: Optional[float], target: float) -> Optional[AttainmentStatus]:
    """
    Achieved iff average >= target; None when there is no average.

    No data is not the same as not achieved, so callers get None back
    rather than NOT_ACHIEVED.
    """
    if average is None:
        return None
    if average >= target:
        return AttainmentStatus.ACHIEVED
    return AttainmentStatus.NOT_ACHIEVED


def calculate_clo_summary(
    clo: OutcomeTarget,
    student_percentages: Dict[int, float],
    course_offering_id: Optional[int] = None,
) -> CLOAttainmentSummary:
    """
    Calculate CLO statistics for one course offering.

    Args:
        clo: CLO identity and target_attainment (0-100)
        student_percentages: student_id -> attainment percentage, already
            excluding students without marks
        course_offering_id: Offering the percentages belong to

    Returns:
        CLOAttainmentSummary; average/min/max/status are None with no
        students and std_deviation is None with fewer than two

    Example:
        >>> clo = OutcomeTarget(1, "CLO1", None, 75)
        >>> s = calculate_clo_summary(clo, {1: 80, 2: 60, 3: 90})
        >>> (s.total_students, s.students_achieved, s.average_attainment)
        (3, 2, 76.67)
    """
    target = float(clo.target_attainment)
    if not 0 <= target <= 100:
        raise ValueError(f"CLO {clo.code} target_attainment must be within 0-100, got {target}")

    values = [student_percentages[sid] for sid in sorted(student_percentages)]
    total = len(values)
    achieved = sum(1 for v in values if v >= target)
    average = safe_mean(values)

    return CLOAttainmentSummary(
        clo_id=clo.outcome_id,
        clo_number=clo.code,
        description=clo.description,
        target_attainment=round_attainment(target),
        weight_percentage=round_attainment(clo.weight_percentage),
        course_offering_id=course_offering_id,
        total_students=total,
        students_achieved=achieved,
        students_not_achieved=total - achieved,
        average_attainment=average,
        min_attainment=round_attainment(min(values)) if values else None,
        max_attainment=round_attainment(max(values)) if values else None,
        std_deviation=population_std(values),
        achievement_rate=percentage_of(achieved, total),
        attainment_status=attainment_status(average, target),
        student_attainment=dict(student_percentages),
    )
