"""
CLO -> PLO Rollup

A PLO's attainment is the mapping-strength weighted mean of the averages of
the CLOs mapped to it:

    PLO average = sum(clo.average * strength) / sum(strength)

taken over CLO summaries that have data. CLOs without data drop out of both
sums, so the weights are renormalised over the CLOs that did contribute.
Student counts are taken over distinct students so that a student assessed
under several CLOs is counted once.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..records import (
    ContributingCourse,
    MappedCLOSummary,
    OutcomeTarget,
    PLOAttainmentSummary,
    StudentPLOAttainment,
)
from .clo_attainment import attainment_status
from .descriptive import percentage_of, population_std, round_attainment, safe_mean, to_decimal

logger = logging.getLogger(__name__)

# Categorical mapping weights (Low / Medium / High)
CATEGORICAL_STRENGTHS = {
    "low": 1.0,
    "l": 1.0,
    "medium": 2.0,
    "m": 2.0,
    "high": 3.0,
    "h": 3.0,
}


def resolve_mapping_strength(value: Union[int, float, Decimal, str]) -> float:
    """
    Convert a stored mapping strength into a numeric weight.

    Accepts non-negative numbers (e.g. 0.6) and the categorical labels
    Low / Medium / High (1 / 2 / 3).

    Raises:
        ValueError: For negative, missing or unrecognised values
    """
    if value is None:
        raise ValueError("Mapping strength is required")

    if isinstance(value, str):
        label = value.strip().lower()
        if label in CATEGORICAL_STRENGTHS:
            return CATEGORICAL_STRENGTHS[label]
        try:
            value = float(label)
        except ValueError:
            raise ValueError(f"Unknown mapping strength: {value!r}") from None

    strength = float(value)
    if strength < 0:
        raise ValueError(f"Mapping strength cannot be negative, got {strength}")
    return strength


def weighted_average(pairs: Iterable[tuple]) -> Optional[float]:
    """
    Weighted mean of (value, weight) pairs, skipping None values.

    Returns None when no pair has a value and a positive weight.
    """
    numerator = Decimal(0)
    denominator = Decimal(0)
    for value, weight in pairs:
        if value is None or not weight:
            continue
        numerator += to_decimal(value) * to_decimal(weight)
        denominator += to_decimal(weight)

    if denominator == 0:
        return None
    return round_attainment(numerator / denominator)


def _contributing(mapped: Iterable[MappedCLOSummary], session_id: Optional[int]) -> List[MappedCLOSummary]:
    contributing = []
    for item in mapped:
        if session_id is not None and item.session_id != session_id:
            continue
        if item.mapping_strength <= 0 or not item.summary.has_data:
            continue
        contributing.append(item)
    return contributing


def student_plo_percentages(mapped: Sequence[MappedCLOSummary]) -> Dict[int, float]:
    """
    Per-student PLO attainment.

    Each student's value is the mapping-strength weighted mean of that
    student's own CLO percentages across the contributing CLO summaries.
    """
    pairs: Dict[int, List[tuple]] = defaultdict(list)
    for item in mapped:
        for student_id, pct in item.summary.student_attainment.items():
            pairs[student_id].append((pct, item.mapping_strength))

    results = {}
    for student_id in sorted(pairs):
        value = weighted_average(pairs[student_id])
        if value is not None:
            results[student_id] = value
    return results


def contributing_courses(mapped: Sequence[MappedCLOSummary], session_id: Optional[int] = None) -> List[ContributingCourse]:
    """
    Distinct courses whose CLOs map to the PLO, ordered by course code.

    Informational only: each course carries its own weighted average over
    its CLO summaries with data, the strongest mapping strength among its
    CLOs and the CLO codes involved. Courses whose CLOs have no data in
    scope are still listed, with a None average.
    """
    by_course: Dict[int, List[MappedCLOSummary]] = defaultdict(list)
    for item in mapped:
        if session_id is not None and item.session_id != session_id:
            continue
        by_course[item.course_id].append(item)

    courses = []
    for course_id, items in by_course.items():
        first = items[0]
        offerings = {i.summary.course_offering_id for i in items if i.summary.course_offering_id is not None}
        clo_numbers = sorted({i.summary.clo_number for i in items})
        courses.append(ContributingCourse(
            course_id=course_id,
            course_code=first.course_code,
            course_title=first.course_title,
            credit_hours=first.credit_hours,
            offerings_count=len(offerings),
            average_attainment=weighted_average(
                (i.summary.average_attainment, i.mapping_strength) for i in items
            ),
            mapping_strength=round_attainment(max(i.mapping_strength for i in items)),
            clo_numbers=clo_numbers,
        ))

    courses.sort(key=lambda c: (c.course_code, c.course_id))
    return courses


def rollup_plo(
    plo: OutcomeTarget,
    mapped: Sequence[MappedCLOSummary],
    session_id: Optional[int] = None,
) -> PLOAttainmentSummary:
    """
    Roll CLO summaries up into one PLO summary.

    Args:
        plo: PLO identity and target_attainment
        mapped: CLO summaries mapped to this PLO, possibly spanning several
            courses, offerings and sessions
        session_id: When given, only summaries from offerings in that
            academic session contribute

    Returns:
        PLOAttainmentSummary with contributing_courses filled in

    Example:
        CLO averages 76.67 (strength 0.6) and 50 (strength 0.4):
        (76.67 * 0.6 + 50 * 0.4) / 1.0 = 66.0
    """
    target = float(plo.target_attainment)
    contributing = _contributing(mapped, session_id)

    average = weighted_average(
        (item.summary.average_attainment, item.mapping_strength) for item in contributing
    )
    per_student = student_plo_percentages(contributing)
    values = list(per_student.values())
    achieved = sum(1 for v in values if v >= target)

    logger.debug(
        f"PLO {plo.code}: {len(contributing)} contributing CLO summaries, "
        f"{len(values)} distinct students"
    )

    return PLOAttainmentSummary(
        plo_id=plo.outcome_id,
        plo_number=plo.code,
        description=plo.description,
        target_attainment=round_attainment(target),
        session_id=session_id,
        total_students=len(values),
        students_achieved=achieved,
        students_not_achieved=len(values) - achieved,
        average_attainment=average,
        min_attainment=round_attainment(min(values)) if values else None,
        max_attainment=round_attainment(max(values)) if values else None,
        std_deviation=population_std(values),
        achievement_rate=percentage_of(achieved, len(values)),
        attainment_status=attainment_status(average, target),
        contributing_clos=len(contributing),
        contributing_courses=contributing_courses(mapped, session_id),
        student_attainment=per_student,
    )


def mean_of_averages(summaries: Iterable) -> Optional[float]:
    """Unweighted mean of the averages of summaries that have data."""
    return safe_mean([s.average_attainment for s in summaries if s.average_attainment is not None])


def student_plo_attainment(
    plo: OutcomeTarget,
    mapped: Sequence[MappedCLOSummary],
    student_id: int,
    session_id: Optional[int] = None,
) -> StudentPLOAttainment:
    """
    One student's attainment of a PLO with the CLO results behind it.

    The value is the same one ``rollup_plo`` counts for the student: the
    mapping-strength weighted mean of the student's own CLO percentages
    over contributing CLO summaries. A student with no such percentage
    gets a None value and status.

    Example:
        CS101 CLO1 80 and 70 (strength 0.6), CS201 CLO1 40 (strength 0.4):
        (80 * 0.6 + 70 * 0.6 + 40 * 0.4) / 1.6 = 66.25
    """
    target = float(plo.target_attainment)
    assessed = [
        item for item in _contributing(mapped, session_id)
        if student_id in item.summary.student_attainment
    ]
    value = weighted_average(
        (item.summary.student_attainment[student_id], item.mapping_strength) for item in assessed
    )

    breakdown = []
    ordered = sorted(
        assessed, key=lambda i: (i.course_code, i.summary.clo_number, i.summary.course_offering_id or 0)
    )
    for item in ordered:
        summary = item.summary
        pct = summary.student_attainment[student_id]
        breakdown.append({
            "course_id": item.course_id,
            "course_code": item.course_code,
            "course_title": item.course_title,
            "course_offering_id": summary.course_offering_id,
            "session_id": item.session_id,
            "clo_id": summary.clo_id,
            "clo_number": summary.clo_number,
            "mapping_strength": round_attainment(item.mapping_strength),
            "clo_attainment": pct,
            "clo_status": attainment_status(pct, summary.target_attainment).value,
        })

    return StudentPLOAttainment(
        student_id=student_id,
        plo_id=plo.outcome_id,
        plo_number=plo.code,
        description=plo.description,
        target_attainment=round_attainment(target),
        attainment_percentage=value,
        attainment_status=attainment_status(value, target),
        contributing_clos=len(assessed),
        course_breakdown=breakdown,
    )
