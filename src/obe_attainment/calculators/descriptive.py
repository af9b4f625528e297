"""
Descriptive statistics shared by the attainment calculators.

All attainment figures pass through ``round_attainment`` so that every
stage of the pipeline rounds the same way. Averages and deviations return
``None`` instead of dividing by zero.
"""

import statistics
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

ATTAINMENT_PRECISION = 2
_QUANTUM = Decimal(1).scaleb(-ATTAINMENT_PRECISION)

# (label, inclusive lower bound), highest band first
ATTAINMENT_BANDS = [
    ("90-100%", 90),
    ("80-89%", 80),
    ("70-79%", 70),
    ("60-69%", 60),
    ("50-59%", 50),
    ("Below 50%", None),
]

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Exact decimal form of a number as it would be printed."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_attainment(value: Optional[Number]) -> Optional[float]:
    """
    Round an attainment figure to the fixed precision.

    Uses half-up rounding on the printed decimal value, so 76.665 becomes
    76.67 regardless of binary float representation.

    Examples:
        >>> round_attainment(76.66666)
        76.67
        >>> round_attainment(None) is None
        True
    """
    if value is None:
        return None
    return float(to_decimal(value).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def safe_mean(values: Sequence[Number]) -> Optional[float]:
    """Arithmetic mean, or None for an empty sequence."""
    if not values:
        return None
    return round_attainment(statistics.fmean(float(v) for v in values))


def population_std(values: Sequence[Number]) -> Optional[float]:
    """Population standard deviation, or None with fewer than two values."""
    if len(values) <= 1:
        return None
    return round_attainment(statistics.pstdev([float(v) for v in values]))


def percentage_of(part: Number, whole: Number) -> Optional[float]:
    """part / whole * 100, or None when whole is zero."""
    if not whole:
        return None
    return round_attainment(float(part) / float(whole) * 100)


def band_for(percentage: float) -> str:
    """Name of the attainment band a percentage falls in."""
    for label, lower in ATTAINMENT_BANDS:
        if lower is None or percentage >= lower:
            return label
    return ATTAINMENT_BANDS[-1][0]


def attainment_distribution(percentages: Iterable[float]) -> List[Dict]:
    """
    Count students per attainment band.

    Every band is listed, highest first, even when empty.

    Returns:
        List of dicts with attainment_range, student_count and percentage
        (share of students, None when there are no students)
    """
    values = list(percentages)
    counts = {label: 0 for label, _ in ATTAINMENT_BANDS}
    for value in values:
        counts[band_for(value)] += 1

    return [
        {
            "attainment_range": label,
            "student_count": counts[label],
            "percentage": percentage_of(counts[label], len(values)),
        }
        for label, _ in ATTAINMENT_BANDS
    ]


def _clean(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return round_attainment(float(value))


def _native(value):
    """Plain Python value for a pandas cell (NaN becomes None)."""
    if value is None or pd.isna(value):
        return None
    return value.item() if hasattr(value, "item") else value


def summarize_components(rows: List[Dict]) -> List[Dict]:
    """
    Mean/min/max of per-student totals for each assessment component.

    Args:
        rows: One dict per (component, question, student mark) with keys
            component_id, assessment_type, component_name, weightage,
            total_marks, conducted_date, student_id and marks_obtained.
            Components without marks carry student_id = None.

    Returns:
        One dict per component ordered by conducted_date, assessment_type,
        component_name
    """
    if not rows:
        return []

    df = pd.DataFrame(rows)
    identity = ["component_id", "assessment_type", "component_name",
                "weightage", "total_marks", "conducted_date"]

    results = []
    for key, group in df.groupby("component_id", sort=False):
        first = group.iloc[0]
        marked = group.dropna(subset=["student_id"])
        per_student = marked.groupby("student_id")["marks_obtained"].sum()
        results.append({
            **{col: _native(first[col]) for col in identity},
            "students_assessed": int(per_student.size),
            "average_marks": _clean(per_student.mean()) if per_student.size else None,
            "min_marks": _clean(per_student.min()) if per_student.size else None,
            "max_marks": _clean(per_student.max()) if per_student.size else None,
        })

    results.sort(key=lambda r: (
        r["conducted_date"] or "", r["assessment_type"] or "", r["component_name"] or "", r["component_id"]
    ))
    return results


def summarize_grades(rows: List[Dict]) -> List[Dict]:
    """
    Student count and mean marks per grade band, best grade point first.
    Ungraded results form their own band with a None grade, listed last.

    Args:
        rows: One dict per course result with grade, grade_point and
            total_marks_obtained
    """
    if not rows:
        return []

    df = pd.DataFrame(rows)
    for col in ("grade_point", "total_marks_obtained"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    grouped = (
        df.groupby(["grade", "grade_point"], dropna=False)
        .agg(student_count=("grade", "size"), avg_marks=("total_marks_obtained", "mean"))
        .reset_index()
        .sort_values(["grade_point", "grade"], ascending=[False, True])
    )

    return [
        {
            "grade": _native(row.grade),
            "grade_point": _clean(row.grade_point),
            "student_count": int(row.student_count),
            "avg_marks": _clean(row.avg_marks),
        }
        for row in grouped.itertuples(index=False)
    ]


def summarize_results(rows: List[Dict]) -> Dict:
    """
    Course-level statistics over final course results.

    Args:
        rows: One dict per course result with total_marks_obtained,
            grade_point and status ('Pass' / 'Fail')
    """
    marks = [float(r["total_marks_obtained"]) for r in rows if r.get("total_marks_obtained") is not None]
    points = [float(r["grade_point"]) for r in rows if r.get("grade_point") is not None]

    return {
        "total_results": len(rows),
        "average_marks": safe_mean(marks),
        "highest_marks": round_attainment(max(marks)) if marks else None,
        "lowest_marks": round_attainment(min(marks)) if marks else None,
        "std_deviation": population_std(marks),
        "average_gpa": safe_mean(points),
        "passed_students": sum(1 for r in rows if r.get("status") == "Pass"),
        "failed_students": sum(1 for r in rows if r.get("status") == "Fail"),
    }
