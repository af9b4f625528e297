from .clo_attainment import attainment_status, calculate_clo_summary
from .gap_analyzer import analyze_gap, classify_gap
from .mark_aggregator import aggregate_clo_marks, aggregate_offering_marks
from .plo_rollup import resolve_mapping_strength, rollup_plo, student_plo_attainment

__all__ = [
    "aggregate_clo_marks",
    "aggregate_offering_marks",
    "analyze_gap",
    "attainment_status",
    "calculate_clo_summary",
    "classify_gap",
    "resolve_mapping_strength",
    "rollup_plo",
    "student_plo_attainment",
]
