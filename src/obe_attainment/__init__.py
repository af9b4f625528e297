"""
OBE Attainment
Outcome Attainment Computation & Reporting Engine

Turns recorded per-question marks into CLO and PLO attainment statistics,
classifies gaps against targets and feeds the report assembler.
"""

__version__ = "0.1.0"
__project__ = "Outcome Based Education"

from .calculators import (
    aggregate_clo_marks,
    analyze_gap,
    calculate_clo_summary,
    classify_gap,
    rollup_plo,
)
from .records import AttainmentStatus, GapTier, InvalidMarkError, ReportNotFoundError

__all__ = [
    "aggregate_clo_marks",
    "analyze_gap",
    "calculate_clo_summary",
    "classify_gap",
    "rollup_plo",
    "AttainmentStatus",
    "GapTier",
    "InvalidMarkError",
    "ReportNotFoundError",
]
