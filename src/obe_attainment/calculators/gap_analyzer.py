"""
Gap Analyzer

gap = target - actual (positive means under target) classified into tiers:

    gap <= 0          Met
    0 < gap <= 10     Near Target
    10 < gap <= 20    Needs Improvement
    gap > 20          Critical

The arithmetic is done on decimals so that boundary values such as
75.3 - 65.3 land exactly on 10.
"""

from decimal import Decimal
from typing import Optional, Union

from ..records import GapAnalysis, GapTier
from .descriptive import round_attainment, to_decimal

NEAR_TARGET_MAX_GAP = Decimal("10")
NEEDS_IMPROVEMENT_MAX_GAP = Decimal("20")

Number = Union[int, float, Decimal]


def compute_gap(target: Number, actual: Number) -> Decimal:
    return to_decimal(target) - to_decimal(actual)


def classify_gap(gap: Number) -> GapTier:
    """Severity tier for a signed gap."""
    gap = to_decimal(gap)
    if gap <= 0:
        return GapTier.MET
    if gap <= NEAR_TARGET_MAX_GAP:
        return GapTier.NEAR_TARGET
    if gap <= NEEDS_IMPROVEMENT_MAX_GAP:
        return GapTier.NEEDS_IMPROVEMENT
    return GapTier.CRITICAL


def analyze_gap(target: Optional[Number], actual: Optional[Number]) -> Optional[GapAnalysis]:
    """
    Gap and tier for any outcome (CLO, PLO or PEO).

    Returns None when either side is missing, e.g. an outcome without data.

    Example:
        >>> analyze_gap(70, 66.0).tier
        <GapTier.NEAR_TARGET: 'Near Target'>
    """
    if target is None or actual is None:
        return None

    gap = compute_gap(target, actual)
    return GapAnalysis(
        target=round_attainment(target),
        actual=round_attainment(actual),
        gap=round_attainment(gap),
        tier=classify_gap(gap),
    )
