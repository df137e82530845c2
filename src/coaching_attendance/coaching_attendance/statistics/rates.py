"""Pure rate/trend helpers shared by the aggregator and the read models.

Rates are percentages rounded half-up to ``RATE_DECIMALS`` places, so the
same inputs always display the same number on every view.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import RATE_DECIMALS, RATE_GOOD_THRESHOLD, RATE_WARNING_THRESHOLD
from ..core.enums import RateBand, TrendDirection

_QUANTUM = Decimal(1).scaleb(-RATE_DECIMALS)


def round_rate(value) -> float:
    return float(Decimal(str(value)).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def compute_rate(present: int, total: int) -> float:
    """present / total as a percentage; an empty total yields 0."""
    if int(total) <= 0:
        return 0.0
    return round_rate(Decimal(int(present)) * 100 / Decimal(int(total)))


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection
    delta: float


def compute_trend(current_rate: float, prior_rate: Optional[float]) -> Trend:
    if prior_rate is None:
        return Trend(direction=TrendDirection.STABLE, delta=0.0)

    # Direction from the exact difference; only the reported delta is rounded.
    difference = Decimal(str(current_rate)) - Decimal(str(prior_rate))
    if difference > 0:
        return Trend(direction=TrendDirection.UP, delta=round_rate(difference))
    if difference < 0:
        return Trend(direction=TrendDirection.DOWN, delta=round_rate(difference))
    return Trend(direction=TrendDirection.STABLE, delta=0.0)


def rate_band(rate: float) -> RateBand:
    if rate >= RATE_GOOD_THRESHOLD:
        return RateBand.GOOD
    if rate >= RATE_WARNING_THRESHOLD:
        return RateBand.WARNING
    return RateBand.POOR
