"""Cost aggregation.

Flag savings are treated as independent and additive. Fixing one pattern can
shrink the volume that drives another, so portfolio totals overstate combined
savings somewhat; no discount model is applied.
"""

from __future__ import annotations

import math
from typing import Iterable

from lighthouse.core.results import EfficiencyFlag

MONTHS_PER_YEAR = 12

# Tolerance (USD) when comparing a portfolio total with its parts.
SAVINGS_EPSILON = 1e-6


def annualize(monthly: float) -> float:
    """The one monthly -> annual conversion used for every annual figure."""
    return monthly * MONTHS_PER_YEAR


def sum_savings(amounts: Iterable[float]) -> float:
    return math.fsum(amounts)


def flag_savings(flags: Iterable[EfficiencyFlag]) -> float:
    """Monthly savings of a set of flags, by straight addition."""
    return sum_savings(f.monthly_savings for f in flags)


def wasted_units(savings: float, price_per_unit: float) -> int:
    """Billable units represented by a monthly savings figure."""
    if price_per_unit <= 0 or not math.isfinite(savings):
        return 0
    return max(int(round(savings / price_per_unit)), 0)


def savings_match(total: float, parts: Iterable[float], *, epsilon: float = SAVINGS_EPSILON) -> bool:
    return abs(total - sum_savings(parts)) <= epsilon
