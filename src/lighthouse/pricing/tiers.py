"""Tiered pricing model.

A plan family owns an ordered list of tiers. Each tier starts at a monthly
billable-unit volume (its lower bound) and carries a price per billable unit.
Resolution picks the highest tier whose lower bound does not exceed the
observed volume; volumes below every bound get the lowest tier.

Tables are explicit values threaded into the analysis. Construction validates
that bounds strictly increase and that per-unit prices never increase with
volume, so resolution is monotonic by construction.
"""

from __future__ import annotations

import json
import math
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from lighthouse.core.exceptions import ConfigurationError, UnrecognizedPlanError
from lighthouse.utils.logging import get_logger

logger = get_logger(__name__)


class PlanFamily(str, Enum):
    PROFESSIONAL = "professional"
    TEAM = "team"


class PriceSource(str, Enum):
    TIER = "tier"
    DEFAULT = "default"
    OVERRIDE = "override"


# Price used when the plan family is not in the table. Equals the published
# Professional 2,000-task tier (49 USD / 2,000 tasks).
DEFAULT_PRICE_PER_UNIT = 0.0245

# Monthly volume assumed for tier selection when no usage is known.
FALLBACK_TASK_VOLUME = 2_000


# Published monthly tier prices: (tasks included, USD per month).
PROFESSIONAL_TIERS: Tuple[Tuple[int, float], ...] = (
    (750, 19.99),
    (1_500, 39.0),
    (2_000, 49.0),
    (5_000, 89.0),
    (10_000, 129.0),
    (20_000, 189.0),
    (50_000, 289.0),
    (100_000, 489.0),
    (200_000, 769.0),
    (300_000, 1_069.0),
    (400_000, 1_269.0),
    (500_000, 1_499.0),
    (750_000, 1_999.0),
    (1_000_000, 2_199.0),
    (1_500_000, 2_999.0),
    (1_750_000, 3_199.0),
    (2_000_000, 3_389.0),
)

# The published 500,000-task Team price (1,799) costs more per task than the
# 400,000 tier, so that tier is left out to keep per-unit prices monotonic.
TEAM_TIERS: Tuple[Tuple[int, float], ...] = (
    (2_000, 69.0),
    (5_000, 119.0),
    (10_000, 169.0),
    (20_000, 249.0),
    (50_000, 399.0),
    (100_000, 599.0),
    (200_000, 999.0),
    (300_000, 1_199.0),
    (400_000, 1_399.0),
    (750_000, 2_199.0),
    (1_000_000, 2_499.0),
    (1_500_000, 3_399.0),
    (1_750_000, 3_799.0),
    (2_000_000, 3_999.0),
)


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------


class PricingTier(BaseModel):
    """One usage bracket of a plan family."""
    plan: str
    lower_bound: int = Field(ge=0)
    price_per_unit: float = Field(gt=0)
    monthly_price: Optional[float] = None

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("plan")
    @classmethod
    def normalize_plan_tag(cls, v: str) -> str:
        return normalize_plan(v)

    @field_validator("price_per_unit")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("price_per_unit must be finite")
        return v

    @classmethod
    def from_monthly(cls, plan: str, tasks: int, monthly_price: float) -> "PricingTier":
        return cls(
            plan=plan,
            lower_bound=tasks,
            price_per_unit=monthly_price / tasks,
            monthly_price=monthly_price,
        )


class PricingTable(BaseModel):
    """Plan family -> tiers ordered by increasing lower bound."""
    families: Dict[str, List[PricingTier]]

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="after")
    def validate_tiers(self) -> "PricingTable":
        if not self.families:
            raise ValueError("pricing table has no plan families")
        for plan, tiers in self.families.items():
            if not tiers:
                raise ValueError(f"plan '{plan}' has no tiers")
            for previous, tier in zip(tiers, tiers[1:]):
                if tier.lower_bound <= previous.lower_bound:
                    raise ValueError(
                        f"plan '{plan}' tiers not sorted: {tier.lower_bound} <= {previous.lower_bound}"
                    )
                if tier.price_per_unit > previous.price_per_unit:
                    raise ValueError(
                        f"plan '{plan}' tier {tier.lower_bound} costs more per unit "
                        f"({tier.price_per_unit:.6f}) than tier {previous.lower_bound} "
                        f"({previous.price_per_unit:.6f})"
                    )
        return self

    @field_validator("families")
    @classmethod
    def normalize_family_keys(cls, v: Dict[str, List[PricingTier]]) -> Dict[str, List[PricingTier]]:
        return {normalize_plan(k): tiers for k, tiers in v.items()}

    def tiers_for(self, plan: str) -> Optional[List[PricingTier]]:
        return self.families.get(normalize_plan(plan))

    @property
    def plans(self) -> List[str]:
        return sorted(self.families)


@dataclass(frozen=True)
class PriceResolution:
    """Outcome of resolving a price for a plan and volume."""
    plan: str
    price_per_unit: float
    source: PriceSource
    volume: int
    tier: Optional[PricingTier] = None

    @property
    def is_fallback(self) -> bool:
        """True when the plan was not recognised and the default price was used."""
        return self.source is PriceSource.DEFAULT

    @property
    def tier_bound(self) -> int:
        return self.tier.lower_bound if self.tier else 0


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


def normalize_plan(plan: str) -> str:
    return (plan or "").strip().lower()


def build_pricing_table(families: Dict[str, Sequence[Tuple[int, float]]]) -> PricingTable:
    """Build a table from (tasks, monthly price) pairs per plan family."""
    try:
        return PricingTable(
            families={
                plan: [PricingTier.from_monthly(plan, tasks, price) for tasks, price in tiers]
                for plan, tiers in families.items()
            }
        )
    except (ValidationError, ZeroDivisionError) as exc:
        raise ConfigurationError("Invalid pricing table", context={"error": str(exc)}) from exc


def load_pricing_table(path: Path) -> PricingTable:
    """Load a table from JSON.

    Accepted shape::

        {"professional": [[750, 19.99], [1500, 39.0]], "team": [...]}
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(
            "Cannot read pricing table", context={"path": str(path), "error": str(exc)}
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigurationError("Pricing table must be a JSON object", context={"path": str(path)})
    try:
        families = {
            plan: [(int(tasks), float(price)) for tasks, price in tiers]
            for plan, tiers in raw.items()
        }
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            "Pricing tiers must be [tasks, monthly_price] pairs",
            context={"path": str(path), "error": str(exc)},
        ) from exc
    return build_pricing_table(families)


DEFAULT_PRICING_TABLE = build_pricing_table(
    {
        PlanFamily.PROFESSIONAL.value: PROFESSIONAL_TIERS,
        PlanFamily.TEAM.value: TEAM_TIERS,
    }
)


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------


def _coerce_volume(volume: float) -> int:
    if volume is None or not math.isfinite(volume) or volume < 0:
        return 0
    return int(volume)


def select_tier(tiers: Sequence[PricingTier], volume: int) -> PricingTier:
    """Highest tier whose lower bound is <= volume, else the lowest tier."""
    bounds = [t.lower_bound for t in tiers]
    idx = bisect_right(bounds, volume) - 1
    return tiers[max(idx, 0)]


def resolve_price(
    plan: str,
    volume: float,
    table: PricingTable = DEFAULT_PRICING_TABLE,
    *,
    strict: bool = False,
) -> PriceResolution:
    """Map a plan family and monthly billable-unit volume to a unit price.

    Total: any plan tag and any volume produce a resolution. Unrecognised plans
    resolve to `DEFAULT_PRICE_PER_UNIT` with `is_fallback` set, unless `strict`
    is true, in which case `UnrecognizedPlanError` is raised.
    """
    plan_tag = normalize_plan(plan)
    units = _coerce_volume(volume)
    tiers = table.tiers_for(plan_tag)

    if not tiers:
        if strict:
            raise UnrecognizedPlanError(
                f"Unknown plan family: {plan_tag or '<empty>'}",
                context={"known_plans": table.plans},
            )
        logger.info(
            "Unrecognized plan; using default unit price",
            extra={"plan": plan_tag, "default_price": DEFAULT_PRICE_PER_UNIT},
        )
        return PriceResolution(
            plan=plan_tag,
            price_per_unit=DEFAULT_PRICE_PER_UNIT,
            source=PriceSource.DEFAULT,
            volume=units,
        )

    tier = select_tier(tiers, units)
    return PriceResolution(
        plan=plan_tag,
        price_per_unit=tier.price_per_unit,
        source=PriceSource.TIER,
        volume=units,
        tier=tier,
    )


def apply_price_override(resolution: PriceResolution, override: Optional[float]) -> PriceResolution:
    """Replace the resolved unit price with a caller-supplied one, if given."""
    if override is None:
        return resolution
    if isinstance(override, bool) or not math.isfinite(override) or override <= 0:
        raise ConfigurationError(
            "Price override must be a positive finite number",
            context={"price_override": override},
        )
    return PriceResolution(
        plan=resolution.plan,
        price_per_unit=float(override),
        source=PriceSource.OVERRIDE,
        volume=resolution.volume,
        tier=resolution.tier,
    )
