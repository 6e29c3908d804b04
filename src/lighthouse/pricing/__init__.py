"""Tiered pricing tables and unit-price resolution."""

from lighthouse.pricing.tiers import (
    DEFAULT_PRICE_PER_UNIT,
    DEFAULT_PRICING_TABLE,
    FALLBACK_TASK_VOLUME,
    PlanFamily,
    PriceResolution,
    PriceSource,
    PricingTable,
    PricingTier,
    apply_price_override,
    build_pricing_table,
    load_pricing_table,
    resolve_price,
)

__all__ = [
    "DEFAULT_PRICE_PER_UNIT",
    "DEFAULT_PRICING_TABLE",
    "FALLBACK_TASK_VOLUME",
    "PlanFamily",
    "PriceResolution",
    "PriceSource",
    "PricingTable",
    "PricingTier",
    "apply_price_override",
    "build_pricing_table",
    "load_pricing_table",
    "resolve_price",
]
