from __future__ import annotations

import json
import math

import pytest

from lighthouse.core.exceptions import ConfigurationError, UnrecognizedPlanError
from lighthouse.pricing.tiers import (
    DEFAULT_PRICE_PER_UNIT,
    DEFAULT_PRICING_TABLE,
    PriceSource,
    apply_price_override,
    build_pricing_table,
    load_pricing_table,
    resolve_price,
)


class TestResolvePrice:
    """Tier selection for known plan families."""

    def test_exact_bound_selects_that_tier(self):
        resolution = resolve_price("professional", 2_000)
        assert resolution.tier_bound == 2_000
        assert resolution.price_per_unit == pytest.approx(49.0 / 2_000)
        assert resolution.source is PriceSource.TIER
        assert not resolution.is_fallback

    def test_volume_between_bounds_selects_lower_tier(self):
        resolution = resolve_price("professional", 4_999)
        assert resolution.tier_bound == 2_000

    def test_volume_below_every_bound_selects_lowest_tier(self):
        resolution = resolve_price("team", 10)
        assert resolution.tier_bound == 2_000

    def test_volume_above_every_bound_selects_highest_tier(self):
        resolution = resolve_price("professional", 50_000_000)
        assert resolution.tier_bound == 2_000_000

    def test_plan_tag_is_case_insensitive(self):
        assert resolve_price(" Team ", 5_000).tier_bound == 5_000

    @pytest.mark.parametrize("volume", [-5, math.nan, math.inf])
    def test_bad_volume_is_treated_as_zero(self, volume):
        resolution = resolve_price("professional", volume)
        assert resolution.volume == 0
        assert resolution.tier_bound == 750

    @pytest.mark.parametrize("plan", DEFAULT_PRICING_TABLE.plans)
    def test_price_never_increases_with_volume(self, plan):
        volumes = [0, 1, 749, 750, 1_999, 2_000, 10_000, 123_456, 400_000, 500_000, 2_000_000, 10**9]
        prices = [resolve_price(plan, v).price_per_unit for v in volumes]
        assert all(later <= earlier for earlier, later in zip(prices, prices[1:]))


class TestUnknownPlan:
    def test_unknown_plan_falls_back_to_default_price(self):
        resolution = resolve_price("enterprise", 1_000)
        assert resolution.price_per_unit == DEFAULT_PRICE_PER_UNIT
        assert resolution.is_fallback
        assert resolution.tier is None
        assert resolution.tier_bound == 0

    def test_strict_mode_raises(self):
        with pytest.raises(UnrecognizedPlanError):
            resolve_price("enterprise", 1_000, strict=True)


class TestPriceOverride:
    def test_override_replaces_price(self):
        base = resolve_price("professional", 2_000)
        resolution = apply_price_override(base, 0.02)
        assert resolution.price_per_unit == 0.02
        assert resolution.source is PriceSource.OVERRIDE
        assert resolution.tier == base.tier

    def test_none_keeps_resolution(self):
        base = resolve_price("professional", 2_000)
        assert apply_price_override(base, None) is base

    @pytest.mark.parametrize("override", [0, -0.01, math.nan, math.inf])
    def test_invalid_override_raises(self, override):
        base = resolve_price("professional", 2_000)
        with pytest.raises(ConfigurationError):
            apply_price_override(base, override)


class TestPricingTable:
    def test_unsorted_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            build_pricing_table({"custom": [(2_000, 40.0), (1_000, 30.0)]})

    def test_rising_unit_price_rejected(self):
        with pytest.raises(ConfigurationError):
            build_pricing_table({"custom": [(1_000, 10.0), (2_000, 40.0)]})

    def test_empty_table_rejected(self):
        with pytest.raises(ConfigurationError):
            build_pricing_table({})

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "pricing.json"
        path.write_text(json.dumps({"Custom": [[1000, 20.0], [5000, 50.0]]}))
        table = load_pricing_table(path)
        assert table.plans == ["custom"]
        assert resolve_price("custom", 6_000, table).price_per_unit == pytest.approx(0.01)

    def test_load_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_pricing_table(tmp_path / "missing.json")
