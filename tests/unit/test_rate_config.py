"""RateConfig loading and validation tests."""

import copy
import json

import pytest

from proposal_engine.exceptions import ConfigurationError
from proposal_engine.layers.layer1_pricing.rate_config import (
    BASE_RATES_FILE,
    COMPLEXITY_FILE,
    DATA_DIR,
    DISCOUNT_FILE,
    RateConfig,
)
from proposal_engine.models import StackingPolicy


@pytest.fixture
def tables():
    """The three bundled tables as parsed JSON."""
    loaded = {}
    for name in (BASE_RATES_FILE, COMPLEXITY_FILE, DISCOUNT_FILE):
        with open(DATA_DIR / name, "r", encoding="utf-8") as f:
            loaded[name] = json.load(f)
    return loaded


def _build(tables):
    return RateConfig.from_tables(
        tables[BASE_RATES_FILE],
        tables[COMPLEXITY_FILE],
        tables[DISCOUNT_FILE],
    )


class TestBundledTables:
    def test_load_defaults(self, rate_config):
        rates = rate_config.base_rates
        assert rates.currency == "USD"
        assert rates.hourly_rates["ai_engineering"].rate == 175
        assert rates.effort_tiers["critical"].default_hours == 80
        assert rates.minimum_project_value == 2500
        assert sum(s.percentage for s in rates.milestone_allocation.values()) == 100

    def test_discount_rules(self, rate_config):
        rules = rate_config.discounts
        assert rules.discount_stacking == StackingPolicy.HIGHEST_ONLY
        assert rules.maximum_combined_discount == 15
        assert rules.notes.approval_required_above == 10

    def test_complexity_tables(self, rate_config):
        complexity = rate_config.complexity
        assert complexity.systems_count.ranges["7+"].multiplier == 1.5
        assert complexity.timeline_pressure.speeds["emergency"].multiplier == 1.75
        assert complexity.client_technical_readiness.levels["advanced"].multiplier == 0.9
        assert complexity.industry_complexity.industries["government"].multiplier == 1.3

    def test_tables_are_immutable(self, rate_config):
        with pytest.raises(Exception):
            rate_config.base_rates.minimum_project_value = 0


class TestInvalidTables:
    def test_split_must_sum_to_100(self, tables):
        broken = copy.deepcopy(tables)
        broken[BASE_RATES_FILE]["milestone_allocation"]["build"]["percentage"] = 35
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert exc_info.value.field_path == "base_rates.json:milestone_allocation"
        assert exc_info.value.error_code == "ERR_CONFIG_001"

    def test_split_needs_all_four_milestones(self, tables):
        broken = copy.deepcopy(tables)
        del broken[BASE_RATES_FILE]["milestone_allocation"]["deploy"]
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert exc_info.value.field_path.startswith("base_rates.json:milestone_allocation")

    def test_missing_effort_tier(self, tables):
        broken = copy.deepcopy(tables)
        del broken[BASE_RATES_FILE]["effort_tiers"]["critical"]
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert "effort_tiers" in exc_info.value.field_path

    def test_non_positive_multiplier(self, tables):
        broken = copy.deepcopy(tables)
        broken[COMPLEXITY_FILE]["timeline_pressure"]["speeds"]["rush"]["multiplier"] = 0
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert exc_info.value.field_path == "complexity_multipliers.json:timeline_pressure.speeds.rush.multiplier"

    def test_missing_systems_range(self, tables):
        broken = copy.deepcopy(tables)
        del broken[COMPLEXITY_FILE]["systems_count"]["ranges"]["7+"]
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert exc_info.value.field_path.startswith("complexity_multipliers.json:systems_count")

    def test_unknown_stacking_policy(self, tables):
        broken = copy.deepcopy(tables)
        broken[DISCOUNT_FILE]["discount_stacking"] = "multiplicative"
        with pytest.raises(ConfigurationError) as exc_info:
            _build(broken)
        assert exc_info.value.field_path == "discount_rules.json:discount_stacking"
        assert exc_info.value.details["table"] == "discount_rules.json"


class TestLoadFromDirectory:
    def test_custom_directory(self, tables, tmp_path):
        custom = copy.deepcopy(tables)
        custom[BASE_RATES_FILE]["minimum_project_value"] = 5000
        for name, data in custom.items():
            (tmp_path / name).write_text(json.dumps(data), encoding="utf-8")

        config = RateConfig.load(tmp_path)
        assert config.base_rates.minimum_project_value == 5000

    def test_missing_file(self, tables, tmp_path):
        for name in (BASE_RATES_FILE, COMPLEXITY_FILE):
            (tmp_path / name).write_text(json.dumps(tables[name]), encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            RateConfig.load(tmp_path)
        assert exc_info.value.field_path == DISCOUNT_FILE

    def test_invalid_json(self, tables, tmp_path):
        for name, data in tables.items():
            (tmp_path / name).write_text(json.dumps(data), encoding="utf-8")
        (tmp_path / BASE_RATES_FILE).write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            RateConfig.load(tmp_path)
        assert exc_info.value.field_path == BASE_RATES_FILE
        assert "not valid JSON" in exc_info.value.message
