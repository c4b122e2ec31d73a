"""
RateConfig loading.

Three read-only JSON tables describe every number the pricing engine uses:
- base_rates.json: skill rates, effort tier hours, milestone split, rounding, packages
- complexity_multipliers.json: the six multiplier tables
- discount_rules.json: volume/commitment/early payment/referral rules, stacking, cap

Any parse or validation failure raises ConfigurationError with the table name
and the dotted path of the offending field.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from proposal_engine.config import get_settings
from proposal_engine.exceptions import ConfigurationError
from proposal_engine.models.narrative import format_path
from proposal_engine.models.pricing import MILESTONE_KEYS, EffortTier, StackingPolicy

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
BASE_RATES_FILE = "base_rates.json"
COMPLEXITY_FILE = "complexity_multipliers.json"
DISCOUNT_FILE = "discount_rules.json"

SYSTEMS_RANGE_KEYS = ("1-2", "3-4", "5-6", "7+")


# ============================================================
# base_rates.json
# ============================================================

class SkillRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: float = Field(..., gt=0)
    description: str = ""


class EffortTierHours(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_hours: float = Field(..., gt=0)
    description: str = ""


class AllocationShare(BaseModel):
    model_config = ConfigDict(frozen=True)

    percentage: float = Field(..., gt=0, le=100)
    description: str = ""


class FixedPackage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    price_range: Optional[str] = None
    description: str = ""
    max_complexity_score: Optional[float] = None


class BaseRates(BaseModel):
    """Skill rates, effort hours, rounding and milestone split."""
    model_config = ConfigDict(frozen=True)

    currency: str = "USD"
    hourly_rates: dict[str, SkillRate]
    effort_tiers: dict[str, EffortTierHours]
    rounding_increment: float = Field(100, gt=0)
    milestone_rounding_increment: float = Field(100, gt=0)
    minimum_project_value: float = Field(..., ge=0)
    milestone_allocation: dict[str, AllocationShare]
    fixed_packages: dict[str, FixedPackage] = Field(default_factory=dict)

    @field_validator("effort_tiers")
    @classmethod
    def _all_tiers_present(cls, value: dict[str, EffortTierHours]) -> dict[str, EffortTierHours]:
        missing = [t.value for t in EffortTier if t.value not in value]
        if missing:
            raise ValueError(f"missing effort tiers: {', '.join(missing)}")
        return value

    @field_validator("milestone_allocation")
    @classmethod
    def _split_is_complete(cls, value: dict[str, AllocationShare]) -> dict[str, AllocationShare]:
        if set(value) != set(MILESTONE_KEYS):
            raise ValueError(
                f"milestone split must contain exactly {', '.join(MILESTONE_KEYS)}; got {', '.join(value)}"
            )
        total = sum(share.percentage for share in value.values())
        if abs(total - 100) > 1e-9:
            raise ValueError(f"milestone percentages must sum to 100, got {total:g}")
        return value


# ============================================================
# complexity_multipliers.json
# ============================================================

class MultiplierEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    multiplier: float = Field(..., gt=0)
    description: str = ""


class SystemsCountTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    ranges: dict[str, MultiplierEntry]

    @field_validator("ranges")
    @classmethod
    def _all_ranges_present(cls, value: dict[str, MultiplierEntry]) -> dict[str, MultiplierEntry]:
        missing = [key for key in SYSTEMS_RANGE_KEYS if key not in value]
        if missing:
            raise ValueError(f"missing systems ranges: {', '.join(missing)}")
        return value


class IntegrationTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    types: dict[str, MultiplierEntry]


class LevelTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    levels: dict[str, MultiplierEntry]


class SpeedTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    speeds: dict[str, MultiplierEntry]


class IndustryTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    industries: dict[str, MultiplierEntry]


class ComplexityMultipliers(BaseModel):
    """The six independent multiplier tables."""
    model_config = ConfigDict(frozen=True)

    systems_count: SystemsCountTable
    integration_difficulty: IntegrationTable
    data_sensitivity: LevelTable
    timeline_pressure: SpeedTable
    client_technical_readiness: LevelTable
    industry_complexity: IndustryTable


# ============================================================
# discount_rules.json
# ============================================================

class VolumeTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_value: float = Field(..., ge=0)
    max_value: Optional[float] = None
    discount_percentage: float = Field(..., ge=0, le=100)
    description: str = ""

    def contains(self, price: float) -> bool:
        return price >= self.min_value and (self.max_value is None or price <= self.max_value)


class VolumeDiscounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    tiers: list[VolumeTier]


class DiscountOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    discount_percentage: float = Field(..., ge=0, le=100)
    description: str = ""


class OptionDiscounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    options: dict[str, DiscountOption]


class ReferralDiscount(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_project_discount: float = Field(..., ge=0, le=100)
    description_text: str = "Referral discount"


class DiscountNotes(BaseModel):
    model_config = ConfigDict(frozen=True)

    approval_required_above: float = Field(10, ge=0, le=100)


class DiscountRules(BaseModel):
    """Discount rules, stacking policy and combined cap."""
    model_config = ConfigDict(frozen=True)

    volume_discounts: VolumeDiscounts
    commitment_discounts: OptionDiscounts
    early_payment_discounts: OptionDiscounts
    referral_discounts: ReferralDiscount
    discount_stacking: StackingPolicy
    maximum_combined_discount: float = Field(..., ge=0, le=100)
    notes: DiscountNotes = Field(default_factory=DiscountNotes)


class RateConfig(BaseModel):
    """All pricing tables. Read once per run; never written by the engine."""
    model_config = ConfigDict(frozen=True)

    base_rates: BaseRates
    complexity: ComplexityMultipliers
    discounts: DiscountRules

    @classmethod
    def from_tables(
        cls,
        base_rates: Any,
        complexity_multipliers: Any,
        discount_rules: Any,
    ) -> "RateConfig":
        """Build from already parsed JSON tables."""
        return cls(
            base_rates=_parse_table(BaseRates, base_rates, BASE_RATES_FILE),
            complexity=_parse_table(ComplexityMultipliers, complexity_multipliers, COMPLEXITY_FILE),
            discounts=_parse_table(DiscountRules, discount_rules, DISCOUNT_FILE),
        )

    @classmethod
    def load(cls, directory: Optional[Path] = None) -> "RateConfig":
        """
        Load the three tables from ``directory`` (defaults to the bundled data).

        Raises:
            ConfigurationError: missing file, invalid JSON or invalid table content
        """
        directory = Path(directory) if directory else DATA_DIR
        logger.info(f"[RateConfig] Loading pricing tables from {directory}")
        return cls.from_tables(
            _read_json(directory / BASE_RATES_FILE),
            _read_json(directory / COMPLEXITY_FILE),
            _read_json(directory / DISCOUNT_FILE),
        )


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(
            f"Rate table not found: {path}",
            field_path=path.name,
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Rate table {path.name} is not valid JSON: {e}",
            field_path=path.name,
        ) from e


def _parse_table(model: type[BaseModel], data: Any, table: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = format_path(tuple(first.get("loc", ())))
        field_path = f"{table}:{location}" if location else table
        logger.error(f"[RateConfig] Invalid table {field_path}: {first.get('msg')}")
        raise ConfigurationError(
            f"Invalid rate table {field_path}: {first.get('msg')}",
            field_path=field_path,
            details={
                "table": table,
                "field_path": location,
                "errors": [
                    {"loc": format_path(tuple(err.get("loc", ()))), "msg": err.get("msg")}
                    for err in e.errors()
                ],
            },
        ) from e


# Singleton instance for dependency injection
_rate_config: Optional[RateConfig] = None


def get_rate_config() -> RateConfig:
    """Get or load the RateConfig singleton (honors settings.rate_config_dir)."""
    global _rate_config
    if _rate_config is None:
        directory = get_settings().rate_config_dir
        _rate_config = RateConfig.load(Path(directory) if directory else None)
    return _rate_config
