"""
Card catalog models.

Reward structures are a tagged union on ``reward_type``:

  - ``CashbackRewards`` — 1 reward unit == 1 currency unit.
  - ``PointsRewards``   — units converted with ``points_conversion``.
  - ``MilesRewards``    — same conversion semantics as points.

All validation happens at load time, so the evaluator never has to deal with
missing fields. Optional values have one central default policy each:

  - ``capping_limit`` without ``capping_period`` → ``DEFAULT_CAPPING_PERIOD``.
  - Absent ``customer_satisfaction`` → no satisfaction penalty, neutral brand
    contribution.
  - Absent ``network`` → eligibility on network cannot be verified.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from card_recommender.taxonomy.card_taxonomy import (
    DEFAULT_CAPPING_PERIOD,
    CappingPeriod,
    CardNetwork,
    RewardCurrency,
)


class FeeStructure(BaseModel):
    """Card fees in the catalog's currency."""

    model_config = ConfigDict(frozen=True)

    joining_fee: float = 0.0
    annual_fee: float = 0.0
    renewal_fee: Optional[float] = None
    annual_fee_waiver_spend: Optional[float] = None

    @field_validator("joining_fee", "annual_fee", "renewal_fee", "annual_fee_waiver_spend")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"Fee amounts must be >= 0, got {v}.")
        return v


class IncomeRequirement(BaseModel):
    """Minimum annual income by employment type."""

    model_config = ConfigDict(frozen=True)

    salaried: Optional[float] = None
    self_employed: Optional[float] = None

    def for_employment(self, employment_type: str) -> Optional[float]:
        if employment_type == "self_employed":
            return self.self_employed if self.self_employed is not None else self.salaried
        return self.salaried if self.salaried is not None else self.self_employed


class EligibilityRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimum_income: Optional[IncomeRequirement] = None
    minimum_credit_score: Optional[int] = None

    @field_validator("minimum_credit_score")
    @classmethod
    def validate_score(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 300 <= v <= 900:
            raise ValueError(f"minimum_credit_score must be in [300, 900], got {v}.")
        return v


class PointsConversion(BaseModel):
    """Value of one reward unit in currency.

    ``conversion_rate`` is the primary redemption path and the only one used
    for savings comparisons. ``alternate_conversion_rate`` (for example a
    transfer-partner rate) is reported separately, never blended.
    """

    model_config = ConfigDict(frozen=True)

    conversion_rate: float
    alternate_conversion_rate: Optional[float] = None
    minimum_redemption: Optional[int] = None

    @field_validator("conversion_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"conversion_rate must be > 0, got {v}.")
        return v

    @field_validator("alternate_conversion_rate")
    @classmethod
    def validate_alternate(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"alternate_conversion_rate must be > 0, got {v}.")
        return v


class AcceleratedRewardRule(BaseModel):
    """A higher-than-base reward rate tied to a category, merchants or a quarter.

    Attributes:
        category_id: Category the rule accelerates, if category-generic.
        merchant_patterns: Case-insensitive merchant name fragments.
        reward_rate: Percentage rate (5.0 means 5 units per 100 spent).
        capping_limit: Max spend per ``capping_period`` earning ``reward_rate``.
        capping_period: Reset window of the cap.
        quarter_active: Calendar quarters (1-4) in which the rule applies;
            empty means always.
        conditions: Named preconditions, all of which must be satisfied.
        description: Free-text description from the issuer.
    """

    model_config = ConfigDict(frozen=True)

    category_id: Optional[str] = None
    merchant_patterns: tuple[str, ...] = ()
    reward_rate: float
    capping_limit: Optional[float] = None
    capping_period: Optional[CappingPeriod] = None
    quarter_active: tuple[int, ...] = ()
    conditions: tuple[str, ...] = ()
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def default_capping_period(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("capping_limit") is not None:
            if not data.get("capping_period"):
                data = {**data, "capping_period": DEFAULT_CAPPING_PERIOD}
        return data

    @field_validator("category_id")
    @classmethod
    def normalize_category(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("merchant_patterns", "conditions")
    @classmethod
    def drop_blank(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(s.strip() for s in v if s and s.strip())

    @field_validator("reward_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"reward_rate must be >= 0, got {v}.")
        return v

    @field_validator("capping_limit")
    @classmethod
    def validate_cap(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"capping_limit must be > 0 when set, got {v}.")
        return v

    @field_validator("quarter_active")
    @classmethod
    def validate_quarters(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        bad = [q for q in v if q not in (1, 2, 3, 4)]
        if bad:
            raise ValueError(f"quarter_active values must be 1-4, got {bad}.")
        return tuple(sorted(set(v)))

    @model_validator(mode="after")
    def validate_target(self) -> "AcceleratedRewardRule":
        if self.category_id is None and not self.merchant_patterns:
            raise ValueError("Rule needs a category_id or at least one merchant pattern.")
        return self

    def is_active_in(self, quarter: int) -> bool:
        """``True`` when the rule applies in calendar ``quarter``."""
        return not self.quarter_active or quarter in self.quarter_active


class _RewardStructureBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    reward_currency: RewardCurrency
    base_reward_rate: float
    accelerated_rules: tuple[AcceleratedRewardRule, ...] = ()

    @field_validator("base_reward_rate")
    @classmethod
    def validate_base_rate(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"base_reward_rate must be >= 0, got {v}.")
        return v


class CashbackRewards(_RewardStructureBase):
    reward_type: Literal["cashback"] = "cashback"

    @property
    def conversion_rate(self) -> float:
        return 1.0

    @property
    def alternate_conversion_rate(self) -> Optional[float]:
        return None


class PointsRewards(_RewardStructureBase):
    reward_type: Literal["points"] = "points"
    points_conversion: PointsConversion

    @property
    def conversion_rate(self) -> float:
        return self.points_conversion.conversion_rate

    @property
    def alternate_conversion_rate(self) -> Optional[float]:
        return self.points_conversion.alternate_conversion_rate


class MilesRewards(_RewardStructureBase):
    reward_type: Literal["miles"] = "miles"
    points_conversion: PointsConversion

    @property
    def conversion_rate(self) -> float:
        return self.points_conversion.conversion_rate

    @property
    def alternate_conversion_rate(self) -> Optional[float]:
        return self.points_conversion.alternate_conversion_rate


RewardStructure = Annotated[
    Union[CashbackRewards, PointsRewards, MilesRewards],
    Field(discriminator="reward_type"),
]


class WelcomeBenefit(BaseModel):
    """A one-time joining benefit.

    ``value_unit="reward_units"`` means ``benefit_value`` is in points/miles and
    is converted with the card's primary conversion rate.
    """

    model_config = ConfigDict(frozen=True)

    description: str = ""
    benefit_value: float = 0.0
    value_unit: Literal["currency", "reward_units"] = "currency"

    @field_validator("benefit_value")
    @classmethod
    def validate_value(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"benefit_value must be >= 0, got {v}.")
        return v


class CardCatalogEntry(BaseModel):
    """One validated catalog card.

    Attributes:
        id: Stable card identifier, e.g. ``"hdfc-millennia"``.
        name: Display name.
        issuer: Issuer identifier, e.g. ``"hdfc"``.
        network: Payment network, or ``None`` if not recorded.
        is_active: ``False`` for discontinued cards.
        is_lifetime_free: No joining or annual fee, ever.
        is_business: Business/corporate card.
        popularity_score: 0-100 catalog popularity.
        customer_satisfaction: 0-5 rating, or ``None`` if unknown.
        fee_structure: Joining/annual/renewal fees.
        eligibility: Minimum income and credit score.
        reward_structure: Tagged reward variant.
        welcome_benefits: One-time joining benefits.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    issuer: str
    network: Optional[CardNetwork] = None
    is_active: bool = True
    is_lifetime_free: bool = False
    is_business: bool = False
    popularity_score: float = 50.0
    customer_satisfaction: Optional[float] = None
    fee_structure: FeeStructure = FeeStructure()
    eligibility: EligibilityRequirements = EligibilityRequirements()
    reward_structure: RewardStructure
    welcome_benefits: tuple[WelcomeBenefit, ...] = ()

    @field_validator("id", "name", "issuer")
    @classmethod
    def validate_non_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank.")
        return v

    @field_validator("popularity_score")
    @classmethod
    def validate_popularity(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"popularity_score must be in [0, 100], got {v}.")
        return v

    @field_validator("customer_satisfaction")
    @classmethod
    def validate_satisfaction(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 <= v <= 5.0:
            raise ValueError(f"customer_satisfaction must be in [0, 5], got {v}.")
        return v

    @model_validator(mode="after")
    def validate_lifetime_free(self) -> "CardCatalogEntry":
        fees = self.fee_structure
        if self.is_lifetime_free and (fees.annual_fee > 0 or fees.joining_fee > 0):
            raise ValueError("Lifetime-free card cannot carry a joining or annual fee.")
        return self

    @property
    def annual_fee(self) -> float:
        return self.fee_structure.annual_fee
