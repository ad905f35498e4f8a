"""
Request criteria, score breakdown, recommendation and response models.

Every model here is JSON-safe: ``RecommendationResponse.model_dump(mode="json")``
yields plain dicts, lists, strings and numbers only. Apart from
``processing_time_ms`` and ``generated_at`` the dump is a pure function of the
request inputs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from card_recommender.models.evaluation import CategoryEvaluation
from card_recommender.models.transaction import MonthlySpend
from card_recommender.taxonomy.card_taxonomy import (
    CREDIT_TIER_SCORES,
    CardNetwork,
    ConfidenceLevel,
)

# Fields excluded when comparing two responses for determinism.
TIMING_FIELDS: frozenset[str] = frozenset({"processing_time_ms", "generated_at"})


class RecommendationCriteria(BaseModel):
    """Optional caller filters and facts about the applicant.

    ``credit_score`` accepts a numeric score or a tier name
    (``excellent``/``good``/``fair``/``poor``), which maps to a
    representative score. ``min_roi`` drops fee-charging cards whose
    annual savings return less than that percentage of the fee.
    """

    model_config = ConfigDict(frozen=True)

    credit_score: Optional[int] = None
    annual_income: Optional[float] = None
    employment_type: Literal["salaried", "self_employed"] = "salaried"
    max_annual_fee: Optional[float] = None
    preferred_network: Optional[CardNetwork] = None
    preferred_issuer: Optional[str] = None
    include_business_cards: bool = False
    include_inactive_cards: bool = False
    min_roi: Optional[float] = None

    @field_validator("credit_score", mode="before")
    @classmethod
    def tier_to_score(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip().isdigit():
            tier = v.strip().lower()
            if tier not in CREDIT_TIER_SCORES:
                raise ValueError(
                    f"Unknown credit tier '{v}'. "
                    f"Use a score or one of {sorted(CREDIT_TIER_SCORES)}."
                )
            return CREDIT_TIER_SCORES[tier]
        return v

    @field_validator("credit_score")
    @classmethod
    def validate_score(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 300 <= v <= 900:
            raise ValueError(f"credit_score must be in [300, 900], got {v}.")
        return v

    @field_validator("annual_income", "max_annual_fee", "min_roi")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"must be >= 0, got {v}.")
        return v

    @field_validator("preferred_issuer")
    @classmethod
    def normalize_issuer(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None


class ScoreAdjustment(BaseModel):
    """One named bonus or penalty, in score points."""

    model_config = ConfigDict(frozen=True)

    name: str
    points: float
    reason: str = ""


class ScoreBreakdown(BaseModel):
    """Composite score with its five sub-scores and named adjustments.

    Sub-scores are in ``[0, 1]``; ``total_score`` is in ``[0, 100]``.
    """

    model_config = ConfigDict(frozen=True)

    total_score: float
    first_year_value_score: float
    category_alignment_score: float
    fee_efficiency_score: float
    brand_preference_score: float
    accessibility_score: float
    bonus_factors: tuple[ScoreAdjustment, ...] = ()
    penalty_factors: tuple[ScoreAdjustment, ...] = ()

    @field_validator("total_score")
    @classmethod
    def validate_total(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"total_score must be in [0, 100], got {v}.")
        return v

    @field_validator(
        "first_year_value_score",
        "category_alignment_score",
        "fee_efficiency_score",
        "brand_preference_score",
        "accessibility_score",
    )
    @classmethod
    def validate_unit(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"sub-scores must be in [0, 1], got {v}.")
        return v


class Recommendation(BaseModel):
    """A ranked card with its projection, score and explanation."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    card_name: str
    issuer: str
    rank: int
    score: float
    score_breakdown: ScoreBreakdown
    annual_savings: float
    annual_earnings: float
    window_earnings: float
    months_evaluated: int
    annual_fee: float
    signup_bonus_value: Optional[float] = None
    fee_breakeven_months: Optional[float] = None
    yearly_roi: Optional[float] = None
    alternate_annual_earnings: Optional[float] = None
    benefit_breakdown: tuple[CategoryEvaluation, ...] = ()
    primary_reason: str
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    confidence_score: float

    @field_validator("confidence_score")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence_score must be in [0, 1], got {v}.")
        return v


class NearMiss(BaseModel):
    """A card kept out of the list, with the reasons why."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    card_name: str
    issuer: str
    score: float
    cons: tuple[str, ...]


class ComparisonOptions(BaseModel):
    """Filters and ordering for a side-by-side card comparison.

    ``prioritize_no_fee`` wins when both ordering flags are set. With
    ``prioritize_signup_bonus`` cards are grouped into bands of
    ``signup_bonus_band`` currency units; within a band first-year value
    decides.
    """

    model_config = ConfigDict(frozen=True)

    max_annual_fee: Optional[float] = None
    min_roi: Optional[float] = None
    prioritize_no_fee: bool = False
    prioritize_signup_bonus: bool = False
    signup_bonus_band: float = 50.0

    @field_validator("max_annual_fee", "min_roi")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"must be >= 0, got {v}.")
        return v

    @field_validator("signup_bonus_band")
    @classmethod
    def validate_band(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"signup_bonus_band must be > 0, got {v}.")
        return v


class CardComparison(BaseModel):
    """One row of a side-by-side comparison; all money figures are annual."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    card_name: str
    issuer: str
    annual_fee: float
    annual_earnings: float
    annual_savings: float
    signup_bonus_value: float
    first_year_value: float
    yearly_roi: Optional[float] = None
    fee_breakeven_months: Optional[float] = None


class SkippedCard(BaseModel):
    """A catalog entry dropped because its data failed validation."""

    model_config = ConfigDict(frozen=True)

    card_id: Optional[str] = None
    reason: str


class CategoryShare(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: str
    total_spent: float
    transaction_count: int
    percentage: float


class SpendingAnalysis(BaseModel):
    """Descriptive summary of the spending profile shipped with the response."""

    model_config = ConfigDict(frozen=True)

    total_spent: float
    transaction_count: int
    average_transaction: float
    months_spanned: int
    monthly_average: float
    refund_total: float
    category_distribution: tuple[CategoryShare, ...]
    monthly_trends: tuple[MonthlySpend, ...] = ()


class RecommendationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    top_recommendation: Optional[str] = None
    potential_savings: float = 0.0
    average_score: float = 0.0
    categories_analyzed: int = 0
    confidence_level: ConfidenceLevel = ConfidenceLevel.VERY_LOW


class RecommendationResponse(BaseModel):
    """Full engine output for one request."""

    model_config = ConfigDict(frozen=True)

    recommendations: tuple[Recommendation, ...]
    near_misses: tuple[NearMiss, ...] = ()
    skipped_cards: tuple[SkippedCard, ...] = ()
    warnings: tuple[str, ...] = ()
    summary: RecommendationSummary
    spending_analysis: SpendingAnalysis
    processing_time_ms: float
    generated_at: datetime

    def to_json_dict(self) -> dict[str, Any]:
        """Plain-JSON dict of the whole response."""
        return self.model_dump(mode="json")

    def deterministic_dict(self) -> dict[str, Any]:
        """JSON dict without the timing fields, for comparisons."""
        return self.model_dump(mode="json", exclude=set(TIMING_FIELDS))
