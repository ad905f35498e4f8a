"""
Recommendation scoring: turns a ``CardEvaluation`` plus card metadata into a
0-100 ``ScoreBreakdown``.

Score formula
-------------
    total = 100 × (
          w_fyv   × first_year_value_score
        + w_align × category_alignment_score
        + w_fee   × fee_efficiency_score
        + w_brand × brand_preference_score
        + w_acc   × accessibility_score
    ) + Σ bonus points − Σ penalty points

clamped to ``[0, 100]``. Weights, bonus and penalty points come from
``ScoringConfig``; defaults are 0.40 / 0.25 / 0.20 / 0.10 / 0.05.

Component explanations
----------------------
first_year_value_score (0–1):
    annual earnings + signup bonus − annual fee, min–max normalized over
    every card evaluated in the same request (``ValueRange``). A degenerate
    range (single card, or all equal) scores 1.0.

category_alignment_score (0–1):
    Spend-weighted share of the user's top-N categories (``uncategorized``
    excluded) on which the card applies an accelerated rule.

fee_efficiency_score (0–1):
    1.0 when the annual fee is 0. Otherwise
    ``1 − breakeven_months / max_breakeven_months``; 0 if the card never
    earns its fee back.

brand_preference_score (0–1):
    0.7 × popularity/100 + 0.3 × satisfaction/5 (neutral 0.5 when the
    satisfaction rating is unknown).

accessibility_score (0–1):
    Mean of a credit component ``1 − (min_score − 300)/600`` and an income
    component ``1 − min_income/high_income_threshold``. Missing requirement
    → 1.0 for that component.

Every bonus and penalty is recorded by name; none is folded into a sub-score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from card_recommender.config import ScoringConfig
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.evaluation import CardEvaluation
from card_recommender.models.recommendation import (
    RecommendationCriteria,
    ScoreAdjustment,
    ScoreBreakdown,
)
from card_recommender.models.transaction import SpendingProfile
from card_recommender.recommendations.eligibility import EligibilityAssessment
from card_recommender.taxonomy.card_taxonomy import LIMITED_ACCEPTANCE_NETWORKS
from card_recommender.taxonomy.category_taxonomy import UNCATEGORIZED, is_alignment_category

_MIN_CREDIT_SCORE = 300.0
_CREDIT_SCORE_SPAN = 600.0
_POPULARITY_SHARE = 0.7
_SATISFACTION_SHARE = 0.3
_NEUTRAL_SATISFACTION = 0.5


@dataclass(frozen=True)
class ValueRange:
    """Catalog-wide range of first-year values for min–max normalization."""

    low:  float
    high: float

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "ValueRange":
        values = list(values)
        if not values:
            return cls(low=0.0, high=0.0)
        return cls(low=min(values), high=max(values))

    def normalize(self, value: float) -> float:
        span = self.high - self.low
        if span <= 1e-9:
            return 1.0
        return _clamp((value - self.low) / span, 0.0, 1.0)


def first_year_value(evaluation: CardEvaluation, card: CardCatalogEntry) -> float:
    """Annual earnings + signup bonus − annual fee."""
    return round(
        evaluation.annual_earnings + evaluation.signup_bonus_value - card.annual_fee, 2
    )


def fee_breakeven_months(
    evaluation: CardEvaluation,
    card: CardCatalogEntry,
) -> Optional[float]:
    """Months of projected earnings needed to cover the annual fee.

    Returns 0.0 for fee-free cards and ``None`` when the card earns nothing.
    """
    fee = card.annual_fee
    if fee <= 0:
        return 0.0
    monthly = evaluation.annual_earnings / 12.0
    if monthly <= 0:
        return None
    return round(fee / monthly, 2)


def compute_score(
    card:        CardCatalogEntry,
    evaluation:  CardEvaluation,
    profile:     SpendingProfile,
    value_range: ValueRange,
    eligibility: EligibilityAssessment,
    criteria:    Optional[RecommendationCriteria] = None,
    config:      Optional[ScoringConfig] = None,
) -> ScoreBreakdown:
    """Compute the composite score for one evaluated card.

    Args:
        card:        Catalog entry.
        evaluation:  Output of ``evaluate_card`` for this card.
        profile:     The request's spending profile.
        value_range: First-year value range across the evaluated catalog.
        eligibility: Output of ``assess_eligibility`` for this card.
        criteria:    Caller criteria (for the preferred-issuer bonus).
        config:      Scoring configuration. Defaults to ``ScoringConfig()``.

    Returns:
        ``ScoreBreakdown`` with ``total_score`` in ``[0, 100]``.
    """
    config = config or ScoringConfig()
    criteria = criteria or RecommendationCriteria()
    w = config.weights

    # ── Sub-scores ────────────────────────────────────────────────────────────
    fyv_score   = value_range.normalize(first_year_value(evaluation, card))
    align_score = category_alignment(evaluation, profile, config.top_category_count)

    breakeven = fee_breakeven_months(evaluation, card)
    if card.annual_fee <= 0:
        fee_score = 1.0
    elif breakeven is None:
        fee_score = 0.0
    else:
        fee_score = _clamp(1.0 - breakeven / config.max_breakeven_months, 0.0, 1.0)

    satisfaction = (
        card.customer_satisfaction / 5.0
        if card.customer_satisfaction is not None
        else _NEUTRAL_SATISFACTION
    )
    brand_score = _clamp(
        _POPULARITY_SHARE * card.popularity_score / 100.0 + _SATISFACTION_SHARE * satisfaction,
        0.0, 1.0,
    )

    access_score = _accessibility(card, config.high_income_threshold)

    weighted = (
        w.first_year_value     * fyv_score
        + w.category_alignment * align_score
        + w.fee_efficiency     * fee_score
        + w.brand_preference   * brand_score
        + w.accessibility      * access_score
    )

    # ── Bonuses ───────────────────────────────────────────────────────────────
    bonuses: list[ScoreAdjustment] = []
    if card.is_lifetime_free:
        bonuses.append(ScoreAdjustment(
            name="lifetime_free",
            points=config.bonuses.lifetime_free,
            reason="No joining or annual fee for life",
        ))
    if criteria.preferred_issuer and card.issuer.lower() == criteria.preferred_issuer:
        bonuses.append(ScoreAdjustment(
            name="preferred_issuer",
            points=config.bonuses.preferred_issuer,
            reason=f"Issued by your preferred issuer ({card.issuer})",
        ))

    # ── Penalties ─────────────────────────────────────────────────────────────
    p = config.penalties
    penalties: list[ScoreAdjustment] = []
    if eligibility.failures:
        penalties.append(ScoreAdjustment(
            name="ineligible", points=p.ineligible, reason="; ".join(eligibility.failures),
        ))
    if not card.is_active:
        penalties.append(ScoreAdjustment(
            name="inactive", points=p.inactive, reason="Card is no longer offered",
        ))
    if card.annual_fee >= config.high_annual_fee and evaluation.annual_earnings < card.annual_fee:
        penalties.append(ScoreAdjustment(
            name="high_fee_low_benefit",
            points=p.high_fee_low_benefit,
            reason=(
                f"Annual fee {card.annual_fee:,.0f} exceeds projected earnings "
                f"{evaluation.annual_earnings:,.0f}"
            ),
        ))
    if (
        card.customer_satisfaction is not None
        and card.customer_satisfaction < config.poor_satisfaction_threshold
    ):
        penalties.append(ScoreAdjustment(
            name="poor_satisfaction",
            points=p.poor_satisfaction,
            reason=f"Customer satisfaction {card.customer_satisfaction:.1f}/5",
        ))
    if card.network is not None and card.network in LIMITED_ACCEPTANCE_NETWORKS:
        penalties.append(ScoreAdjustment(
            name="limited_acceptance",
            points=p.limited_acceptance,
            reason=f"{card.network.value} has limited merchant acceptance",
        ))
    uncategorized = profile.category(UNCATEGORIZED)
    if (
        uncategorized is not None
        and profile.total_spent > 0
        and uncategorized.total_spent / profile.total_spent > config.uncategorized_dominance_share
    ):
        penalties.append(ScoreAdjustment(
            name="uncategorized_dominance",
            points=p.uncategorized_dominance,
            reason="Most spend is uncategorized; category matching is unreliable",
        ))

    total = (
        100.0 * weighted
        + sum(b.points for b in bonuses)
        - sum(x.points for x in penalties)
    )

    return ScoreBreakdown(
        total_score=round(_clamp(total, 0.0, 100.0), 2),
        first_year_value_score=round(fyv_score,  4),
        category_alignment_score=round(align_score, 4),
        fee_efficiency_score=round(fee_score,    4),
        brand_preference_score=round(brand_score, 4),
        accessibility_score=round(access_score,  4),
        bonus_factors=tuple(bonuses),
        penalty_factors=tuple(penalties),
    )


def category_alignment(
    evaluation: CardEvaluation,
    profile: SpendingProfile,
    top_n: int,
) -> float:
    """Spend-weighted share of the top-``top_n`` categories the card accelerates."""
    top = [c for c in profile.categories if is_alignment_category(c.category_id)][:top_n]
    denominator = sum(c.total_spent for c in top)
    if denominator <= 0:
        return 0.0
    accelerated = evaluation.accelerated_category_ids
    matched = sum(c.total_spent for c in top if c.category_id in accelerated)
    return _clamp(matched / denominator, 0.0, 1.0)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _accessibility(card: CardCatalogEntry, high_income: float) -> float:
    min_score = card.eligibility.minimum_credit_score
    credit = (
        1.0 if min_score is None
        else _clamp(1.0 - (min_score - _MIN_CREDIT_SCORE) / _CREDIT_SCORE_SPAN, 0.0, 1.0)
    )

    requirement = card.eligibility.minimum_income
    min_income = requirement.for_employment("salaried") if requirement else None
    income = (
        1.0 if not min_income or high_income <= 0
        else _clamp(1.0 - min_income / high_income, 0.0, 1.0)
    )
    return (credit + income) / 2.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
