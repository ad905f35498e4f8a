"""
ExplanationGenerator: primary reason, pros/cons and confidence for a ranked card.

Primary reason
    The dominant positive factor, compared in score points: each sub-score
    contributes ``100 × weight × value`` and each bonus its own points. The
    winning factor's template is filled with the card's top-earning
    category.

Pros / cons
    Fixed thresholds from ``ExplanationConfig`` (and ``high_annual_fee``
    from ``ScoringConfig``).

Confidence
    ``completeness_weight × data_completeness + eligibility_weight × certainty``
    where data completeness is the fraction of the user's categorized spend
    categories with a matched reward rule and certainty is the fraction of
    eligibility constraints that could be verified. Always in ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from card_recommender.config import ExplanationConfig, ScoringConfig
from card_recommender.models.evaluation import CategoryEvaluation
from card_recommender.models.transaction import SpendingProfile
from card_recommender.recommendations.ranker import ScoredCandidate
from card_recommender.recommendations.scorer import fee_breakeven_months, first_year_value
from card_recommender.taxonomy.card_taxonomy import LIMITED_ACCEPTANCE_NETWORKS
from card_recommender.taxonomy.category_taxonomy import is_alignment_category


@dataclass(frozen=True)
class Explanation:
    primary_reason:   str
    pros:             tuple[str, ...]
    cons:             tuple[str, ...]
    confidence_score: float


def explain(
    candidate: ScoredCandidate,
    profile: SpendingProfile,
    config: Optional[ExplanationConfig] = None,
    scoring: Optional[ScoringConfig] = None,
    baseline_rate: float = 1.0,
) -> Explanation:
    """Build the explanation for one ranked candidate.

    Args:
        candidate:     Ranked candidate (card, evaluation, score, eligibility).
        profile:       The request's spending profile.
        config:        Explanation thresholds.
        scoring:       Scoring config (weights and high-fee threshold).
        baseline_rate: Rate (%) of the user's current generic card.

    Returns:
        ``Explanation`` with a non-empty primary reason.
    """
    config = config or ExplanationConfig()
    scoring = scoring or ScoringConfig()
    return Explanation(
        primary_reason=build_primary_reason(candidate, scoring),
        pros=tuple(build_pros(candidate, config, baseline_rate)),
        cons=tuple(build_cons(candidate, profile, config, scoring)),
        confidence_score=confidence_score(candidate, profile, config),
    )


def build_primary_reason(candidate: ScoredCandidate, scoring: ScoringConfig) -> str:
    """Template the dominant positive factor with the top-earning category."""
    bd = candidate.breakdown
    w = scoring.weights
    card = candidate.card
    top = candidate.evaluation.top_earning_category
    cat_label = _label(top.category_id) if top is not None else "everyday"
    rate = top.card_rate if top is not None else card.reward_structure.base_reward_rate

    contributions: list[tuple[float, str]] = [
        (100.0 * w.first_year_value   * bd.first_year_value_score,   "first_year_value"),
        (100.0 * w.category_alignment * bd.category_alignment_score, "category_alignment"),
        (100.0 * w.fee_efficiency     * bd.fee_efficiency_score,     "fee_efficiency"),
        (100.0 * w.brand_preference   * bd.brand_preference_score,   "brand_preference"),
        (100.0 * w.accessibility      * bd.accessibility_score,      "accessibility"),
    ]
    contributions.extend((b.points, b.name) for b in bd.bonus_factors)
    # Highest points wins; ties resolved by factor name for determinism.
    _, factor = min(contributions, key=lambda c: (-c[0], c[1]))

    if factor == "first_year_value":
        value = first_year_value(candidate.evaluation, card)
        return f"Outstanding first-year value of {value:,.0f}, led by {cat_label} rewards"
    if factor == "category_alignment":
        return f"Excellent {cat_label} rewards ({rate:g}% earning rate)"
    if factor == "fee_efficiency":
        if card.annual_fee <= 0:
            return f"No annual fee with solid {cat_label} rewards"
        months = fee_breakeven_months(candidate.evaluation, card)
        return f"Annual fee recovered in {months:.1f} months through {cat_label} rewards"
    if factor == "brand_preference":
        return f"Popular, well-rated card with {cat_label} rewards"
    if factor == "accessibility":
        return f"Easy-to-meet eligibility with {cat_label} rewards"
    if factor == "lifetime_free":
        return f"Lifetime free card with {cat_label} rewards"
    if factor == "preferred_issuer":
        return f"From your preferred issuer {card.issuer}, strongest on {cat_label}"
    return f"Solid rewards on {cat_label} spending"


def build_pros(
    candidate: ScoredCandidate,
    config: ExplanationConfig,
    baseline_rate: float,
) -> list[str]:
    card = candidate.card
    ev = candidate.evaluation
    pros: list[str] = []

    if ev.annual_savings > 0:
        pros.append(
            f"Earns about {ev.annual_savings:,.0f} more a year than a "
            f"{baseline_rate:g}% card"
        )
    if card.is_lifetime_free:
        pros.append("Lifetime free: no joining or annual fee")
    elif card.annual_fee <= 0:
        pros.append("No annual fee")
    else:
        months = fee_breakeven_months(ev, card)
        if months is not None and months < config.quick_breakeven_months:
            pros.append(f"Annual fee recovered in {months:.1f} months")
    if ev.signup_bonus_value > 0:
        pros.append(f"Welcome benefits worth {ev.signup_bonus_value:,.0f}")

    top = ev.top_earning_category
    if top is not None and top.card_rate >= config.strong_rate_multiple * baseline_rate:
        pros.append(f"{top.card_rate:g}% rate on {_label(top.category_id)}")
    if ev.alternate_annual_earnings is not None and ev.alternate_annual_earnings > ev.annual_earnings:
        pros.append(
            f"Worth up to {ev.alternate_annual_earnings:,.0f} a year via alternate redemption"
        )
    return pros


def build_cons(
    candidate: ScoredCandidate,
    profile: SpendingProfile,
    config: ExplanationConfig,
    scoring: ScoringConfig,
) -> list[str]:
    card = candidate.card
    ev = candidate.evaluation
    cons: list[str] = []

    top_row = _user_top_category_row(candidate, profile)
    if top_row is not None and top_row.capped_amount_excluded > 0:
        cons.append(
            f"Spend cap on {_label(top_row.category_id)}: "
            f"{top_row.capped_amount_excluded:,.0f} earns only the base rate"
        )

    fee = card.annual_fee
    if fee > 0:
        months = fee_breakeven_months(ev, card)
        if fee >= scoring.high_annual_fee:
            cons.append(f"High annual fee of {fee:,.0f}")
        if months is None:
            cons.append("Projected rewards never recover the annual fee")
        elif months > config.slow_breakeven_months:
            cons.append(f"Takes {months:.0f} months of rewards to recover the annual fee")
    net = ev.annual_earnings - fee
    if net < 0:
        cons.append(f"Annual fee exceeds projected rewards by {-net:,.0f}")

    min_score = card.eligibility.minimum_credit_score
    if min_score is not None and min_score >= config.excellent_credit_score:
        cons.append(f"Requires excellent credit (score {min_score}+)")
    if ev.unmet_conditions:
        cons.append("Higher rates need: " + ", ".join(ev.unmet_conditions))
    if card.network is not None and card.network in LIMITED_ACCEPTANCE_NETWORKS:
        cons.append(f"{card.network.value.title()} has limited merchant acceptance")
    for field_name in candidate.eligibility.unverified:
        cons.append(f"Could not verify {field_name.replace('_', ' ')} eligibility")
    if not card.is_active:
        cons.append("Card is no longer offered by the issuer")
    return cons


def confidence_score(
    candidate: ScoredCandidate,
    profile: SpendingProfile,
    config: ExplanationConfig,
) -> float:
    """Weighted data completeness and eligibility certainty, in ``[0, 1]``."""
    categories = [c.category_id for c in profile.categories if is_alignment_category(c.category_id)]
    if categories:
        matched = candidate.evaluation.accelerated_category_ids
        completeness = sum(1 for c in categories if c in matched) / len(categories)
    else:
        completeness = 0.0
    value = (
        config.completeness_weight * completeness
        + config.eligibility_weight * candidate.eligibility.certainty
    )
    return round(max(0.0, min(1.0, value)), 4)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _label(category_id: str) -> str:
    return category_id.replace("_", " ")


def _user_top_category_row(
    candidate: ScoredCandidate,
    profile: SpendingProfile,
) -> Optional[CategoryEvaluation]:
    """Evaluation row of the user's highest-spend categorized category."""
    for cat in profile.categories:
        if is_alignment_category(cat.category_id):
            return candidate.evaluation.category(cat.category_id)
    return None
