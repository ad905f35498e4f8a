"""
RewardEvaluator: category-by-category earnings of one card on one profile.

Algorithm (per profile category)
--------------------------------
1. Candidate rules. A rule is a candidate when it is active in the evaluation
   quarter, all of its conditions hold, and it targets the category:

     - a rule **with** merchant patterns is merchant-scoped: it targets the
       category when any merchant seen there matches a pattern, and it earns
       only on spend at those merchants;
     - a rule **without** merchant patterns is category-scoped: it targets
       the category when ``category_id`` matches, and earns on all of it.

   Rules whose ``category_id`` is not in the taxonomy are skipped up front
   (``UnknownCategoryReferenceError``, reported as a card warning).

2. Precedence. Merchant-scoped over category-scoped, then higher
   ``reward_rate``, then earlier catalog position. Exactly one rule applies;
   rules never stack.

3. No candidate → the whole category earns ``base_reward_rate``.

4. Caps. The rule's ``capping_limit`` is scaled to the evaluation window
   (``limit × months / period_months``). Spend above it earns the base rate,
   not zero, and is reported as ``capped_amount_excluded``.

5. Conversion. ``value = spend × rate / 100 × conversion_rate``. Cashback
   converts at 1. Points/miles use the primary rate; the alternate rate is
   exposed as ``alternate_earned_value`` and never averaged in.

Window totals are annualized with ``12 / months_spanned`` into separately
named fields. The function is pure: identical inputs give identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from card_recommender.errors import UnknownCategoryReferenceError
from card_recommender.models.card import AcceleratedRewardRule, CardCatalogEntry
from card_recommender.models.evaluation import CardEvaluation, CategoryEvaluation
from card_recommender.models.transaction import CategorySpend, SpendingProfile
from card_recommender.rewards.conditions import unmet_conditions
from card_recommender.rewards.merchants import matching_merchants
from card_recommender.taxonomy.category_taxonomy import DEFAULT_CATEGORY_TAXONOMY
from card_recommender.utils.time_utils import annualization_factor, scale_cap_to_window

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_RATE = 1.0


@dataclass(frozen=True)
class _Candidate:
    """A rule that applies to one category, with the spend it covers."""

    index:        int
    rule:         AcceleratedRewardRule
    kind:         str      # "merchant" | "category"
    scoped_spend: float

    @property
    def sort_key(self) -> tuple[int, float, int]:
        return (0 if self.kind == "merchant" else 1, -self.rule.reward_rate, self.index)


def evaluate_card(
    card: CardCatalogEntry,
    profile: SpendingProfile,
    *,
    evaluation_quarter: int,
    taxonomy: frozenset[str] = DEFAULT_CATEGORY_TAXONOMY,
    baseline_rate: float = DEFAULT_BASELINE_RATE,
) -> CardEvaluation:
    """Evaluate ``card`` against ``profile``.

    Args:
        card:               Validated catalog entry.
        profile:            Spending profile (window of ``months_spanned``).
        evaluation_quarter: Calendar quarter (1-4) for rotating rules.
        taxonomy:           Known category ids; rules outside it are skipped.
        baseline_rate:      Rate (%) of the user's current generic card.

    Returns:
        ``CardEvaluation`` with one row per profile category.
    """
    rewards = card.reward_structure
    conversion = rewards.conversion_rate
    alt_conversion = rewards.alternate_conversion_rate
    months = profile.months_spanned

    usable, warnings = _usable_rules(card, taxonomy)
    unmet: set[str] = set()

    rows: list[CategoryEvaluation] = []
    for category in profile.categories:
        candidates = _candidates_for(
            category, usable, profile, evaluation_quarter, unmet
        )
        chosen = min(candidates, key=lambda c: c.sort_key) if candidates else None
        rows.append(
            _evaluate_category(
                category,
                chosen,
                base_rate=rewards.base_reward_rate,
                conversion=conversion,
                alt_conversion=alt_conversion,
                baseline_rate=baseline_rate,
                months=months,
            )
        )

    factor = annualization_factor(months)
    window_earnings = sum(r.earned_value for r in rows)
    window_baseline = sum(r.baseline_earned_value for r in rows)
    window_savings = sum(r.savings for r in rows)

    alternate_annual: Optional[float] = None
    if alt_conversion is not None:
        alternate_annual = round(
            sum(r.alternate_earned_value or 0.0 for r in rows) * factor, 2
        )

    annual_savings = round(window_savings * factor, 2)

    evaluation = CardEvaluation(
        card_id=card.id,
        months_spanned=months,
        evaluation_quarter=evaluation_quarter,
        categories=tuple(rows),
        window_earnings=round(window_earnings, 2),
        window_baseline_earnings=round(window_baseline, 2),
        annual_earnings=round(window_earnings * factor, 2),
        annual_baseline_earnings=round(window_baseline * factor, 2),
        annual_savings=annual_savings,
        alternate_annual_earnings=alternate_annual,
        signup_bonus_value=signup_bonus_value(card),
        yearly_roi=yearly_roi(annual_savings, card.annual_fee),
        unmet_conditions=tuple(sorted(unmet)),
        warnings=tuple(warnings),
    )
    logger.debug(
        "Evaluated card=%s | window=%.2f | annual=%.2f | quarter=%d",
        card.id, evaluation.window_earnings, evaluation.annual_earnings, evaluation_quarter,
    )
    return evaluation


def yearly_roi(annual_savings: float, annual_fee: float) -> Optional[float]:
    """Annual savings as a percentage of the annual fee; ``None`` without a fee."""
    if annual_fee <= 0:
        return None
    return round(annual_savings / annual_fee * 100.0, 2)


def signup_bonus_value(card: CardCatalogEntry) -> float:
    """Currency value of the card's welcome benefits (primary conversion)."""
    conversion = card.reward_structure.conversion_rate
    total = 0.0
    for benefit in card.welcome_benefits:
        if benefit.value_unit == "reward_units":
            total += benefit.benefit_value * conversion
        else:
            total += benefit.benefit_value
    return round(total, 2)


# ── Internal helpers ──────────────────────────────────────────────────────────

def _check_rule_category(
    card: CardCatalogEntry,
    index: int,
    rule: AcceleratedRewardRule,
    taxonomy: frozenset[str],
) -> None:
    if rule.category_id is not None and rule.category_id not in taxonomy:
        raise UnknownCategoryReferenceError(card.id, rule.category_id, index)


def _usable_rules(
    card: CardCatalogEntry,
    taxonomy: frozenset[str],
) -> tuple[list[tuple[int, AcceleratedRewardRule]], list[str]]:
    """Rules that reference known categories, plus warnings for the rest."""
    usable: list[tuple[int, AcceleratedRewardRule]] = []
    warnings: list[str] = []
    for index, rule in enumerate(card.reward_structure.accelerated_rules):
        try:
            _check_rule_category(card, index, rule, taxonomy)
        except UnknownCategoryReferenceError as exc:
            logger.warning("%s", exc)
            warnings.append(str(exc))
            continue
        usable.append((index, rule))
    return usable, warnings


def _candidates_for(
    category: CategorySpend,
    rules: list[tuple[int, AcceleratedRewardRule]],
    profile: SpendingProfile,
    quarter: int,
    unmet_sink: set[str],
) -> list[_Candidate]:
    candidates: list[_Candidate] = []
    for index, rule in rules:
        if not rule.is_active_in(quarter):
            continue

        if rule.merchant_patterns:
            hits = matching_merchants(category, rule.merchant_patterns)
            if not hits:
                continue
            kind = "merchant"
            scoped = sum(m.total_spent for m in hits)
        elif rule.category_id == category.category_id:
            kind = "category"
            scoped = category.total_spent
        else:
            continue

        missing = unmet_conditions(rule.conditions, profile, category.category_id)
        if missing:
            unmet_sink.update(missing)
            continue

        candidates.append(_Candidate(index=index, rule=rule, kind=kind, scoped_spend=scoped))
    return candidates


def _evaluate_category(
    category: CategorySpend,
    chosen: Optional[_Candidate],
    *,
    base_rate: float,
    conversion: float,
    alt_conversion: Optional[float],
    baseline_rate: float,
    months: int,
) -> CategoryEvaluation:
    spent = category.total_spent

    accelerated = 0.0
    excluded = 0.0
    card_rate = base_rate
    if chosen is not None:
        rule = chosen.rule
        card_rate = rule.reward_rate
        scoped = min(chosen.scoped_spend, spent)
        accelerated = scoped
        if rule.capping_limit is not None and rule.capping_period is not None:
            window_cap = scale_cap_to_window(rule.capping_limit, rule.capping_period, months)
            accelerated = min(scoped, window_cap)
            excluded = scoped - accelerated

    base_spend = spent - accelerated
    units = accelerated * card_rate / 100.0 + base_spend * base_rate / 100.0
    earned = units * conversion
    baseline = spent * baseline_rate / 100.0

    return CategoryEvaluation(
        category_id=category.category_id,
        spent_amount=spent,
        current_rate=baseline_rate,
        card_rate=card_rate,
        base_rate=base_rate,
        accelerated_spend=round(accelerated, 2),
        capped_amount_excluded=round(excluded, 2),
        earned_value=round(earned, 2),
        alternate_earned_value=(
            round(units * alt_conversion, 2) if alt_conversion is not None else None
        ),
        baseline_earned_value=round(baseline, 2),
        savings=round(max(0.0, earned - baseline), 2),
        applied_rule_index=chosen.index if chosen is not None else None,
        match_kind=chosen.kind if chosen is not None else "base",
        rule_description=chosen.rule.description if chosen is not None else "",
    )
