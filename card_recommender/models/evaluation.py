"""
Reward-evaluation results.

``CategoryEvaluation`` rows are window figures: they cover exactly the months
in the spending profile. ``CardEvaluation`` carries both the window totals
and the annualized totals (``window × 12 / months_spanned``) under distinct,
explicitly labeled fields. Nothing downstream should mix the two.

Owned by the evaluation step; read-only for scoring, ranking and explanation.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

MatchKind = Literal["merchant", "category", "base"]


class CategoryEvaluation(BaseModel):
    """Earnings for one card on one spend category over the profile window.

    Attributes:
        category_id: The spend category.
        spent_amount: Category spend in the window.
        current_rate: Baseline rate (%) the user earns today.
        card_rate: Rate (%) of the applied rule, or the base rate.
        base_rate: The card's base rate (%).
        accelerated_spend: Spend that earned ``card_rate``.
        capped_amount_excluded: Spend pushed to base rate by a cap.
        earned_value: Currency value earned, primary conversion.
        alternate_earned_value: Value at the alternate conversion rate.
        baseline_earned_value: Value the baseline card would earn.
        savings: ``max(0, earned_value - baseline_earned_value)``.
        applied_rule_index: Catalog index of the applied rule, if any.
        match_kind: ``merchant``, ``category`` or ``base``.
        rule_description: Issuer text of the applied rule.
    """

    model_config = ConfigDict(frozen=True)

    category_id: str
    spent_amount: float
    current_rate: float
    card_rate: float
    base_rate: float
    accelerated_spend: float = 0.0
    capped_amount_excluded: float = 0.0
    earned_value: float
    alternate_earned_value: Optional[float] = None
    baseline_earned_value: float
    savings: float
    applied_rule_index: Optional[int] = None
    match_kind: MatchKind = "base"
    rule_description: str = ""

    @property
    def is_accelerated(self) -> bool:
        return self.applied_rule_index is not None


class CardEvaluation(BaseModel):
    """All per-category rows for one card plus window and annual totals.

    Attributes:
        card_id: Evaluated card.
        months_spanned: Window length used for annualization.
        evaluation_quarter: Quarter used for rotating rules.
        categories: One row per profile category, profile order.
        window_earnings: Sum of ``earned_value`` over the window.
        window_baseline_earnings: Baseline-card earnings over the window.
        annual_earnings: ``window_earnings`` annualized.
        annual_baseline_earnings: ``window_baseline_earnings`` annualized.
        annual_savings: Annualized sum of per-category savings.
        alternate_annual_earnings: Annualized alternate-conversion value.
        signup_bonus_value: One-time welcome benefit value (not annualized).
        yearly_roi: ``annual_savings`` as a percentage of the annual fee;
            ``None`` for fee-free cards.
        unmet_conditions: Conditions that blocked an otherwise matching rule.
        warnings: Rule-level data problems (rule skipped, card kept).
    """

    model_config = ConfigDict(frozen=True)

    card_id: str
    months_spanned: int
    evaluation_quarter: int
    categories: tuple[CategoryEvaluation, ...]
    window_earnings: float
    window_baseline_earnings: float
    annual_earnings: float
    annual_baseline_earnings: float
    annual_savings: float
    alternate_annual_earnings: Optional[float] = None
    signup_bonus_value: float = 0.0
    yearly_roi: Optional[float] = None
    unmet_conditions: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def category(self, category_id: str) -> Optional[CategoryEvaluation]:
        for row in self.categories:
            if row.category_id == category_id:
                return row
        return None

    @property
    def accelerated_category_ids(self) -> frozenset[str]:
        return frozenset(r.category_id for r in self.categories if r.is_accelerated)

    @property
    def top_earning_category(self) -> Optional[CategoryEvaluation]:
        """Row with the highest ``earned_value``; ties go to the lower id."""
        if not self.categories:
            return None
        return min(self.categories, key=lambda r: (-r.earned_value, r.category_id))
