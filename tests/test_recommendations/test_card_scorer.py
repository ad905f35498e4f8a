"""
Tests for card_recommender/recommendations/scorer.py.

What we test
------------
1. ValueRange normalization (including the degenerate single-card range).
2. first_year_value and fee_breakeven_months helpers.
3. Each sub-score formula on hand-computed inputs.
4. Bonuses and penalties recorded by name and applied in points.
5. total_score clamped to [0, 100] at both ends.
"""

from __future__ import annotations

import pytest

from card_recommender.config import ScoringConfig
from card_recommender.models.card import WelcomeBenefit
from card_recommender.models.recommendation import RecommendationCriteria
from card_recommender.recommendations.eligibility import EligibilityAssessment
from card_recommender.recommendations.scorer import (
    ValueRange,
    category_alignment,
    compute_score,
    fee_breakeven_months,
    first_year_value,
)
from card_recommender.rewards.evaluator import evaluate_card

_DEGENERATE = ValueRange(low=0.0, high=0.0)


def _score(card, profile, *, value_range=_DEGENERATE, eligibility=None, criteria=None, config=None):
    ev = evaluate_card(card, profile, evaluation_quarter=4)
    return compute_score(
        card, ev, profile, value_range,
        eligibility or EligibilityAssessment(),
        criteria=criteria,
        config=config,
    )


def _names(adjustments) -> set[str]:
    return {a.name for a in adjustments}


# ── ValueRange ────────────────────────────────────────────────────────────────

class TestValueRange:
    def test_from_values(self):
        vr = ValueRange.from_values([300.0, -100.0, 900.0])
        assert vr.low == -100.0
        assert vr.high == 900.0

    def test_normalize_midpoint(self):
        assert ValueRange(low=0.0, high=100.0).normalize(50.0) == pytest.approx(0.5)

    def test_normalize_clamps(self):
        vr = ValueRange(low=0.0, high=100.0)
        assert vr.normalize(-10.0) == 0.0
        assert vr.normalize(500.0) == 1.0

    def test_degenerate_range_scores_one(self):
        assert ValueRange.from_values([42.0]).normalize(42.0) == 1.0
        assert ValueRange.from_values([]).normalize(0.0) == 1.0


# ── Helpers ───────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_first_year_value(self, make_card, make_profile):
        card = make_card(
            base_rate=2.0,
            annual_fee=500.0,
            welcome_benefits=(WelcomeBenefit(benefit_value=1000.0),),
        )
        ev = evaluate_card(card, make_profile({"general": 100000.0}), evaluation_quarter=1)
        # 2,000 earned + 1,000 welcome - 500 fee
        assert first_year_value(ev, card) == pytest.approx(2500.0)

    def test_breakeven_fee_free(self, make_card, make_profile):
        card = make_card()
        ev = evaluate_card(card, make_profile({"general": 1000.0}), evaluation_quarter=1)
        assert fee_breakeven_months(ev, card) == 0.0

    def test_breakeven_months(self, make_card, make_profile):
        card = make_card(base_rate=2.0, annual_fee=1200.0)
        ev = evaluate_card(card, make_profile({"general": 120000.0}), evaluation_quarter=1)
        assert fee_breakeven_months(ev, card) == pytest.approx(6.0)

    def test_breakeven_never(self, make_card, make_profile):
        card = make_card(base_rate=0.0, annual_fee=1200.0)
        ev = evaluate_card(card, make_profile({"general": 120000.0}), evaluation_quarter=1)
        assert fee_breakeven_months(ev, card) is None


# ── Sub-scores ────────────────────────────────────────────────────────────────

class TestSubScores:
    def test_fee_free_card_scores_full_fee_efficiency(self, make_card, make_profile):
        bd = _score(make_card(), make_profile({"dining": 1000.0}))
        assert bd.fee_efficiency_score == 1.0

    def test_fee_efficiency_from_breakeven(self, make_card, make_profile):
        card = make_card(base_rate=2.0, annual_fee=1200.0)
        bd = _score(card, make_profile({"general": 120000.0}))
        assert bd.fee_efficiency_score == pytest.approx(0.75)

    def test_fee_efficiency_zero_when_never_recovered(self, make_card, make_profile):
        card = make_card(base_rate=0.0, annual_fee=1200.0)
        bd = _score(card, make_profile({"general": 120000.0}))
        assert bd.fee_efficiency_score == 0.0

    def test_brand_preference(self, make_card, make_profile):
        card = make_card(popularity_score=80.0, customer_satisfaction=4.0)
        bd = _score(card, make_profile({"dining": 1000.0}))
        assert bd.brand_preference_score == pytest.approx(0.8)

    def test_brand_preference_neutral_satisfaction(self, make_card, make_profile):
        bd = _score(make_card(popularity_score=50.0), make_profile({"dining": 1000.0}))
        assert bd.brand_preference_score == pytest.approx(0.5)

    def test_accessibility(self, make_card, make_profile):
        card = make_card(min_income=420000.0, min_credit_score=720)
        bd = _score(card, make_profile({"dining": 1000.0}))
        # credit 1 - 420/600 = 0.3, income 1 - 0.42 = 0.58
        assert bd.accessibility_score == pytest.approx(0.44)

    def test_accessibility_without_requirements(self, make_card, make_profile):
        assert _score(make_card(), make_profile({"dining": 1.0})).accessibility_score == 1.0

    def test_first_year_value_normalized_over_range(self, make_card, make_profile):
        card = make_card(base_rate=1.0)
        profile = make_profile({"general": 50000.0})   # earns 500
        bd = _score(card, profile, value_range=ValueRange(low=0.0, high=1000.0))
        assert bd.first_year_value_score == pytest.approx(0.5)


class TestCategoryAlignment:
    def test_spend_weighted_share_of_top_categories(self, make_card, make_rule, make_profile):
        card = make_card(rules=[
            make_rule(category_id="dining", reward_rate=3.0),
            make_rule(category_id="fuel", reward_rate=3.0),
            make_rule(category_id="travel", reward_rate=3.0),
        ])
        profile = make_profile(
            {"dining": 60000.0, "grocery": 30000.0, "fuel": 10000.0, "travel": 5000.0}
        )
        ev = evaluate_card(card, profile, evaluation_quarter=1)

        # travel is outside the top 3, so only dining + fuel count.
        assert category_alignment(ev, profile, 3) == pytest.approx(0.7)

    def test_uncategorized_excluded(self, make_card, make_rule, make_profile):
        card = make_card(rules=[make_rule(category_id="dining", reward_rate=3.0)])
        profile = make_profile({"uncategorized": 90000.0, "dining": 10000.0})
        ev = evaluate_card(card, profile, evaluation_quarter=1)
        assert category_alignment(ev, profile, 3) == 1.0

    def test_nothing_categorized(self, make_card, make_profile):
        profile = make_profile({"uncategorized": 1000.0})
        ev = evaluate_card(make_card(), profile, evaluation_quarter=1)
        assert category_alignment(ev, profile, 3) == 0.0


# ── Total, bonuses and penalties ──────────────────────────────────────────────

class TestTotalScore:
    def test_weighted_total(self, make_card, make_profile):
        # fyv 1.0, alignment 0, fee 1.0, brand 0.5, access 1.0
        bd = _score(make_card(), make_profile({"dining": 1000.0}))
        assert bd.total_score == pytest.approx(70.0)
        assert bd.bonus_factors == ()
        assert bd.penalty_factors == ()

    def test_clamped_at_100(self, make_card, make_rule, make_profile):
        card = make_card(
            rules=[make_rule(category_id="dining", reward_rate=5.0)],
            is_lifetime_free=True,
            popularity_score=100.0,
            customer_satisfaction=5.0,
        )
        bd = _score(card, make_profile({"dining": 10000.0}))

        assert _names(bd.bonus_factors) == {"lifetime_free"}
        assert bd.total_score == 100.0

    def test_clamped_at_zero(self, make_card, make_profile):
        card = make_card(annual_fee=5000.0, popularity_score=0.0, is_active=False)
        eligibility = EligibilityAssessment(failures=("Requires more income",))
        bd = _score(
            card, make_profile({"general": 10000.0}),
            value_range=ValueRange(low=0.0, high=10000.0),
            eligibility=eligibility,
        )

        assert {"ineligible", "inactive", "high_fee_low_benefit"} <= _names(bd.penalty_factors)
        assert bd.total_score == 0.0

    def test_preferred_issuer_bonus(self, make_card, make_profile):
        criteria = RecommendationCriteria(preferred_issuer="Bank-A")
        bd = _score(make_card(issuer="bank-a"), make_profile({"dining": 1000.0}), criteria=criteria)

        assert _names(bd.bonus_factors) == {"preferred_issuer"}
        assert bd.total_score == pytest.approx(90.0)

    def test_other_issuer_gets_no_bonus(self, make_card, make_profile):
        criteria = RecommendationCriteria(preferred_issuer="bank-z")
        bd = _score(make_card(issuer="bank-a"), make_profile({"dining": 1000.0}), criteria=criteria)
        assert bd.bonus_factors == ()

    def test_limited_acceptance_penalty(self, make_card, make_profile):
        bd = _score(make_card(network="amex"), make_profile({"dining": 1000.0}))
        assert _names(bd.penalty_factors) == {"limited_acceptance"}
        assert bd.total_score == pytest.approx(65.0)

    def test_poor_satisfaction_penalty(self, make_card, make_profile):
        bd = _score(make_card(customer_satisfaction=3.0), make_profile({"dining": 1000.0}))
        assert "poor_satisfaction" in _names(bd.penalty_factors)

    def test_uncategorized_dominance_penalty(self, make_card, make_profile):
        profile = make_profile({"uncategorized": 9000.0, "dining": 1000.0})
        bd = _score(make_card(), profile)
        assert "uncategorized_dominance" in _names(bd.penalty_factors)

    def test_custom_penalty_points(self, make_card, make_profile):
        config = ScoringConfig(penalties={"limited_acceptance": 30.0})
        bd = _score(make_card(network="amex"), make_profile({"dining": 1000.0}), config=config)
        assert bd.total_score == pytest.approx(40.0)

    @pytest.mark.parametrize("fee,rate", [(0.0, 1.0), (500.0, 2.0), (10000.0, 0.5), (2500.0, 5.0)])
    def test_sub_scores_in_unit_interval(self, make_card, make_profile, fee, rate):
        card = make_card(base_rate=rate, annual_fee=fee, customer_satisfaction=2.0)
        bd = _score(
            card, make_profile({"dining": 40000.0, "uncategorized": 90000.0}),
            value_range=ValueRange(low=-5000.0, high=5000.0),
        )
        for value in (
            bd.first_year_value_score,
            bd.category_alignment_score,
            bd.fee_efficiency_score,
            bd.brand_preference_score,
            bd.accessibility_score,
        ):
            assert 0.0 <= value <= 1.0
        assert 0.0 <= bd.total_score <= 100.0
