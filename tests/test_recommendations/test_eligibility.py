"""
Tests for card_recommender/recommendations/eligibility.py.

What we test
------------
1. Income and credit-score requirements: pass, fail, and unverified.
2. Employment type selects the matching income requirement.
3. Caller filters: max fee, preferred network, business and inactive cards.
4. Missing network with a requested preferred network excludes the card.
5. certainty = verified / applicable constraints (1.0 when none apply).
"""

from __future__ import annotations

import pytest

from card_recommender.models.card import EligibilityRequirements, IncomeRequirement
from card_recommender.models.recommendation import RecommendationCriteria
from card_recommender.recommendations.eligibility import (
    EligibilityAssessment,
    assess_eligibility,
)


# ── Hard eligibility ──────────────────────────────────────────────────────────

class TestIncome:
    def test_income_meets_requirement(self, make_card):
        card = make_card(min_income=300000.0)
        result = assess_eligibility(card, RecommendationCriteria(annual_income=500000.0))

        assert not result.excluded
        assert result.certainty == 1.0

    def test_income_below_requirement(self, make_card):
        card = make_card(min_income=600000.0)
        result = assess_eligibility(card, RecommendationCriteria(annual_income=500000.0))

        assert result.excluded
        assert "600,000" in result.failures[0]

    def test_unknown_income_is_unverified_not_excluded(self, make_card):
        result = assess_eligibility(make_card(min_income=300000.0), RecommendationCriteria())

        assert not result.excluded
        assert result.unverified == ("annual_income",)
        assert result.certainty == 0.0

    def test_self_employed_requirement(self, make_card):
        card = make_card().model_copy(update={
            "eligibility": EligibilityRequirements(
                minimum_income=IncomeRequirement(salaried=300000.0, self_employed=800000.0),
            ),
        })
        salaried = RecommendationCriteria(annual_income=500000.0)
        self_employed = RecommendationCriteria(annual_income=500000.0, employment_type="self_employed")

        assert not assess_eligibility(card, salaried).excluded
        assert assess_eligibility(card, self_employed).excluded


class TestCreditScore:
    def test_score_below_requirement(self, make_card):
        result = assess_eligibility(
            make_card(min_credit_score=750), RecommendationCriteria(credit_score=700)
        )
        assert result.failures == ("Requires a credit score of at least 750",)

    def test_tier_maps_to_score(self, make_card):
        result = assess_eligibility(
            make_card(min_credit_score=750), RecommendationCriteria(credit_score="good")
        )
        assert not result.excluded

    def test_partial_verification(self, make_card):
        card = make_card(min_income=300000.0, min_credit_score=700)
        result = assess_eligibility(card, RecommendationCriteria(credit_score=780))

        assert result.constraints_total == 2
        assert result.constraints_verified == 1
        assert result.certainty == pytest.approx(0.5)


# ── Caller filters ────────────────────────────────────────────────────────────

class TestFilters:
    def test_no_constraints_full_certainty(self, make_card):
        result = assess_eligibility(make_card())
        assert result == EligibilityAssessment()
        assert result.certainty == 1.0

    def test_max_annual_fee(self, make_card):
        result = assess_eligibility(
            make_card(annual_fee=2500.0), RecommendationCriteria(max_annual_fee=1000.0)
        )
        assert result.filter_exclusions
        assert result.excluded

    def test_preferred_network_mismatch(self, make_card):
        result = assess_eligibility(
            make_card(network="amex"), RecommendationCriteria(preferred_network="visa")
        )
        assert "amex" in result.filter_exclusions[0]

    def test_preferred_network_match(self, make_card):
        result = assess_eligibility(
            make_card(network="visa"), RecommendationCriteria(preferred_network="visa")
        )
        assert not result.excluded

    def test_missing_network_excluded_when_filter_requested(self, make_card):
        result = assess_eligibility(make_card(), RecommendationCriteria(preferred_network="visa"))

        assert result.excluded
        assert "network" in result.unverified

    def test_missing_network_fine_without_filter(self, make_card):
        assert not assess_eligibility(make_card(), RecommendationCriteria()).excluded

    def test_business_card_requires_opt_in(self, make_card):
        card = make_card(is_business=True)
        assert assess_eligibility(card).excluded
        assert not assess_eligibility(card, RecommendationCriteria(include_business_cards=True)).excluded

    def test_inactive_card_requires_opt_in(self, make_card):
        card = make_card(is_active=False)
        assert assess_eligibility(card).excluded
        assert not assess_eligibility(card, RecommendationCriteria(include_inactive_cards=True)).excluded

    def test_reasons_combine_failures_and_filters(self, make_card):
        card = make_card(min_credit_score=800, annual_fee=5000.0)
        result = assess_eligibility(
            card, RecommendationCriteria(credit_score=700, max_annual_fee=1000.0)
        )
        assert len(result.reasons) == 2
