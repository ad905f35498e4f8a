"""
Shared pytest fixtures for the card recommender test suite.

Provides:
  - Factory fixtures (``make_card``, ``make_points_card``, ``make_rule``,
    ``make_profile``, ``make_txn``) that build valid domain objects with
    sensible defaults, overridable per test.
  - ``sample_catalog``: a small, mixed ``CatalogSnapshot`` covering cashback
    and points cards, caps, merchant rules and a rotating rule.
  - ``sample_transactions``: a year of categorized transactions.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

import pytest

from card_recommender.catalog.loader import CatalogSnapshot
from card_recommender.models.card import (
    AcceleratedRewardRule,
    CardCatalogEntry,
    CashbackRewards,
    EligibilityRequirements,
    FeeStructure,
    IncomeRequirement,
    PointsConversion,
    PointsRewards,
)
from card_recommender.models.transaction import (
    CategorySpend,
    MerchantSpend,
    SpendingProfile,
    Transaction,
)


# ── Builders ──────────────────────────────────────────────────────────────────

def _rule(**fields) -> AcceleratedRewardRule:
    return AcceleratedRewardRule(**fields)


def _cashback_card(
    card_id: str = "card-a",
    *,
    issuer: str = "bank-a",
    base_rate: float = 1.0,
    rules: tuple[AcceleratedRewardRule, ...] | list[AcceleratedRewardRule] = (),
    annual_fee: float = 0.0,
    min_income: Optional[float] = None,
    min_credit_score: Optional[int] = None,
    **fields,
) -> CardCatalogEntry:
    fields.setdefault("name", card_id.replace("-", " ").title())
    return CardCatalogEntry(
        id=card_id,
        issuer=issuer,
        fee_structure=FeeStructure(annual_fee=annual_fee),
        eligibility=EligibilityRequirements(
            minimum_income=IncomeRequirement(salaried=min_income) if min_income else None,
            minimum_credit_score=min_credit_score,
        ),
        reward_structure=CashbackRewards(
            reward_currency="cashback",
            base_reward_rate=base_rate,
            accelerated_rules=tuple(rules),
        ),
        **fields,
    )


def _points_card(
    card_id: str = "points-a",
    *,
    issuer: str = "bank-p",
    base_rate: float = 2.0,
    conversion_rate: float = 0.25,
    alternate_conversion_rate: Optional[float] = None,
    rules: tuple[AcceleratedRewardRule, ...] | list[AcceleratedRewardRule] = (),
    annual_fee: float = 0.0,
    **fields,
) -> CardCatalogEntry:
    fields.setdefault("name", card_id.replace("-", " ").title())
    return CardCatalogEntry(
        id=card_id,
        issuer=issuer,
        fee_structure=FeeStructure(annual_fee=annual_fee),
        reward_structure=PointsRewards(
            reward_currency="reward_points",
            base_reward_rate=base_rate,
            points_conversion=PointsConversion(
                conversion_rate=conversion_rate,
                alternate_conversion_rate=alternate_conversion_rate,
            ),
            accelerated_rules=tuple(rules),
        ),
        **fields,
    )


def _profile(
    spend: dict[str, float],
    *,
    months: int = 12,
    merchants: Optional[dict[str, dict[str, float]]] = None,
    period_end: date = date(2025, 12, 31),
    flags: tuple[str, ...] | list[str] = (),
) -> SpendingProfile:
    """Build a profile directly from category totals (and optional merchants)."""
    merchants = merchants or {}
    total = sum(spend.values())
    categories: list[CategorySpend] = []
    for cat_id, amount in spend.items():
        rows = tuple(
            MerchantSpend(merchant=name, total_spent=amt, transaction_count=1)
            for name, amt in sorted(
                merchants.get(cat_id, {}).items(), key=lambda kv: (-kv[1], kv[0])
            )
        )
        categories.append(
            CategorySpend(
                category_id=cat_id,
                total_spent=amount,
                transaction_count=max(1, len(rows)),
                monthly_average=amount / months,
                percentage=round(amount / total * 100.0, 2) if total else 0.0,
                top_merchants=tuple(r.merchant for r in rows[:5]),
                merchants=rows,
            )
        )
    categories.sort(key=lambda c: (-c.total_spent, c.category_id))
    return SpendingProfile(
        categories=tuple(categories),
        total_spent=total,
        transaction_count=sum(c.transaction_count for c in categories),
        months_spanned=months,
        period_end=period_end,
        flags=tuple(flags),
    )


def _txn(
    day: date,
    amount: float,
    category_id: Optional[str] = "dining",
    merchant: Optional[str] = None,
    mcc_code: Optional[str] = None,
) -> Transaction:
    return Transaction(
        transaction_date=day,
        amount=amount,
        category_id=category_id,
        merchant=merchant,
        mcc_code=mcc_code,
    )


# ── Factory fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def make_rule() -> Callable[..., AcceleratedRewardRule]:
    return _rule


@pytest.fixture
def make_card() -> Callable[..., CardCatalogEntry]:
    """Cashback card factory: ``make_card("id", base_rate=1.0, rules=[...])``."""
    return _cashback_card


@pytest.fixture
def make_points_card() -> Callable[..., CardCatalogEntry]:
    return _points_card


@pytest.fixture
def make_profile() -> Callable[..., SpendingProfile]:
    """Profile factory: ``make_profile({"dining": 50000}, months=12)``."""
    return _profile


@pytest.fixture
def make_txn() -> Callable[..., Transaction]:
    return _txn


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def sample_catalog() -> CatalogSnapshot:
    """Five valid cards from four issuers."""
    cards = (
        _cashback_card(
            "dining-plus",
            issuer="alpha",
            base_rate=1.0,
            annual_fee=500.0,
            rules=[_rule(category_id="dining", reward_rate=5.0, description="5% dining")],
            popularity_score=70.0,
            customer_satisfaction=4.2,
        ),
        _cashback_card(
            "shop-saver",
            issuer="beta",
            base_rate=1.0,
            rules=[
                _rule(
                    category_id="online_shopping",
                    reward_rate=5.0,
                    capping_limit=2000.0,
                    capping_period="monthly",
                    description="5% online",
                ),
            ],
            is_lifetime_free=True,
            popularity_score=85.0,
            customer_satisfaction=4.5,
        ),
        _cashback_card(
            "alpha-basic",
            issuer="alpha",
            base_rate=1.5,
            popularity_score=40.0,
        ),
        _points_card(
            "travel-miles",
            issuer="gamma",
            base_rate=2.0,
            conversion_rate=0.5,
            alternate_conversion_rate=1.0,
            annual_fee=3000.0,
            rules=[_rule(category_id="travel", reward_rate=10.0, description="5X travel")],
            popularity_score=60.0,
        ),
        _cashback_card(
            "grocer-q4",
            issuer="delta",
            base_rate=1.0,
            rules=[
                _rule(
                    category_id="grocery",
                    reward_rate=6.0,
                    quarter_active=(4,),
                    description="Festive grocery",
                ),
            ],
            popularity_score=55.0,
        ),
    )
    return CatalogSnapshot(cards=cards)


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Twelve months (Jan-Dec 2025) of dining, shopping, grocery and travel."""
    txns: list[Transaction] = []
    for month in range(1, 13):
        txns.append(_txn(date(2025, month, 5), 4000.0, "dining", "Swiggy"))
        txns.append(_txn(date(2025, month, 12), 3000.0, "online_shopping", "Amazon"))
        txns.append(_txn(date(2025, month, 20), 2500.0, "grocery", "BigBasket"))
    txns.append(_txn(date(2025, 6, 1), 20000.0, "travel", "MakeMyTrip"))
    txns.append(_txn(date(2025, 7, 3), -1500.0, "online_shopping", "Amazon"))
    return txns
