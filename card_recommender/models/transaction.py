"""
Transaction and spending-profile models.

``Transaction`` is one categorized statement line. Amounts are signed with
debits positive; refunds and credits are negative. Zero amounts carry no
information and are ignored by aggregation.

``SpendingProfile`` is the immutable aggregate the rest of the engine reads.
It is rebuilt whenever the transaction set changes; nothing mutates it in
place. ``flags`` lists conditions the caller vouches for (for example
``amazon_prime_membership``) that cannot be derived from spend data.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Transaction(BaseModel):
    """One categorized transaction.

    Attributes:
        transaction_date: Posting date. Accepts ``date`` as an input alias.
        amount: Signed amount; debits positive.
        category_id: Resolved spend category, or ``None`` if uncategorized.
        mcc_code: Merchant Category Code, if known.
        merchant: Merchant display name, if known.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    transaction_date: date = Field(
        validation_alias=AliasChoices("transaction_date", "date"),
    )
    amount: float
    category_id: Optional[str] = None
    mcc_code: Optional[str] = None
    merchant: Optional[str] = None

    @field_validator("category_id", "mcc_code", "merchant")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("category_id")
    @classmethod
    def lowercase_category(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class MerchantSpend(BaseModel):
    """Spend at one merchant within one category."""

    model_config = ConfigDict(frozen=True)

    merchant: str
    total_spent: float
    transaction_count: int


class MonthlySpend(BaseModel):
    """Spend within one calendar month (``YYYY-MM``)."""

    model_config = ConfigDict(frozen=True)

    month: str
    total_spent: float
    transaction_count: int
    top_category: Optional[str] = None


class CategorySpend(BaseModel):
    """Aggregated spend for one category.

    Attributes:
        category_id: Category id (``uncategorized`` for unresolved lines).
        total_spent: Sum of positive amounts in the window.
        transaction_count: Number of positive transactions.
        monthly_average: ``total_spent / months_spanned`` of the profile.
        percentage: Share of the profile's total spend, 0-100.
        top_merchants: Up to five merchant names by spend, highest first.
        merchants: Per-merchant totals, highest spend first.
        mcc_codes: Distinct MCC codes seen, sorted.
    """

    model_config = ConfigDict(frozen=True)

    category_id: str
    total_spent: float
    transaction_count: int
    monthly_average: float
    percentage: float = 0.0
    top_merchants: tuple[str, ...] = ()
    merchants: tuple[MerchantSpend, ...] = ()
    mcc_codes: tuple[str, ...] = ()

    @field_validator("total_spent", "monthly_average")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Category spend must be >= 0, got {v}.")
        return v


class SpendingProfile(BaseModel):
    """Immutable per-request aggregate of a user's spending.

    Categories are ordered by ``total_spent`` descending, ties by id.

    Attributes:
        categories: Per-category aggregates.
        total_spent: Sum over all categories, ``uncategorized`` included.
        transaction_count: Number of positive transactions counted.
        months_spanned: Inclusive calendar months in the window (>= 1).
        period_start: Earliest counted transaction date.
        period_end: Latest counted transaction date.
        monthly_totals: Spend per calendar month, chronological.
        refund_total: Absolute sum of negative amounts (excluded from spend).
        flags: Conditions the caller vouches for, sorted and de-duplicated.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[CategorySpend, ...]
    total_spent: float
    transaction_count: int
    months_spanned: int
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    monthly_totals: tuple[MonthlySpend, ...] = ()
    refund_total: float = 0.0
    flags: tuple[str, ...] = ()

    @field_validator("months_spanned")
    @classmethod
    def validate_months(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"months_spanned must be >= 1, got {v}.")
        return v

    @field_validator("flags")
    @classmethod
    def normalize_flags(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(sorted({f.strip().lower() for f in v if f and f.strip()}))

    @model_validator(mode="after")
    def validate_unique_categories(self) -> "SpendingProfile":
        ids = [c.category_id for c in self.categories]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate category_id in spending profile.")
        return self

    def category(self, category_id: str) -> Optional[CategorySpend]:
        """Return the aggregate for ``category_id``, or ``None``."""
        for cat in self.categories:
            if cat.category_id == category_id:
                return cat
        return None

    @property
    def category_ids(self) -> tuple[str, ...]:
        return tuple(c.category_id for c in self.categories)

    def has_flag(self, name: str) -> bool:
        return name.strip().lower() in self.flags

    def with_flags(self, flags: tuple[str, ...] | list[str]) -> "SpendingProfile":
        """Return a copy with ``flags`` added to the existing ones."""
        data = self.model_dump()
        data["flags"] = tuple(self.flags) + tuple(flags)
        return SpendingProfile.model_validate(data)
