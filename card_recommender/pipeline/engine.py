"""
Recommendation engine: runs the full pipeline for one request.

    SpendingAggregator -> {RewardEvaluator + eligibility}* (bounded pool)
        -> ScoreCalculator* -> RecommendationRanker -> {ExplanationGenerator}*

Concurrency
-----------
Each card is evaluated in a worker thread (``asyncio.to_thread``) behind an
``asyncio.Semaphore(max_workers)``; results are collected with
``asyncio.as_completed`` and re-ordered by catalog position, so completion
order never leaks into the output. Nothing is shared between workers except
frozen inputs.

Cancellation
------------
One ``CancellationToken`` and/or one deadline per request. On cancel or
timeout every pending task is cancelled, all partial results are dropped
and ``RecommendationTimeoutError`` is raised.

Usage::

    engine = RecommendationEngine(config)
    response = engine.recommend(transactions, snapshot, criteria)
    payload = response.to_json_dict()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Sequence
from typing import Optional, Union
from uuid import uuid4

from card_recommender.catalog.loader import CatalogSnapshot
from card_recommender.config import AppConfig
from card_recommender.errors import InsufficientDataError, RecommendationTimeoutError
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.evaluation import CardEvaluation
from card_recommender.models.recommendation import (
    CardComparison,
    ComparisonOptions,
    NearMiss,
    Recommendation,
    RecommendationCriteria,
    RecommendationResponse,
    RecommendationSummary,
    SkippedCard,
)
from card_recommender.models.transaction import SpendingProfile, Transaction
from card_recommender.recommendations.eligibility import EligibilityAssessment, assess_eligibility
from card_recommender.recommendations.comparison import compare_cards, select_top
from card_recommender.recommendations.explainer import explain
from card_recommender.recommendations.ranker import ScoredCandidate, rank_candidates
from card_recommender.recommendations.scorer import (
    ValueRange,
    compute_score,
    fee_breakeven_months,
    first_year_value,
)
from card_recommender.rewards.evaluator import evaluate_card
from card_recommender.spending.aggregator import aggregate_spending, summarize_spending
from card_recommender.taxonomy.card_taxonomy import confidence_level_for
from card_recommender.utils.time_utils import quarter_of, utcnow

logger = logging.getLogger(__name__)

SpendingInput = Union[SpendingProfile, Sequence[Transaction]]

_EvaluatedCard = tuple[CardCatalogEntry, CardEvaluation, EligibilityAssessment]


class CancellationToken:
    """Thread-safe, one-way cancellation flag shared with a running request."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RecommendationEngine:
    """Stateless per-request pipeline over a validated catalog.

    Attributes:
        config: Application configuration; only its engine, scoring, ranking
            and explanation sections are read.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or AppConfig()

    # ── Public API ────────────────────────────────────────────────────────────

    def recommend(
        self,
        spending: SpendingInput,
        catalog: CatalogSnapshot,
        criteria: Optional[RecommendationCriteria] = None,
        *,
        flags: Sequence[str] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> RecommendationResponse:
        """Synchronous wrapper around ``recommend_async``.

        Must not be called from inside a running event loop; use
        ``await recommend_async(...)`` there.
        """
        return asyncio.run(
            self.recommend_async(
                spending, catalog, criteria, flags=flags, cancel_token=cancel_token
            )
        )

    async def recommend_async(
        self,
        spending: SpendingInput,
        catalog: CatalogSnapshot,
        criteria: Optional[RecommendationCriteria] = None,
        *,
        flags: Sequence[str] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> RecommendationResponse:
        """Run the pipeline and return a complete response.

        Args:
            spending:     A ``SpendingProfile`` or raw transactions.
            catalog:      Validated catalog snapshot.
            criteria:     Caller filters and applicant facts.
            flags:        Conditions the caller vouches for (merged into the
                          profile's flags).
            cancel_token: Optional cooperative cancellation flag.

        Returns:
            ``RecommendationResponse``.

        Raises:
            InsufficientDataError: No usable spend in ``spending``, or no way
                to tell the evaluation quarter (see ``_evaluation_quarter``).
            RecommendationTimeoutError: Cancelled or past the deadline.
        """
        started = time.perf_counter()
        run_slug = str(uuid4())
        criteria = criteria or RecommendationCriteria()
        token = cancel_token or CancellationToken()
        logger.info(
            "Recommendation run starting | cards=%d | run_slug=%s", len(catalog), run_slug
        )

        profile = self._build_profile(spending, flags)
        quarter = self._evaluation_quarter(profile)

        evaluated = await self._evaluate_catalog(
            catalog, profile, criteria, quarter, token
        )
        if token.cancelled:
            raise RecommendationTimeoutError("Recommendation request was cancelled.")

        candidates = self._score(evaluated, profile, criteria)
        outcome = rank_candidates(candidates, self.config.ranking, criteria)

        recommendations = tuple(
            self._build_recommendation(cand, profile) for cand in outcome.ranked
        )
        near_misses = tuple(
            NearMiss(
                card_id=nm.candidate.card_id,
                card_name=nm.candidate.card.name,
                issuer=nm.candidate.card.issuer,
                score=nm.candidate.score,
                cons=nm.reasons,
            )
            for nm in outcome.near_misses
        )

        skipped = tuple(catalog.skipped)
        warnings = self._collect_warnings(evaluated, skipped)

        response = RecommendationResponse(
            recommendations=recommendations,
            near_misses=near_misses,
            skipped_cards=skipped,
            warnings=warnings,
            summary=self._summarize(recommendations, profile),
            spending_analysis=summarize_spending(profile),
            processing_time_ms=round((time.perf_counter() - started) * 1000.0, 3),
            generated_at=utcnow(),
        )
        logger.info(
            "Recommendation run completed | recommended=%d | near_misses=%d | "
            "skipped=%d | %.1f ms | run_slug=%s",
            len(recommendations), len(near_misses), len(skipped),
            response.processing_time_ms, run_slug,
        )
        return response

    def compare(
        self,
        spending: SpendingInput,
        catalog: CatalogSnapshot,
        options: Optional[ComparisonOptions] = None,
        *,
        flags: Sequence[str] = (),
    ) -> tuple[CardComparison, ...]:
        """Side-by-side money figures for every card, best first-year value first.

        No scoring, eligibility or diversity is applied; ``options`` only
        filters by fee and ROI and picks the ordering.

        Raises:
            InsufficientDataError: Same conditions as ``recommend_async``.
        """
        profile = self._build_profile(spending, flags)
        rows = compare_cards(
            catalog,
            profile,
            evaluation_quarter=self._evaluation_quarter(profile),
            baseline_rate=self.config.engine.baseline_reward_rate,
        )
        return select_top(rows, options)

    # ── Stages ────────────────────────────────────────────────────────────────

    def _build_profile(self, spending: SpendingInput, flags: Sequence[str]) -> SpendingProfile:
        if not isinstance(spending, SpendingProfile):
            return aggregate_spending(list(spending), flags=flags)
        if not spending.categories or spending.total_spent <= 0:
            raise InsufficientDataError(
                "Spending profile has no categorized spend; cannot recommend."
            )
        return spending.with_flags(list(flags)) if flags else spending

    def _evaluation_quarter(self, profile: SpendingProfile) -> int:
        """Configured quarter, else the quarter of the profile's last transaction.

        A hand-built profile without ``period_end`` needs
        ``engine.evaluation_quarter``; the wall clock is never used, so the
        same inputs always evaluate rotating rules the same way.
        """
        if self.config.engine.evaluation_quarter is not None:
            return self.config.engine.evaluation_quarter
        if profile.period_end is not None:
            return quarter_of(profile.period_end)
        raise InsufficientDataError(
            "Spending profile has no period_end; set engine.evaluation_quarter "
            "to evaluate quarter-rotating rewards."
        )

    async def _evaluate_catalog(
        self,
        catalog: CatalogSnapshot,
        profile: SpendingProfile,
        criteria: RecommendationCriteria,
        quarter: int,
        token: CancellationToken,
    ) -> list[_EvaluatedCard]:
        """Evaluate every card in a bounded pool; results in catalog order."""
        if not catalog.cards:
            return []

        workers = min(self.config.engine.max_workers, len(catalog.cards))
        semaphore = asyncio.Semaphore(workers)
        deadline = self.config.engine.deadline_seconds

        async def _run_one(index: int, card: CardCatalogEntry):
            async with semaphore:
                if token.cancelled:
                    raise RecommendationTimeoutError("Recommendation request was cancelled.")
                result = await asyncio.to_thread(
                    self._evaluate_one, card, profile, criteria, quarter, catalog.taxonomy
                )
                return index, card, result

        tasks = [
            asyncio.ensure_future(_run_one(i, card)) for i, card in enumerate(catalog.cards)
        ]
        collected: list[tuple[int, _EvaluatedCard]] = []

        try:
            for next_done in asyncio.as_completed(tasks, timeout=deadline):
                index, card, (evaluation, eligibility) = await next_done
                if token.cancelled:
                    raise RecommendationTimeoutError("Recommendation request was cancelled.")
                collected.append((index, (card, evaluation, eligibility)))
        except asyncio.TimeoutError as exc:
            raise RecommendationTimeoutError(
                f"Recommendation exceeded its {deadline}s deadline; partial results discarded."
            ) from exc
        finally:
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        collected.sort(key=lambda item: item[0])
        return [item for _, item in collected]

    def _evaluate_one(
        self,
        card: CardCatalogEntry,
        profile: SpendingProfile,
        criteria: RecommendationCriteria,
        quarter: int,
        taxonomy: frozenset[str],
    ) -> tuple[CardEvaluation, EligibilityAssessment]:
        """Worker body: evaluation + eligibility for one card (thread-safe, pure)."""
        evaluation = evaluate_card(
            card,
            profile,
            evaluation_quarter=quarter,
            taxonomy=taxonomy,
            baseline_rate=self.config.engine.baseline_reward_rate,
        )
        return evaluation, assess_eligibility(card, criteria)

    def _score(
        self,
        evaluated: list[_EvaluatedCard],
        profile: SpendingProfile,
        criteria: RecommendationCriteria,
    ) -> list[ScoredCandidate]:
        value_range = ValueRange.from_values(
            first_year_value(evaluation, card) for card, evaluation, _ in evaluated
        )
        return [
            ScoredCandidate(
                card=card,
                evaluation=evaluation,
                breakdown=compute_score(
                    card, evaluation, profile, value_range, eligibility,
                    criteria=criteria, config=self.config.scoring,
                ),
                eligibility=eligibility,
            )
            for card, evaluation, eligibility in evaluated
        ]

    def _build_recommendation(
        self,
        cand: ScoredCandidate,
        profile: SpendingProfile,
    ) -> Recommendation:
        ev = cand.evaluation
        card = cand.card
        explanation = explain(
            cand,
            profile,
            config=self.config.explanation,
            scoring=self.config.scoring,
            baseline_rate=self.config.engine.baseline_reward_rate,
        )
        return Recommendation(
            card_id=card.id,
            card_name=card.name,
            issuer=card.issuer,
            rank=cand.rank,
            score=cand.score,
            score_breakdown=cand.breakdown,
            annual_savings=ev.annual_savings,
            annual_earnings=ev.annual_earnings,
            window_earnings=ev.window_earnings,
            months_evaluated=ev.months_spanned,
            annual_fee=card.annual_fee,
            signup_bonus_value=ev.signup_bonus_value or None,
            fee_breakeven_months=fee_breakeven_months(ev, card),
            yearly_roi=ev.yearly_roi,
            alternate_annual_earnings=ev.alternate_annual_earnings,
            benefit_breakdown=ev.categories,
            primary_reason=explanation.primary_reason,
            pros=explanation.pros,
            cons=explanation.cons,
            confidence_score=explanation.confidence_score,
        )

    # ── Response assembly ─────────────────────────────────────────────────────

    @staticmethod
    def _collect_warnings(
        evaluated: list[_EvaluatedCard],
        skipped: tuple[SkippedCard, ...],
    ) -> tuple[str, ...]:
        warnings: list[str] = []
        for _, evaluation, _ in evaluated:
            warnings.extend(evaluation.warnings)
        if skipped:
            warnings.append(
                f"{len(skipped)} card(s) skipped due to invalid reward data"
            )
        return tuple(warnings)

    @staticmethod
    def _summarize(
        recommendations: tuple[Recommendation, ...],
        profile: SpendingProfile,
    ) -> RecommendationSummary:
        if not recommendations:
            return RecommendationSummary(categories_analyzed=len(profile.categories))

        top = recommendations[0]
        avg_score = sum(r.score for r in recommendations) / len(recommendations)
        avg_conf = sum(r.confidence_score for r in recommendations) / len(recommendations)
        return RecommendationSummary(
            top_recommendation=top.card_name,
            potential_savings=top.annual_savings,
            average_score=round(avg_score, 2),
            categories_analyzed=len(profile.categories),
            confidence_level=confidence_level_for(avg_conf),
        )
