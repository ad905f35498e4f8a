"""
Recommendation ranker: orders scored cards and shapes the final list.

Usage flow
----------
1. Build one ``ScoredCandidate`` per evaluated card (engine does this).
2. rank_candidates(candidates, config)
   -> RankingOutcome(ranked=[...], near_misses=[...])

Steps, in order
---------------
1. Exclusion: cards failing hard eligibility or a caller filter (including
   the minimum return on the annual fee) go to the near-miss list with their
   reasons. Nothing is dropped without a trace.
2. Sort: score desc, annual savings desc, card id asc.
3. Diversity: at most one card per issuer in the top ``diversity_top_n``
   (default 3), unless fewer than that many distinct issuers are eligible.
   Displaced cards move to the near-miss list, so the list stays sorted.
4. Threshold: cards under ``min_score_threshold`` become near misses. If no
   card clears it, the top ``fallback_count`` are kept instead.
5. Truncate to ``max_recommendations``; overflow becomes near misses.
6. Ranks 1..N follow list order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from card_recommender.config import RankingConfig
from card_recommender.models.card import CardCatalogEntry
from card_recommender.models.evaluation import CardEvaluation
from card_recommender.models.recommendation import RecommendationCriteria, ScoreBreakdown
from card_recommender.recommendations.eligibility import EligibilityAssessment

logger = logging.getLogger(__name__)


@dataclass
class ScoredCandidate:
    """One evaluated, scored card awaiting ranking.

    Attributes:
        card:        Catalog entry.
        evaluation:  Reward evaluation for the request profile.
        breakdown:   Composite score.
        eligibility: Eligibility and filter outcome.
        rank:        1-based rank, set by ``rank_candidates``; 0 until then.
    """

    card:        CardCatalogEntry
    evaluation:  CardEvaluation
    breakdown:   ScoreBreakdown
    eligibility: EligibilityAssessment
    rank:        int = 0

    @property
    def card_id(self) -> str:
        return self.card.id

    @property
    def issuer(self) -> str:
        return self.card.issuer.lower()

    @property
    def score(self) -> float:
        return self.breakdown.total_score

    @property
    def annual_savings(self) -> float:
        return self.evaluation.annual_savings


@dataclass
class NearMissEntry:
    """A candidate left out of the list, with human-readable reasons."""

    candidate: ScoredCandidate
    reasons:   tuple[str, ...]


@dataclass
class RankingOutcome:
    ranked:      list[ScoredCandidate] = field(default_factory=list)
    near_misses: list[NearMissEntry] = field(default_factory=list)


def sort_key(candidate: ScoredCandidate) -> tuple[float, float, str]:
    """Score desc, annual savings desc, card id asc."""
    return (-candidate.score, -candidate.annual_savings, candidate.card_id)


def rank_candidates(
    candidates: list[ScoredCandidate],
    config: RankingConfig | None = None,
    criteria: RecommendationCriteria | None = None,
) -> RankingOutcome:
    """Filter, order and rank ``candidates``.

    Args:
        candidates: Every scored card of the request, any order.
        config:     Ranking configuration. Defaults to ``RankingConfig()``.
        criteria:   Caller criteria; only ``min_roi`` is read here, the rest
                    is already folded into each candidate's eligibility.

    Returns:
        ``RankingOutcome`` with ``ranked`` sorted by score descending and
        ranks assigned 1..N, and ``near_misses`` sorted the same way.
    """
    config = config or RankingConfig()
    outcome = RankingOutcome()

    eligible: list[ScoredCandidate] = []
    min_roi = criteria.min_roi if criteria else None
    for cand in candidates:
        reasons = cand.eligibility.reasons if cand.eligibility.excluded else ()
        roi = cand.evaluation.yearly_roi
        if min_roi is not None and roi is not None and roi < min_roi:
            reasons += (
                f"Annual savings return {roi:.0f}% of the fee, below your minimum "
                f"of {min_roi:.0f}%",
            )
        if reasons:
            outcome.near_misses.append(NearMissEntry(cand, reasons))
        else:
            eligible.append(cand)

    eligible.sort(key=sort_key)
    ordered, displaced = apply_issuer_diversity(eligible, config.diversity_top_n)
    outcome.near_misses.extend(displaced)

    passing = [c for c in ordered if c.score >= config.min_score_threshold]
    if passing:
        for cand in ordered:
            if cand.score < config.min_score_threshold:
                outcome.near_misses.append(NearMissEntry(cand, (
                    f"Score {cand.score:.1f} is below the minimum of "
                    f"{config.min_score_threshold:.1f}",
                )))
    else:
        passing = ordered[: config.fallback_count]
        if passing:
            logger.info(
                "No card reached min score %.1f; falling back to top %d.",
                config.min_score_threshold, len(passing),
            )
        for cand in ordered[config.fallback_count:]:
            outcome.near_misses.append(NearMissEntry(cand, (
                f"Score {cand.score:.1f} is below the minimum of "
                f"{config.min_score_threshold:.1f}",
            )))

    for cand in passing[config.max_recommendations:]:
        outcome.near_misses.append(NearMissEntry(cand, (
            f"Ranked outside the top {config.max_recommendations}",
        )))
    outcome.ranked = passing[: config.max_recommendations]

    for position, cand in enumerate(outcome.ranked, start=1):
        cand.rank = position

    outcome.near_misses.sort(key=lambda nm: sort_key(nm.candidate))
    logger.info(
        "Ranked %d card(s); %d near miss(es).",
        len(outcome.ranked), len(outcome.near_misses),
    )
    return outcome


def apply_issuer_diversity(
    ordered: list[ScoredCandidate],
    top_n: int,
) -> tuple[list[ScoredCandidate], list[NearMissEntry]]:
    """Keep at most one card per issuer among the first ``top_n`` positions.

    Skipped when fewer than ``top_n`` distinct issuers are present.

    Args:
        ordered: Eligible candidates, already sorted by ``sort_key``.
        top_n:   Size of the diversified head of the list.

    Returns:
        (kept candidates in order, displaced candidates as near misses)
    """
    distinct = {c.issuer for c in ordered}
    if top_n <= 0 or len(distinct) < top_n:
        return list(ordered), []

    head: list[ScoredCandidate] = []
    tail: list[ScoredCandidate] = []
    displaced: list[NearMissEntry] = []
    seen_issuers: set[str] = set()

    for cand in ordered:
        if len(head) < top_n:
            if cand.issuer in seen_issuers:
                displaced.append(NearMissEntry(cand, (
                    f"A higher-scoring {cand.card.issuer} card already appears in the "
                    f"top {top_n} (one card per issuer)",
                )))
                continue
            seen_issuers.add(cand.issuer)
            head.append(cand)
        else:
            tail.append(cand)

    return head + tail, displaced
