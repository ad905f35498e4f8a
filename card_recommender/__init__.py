"""
Card Recommender: ranks credit cards against a user's categorized spending.

Pipeline
--------
SpendingAggregator -> {RewardEvaluator -> ScoreCalculator}* ->
RecommendationRanker -> {ExplanationGenerator}*

Entry points: ``card_recommender.pipeline.engine.RecommendationEngine`` for
library use and the ``card-recommender`` CLI (``card_recommender.cli``).
"""

__version__ = "0.1.0"
