"""
Request pipeline: ``RecommendationEngine`` wires aggregation, evaluation,
scoring, ranking and explanation together for one request.
"""
