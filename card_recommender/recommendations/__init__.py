"""
Recommendation stages: turn reward evaluations into a ranked, explained list.

Modules
-------
eligibility : EligibilityAssessment + assess_eligibility() — issuer
              requirements and caller filters.
scorer      : ValueRange + compute_score() — five weighted sub-scores plus
              named bonus/penalty adjustments, clamped to 0-100.
ranker      : ScoredCandidate + rank_candidates() — sort, issuer diversity,
              threshold/fallback, near-miss list.
explainer   : explain() — primary reason, pros/cons, confidence score.
comparison  : compare_cards() + select_top() — side-by-side money figures
              ordered by first-year value.
reporter    : JSON / CSV / Parquet output of a response.
"""
