"""Similarity scoring and threshold policies."""

from .scorer import (
    MAX_SCORE,
    Comparison,
    ComparisonStatus,
    SimilarityScorer,
    compare_faces,
    compare_records,
    compare_serialized,
    distance_to_similarity,
)
from .policy import MatchResult, ThresholdPolicy, confirm_same_person, find_best_match

__all__ = [
    # Scoring
    "MAX_SCORE", "Comparison", "ComparisonStatus", "SimilarityScorer",
    "compare_faces", "compare_records", "compare_serialized",
    "distance_to_similarity",
    # Policy
    "MatchResult", "ThresholdPolicy", "confirm_same_person", "find_best_match",
]
