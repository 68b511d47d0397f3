"""Threshold policies applied by callers on top of similarity scores."""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, TypeVar

from ..constants import get_matching_config
from .scorer import RecordInput, SimilarityScorer

T = TypeVar("T")


@dataclass(frozen=True)
class ThresholdPolicy:
    """Accept a score when it reaches the threshold."""

    threshold: float

    def accepts(self, score: float) -> bool:
        return score >= self.threshold

    @classmethod
    def for_recognition(cls) -> "ThresholdPolicy":
        """Looser policy used when searching the gallery."""
        return cls(get_matching_config().recognition_threshold)

    @classmethod
    def for_update(cls) -> "ThresholdPolicy":
        """Stricter policy used to confirm a photo replacement."""
        return cls(get_matching_config().update_threshold)


@dataclass
class MatchResult(Generic[T]):
    """Outcome of applying a policy to one or more scores."""

    matched: bool
    similarity: float
    candidate: Optional[T] = None
    threshold: float = 0.0


def find_best_match(
    query: RecordInput,
    candidates: Iterable[T],
    policy: ThresholdPolicy,
    scorer: Optional[SimilarityScorer] = None,
    features_of: Callable[[T], RecordInput] = lambda c: c,
) -> MatchResult[T]:
    """Score `query` against every candidate and keep the best.

    Candidates are scored one at a time in iteration order. Only a score
    strictly greater than the best so far replaces it, so the first
    candidate wins ties and a candidate scoring 0 is never selected.

    Args:
        query: Query record (parsed or serialized)
        candidates: Gallery entries
        policy: Threshold applied to the best score
        scorer: Scorer to use (default scorer if None)
        features_of: Extracts the record from a candidate

    Returns:
        MatchResult with the best candidate and score, matched or not
    """
    scorer = scorer or SimilarityScorer()

    best: Optional[T] = None
    best_similarity = 0.0
    for candidate in candidates:
        similarity = scorer.score(query, features_of(candidate))
        if similarity > best_similarity:
            best_similarity = similarity
            best = candidate

    return MatchResult(
        matched=best is not None and policy.accepts(best_similarity),
        similarity=best_similarity,
        candidate=best,
        threshold=policy.threshold,
    )


def confirm_same_person(
    current: RecordInput,
    new: RecordInput,
    policy: ThresholdPolicy,
    scorer: Optional[SimilarityScorer] = None,
) -> MatchResult[None]:
    """Check whether a new record is close enough to the enrolled one."""
    scorer = scorer or SimilarityScorer()
    similarity = scorer.score(current, new)
    return MatchResult(
        matched=policy.accepts(similarity),
        similarity=similarity,
        threshold=policy.threshold,
    )
