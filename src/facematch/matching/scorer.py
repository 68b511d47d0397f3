"""Landmark-geometry similarity between two feature records."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from ..constants import get_matching_config
from ..features.serialization import MalformedRecordError, parse_record
from ..features.types import FeatureRecord

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0


class ComparisonStatus(Enum):
    """Why a comparison produced the score it did.

    Only SCORED carries a meaningful similarity; every other status
    reports a score of 0 for compatibility with plain threshold checks.
    """
    SCORED = "scored"
    MALFORMED = "malformed"
    NO_LANDMARKS = "no_landmarks"
    NO_COMMON_LANDMARKS = "no_common_landmarks"


@dataclass(frozen=True)
class Comparison:
    """Result of comparing two feature records."""

    status: ComparisonStatus
    score: float = 0.0
    matched_landmarks: int = 0
    average_distance: Optional[float] = None

    @property
    def is_scorable(self) -> bool:
        return self.status == ComparisonStatus.SCORED

    def __float__(self) -> float:
        return self.score


def distance_to_similarity(average_distance: float, distance_scale: float = 100.0) -> float:
    """Map an average landmark distance in pixels to a score in (0, 100].

    0 px -> 100, `distance_scale` px -> 50, and the score tends to 0 as
    the distance grows. The mapping is not normalized by face size.
    """
    return (1.0 / (1.0 + average_distance / distance_scale)) * MAX_SCORE


def compare_records(
    record_a: FeatureRecord,
    record_b: FeatureRecord,
    distance_scale: float = 100.0,
) -> Comparison:
    """Compare two parsed records by their landmark positions.

    Each landmark of `record_a` is paired with the first landmark of the
    same type in `record_b`; types missing from `record_b` are skipped,
    not penalized. The pairing walks `record_a`, so the result is only
    guaranteed symmetric when both records hold the same landmark types.

    Args:
        record_a: Reference record
        record_b: Record searched for matching landmark types
        distance_scale: Displacement at which the score halves

    Returns:
        Comparison with status and score in [0, 100]
    """
    if not record_a.has_landmarks or not record_b.has_landmarks:
        return Comparison(ComparisonStatus.NO_LANDMARKS)

    points_a = []
    points_b = []
    for lm_a in record_a.landmarks:
        lm_b = record_b.get_landmark(lm_a.type)
        if lm_b is None:
            continue
        points_a.append(lm_a.position)
        points_b.append(lm_b.position)

    if not points_a:
        return Comparison(ComparisonStatus.NO_COMMON_LANDMARKS)

    with np.errstate(invalid="ignore", over="ignore"):
        distances = np.linalg.norm(
            np.asarray(points_a, dtype=np.float64) - np.asarray(points_b, dtype=np.float64),
            axis=1,
        )
        average_distance = float(distances.sum() / len(distances))

    if not math.isfinite(average_distance):
        logger.warning(f"Non-finite landmark distance: {average_distance}")
        return Comparison(ComparisonStatus.MALFORMED)

    return Comparison(
        status=ComparisonStatus.SCORED,
        score=distance_to_similarity(average_distance, distance_scale),
        matched_landmarks=len(distances),
        average_distance=average_distance,
    )


def compare_serialized(
    features_a: str,
    features_b: str,
    distance_scale: float = 100.0,
) -> Comparison:
    """Parse and compare two serialized records. Never raises."""
    try:
        record_a = parse_record(features_a)
        record_b = parse_record(features_b)
    except MalformedRecordError as e:
        logger.debug(f"Unscorable comparison: {e}")
        return Comparison(ComparisonStatus.MALFORMED)

    try:
        return compare_records(record_a, record_b, distance_scale)
    except (ArithmeticError, ValueError) as e:
        logger.warning(f"Similarity computation failed: {e}")
        return Comparison(ComparisonStatus.MALFORMED)


def compare_faces(features_a: str, features_b: str, distance_scale: float = 100.0) -> float:
    """Similarity of two serialized records as a plain number in [0, 100].

    Malformed input and incomparable records both score 0.
    """
    return compare_serialized(features_a, features_b, distance_scale).score


RecordInput = Union[str, FeatureRecord]


def _as_record(value: RecordInput) -> FeatureRecord:
    if isinstance(value, FeatureRecord):
        return value
    return parse_record(value)


class SimilarityScorer:
    """Stateless scorer bound to a distance scale.

    Safe to share between threads; each call only touches its arguments.
    """

    def __init__(self, distance_scale: Optional[float] = None):
        """Initialize scorer.

        Args:
            distance_scale: Displacement at which the score halves
                            (uses config default if None)
        """
        if distance_scale is None:
            distance_scale = get_matching_config().distance_scale
        if not math.isfinite(distance_scale) or distance_scale <= 0:
            raise ValueError(f"distance_scale must be positive and finite, got {distance_scale}")
        self.distance_scale = float(distance_scale)

    def compare(self, a: RecordInput, b: RecordInput) -> Comparison:
        """Compare two records given either parsed or serialized."""
        try:
            record_a = _as_record(a)
            record_b = _as_record(b)
        except MalformedRecordError as e:
            logger.debug(f"Unscorable comparison: {e}")
            return Comparison(ComparisonStatus.MALFORMED)
        return compare_records(record_a, record_b, self.distance_scale)

    def score(self, a: RecordInput, b: RecordInput) -> float:
        """Plain numeric similarity in [0, 100]."""
        return self.compare(a, b).score
