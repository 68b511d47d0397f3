"""Feature extraction from detector output."""

import logging
import math
from typing import Any, Optional

from .serialization import serialize_record
from .types import EXTRACTION_ORDER, BoundingBox, DetectedFace, FeatureRecord, Landmark

logger = logging.getLogger(__name__)


def _finite_or(value: Any, default: float) -> float:
    number = float(value)
    return number if math.isfinite(number) else default


def _probability(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    number = float(value)
    if math.isnan(number):
        return None
    return min(max(number, 0.0), 1.0)


def extract_features(face: DetectedFace) -> FeatureRecord:
    """Build a feature record from one detected face.

    Every landmark type is queried in extraction order and only the ones
    the detector localized are kept. Classifier probabilities are copied
    only when present. A face with no landmarks yields a record with an
    empty landmark tuple.

    Detector values are normalized so the record always parses back:
    landmarks at non-finite positions count as not localized, non-finite
    box coordinates and angles read as 0, probabilities are clamped to
    [0, 1] and a NaN probability counts as absent.

    Args:
        face: Detected face value

    Returns:
        Immutable FeatureRecord
    """
    landmarks = []
    for landmark_type in EXTRACTION_ORDER:
        position = face.get_landmark(landmark_type)
        if position is None:
            continue
        x, y = float(position[0]), float(position[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            logger.warning(f"Dropping {landmark_type.name} at non-finite position ({x}, {y})")
            continue
        landmarks.append(Landmark(type=landmark_type, x=x, y=y))

    box = face.bounding_box
    return FeatureRecord(
        bounding_box=BoundingBox(
            left=_finite_or(box.left, 0.0),
            top=_finite_or(box.top, 0.0),
            right=_finite_or(box.right, 0.0),
            bottom=_finite_or(box.bottom, 0.0),
        ),
        head_euler_angle_x=_finite_or(face.head_euler_angle_x, 0.0),
        head_euler_angle_y=_finite_or(face.head_euler_angle_y, 0.0),
        head_euler_angle_z=_finite_or(face.head_euler_angle_z, 0.0),
        landmarks=tuple(landmarks),
        smiling_probability=_probability(face.smiling_probability),
        left_eye_open_probability=_probability(face.left_eye_open_probability),
        right_eye_open_probability=_probability(face.right_eye_open_probability),
    )


def extract_face_features(face: DetectedFace) -> str:
    """Extract features and return their canonical JSON serialization."""
    return serialize_record(extract_features(face))


class FeatureExtractor:
    """Injectable wrapper around the extraction functions."""

    def extract(self, face: DetectedFace) -> FeatureRecord:
        return extract_features(face)

    def extract_serialized(self, face: DetectedFace) -> str:
        return extract_face_features(face)
