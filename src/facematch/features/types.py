"""Face feature data types."""

import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)


class LandmarkType(IntEnum):
    """Anatomical face keypoints reported by the detector.

    The integer values are the identifiers written to serialized feature
    records, so they must never be renumbered.
    """
    MOUTH_BOTTOM = 0
    LEFT_CHEEK = 1
    LEFT_EAR = 3
    LEFT_EYE = 4
    MOUTH_LEFT = 5
    NOSE_BASE = 6
    RIGHT_CHEEK = 7
    RIGHT_EAR = 9
    RIGHT_EYE = 10
    MOUTH_RIGHT = 11

    @classmethod
    def from_name(cls, name: str) -> "LandmarkType":
        """Resolve a landmark name such as 'left_eye' or 'LEFT_EYE'."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown landmark type: {name!r}") from None


# Order in which landmarks are queried and written to a record
EXTRACTION_ORDER: Tuple[LandmarkType, ...] = (
    LandmarkType.LEFT_EYE,
    LandmarkType.RIGHT_EYE,
    LandmarkType.NOSE_BASE,
    LandmarkType.LEFT_CHEEK,
    LandmarkType.RIGHT_CHEEK,
    LandmarkType.MOUTH_LEFT,
    LandmarkType.MOUTH_RIGHT,
    LandmarkType.MOUTH_BOTTOM,
    LandmarkType.LEFT_EAR,
    LandmarkType.RIGHT_EAR,
)


@dataclass(frozen=True)
class BoundingBox:
    """Face region in source image pixel coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class Landmark:
    """A typed facial keypoint."""

    type: LandmarkType
    x: float
    y: float

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class FeatureRecord:
    """Comparable summary of one detected face.

    Only the landmarks take part in similarity scoring. Pose angles and
    classifier probabilities are carried for callers that need them.
    Probabilities are None when the detector did not supply them.
    """

    bounding_box: BoundingBox
    head_euler_angle_x: float = 0.0
    head_euler_angle_y: float = 0.0
    head_euler_angle_z: float = 0.0
    landmarks: Tuple[Landmark, ...] = ()
    smiling_probability: Optional[float] = None
    left_eye_open_probability: Optional[float] = None
    right_eye_open_probability: Optional[float] = None

    @property
    def has_landmarks(self) -> bool:
        """A record without landmarks carries no comparable identity."""
        return len(self.landmarks) > 0

    @property
    def landmark_types(self) -> FrozenSet[LandmarkType]:
        return frozenset(lm.type for lm in self.landmarks)

    def get_landmark(self, landmark_type: LandmarkType) -> Optional[Landmark]:
        """Return the first landmark of the given type, if present."""
        for lm in self.landmarks:
            if lm.type == landmark_type:
                return lm
        return None


@dataclass
class DetectedFace:
    """One face as reported by an external detector.

    `landmarks` is partial: the detector may fail to localize any point,
    in which case the type is simply missing from the mapping.
    """

    bounding_box: BoundingBox
    landmarks: Dict[LandmarkType, Tuple[float, float]] = field(default_factory=dict)
    head_euler_angle_x: float = 0.0
    head_euler_angle_y: float = 0.0
    head_euler_angle_z: float = 0.0
    smiling_probability: Optional[float] = None
    left_eye_open_probability: Optional[float] = None
    right_eye_open_probability: Optional[float] = None

    def get_landmark(self, landmark_type: LandmarkType) -> Optional[Tuple[float, float]]:
        """Return the (x, y) position of a landmark, or None if absent."""
        return self.landmarks.get(landmark_type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectedFace":
        """Build a detected face from a detector JSON payload.

        Landmarks may be given as a mapping of name or id to ``[x, y]``,
        or as a list of ``{"type", "x", "y"}`` objects. Unknown landmark
        names are skipped.

        Raises:
            ValueError: If a number is not finite or a probability is
                        outside [0, 1]
        """
        box = data.get("boundingBox") or {}
        bounding_box = BoundingBox(
            left=_finite(box.get("left", 0), "boundingBox.left"),
            top=_finite(box.get("top", 0), "boundingBox.top"),
            right=_finite(box.get("right", 0), "boundingBox.right"),
            bottom=_finite(box.get("bottom", 0), "boundingBox.bottom"),
        )

        raw_landmarks = data.get("landmarks") or {}
        if isinstance(raw_landmarks, dict):
            items = [(key, value[0], value[1]) for key, value in raw_landmarks.items()]
        else:
            items = [(lm["type"], lm["x"], lm["y"]) for lm in raw_landmarks]

        landmarks: Dict[LandmarkType, Tuple[float, float]] = {}
        for key, x, y in items:
            try:
                if isinstance(key, int) or (isinstance(key, str) and key.isdigit()):
                    landmark_type = LandmarkType(int(key))
                else:
                    landmark_type = LandmarkType.from_name(key)
            except ValueError:
                logger.warning(f"Skipping unknown landmark {key!r}")
                continue
            landmarks[landmark_type] = (_finite(x, f"{key}.x"), _finite(y, f"{key}.y"))

        return cls(
            bounding_box=bounding_box,
            landmarks=landmarks,
            head_euler_angle_x=_finite(data.get("headEulerAngleX", 0.0), "headEulerAngleX"),
            head_euler_angle_y=_finite(data.get("headEulerAngleY", 0.0), "headEulerAngleY"),
            head_euler_angle_z=_finite(data.get("headEulerAngleZ", 0.0), "headEulerAngleZ"),
            smiling_probability=_optional_probability(data, "smilingProbability"),
            left_eye_open_probability=_optional_probability(data, "leftEyeOpenProbability"),
            right_eye_open_probability=_optional_probability(data, "rightEyeOpenProbability"),
        )


def _finite(value: Any, name: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return number


def _optional_probability(data: Dict[str, Any], name: str) -> Optional[float]:
    value = data.get(name)
    if value is None:
        return None
    number = _finite(value, name)
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {number}")
    return number
