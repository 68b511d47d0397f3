"""Canonical JSON form of feature records.

Format:

    {
        "boundingBox": {"left": .., "top": .., "right": .., "bottom": ..},
        "headEulerAngleX": .., "headEulerAngleY": .., "headEulerAngleZ": ..,
        "landmarks": [{"type": 4, "x": .., "y": ..}, ...],
        "smilingProbability": ..,          (optional)
        "leftEyeOpenProbability": ..,      (optional)
        "rightEyeOpenProbability": ..      (optional)
    }

Parsers ignore unknown keys. Only ``landmarks`` is mandatory; a missing
bounding box or pose angle reads as zero.
"""

import json
import math
from typing import Any, Dict, Optional

from .types import BoundingBox, FeatureRecord, Landmark, LandmarkType

_BOX_KEYS = ("left", "top", "right", "bottom")

_OPTIONAL_KEYS = (
    ("smilingProbability", "smiling_probability"),
    ("leftEyeOpenProbability", "left_eye_open_probability"),
    ("rightEyeOpenProbability", "right_eye_open_probability"),
)


class MalformedRecordError(ValueError):
    """Raised when text is not a well-formed feature record."""


def record_to_dict(record: FeatureRecord) -> Dict[str, Any]:
    """Convert a record to its JSON-ready dictionary."""
    box = record.bounding_box
    data: Dict[str, Any] = {
        "boundingBox": {
            "left": box.left,
            "top": box.top,
            "right": box.right,
            "bottom": box.bottom,
        },
        "headEulerAngleX": record.head_euler_angle_x,
        "headEulerAngleY": record.head_euler_angle_y,
        "headEulerAngleZ": record.head_euler_angle_z,
        "landmarks": [
            {"type": int(lm.type), "x": lm.x, "y": lm.y}
            for lm in record.landmarks
        ],
    }
    for key, attr in _OPTIONAL_KEYS:
        value = getattr(record, attr)
        if value is not None:
            data[key] = value
    return data


def serialize_record(record: FeatureRecord) -> str:
    """Serialize a record to canonical JSON text."""
    return json.dumps(record_to_dict(record))


def _number(value: Any, where: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(f"{where} must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise MalformedRecordError(f"{where} is out of range") from None
    # json.loads accepts NaN and Infinity literals
    if not math.isfinite(number):
        raise MalformedRecordError(f"{where} must be finite, got {value!r}")
    return number


def _probability(data: Dict[str, Any], key: str) -> Optional[float]:
    if key not in data or data[key] is None:
        return None
    value = _number(data[key], key)
    if not 0.0 <= value <= 1.0:
        raise MalformedRecordError(f"{key} must be within [0, 1], got {value}")
    return value


def record_from_dict(data: Any) -> FeatureRecord:
    """Build a record from a decoded JSON object.

    Raises:
        MalformedRecordError: If required fields are missing or ill-typed
    """
    if not isinstance(data, dict):
        raise MalformedRecordError("Feature record must be a JSON object")

    raw_box = data.get("boundingBox", {})
    if not isinstance(raw_box, dict):
        raise MalformedRecordError("boundingBox must be an object")
    box = BoundingBox(*(
        _number(raw_box.get(key, 0), f"boundingBox.{key}") for key in _BOX_KEYS
    ))

    if "landmarks" not in data:
        raise MalformedRecordError("Missing landmarks")
    raw_landmarks = data["landmarks"]
    if not isinstance(raw_landmarks, list):
        raise MalformedRecordError("landmarks must be an array")

    landmarks = []
    for i, item in enumerate(raw_landmarks):
        if not isinstance(item, dict):
            raise MalformedRecordError(f"landmarks[{i}] must be an object")
        try:
            type_id = item["type"]
            x, y = item["x"], item["y"]
        except KeyError as e:
            raise MalformedRecordError(f"landmarks[{i}] missing {e}") from None
        if isinstance(type_id, bool) or not isinstance(type_id, int):
            raise MalformedRecordError(f"landmarks[{i}].type must be an integer")
        try:
            landmark_type = LandmarkType(type_id)
        except ValueError:
            raise MalformedRecordError(f"Unknown landmark type id: {type_id}") from None
        landmarks.append(Landmark(
            type=landmark_type,
            x=_number(x, f"landmarks[{i}].x"),
            y=_number(y, f"landmarks[{i}].y"),
        ))

    return FeatureRecord(
        bounding_box=box,
        head_euler_angle_x=_number(data.get("headEulerAngleX", 0.0), "headEulerAngleX"),
        head_euler_angle_y=_number(data.get("headEulerAngleY", 0.0), "headEulerAngleY"),
        head_euler_angle_z=_number(data.get("headEulerAngleZ", 0.0), "headEulerAngleZ"),
        landmarks=tuple(landmarks),
        smiling_probability=_probability(data, "smilingProbability"),
        left_eye_open_probability=_probability(data, "leftEyeOpenProbability"),
        right_eye_open_probability=_probability(data, "rightEyeOpenProbability"),
    )


def parse_record(text: str) -> FeatureRecord:
    """Parse canonical JSON text into a record.

    Raises:
        MalformedRecordError: If the text is not a well-formed record
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"Invalid JSON: {e}") from None
    return record_from_dict(data)
