"""Face feature extraction and the feature record format.

Contains:
- LandmarkType, Landmark, BoundingBox, FeatureRecord, DetectedFace
- extract_features / extract_face_features: detector output -> record
- serialize_record / parse_record: canonical JSON form
"""

from .types import (
    EXTRACTION_ORDER,
    BoundingBox,
    DetectedFace,
    FeatureRecord,
    Landmark,
    LandmarkType,
)
from .serialization import (
    MalformedRecordError,
    parse_record,
    record_from_dict,
    record_to_dict,
    serialize_record,
)
from .extractor import FeatureExtractor, extract_face_features, extract_features

__all__ = [
    # Types
    "EXTRACTION_ORDER", "BoundingBox", "DetectedFace", "FeatureRecord",
    "Landmark", "LandmarkType",
    # Serialization
    "MalformedRecordError", "parse_record", "record_from_dict",
    "record_to_dict", "serialize_record",
    # Extraction
    "FeatureExtractor", "extract_face_features", "extract_features",
]
