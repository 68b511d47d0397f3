"""Landmark based facial similarity engine."""

__version__ = "0.1.0"

from .features import FeatureRecord, extract_face_features, extract_features
from .matching import SimilarityScorer, compare_faces
from .service import FaceService, ServiceResult, ServiceStatus
from .storage import FaceDatabase

__all__ = [
    "__version__",
    "FeatureRecord",
    "extract_face_features",
    "extract_features",
    "SimilarityScorer",
    "compare_faces",
    "FaceService",
    "ServiceResult",
    "ServiceStatus",
    "FaceDatabase",
]
