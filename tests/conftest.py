"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from facematch.constants import EnrollmentConfig, MatchingConfig  # noqa: E402
from facematch.features import BoundingBox, DetectedFace, LandmarkType  # noqa: E402


# Landmark positions of a frontal face in a 400x400 image
BASE_LANDMARKS = {
    LandmarkType.LEFT_EYE: (150.0, 160.0),
    LandmarkType.RIGHT_EYE: (250.0, 160.0),
    LandmarkType.NOSE_BASE: (200.0, 220.0),
    LandmarkType.LEFT_CHEEK: (140.0, 230.0),
    LandmarkType.RIGHT_CHEEK: (260.0, 230.0),
    LandmarkType.MOUTH_LEFT: (170.0, 270.0),
    LandmarkType.MOUTH_RIGHT: (230.0, 270.0),
    LandmarkType.MOUTH_BOTTOM: (200.0, 290.0),
    LandmarkType.LEFT_EAR: (100.0, 200.0),
    LandmarkType.RIGHT_EAR: (300.0, 200.0),
}


def build_face(dx=0.0, dy=0.0, types=None, **attrs):
    """Frontal face with every landmark shifted by (dx, dy)."""
    types = list(BASE_LANDMARKS) if types is None else types
    landmarks = {
        t: (BASE_LANDMARKS[t][0] + dx, BASE_LANDMARKS[t][1] + dy)
        for t in types
    }
    attrs.setdefault("bounding_box", BoundingBox(100.0, 80.0, 300.0, 320.0))
    return DetectedFace(landmarks=landmarks, **attrs)


def build_payload(dx=0.0, dy=0.0, types=None):
    """Detector JSON payload for a frontal face shifted by (dx, dy)."""
    types = list(BASE_LANDMARKS) if types is None else types
    return {
        "boundingBox": {"left": 100, "top": 80, "right": 300, "bottom": 320},
        "headEulerAngleY": 2.5,
        "landmarks": {
            t.name: [BASE_LANDMARKS[t][0] + dx, BASE_LANDMARKS[t][1] + dy]
            for t in types
        },
    }


@pytest.fixture
def make_face():
    """Factory for detected faces."""
    return build_face


@pytest.fixture
def make_payload():
    """Factory for detector JSON payloads."""
    return build_payload


@pytest.fixture
def matching_config():
    """Default matching constants, independent of the config file."""
    return MatchingConfig()


@pytest.fixture
def enrollment_config():
    """Default enrollment rules, independent of the config file."""
    return EnrollmentConfig()


@pytest.fixture
def face_db():
    """In-memory face database."""
    from facematch.storage import FaceDatabase

    db = FaceDatabase()
    yield db
    db.close()


@pytest.fixture
def service(face_db, matching_config, enrollment_config):
    """Face service over an in-memory database."""
    from facematch.service import FaceService

    return FaceService(
        face_db,
        matching_config=matching_config,
        enrollment_config=enrollment_config,
    )
