"""Face detector interface and its failure boundary."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from ..features.types import DetectedFace

logger = logging.getLogger(__name__)


class BaseFaceDetector(ABC):
    """Abstract base class for face detectors."""

    @abstractmethod
    def detect(self, image: Any) -> List[DetectedFace]:
        """Detect faces in an image.

        Args:
            image: Encoded image bytes or a backend-specific image object

        Returns:
            List of DetectedFace objects
        """
        pass


class StaticDetector(BaseFaceDetector):
    """Detector that returns detections computed elsewhere.

    Used when the detector ran on the client and its output arrives as
    JSON alongside the image.
    """

    def __init__(self, faces: Optional[Iterable[DetectedFace]] = None):
        self.faces = list(faces or [])

    def detect(self, image: Any) -> List[DetectedFace]:
        return list(self.faces)


def safe_detect(detector: Optional[BaseFaceDetector], image: Any) -> List[DetectedFace]:
    """Run a detector, mapping any failure to "no faces".

    Nothing downstream has to handle detector-specific errors: a missing
    detector, an exception or a non-list result all read as zero faces.
    """
    if detector is None:
        logger.warning("No face detector configured")
        return []

    try:
        faces = detector.detect(image)
    except Exception as e:
        logger.error(f"Face detection failed: {e}")
        return []

    if faces is None:
        return []
    return list(faces)
