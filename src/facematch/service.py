"""Enrollment, recognition and photo-update flows.

Integrates:
- FaceDatabase: SQLite persistence of enrolled faces
- FeatureExtractor: detector output -> serialized feature record
- SimilarityScorer + ThresholdPolicy: match decisions

Every operation returns a ServiceResult instead of raising, with a
status callers can branch on and a message suitable for end users.
"""

import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .constants import EnrollmentConfig, MatchingConfig, get_enrollment_config, get_matching_config
from .detection import BaseFaceDetector, safe_detect
from .features import DetectedFace, FeatureExtractor
from .matching import SimilarityScorer, ThresholdPolicy, confirm_same_person, find_best_match
from .storage import (
    DuplicateIdentifierError,
    FaceDatabase,
    FaceEntry,
    ListingCallback,
    current_timestamp_ms,
)

logger = logging.getLogger(__name__)


class ServiceStatus(Enum):
    """Outcome of a service operation."""
    SUCCESS = "success"
    INVALID_IDENTIFIER = "invalid_identifier"
    INVALID_NAME = "invalid_name"
    DUPLICATE = "duplicate"
    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    NOT_FOUND = "not_found"
    EMPTY_GALLERY = "empty_gallery"
    NO_MATCH = "no_match"
    BELOW_THRESHOLD = "below_threshold"


@dataclass
class ServiceResult:
    """Result of a service operation."""

    status: ServiceStatus
    message: str
    entry: Optional[FaceEntry] = None
    similarity: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status == ServiceStatus.SUCCESS

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "message": self.message,
            "entry": self.entry.to_dict(include_features=False) if self.entry else None,
            "similarity": round(self.similarity, 2) if self.similarity is not None else None,
        }


class FaceService:
    """Face enrollment and recognition on top of the face database.

    Detections can be passed in directly (the detector ran elsewhere) or
    produced by the injected detector, whose failures read as "no face".
    """

    def __init__(
        self,
        database: FaceDatabase,
        detector: Optional[BaseFaceDetector] = None,
        extractor: Optional[FeatureExtractor] = None,
        scorer: Optional[SimilarityScorer] = None,
        matching_config: Optional[MatchingConfig] = None,
        enrollment_config: Optional[EnrollmentConfig] = None,
    ):
        """Initialize face service.

        Args:
            database: Face database
            detector: Detector used when no detections are supplied
            extractor: Feature extractor (default extractor if None)
            scorer: Similarity scorer (built from matching config if None)
            matching_config: Thresholds and distance scale (config file if None)
            enrollment_config: Identifier rules (config file if None)
        """
        self.database = database
        self.detector = detector
        self.extractor = extractor or FeatureExtractor()

        matching = matching_config or get_matching_config()
        self.scorer = scorer or SimilarityScorer(matching.distance_scale)
        self.recognition_policy = ThresholdPolicy(matching.recognition_threshold)
        self.update_policy = ThresholdPolicy(matching.update_threshold)

        self.enrollment = enrollment_config or get_enrollment_config()
        self._identifier_re = re.compile(self.enrollment.identifier_pattern)

        # Update is delete + insert; keep it atomic with respect to other writers
        self._lock = threading.RLock()

        logger.info(
            f"FaceService initialized: "
            f"recognition>={self.recognition_policy.threshold}, "
            f"update>={self.update_policy.threshold}"
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _detect(self, image: Any, faces: Optional[Sequence[DetectedFace]]) -> List[DetectedFace]:
        if faces is not None:
            return list(faces)
        return safe_detect(self.detector, image)

    def _single_face(
        self,
        image: Any,
        faces: Optional[Sequence[DetectedFace]],
    ) -> Tuple[Optional[DetectedFace], Optional[ServiceResult]]:
        detected = self._detect(image, faces)
        if not detected:
            return None, ServiceResult(ServiceStatus.NO_FACE, "No face detected in the image")
        if len(detected) > 1:
            return None, ServiceResult(
                ServiceStatus.MULTIPLE_FACES,
                f"Detected {len(detected)} faces. Capture a single face",
            )
        return detected[0], None

    def is_valid_identifier(self, identifier: str) -> bool:
        return bool(self._identifier_re.match(identifier or ""))

    # -------------------------------------------------------------------------
    # Enrollment
    # -------------------------------------------------------------------------

    def register(
        self,
        identifier: str,
        name: str,
        image: bytes,
        faces: Optional[Sequence[DetectedFace]] = None,
    ) -> ServiceResult:
        """Enroll a new identity from a photo.

        Args:
            identifier: Unique identifier (must match the enrollment pattern)
            name: Display name
            image: Encoded photo stored with the entry
            faces: Detector output for the photo (runs detector if None)

        Returns:
            ServiceResult with the stored entry on success
        """
        if not self.is_valid_identifier(identifier):
            return ServiceResult(
                ServiceStatus.INVALID_IDENTIFIER,
                f"Identifier must be {self.enrollment.identifier_hint}",
            )
        if not name or not name.strip():
            return ServiceResult(ServiceStatus.INVALID_NAME, "Name cannot be empty")
        if self.database.exists(identifier):
            return ServiceResult(
                ServiceStatus.DUPLICATE, f"Identifier {identifier} is already registered"
            )

        face, failure = self._single_face(image, faces)
        if failure is not None:
            return failure

        entry = FaceEntry(
            identifier=identifier,
            display_name=name.strip(),
            image=bytes(image or b""),
            features=self.extractor.extract_serialized(face),
        )

        try:
            self.database.insert_face(entry)
        except DuplicateIdentifierError as e:
            return ServiceResult(ServiceStatus.DUPLICATE, str(e))

        logger.info(f"Registered {identifier} ({entry.display_name})")
        return ServiceResult(ServiceStatus.SUCCESS, "Face registered successfully", entry=entry)

    # -------------------------------------------------------------------------
    # Recognition
    # -------------------------------------------------------------------------

    def recognize(
        self,
        image: Any = None,
        faces: Optional[Sequence[DetectedFace]] = None,
    ) -> ServiceResult:
        """Find the enrolled identity that best matches a photo.

        Args:
            image: Photo to run the detector on (ignored if faces given)
            faces: Detector output for the photo

        Returns:
            ServiceResult with the matched entry and similarity on success
        """
        face, failure = self._single_face(image, faces)
        if failure is not None:
            return failure

        query = self.extractor.extract(face)

        gallery = self.database.list_faces()
        if not gallery:
            return ServiceResult(ServiceStatus.EMPTY_GALLERY, "No faces are registered")

        match = find_best_match(
            query,
            gallery,
            self.recognition_policy,
            scorer=self.scorer,
            features_of=lambda entry: entry.features,
        )

        if match.matched:
            logger.info(f"Recognized {match.candidate.identifier} ({match.similarity:.1f}%)")
            return ServiceResult(
                ServiceStatus.SUCCESS,
                f"Match found: {match.candidate.display_name}",
                entry=match.candidate,
                similarity=match.similarity,
            )

        logger.info(f"No match above {self.recognition_policy.threshold} (best {match.similarity:.1f}%)")
        return ServiceResult(
            ServiceStatus.NO_MATCH,
            f"No match found (highest similarity: {match.similarity:.1f}%)",
            similarity=match.similarity,
        )

    # -------------------------------------------------------------------------
    # Update / Delete
    # -------------------------------------------------------------------------

    def update_photo(
        self,
        identifier: str,
        image: bytes,
        faces: Optional[Sequence[DetectedFace]] = None,
    ) -> ServiceResult:
        """Replace an enrolled photo with a new one of the same person.

        The new photo must reach the update threshold against the enrolled
        record. On success the old entry is replaced wholesale with a new
        record and timestamp.
        """
        with self._lock:
            current = self.database.get_face(identifier)
            if current is None:
                return ServiceResult(
                    ServiceStatus.NOT_FOUND, f"Identifier {identifier} is not registered"
                )

            face, failure = self._single_face(image, faces)
            if failure is not None:
                return failure

            new_features = self.extractor.extract_serialized(face)
            match = confirm_same_person(
                current.features, new_features, self.update_policy, scorer=self.scorer
            )
            if not match.matched:
                return ServiceResult(
                    ServiceStatus.BELOW_THRESHOLD,
                    f"The new photo is not similar enough to the registered one. "
                    f"Similarity: {match.similarity:.1f}% "
                    f"(minimum required: {self.update_policy.threshold:.0f}%)",
                    entry=current,
                    similarity=match.similarity,
                )

            updated = FaceEntry(
                identifier=current.identifier,
                display_name=current.display_name,
                image=bytes(image or b""),
                features=new_features,
                timestamp=current_timestamp_ms(),
            )
            self.database.replace_face(updated)

        logger.info(f"Updated photo for {identifier} ({match.similarity:.1f}%)")
        return ServiceResult(
            ServiceStatus.SUCCESS,
            f"Photo updated successfully. Similarity: {match.similarity:.1f}%",
            entry=updated,
            similarity=match.similarity,
        )

    def delete(self, identifier: str) -> ServiceResult:
        """Remove an enrolled identity."""
        with self._lock:
            deleted = self.database.delete_face(identifier)
        if not deleted:
            return ServiceResult(
                ServiceStatus.NOT_FOUND, f"Identifier {identifier} is not registered"
            )
        return ServiceResult(ServiceStatus.SUCCESS, f"Deleted {identifier}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, identifier: str) -> Optional[FaceEntry]:
        return self.database.get_face(identifier)

    def list_faces(self) -> List[FaceEntry]:
        return self.database.list_faces()

    def subscribe(self, callback: ListingCallback) -> Callable[[], None]:
        """Receive the gallery listing now and after every change."""
        return self.database.subscribe(callback)

    def get_stats(self) -> dict:
        """Get service statistics."""
        return {
            **self.database.get_stats(),
            "recognition_threshold": self.recognition_policy.threshold,
            "update_threshold": self.update_policy.threshold,
            "distance_scale": self.scorer.distance_scale,
        }

    def shutdown(self):
        """Release database connections."""
        logger.info("Shutting down FaceService")
        self.database.close()
