"""FastAPI routes for face enrollment, recognition and feature comparison.

Images travel as base64 strings. Face detection runs on the client, so
requests carry the detector output for the image alongside it.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from . import __version__
from .features import DetectedFace, extract_features, record_to_dict, serialize_record
from .service import FaceService, ServiceResult, ServiceStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Schemas
# =============================================================================

class FaceRegisterRequest(BaseModel):
    identifier: str = Field(..., description="Unique identifier (8 digits)")
    name: str = Field(..., description="Display name")
    image: str = Field("", description="Base64 encoded photo")
    detections: Optional[List[Dict[str, Any]]] = Field(
        None, description="Detector output for the photo"
    )


class PhotoRequest(BaseModel):
    image: str = Field("", description="Base64 encoded photo")
    detections: Optional[List[Dict[str, Any]]] = Field(
        None, description="Detector output for the photo"
    )


class ExtractRequest(BaseModel):
    detection: Dict[str, Any] = Field(..., description="One detected face")


class CompareRequest(BaseModel):
    features_a: str = Field(..., description="Serialized feature record")
    features_b: str = Field(..., description="Serialized feature record")


class OperationResponse(BaseModel):
    status: str
    message: str
    entry: Optional[dict] = None
    similarity: Optional[float] = None


class RecognizeResponse(BaseModel):
    matched: bool
    status: str
    message: str
    entry: Optional[dict] = None
    similarity: Optional[float] = None


class FaceListResponse(BaseModel):
    faces: List[dict]
    total: int


class ExtractResponse(BaseModel):
    features: str
    record: dict
    landmark_count: int


class CompareResponse(BaseModel):
    similarity: float
    status: str
    matched_landmarks: int
    average_distance: Optional[float] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    registered_faces: int
    recognition_threshold: float
    update_threshold: float


# =============================================================================
# Service Layer
# =============================================================================

# Global service instance
_service: Optional[FaceService] = None


def get_service() -> FaceService:
    """Get the global face service instance."""
    global _service
    if _service is None:
        from .constants import get_storage_config
        from .storage import FaceDatabase
        _service = FaceService(FaceDatabase(get_storage_config().database_path))
    return _service


def set_service(service: Optional[FaceService]):
    """Set the global face service instance."""
    global _service
    _service = service


# Outcomes that are not client errors are reported with 200
_ERROR_STATUS = {
    ServiceStatus.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ServiceStatus.INVALID_NAME: status.HTTP_400_BAD_REQUEST,
    ServiceStatus.DUPLICATE: status.HTTP_409_CONFLICT,
    ServiceStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ServiceStatus.NO_FACE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ServiceStatus.MULTIPLE_FACES: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ServiceStatus.BELOW_THRESHOLD: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _raise_for_status(result: ServiceResult):
    code = _ERROR_STATUS.get(result.status)
    if code is not None:
        raise HTTPException(status_code=code, detail=result.message)


def _decode_image(data: str) -> bytes:
    if not data:
        return b""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Image must be base64 encoded",
        )


def _parse_detections(
    detections: Optional[List[Dict[str, Any]]],
) -> Optional[List[DetectedFace]]:
    if detections is None:
        return None
    try:
        return [DetectedFace.from_dict(d) for d in detections]
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid detection payload: {e}",
        )


# =============================================================================
# Router
# =============================================================================

router = APIRouter(prefix="/api/v1", tags=["faces"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check():
    """Health check endpoint."""
    service = get_service()
    stats = service.get_stats()

    return HealthResponse(
        status="healthy",
        version=__version__,
        registered_faces=stats["total_faces"],
        recognition_threshold=stats["recognition_threshold"],
        update_threshold=stats["update_threshold"],
    )


@router.get(
    "/faces",
    response_model=FaceListResponse,
    summary="List enrolled faces",
)
async def list_faces():
    """Get every enrolled face in enrollment order."""
    entries = get_service().list_faces()

    return FaceListResponse(
        faces=[e.to_dict(include_features=False) for e in entries],
        total=len(entries),
    )


@router.get(
    "/faces/{identifier}",
    summary="Get an enrolled face",
)
async def get_face(identifier: str):
    """Get one enrolled face including its feature record."""
    entry = get_service().get(identifier)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Identifier {identifier} is not registered",
        )
    return entry.to_dict()


@router.post(
    "/faces",
    response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a face",
)
async def register_face(request: FaceRegisterRequest):
    """Enroll a new identity from a photo and its detections."""
    image = _decode_image(request.image)
    faces = _parse_detections(request.detections)

    result = get_service().register(request.identifier, request.name, image, faces=faces)
    _raise_for_status(result)

    return OperationResponse(**result.to_dict())


@router.post(
    "/faces/recognize",
    response_model=RecognizeResponse,
    summary="Recognize a face",
)
async def recognize_face(request: PhotoRequest):
    """Find the enrolled identity that best matches a photo."""
    image = _decode_image(request.image)
    faces = _parse_detections(request.detections)

    result = get_service().recognize(image, faces=faces)
    _raise_for_status(result)

    return RecognizeResponse(matched=result.ok, **result.to_dict())


@router.put(
    "/faces/{identifier}/photo",
    response_model=OperationResponse,
    summary="Replace an enrolled photo",
)
async def update_photo(identifier: str, request: PhotoRequest):
    """Replace the photo of an identity if the new one is the same person."""
    image = _decode_image(request.image)
    faces = _parse_detections(request.detections)

    result = get_service().update_photo(identifier, image, faces=faces)
    _raise_for_status(result)

    return OperationResponse(**result.to_dict())


@router.delete(
    "/faces/{identifier}",
    response_model=OperationResponse,
    summary="Delete an enrolled face",
)
async def delete_face(identifier: str):
    """Remove an identity from the gallery."""
    result = get_service().delete(identifier)
    _raise_for_status(result)

    return OperationResponse(**result.to_dict())


@router.post(
    "/features/extract",
    response_model=ExtractResponse,
    tags=["features"],
    summary="Extract a feature record",
)
async def extract(request: ExtractRequest):
    """Turn one detected face into its serialized feature record."""
    face = _parse_detections([request.detection])[0]
    record = extract_features(face)

    return ExtractResponse(
        features=serialize_record(record),
        record=record_to_dict(record),
        landmark_count=len(record.landmarks),
    )


@router.post(
    "/features/compare",
    response_model=CompareResponse,
    tags=["features"],
    summary="Compare two feature records",
)
async def compare(request: CompareRequest):
    """Score two serialized records. Malformed input scores 0."""
    comparison = get_service().scorer.compare(request.features_a, request.features_b)

    return CompareResponse(
        similarity=comparison.score,
        status=comparison.status.value,
        matched_landmarks=comparison.matched_landmarks,
        average_distance=comparison.average_distance,
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    service: Optional[FaceService] = None,
    cors_origins: List[str] = None,
    debug: bool = False,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        service: Optional FaceService instance
        cors_origins: List of allowed CORS origins
        debug: Enable debug mode

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="facematch - Face API",
        description="API for landmark based face enrollment and recognition",
        version=__version__,
        debug=debug,
    )

    # Add CORS middleware
    if cors_origins is None:
        from .constants import get_api_config
        cors_origins = get_api_config().cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if service is not None:
        set_service(service)

    app.include_router(router)

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root():
        return {
            "message": "facematch - Face API",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app
