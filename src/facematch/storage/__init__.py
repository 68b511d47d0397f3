"""Persistence for enrolled faces."""

from .database import (
    MEMORY_PATH,
    DuplicateIdentifierError,
    FaceDatabase,
    FaceEntry,
    ListingCallback,
    current_timestamp_ms,
)

__all__ = [
    "MEMORY_PATH",
    "DuplicateIdentifierError",
    "FaceDatabase",
    "FaceEntry",
    "ListingCallback",
    "current_timestamp_ms",
]
