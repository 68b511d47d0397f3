"""Face detector capability.

The detector itself is an external collaborator. This package only
defines its interface and the boundary that turns its failures into an
empty result.
"""

from .base import BaseFaceDetector, StaticDetector, safe_detect

__all__ = [
    "BaseFaceDetector",
    "StaticDetector",
    "safe_detect",
]
