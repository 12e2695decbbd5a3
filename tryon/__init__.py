from .contracts import ClassificationResult, TryOnRequest, TryOnResponse
from .orientation import classify, classify_image, classify_safe
from .pixels import PixelBuffer, Region

__all__ = [
    "ClassificationResult",
    "PixelBuffer",
    "Region",
    "TryOnRequest",
    "TryOnResponse",
    "classify",
    "classify_image",
    "classify_safe",
]
