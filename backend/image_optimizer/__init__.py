"""
Image Optimizer Module

On-demand image resizing and format conversion for the catalog site.

Features:
- Path sanitization plus canonical root containment checks
- Pillow-based resize (cover/contain/fill/inside/outside) and re-encode
- Accept-header format negotiation
- Transformed images cached in the app TTL cache

Routes live in image_optimizer.routes_fastapi and are mounted by main.create_app().
"""

from .paths import resolve_within_root, sanitize_path
from .transformer import (
    Fit,
    ImageDecodeError,
    ImageTransformError,
    ImageTransformer,
    TransformOptions,
    TransformResult,
    UnsupportedFormatError,
    get_optimal_format,
)

__all__ = [
    "sanitize_path",
    "resolve_within_root",
    "Fit",
    "ImageTransformer",
    "TransformOptions",
    "TransformResult",
    "ImageTransformError",
    "ImageDecodeError",
    "UnsupportedFormatError",
    "get_optimal_format",
]
