"""
Image Optimizer API Routes

Provides endpoints for:
- /api/image         - Resize/convert an image from the images tree
- /api/images/{path} - Optimize any public image, negotiating format from Accept
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from cache import keys
from cache.memory_store import TTLCache
from cache.routes import get_cache
from catalog.base import CatalogUpstreamError
from catalog.strapi_client import StrapiClient
from config import AppConfig
from dependencies import get_config, get_strapi_client, get_transformer

from .paths import resolve_within_root, sanitize_path
from .transformer import (
    FORMAT_TO_PIL,
    LEGACY_CACHE_CONTROL,
    MAX_DIMENSION,
    Fit,
    ImageTransformError,
    ImageTransformer,
    TransformOptions,
    TransformResult,
    get_optimal_format,
    image_cache_headers,
    output_format_for,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "placeholder.jpg"

# Served without decoding when no transform is requested
EXTENSION_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".svg": "image/svg+xml",
}


class ImageSourceNotFoundError(LookupError):
    """No source bytes exist for the requested image path."""


# ============================================
# Router
# ============================================

router = APIRouter(prefix="/api", tags=["Image Optimizer"])


# ============================================
# Helpers
# ============================================

def locate_image(images_dir: Path, relative: str) -> Optional[Path]:
    """
    Find an image under images_dir.

    Tries the path directly, then under products/, then the placeholder.
    Every candidate must resolve inside images_dir.
    """
    candidates = (relative, f"products/{relative}", PLACEHOLDER_IMAGE)
    for candidate in candidates:
        resolved = resolve_within_root(images_dir, candidate)
        if resolved is not None and resolved.is_file():
            if candidate == PLACEHOLDER_IMAGE:
                logger.info(f"[ImageOptimizer] Using placeholder image for: {relative}")
            return resolved
    return None


def _response(result: TransformResult, headers: Dict[str, str], cache_hit: bool) -> Response:
    return Response(
        content=result.data,
        media_type=result.content_type,
        headers={**headers, "X-Cache": "HIT" if cache_hit else "MISS"},
    )


def _not_found_response() -> Response:
    return Response(
        content="Image not found",
        status_code=404,
        media_type="text/plain",
        headers={"Cache-Control": "no-cache"},
    )


# ============================================
# Endpoints
# ============================================

@router.get("/image")
async def transform_image(
    path: Optional[str] = Query(None, description="Image path relative to the images directory"),
    width: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION),
    height: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION),
    image_format: Optional[str] = Query(None, alias="format", description="webp, avif, jpeg, png"),
    quality: Optional[int] = Query(None, ge=1, le=100),
    fit: Fit = Query(Fit.CONTAIN),
    cache: TTLCache = Depends(get_cache),
    config: AppConfig = Depends(get_config),
    transformer: ImageTransformer = Depends(get_transformer),
):
    """
    Serve an image from the images tree, resized/converted on request.

    Falls back to products/<path>, then to the placeholder image.
    Contain padding is transparent (white for JPEG output).

    Example:
        GET /api/image?path=monuments/heart.jpg&width=300&format=webp
    """
    if not path:
        raise HTTPException(status_code=400, detail="Missing path parameter")

    sanitized = sanitize_path(path)
    if not sanitized:
        raise HTTPException(status_code=400, detail="Invalid path parameter")

    file_path = locate_image(config.images_dir, sanitized)
    if file_path is None:
        logger.warning(f"[ImageOptimizer] Image not found: {sanitized}")
        raise HTTPException(status_code=404, detail="Image not found")

    options = TransformOptions(
        width=width, height=height, format=image_format, quality=quality, fit=fit,
    )
    relative = file_path.relative_to(Path(config.images_dir).resolve()).as_posix()
    headers = {"Cache-Control": LEGACY_CACHE_CONTROL}

    if options.is_noop:
        content_type = EXTENSION_CONTENT_TYPES.get(file_path.suffix.lower(), "image/jpeg")
        return Response(content=file_path.read_bytes(), media_type=content_type, headers=headers)

    cache_key = keys.image(
        relative, width, height, output_format_for(options.format), quality, fit.value,
    )
    cache_hit = cache_key in cache

    async def produce() -> TransformResult:
        return await transformer.optimize_async(file_path.read_bytes(), options)

    try:
        result = await cache.with_cache(cache_key, produce, ttl=config.image_cache_ttl_seconds)
    except ImageTransformError as e:
        logger.warning(f"[ImageOptimizer] Cannot process {relative}: {e}")
        raise HTTPException(status_code=404, detail="Image could not be processed")
    except OSError as e:
        logger.error(f"[ImageOptimizer] Failed to read {relative}: {e}")
        raise HTTPException(status_code=500, detail="Error processing image")

    return _response(result, headers, cache_hit)


@router.get("/images/{image_path:path}")
async def optimize_image(
    image_path: str,
    request: Request,
    w: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION, description="Width"),
    h: Optional[int] = Query(None, gt=0, le=MAX_DIMENSION, description="Height"),
    f: Optional[str] = Query(None, description="Format; negotiated from Accept when omitted"),
    q: Optional[int] = Query(None, ge=1, le=100, description="Quality"),
    fit: Fit = Query(Fit.COVER),
    cache: TTLCache = Depends(get_cache),
    config: AppConfig = Depends(get_config),
    transformer: ImageTransformer = Depends(get_transformer),
    strapi: Optional[StrapiClient] = Depends(get_strapi_client),
):
    """
    Optimize a public image (or a CMS upload) and return it with long-lived cache headers.

    Example:
        GET /api/images/images/products/monuments/heart.jpg?w=600
        Accept: image/avif,image/webp,*/*
    """
    sanitized = sanitize_path(image_path)
    if not sanitized:
        raise HTTPException(status_code=400, detail="Invalid image path")

    negotiated = not f
    image_format = f.lower() if f else get_optimal_format(request.headers.get("accept"))
    options = TransformOptions(width=w, height=h, format=image_format, quality=q, fit=fit)
    cache_key = keys.image(sanitized, w, h, output_format_for(image_format), q, fit.value)
    cache_hit = cache_key in cache

    async def read_source() -> bytes:
        file_path = resolve_within_root(config.public_dir, sanitized)
        if file_path is not None and file_path.is_file():
            return file_path.read_bytes()
        if strapi is None:
            raise ImageSourceNotFoundError(sanitized)
        return await strapi.fetch_upload(sanitized)

    async def produce() -> TransformResult:
        source = await read_source()
        return await transformer.optimize_async(source, options)

    try:
        result = await cache.with_cache(cache_key, produce, ttl=config.image_cache_ttl_seconds)
    except (ImageSourceNotFoundError, ImageTransformError, CatalogUpstreamError, OSError) as e:
        logger.warning(f"[ImageOptimizer] Image optimization error for {sanitized}: {e}")
        return _not_found_response()

    if result.format != FORMAT_TO_PIL.get(image_format, "").lower():
        logger.debug(f"[ImageOptimizer] Served {result.format} instead of {image_format}")

    return _response(result, image_cache_headers(negotiated), cache_hit)
