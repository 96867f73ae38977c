"""
Image Transformer

Resizes and re-encodes images with Pillow.

Handles:
- Resize with cover / contain / fill / inside / outside fits
- Format conversion (webp, avif, jpeg, png) with per-format quality defaults
- Fallback to the source format when the requested one cannot be encoded
- Accept-header format negotiation and cache headers for responses
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)


# ============================================
# Configuration
# ============================================

# Request format name -> Pillow format name
FORMAT_TO_PIL = {
    "webp": "WEBP",
    "avif": "AVIF",
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
}

PIL_TO_MIME = {
    "WEBP": "image/webp",
    "AVIF": "image/avif",
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
}

# Decoders that report a variant of an encodable container
SOURCE_FORMAT_ALIASES = {
    "MPO": "JPEG",
}

DEFAULT_QUALITY = {
    "WEBP": 80,
    "AVIF": 75,
    "JPEG": 85,
}

IMAGE_SIZES = {
    "thumbnail": 150,
    "small": 300,
    "medium": 600,
    "large": 1200,
    "xlarge": 1920,
}

MAX_DIMENSION = 4000

IMAGE_MAX_AGE_SECONDS = 60 * 60 * 24 * 30  # 30 days
IMAGE_STALE_WHILE_REVALIDATE_SECONDS = 60 * 60 * 24 * 7  # 7 days
LEGACY_CACHE_CONTROL = "public, max-age=31536000, immutable"

TRANSPARENT = (255, 255, 255, 0)
WHITE = (255, 255, 255)


class Fit(str, Enum):
    """Resize strategies"""
    COVER = "cover"        # Crop to fill the box
    CONTAIN = "contain"    # Letterbox inside the box
    FILL = "fill"          # Stretch to the box
    INSIDE = "inside"      # Shrink/grow to fit within the box, no padding
    OUTSIDE = "outside"    # Shrink/grow to cover the box, no cropping


# ============================================
# Errors
# ============================================

class ImageTransformError(Exception):
    """Base class for transform failures."""


class ImageDecodeError(ImageTransformError):
    """Source bytes are not a decodable image."""


class UnsupportedFormatError(ImageTransformError):
    """Requested output format is unknown or has no encoder."""


# ============================================
# Data classes
# ============================================

@dataclass
class TransformOptions:
    """Target size, format and quality for a transform."""
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None     # webp, avif, jpeg/jpg, png; None keeps the source format
    quality: Optional[int] = None    # 1-100; None uses DEFAULT_QUALITY
    fit: Fit = Fit.COVER
    background: Optional[Tuple[int, ...]] = None  # contain padding; None picks per format

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ValueError(f"{name} must be a positive integer")
        if self.quality is not None and not 1 <= self.quality <= 100:
            raise ValueError("quality must be between 1 and 100")
        self.fit = Fit(self.fit)
        if self.format:
            self.format = self.format.lower()

    @property
    def is_noop(self) -> bool:
        return not (self.width or self.height or self.format)


@dataclass
class TransformResult:
    """Encoded output. content_type always matches the produced format."""
    data: bytes
    content_type: str
    format: str
    width: int
    height: int


# ============================================
# Format helpers
# ============================================

def can_encode(pil_format: str) -> bool:
    """True if this Pillow build has a writer for pil_format."""
    Image.init()
    return pil_format.upper() in Image.SAVE


def resolve_format(name: str) -> str:
    """
    Map a request format name to a Pillow format name.

    Raises:
        UnsupportedFormatError: unknown name or no encoder available
    """
    pil_format = FORMAT_TO_PIL.get(name.lower())
    if pil_format is None:
        raise UnsupportedFormatError(f"Unknown image format: {name}")
    if not can_encode(pil_format):
        raise UnsupportedFormatError(f"No encoder available for {name}")
    return pil_format


def output_format_for(name: Optional[str]) -> Optional[str]:
    """
    Lower-case name of the format optimize() will produce for a request.

    None means the source format is kept (no format requested, or one that
    cannot be encoded). "jpg" and "JPEG" both map to "jpeg".
    """
    if not name:
        return None
    try:
        return resolve_format(name).lower()
    except UnsupportedFormatError:
        return None


def content_type_for(pil_format: str) -> str:
    return PIL_TO_MIME.get(pil_format) or Image.MIME.get(pil_format, "application/octet-stream")


def get_optimal_format(accept_header: Optional[str]) -> str:
    """
    Pick an output format from an Accept header.

    avif if advertised and encodable, then webp, then jpeg.
    A missing header yields webp.
    """
    if not accept_header:
        return "webp"
    if "image/avif" in accept_header and can_encode("AVIF"):
        return "avif"
    if "image/webp" in accept_header:
        return "webp"
    return "jpeg"


def image_cache_headers(negotiated: bool = True) -> Dict[str, str]:
    """Cache headers for optimized images. Vary: Accept only when the format came from Accept."""
    headers = {
        "Cache-Control": (
            f"public, max-age={IMAGE_MAX_AGE_SECONDS}, "
            f"s-maxage={IMAGE_MAX_AGE_SECONDS}, "
            f"stale-while-revalidate={IMAGE_STALE_WHILE_REVALIDATE_SECONDS}"
        ),
    }
    if negotiated:
        headers["Vary"] = "Accept"
    return headers


def build_src_set(base_url: str, sizes: Iterable[str]) -> str:
    """Responsive srcset string, e.g. "/img.jpg?w=300 300w, /img.jpg?w=600 600w"."""
    return ", ".join(
        f"{base_url}?w={IMAGE_SIZES[size]} {IMAGE_SIZES[size]}w"
        for size in sizes
    )


# ============================================
# Transformer
# ============================================

class ImageTransformer:
    """
    Resizes and re-encodes images.

    Usage:
        transformer = ImageTransformer()
        result = transformer.optimize(data, TransformOptions(width=300, format="webp"))
    """

    def optimize(self, source: bytes, options: Optional[TransformOptions] = None) -> TransformResult:
        """
        Transform with graceful format fallback.

        A requested format that cannot be encoded is replaced by the source
        format. Decode errors still raise ImageDecodeError.
        """
        options = options or TransformOptions()
        try:
            return self.transform(source, options)
        except UnsupportedFormatError as e:
            logger.warning(f"[ImageOptimizer] {e}, keeping source format")
            fallback = TransformOptions(
                width=options.width,
                height=options.height,
                format=None,
                quality=options.quality,
                fit=options.fit,
                background=options.background,
            )
            return self.transform(source, fallback)

    async def optimize_async(
        self, source: bytes, options: Optional[TransformOptions] = None
    ) -> TransformResult:
        """optimize() in a worker thread so large encodes don't block the event loop."""
        return await asyncio.to_thread(self.optimize, source, options)

    def transform(self, source: bytes, options: TransformOptions) -> TransformResult:
        """
        Strict transform.

        Raises:
            ImageDecodeError: source is not a decodable image
            UnsupportedFormatError: requested format cannot be encoded
            ImageTransformError: encoding failed
        """
        img = self._decode(source)
        source_format = SOURCE_FORMAT_ALIASES.get(img.format or "", img.format or "PNG")

        if options.is_noop:
            return TransformResult(
                data=source,
                content_type=content_type_for(source_format),
                format=source_format.lower(),
                width=img.width,
                height=img.height,
            )

        if options.format:
            target_format = resolve_format(options.format)
        elif can_encode(source_format):
            target_format = source_format
        else:
            target_format = "PNG"

        img = self._normalize_mode(img)
        if options.width or options.height:
            img = self._resize(img, options, target_format)

        quality = options.quality or DEFAULT_QUALITY.get(target_format)
        data = self._encode(img, target_format, quality)

        logger.debug(
            f"[ImageOptimizer] {source_format} {len(source)}B -> "
            f"{target_format} {len(data)}B ({img.width}x{img.height})"
        )

        return TransformResult(
            data=data,
            content_type=content_type_for(target_format),
            format=target_format.lower(),
            width=img.width,
            height=img.height,
        )

    @staticmethod
    def _decode(source: bytes) -> Image.Image:
        if not source:
            raise ImageDecodeError("Empty image data")
        try:
            img = Image.open(BytesIO(source))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ImageDecodeError(f"Cannot decode image: {e}") from e
        return img

    @staticmethod
    def _normalize_mode(img: Image.Image) -> Image.Image:
        """Bring palette/greyscale/CMYK images to RGB or RGBA so resampling is smooth."""
        if img.mode in ("RGB", "RGBA"):
            return img
        if img.mode in ("LA", "PA") or "transparency" in img.info:
            return img.convert("RGBA")
        return img.convert("RGB")

    @staticmethod
    def _resize(img: Image.Image, options: TransformOptions, target_format: str) -> Image.Image:
        src_w, src_h = img.size
        width, height = options.width, options.height
        resample = Image.Resampling.LANCZOS

        # One dimension: scale proportionally whatever the fit
        if width and not height:
            return img.resize((width, max(1, round(src_h * width / src_w))), resample)
        if height and not width:
            return img.resize((max(1, round(src_w * height / src_h)), height), resample)

        fit = options.fit
        if fit == Fit.COVER:
            return ImageOps.fit(img, (width, height), method=resample)
        if fit == Fit.CONTAIN:
            background = options.background
            if background is None:
                background = WHITE if target_format == "JPEG" else TRANSPARENT
            if len(background) == 4 and img.mode != "RGBA":
                img = img.convert("RGBA")
            return ImageOps.pad(img, (width, height), method=resample, color=background)
        if fit == Fit.FILL:
            return img.resize((width, height), resample)
        if fit == Fit.INSIDE:
            return ImageOps.contain(img, (width, height), method=resample)

        # OUTSIDE
        scale = max(width / src_w, height / src_h)
        return img.resize(
            (max(1, round(src_w * scale)), max(1, round(src_h * scale))), resample
        )

    @staticmethod
    def _encode(img: Image.Image, pil_format: str, quality: Optional[int]) -> bytes:
        save_kwargs = {"format": pil_format}

        if pil_format == "JPEG":
            if img.mode == "RGBA":
                # JPEG has no alpha: flatten onto white
                background = Image.new("RGB", img.size, WHITE)
                background.paste(img, mask=img.split()[3])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")
            save_kwargs.update(quality=quality, progressive=True, optimize=True)
        elif pil_format == "WEBP":
            save_kwargs.update(quality=quality, method=4)
        elif pil_format == "AVIF":
            save_kwargs.update(quality=quality)
        elif pil_format == "PNG":
            save_kwargs.update(optimize=True)

        output = BytesIO()
        try:
            img.save(output, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise ImageTransformError(f"Failed to encode {pil_format}: {e}") from e
        return output.getvalue()
