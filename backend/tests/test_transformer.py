"""
Image transformer tests

Run:
    cd backend
    pytest tests/test_transformer.py -v
"""

import pytest
from PIL import Image

from conftest import decode, make_image_bytes
from image_optimizer.transformer import (
    Fit,
    ImageDecodeError,
    ImageTransformer,
    TransformOptions,
    UnsupportedFormatError,
    build_src_set,
    can_encode,
    get_optimal_format,
    image_cache_headers,
    output_format_for,
)


@pytest.fixture
def transformer():
    return ImageTransformer()


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG", size=(200, 100))


# ============================================
# 1. No-op and format conversion
# ============================================

class TestFormats:

    def test_noop_returns_source_bytes(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions())

        assert result.data == jpeg_bytes
        assert result.content_type == "image/jpeg"
        assert (result.width, result.height) == (200, 100)

    def test_jpeg_to_webp(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(format="webp"))

        assert result.data[:4] == b"RIFF"
        assert result.data[8:12] == b"WEBP"
        assert result.content_type == "image/webp"
        assert decode(result.data).size == (200, 100)

    def test_png_output(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(format="PNG"))
        assert result.data[:8] == b"\x89PNG\r\n\x1a\n"
        assert result.content_type == "image/png"

    def test_jpg_alias(self, transformer):
        png = make_image_bytes("PNG", size=(10, 10))
        result = transformer.optimize(png, TransformOptions(format="jpg"))
        assert result.content_type == "image/jpeg"
        assert result.data[:2] == b"\xff\xd8"

    def test_resize_keeps_source_format(self, transformer):
        png = make_image_bytes("PNG", size=(40, 40))
        result = transformer.optimize(png, TransformOptions(width=20))
        assert result.content_type == "image/png"
        assert decode(result.data).format == "PNG"

    def test_rgba_to_jpeg_is_flattened(self, transformer):
        png = make_image_bytes("PNG", size=(10, 10), color=(0, 0, 0, 0), mode="RGBA")
        result = transformer.optimize(png, TransformOptions(format="jpeg"))
        img = decode(result.data)
        assert img.mode == "RGB"
        assert all(channel >= 240 for channel in img.getpixel((5, 5)))

    def test_default_quality_matches_explicit(self, transformer, jpeg_bytes):
        implicit = transformer.transform(jpeg_bytes, TransformOptions(format="jpeg"))
        explicit = transformer.transform(jpeg_bytes, TransformOptions(format="jpeg", quality=85))
        assert implicit.data == explicit.data

        implicit = transformer.transform(jpeg_bytes, TransformOptions(format="webp"))
        explicit = transformer.transform(jpeg_bytes, TransformOptions(format="webp", quality=80))
        assert implicit.data == explicit.data


# ============================================
# 2. Resize fits
# ============================================

class TestFits:

    @pytest.mark.parametrize("fit, expected", [
        (Fit.COVER, (50, 50)),
        (Fit.CONTAIN, (50, 50)),
        (Fit.FILL, (50, 50)),
        (Fit.INSIDE, (50, 25)),
        (Fit.OUTSIDE, (100, 50)),
    ])
    def test_box_dimensions(self, transformer, jpeg_bytes, fit, expected):
        result = transformer.optimize(
            jpeg_bytes, TransformOptions(width=50, height=50, fit=fit, format="png")
        )
        assert decode(result.data).size == expected
        assert (result.width, result.height) == expected

    def test_width_only_keeps_aspect(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(width=100))
        assert decode(result.data).size == (100, 50)

    def test_height_only_keeps_aspect(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(height=50, fit="fill"))
        assert decode(result.data).size == (100, 50)

    def test_contain_pads_transparent(self, transformer, jpeg_bytes):
        result = transformer.optimize(
            jpeg_bytes, TransformOptions(width=100, height=100, fit=Fit.CONTAIN, format="png")
        )
        img = decode(result.data).convert("RGBA")
        assert img.getpixel((50, 0))[3] == 0          # padding
        assert img.getpixel((50, 50))[3] == 255       # subject

    def test_contain_pads_white_for_jpeg(self, transformer, jpeg_bytes):
        result = transformer.optimize(
            jpeg_bytes, TransformOptions(width=100, height=100, fit=Fit.CONTAIN, format="jpeg")
        )
        img = decode(result.data)
        assert all(channel >= 240 for channel in img.getpixel((50, 2)))


# ============================================
# 3. Failures and fallback
# ============================================

class TestFailures:

    def test_corrupt_bytes_raise_decode_error(self, transformer):
        with pytest.raises(ImageDecodeError):
            transformer.optimize(b"definitely not an image", TransformOptions(width=10))

    def test_empty_bytes_raise_decode_error(self, transformer):
        with pytest.raises(ImageDecodeError):
            transformer.optimize(b"", TransformOptions())

    def test_decompression_bomb_raises_decode_error(self, transformer, jpeg_bytes, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ImageDecodeError):
            transformer.optimize(jpeg_bytes, TransformOptions(width=10))

    def test_unknown_format_is_strict_in_transform(self, transformer, jpeg_bytes):
        with pytest.raises(UnsupportedFormatError):
            transformer.transform(jpeg_bytes, TransformOptions(format="tiffany"))

    def test_unknown_format_falls_back_to_source(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(format="tiffany", width=50))
        assert result.content_type == "image/jpeg"
        assert result.format == "jpeg"
        assert decode(result.data).size == (50, 25)

    def test_avif_content_type_matches_output(self, transformer, jpeg_bytes):
        result = transformer.optimize(jpeg_bytes, TransformOptions(format="avif", width=20))
        if can_encode("AVIF"):
            assert result.content_type == "image/avif"
        else:
            assert result.content_type == "image/jpeg"

    @pytest.mark.parametrize("kwargs", [
        {"width": 0},
        {"height": -5},
        {"quality": 0},
        {"quality": 101},
        {"fit": "squash"},
    ])
    def test_invalid_options_rejected(self, kwargs):
        with pytest.raises(ValueError):
            TransformOptions(**kwargs)

    @pytest.mark.asyncio
    async def test_optimize_async(self, transformer, jpeg_bytes):
        result = await transformer.optimize_async(jpeg_bytes, TransformOptions(width=20, format="webp"))
        assert result.content_type == "image/webp"
        assert result.width == 20


# ============================================
# 4. Negotiation and headers
# ============================================

class TestNegotiation:

    def test_missing_accept_defaults_to_webp(self):
        assert get_optimal_format(None) == "webp"
        assert get_optimal_format("") == "webp"

    def test_webp_advertised(self):
        assert get_optimal_format("image/webp,image/*,*/*;q=0.8") == "webp"

    def test_avif_preferred_when_encodable(self):
        expected = "avif" if can_encode("AVIF") else "webp"
        assert get_optimal_format("image/avif,image/webp,*/*") == expected

    def test_fallback_to_jpeg(self):
        assert get_optimal_format("text/html,*/*") == "jpeg"

    def test_cache_headers(self):
        headers = image_cache_headers()
        assert headers["Vary"] == "Accept"
        assert "max-age=2592000" in headers["Cache-Control"]
        assert "stale-while-revalidate=604800" in headers["Cache-Control"]
        assert "Vary" not in image_cache_headers(negotiated=False)

    def test_output_format_is_canonical(self):
        assert output_format_for("JPG") == "jpeg"
        assert output_format_for("WebP") == "webp"
        assert output_format_for("tiffany") is None
        assert output_format_for(None) is None
        assert output_format_for("") is None

    def test_src_set(self):
        assert build_src_set("/img.jpg", ["small", "medium"]) == "/img.jpg?w=300 300w, /img.jpg?w=600 600w"
