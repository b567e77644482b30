"""Tests for the Pillow and OpenCV codecs and the codec registry."""

import cv2
import numpy as np
import pytest
from conftest import encode_image, open_image

from batch_resize.algo.geometry import compute_layout
from batch_resize.codecs import BUILTIN_CODECS, get_available_codecs, get_codec
from batch_resize.codecs.opencv_codec import OpenCVCodec
from batch_resize.codecs.pillow_codec import PillowCodec
from batch_resize.common.codec import WHITE, DecodedImage, ImageCodec
from batch_resize.common.errors import CapabilityUnavailableError, DecodeError
from batch_resize.common.schemas import ImageDimensions, ResizeMode

# ============================================================================
# Decode
# ============================================================================


class TestDecode:
    def test_reports_dimensions(self, codec) -> None:
        source = codec.decode(encode_image(160, 90), "image/png")

        with source:
            assert source.dimensions == ImageDimensions(width=160, height=90)
            assert source.mime == "image/png"
            assert not source.has_alpha

    def test_detects_alpha(self, codec) -> None:
        source = codec.decode(encode_image(8, 8, color=(1, 2, 3, 128), mode="RGBA"), "image/png")

        with source:
            assert source.has_alpha

    def test_grayscale_input(self, codec) -> None:
        source = codec.decode(encode_image(10, 12, color=90, mode="L"), "image/png")

        with source:
            assert source.dimensions == ImageDimensions(width=10, height=12)
            assert not source.has_alpha

    @pytest.mark.parametrize("payload", [b"not an image at all", encode_image(50, 50)[:60]])
    def test_garbage_raises_decode_error(self, codec, payload: bytes) -> None:
        with pytest.raises(DecodeError) as exc_info:
            _ = codec.decode(payload, "image/png")

        assert exc_info.value.stage == "decode"

    def test_pixel_limit(self) -> None:
        data = encode_image(100, 100)

        for codec in (PillowCodec(max_input_pixels=5_000), OpenCVCodec(max_input_pixels=5_000)):
            with pytest.raises(DecodeError, match="exceeds the limit"):
                _ = codec.decode(data, "image/png")

    def test_pixel_limit_checked_before_opencv_decode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Oversized images are rejected from the header, before any pixels are decoded."""
        calls: list[int] = []
        real_imdecode = cv2.imdecode

        def spy(buf, flags):
            calls.append(flags)
            return real_imdecode(buf, flags)

        monkeypatch.setattr(cv2, "imdecode", spy)
        codec = OpenCVCodec(max_input_pixels=100)

        with pytest.raises(DecodeError, match="200x200 pixels exceeds the limit of 100"):
            _ = codec.decode(encode_image(200, 200), "image/png")

        assert calls == []

        with codec.decode(encode_image(10, 10), "image/png") as source:
            assert source.dimensions == ImageDimensions(width=10, height=10)
        assert len(calls) == 1


# ============================================================================
# Paint / encode
# ============================================================================


class TestPaint:
    @pytest.mark.parametrize("mode", list(ResizeMode))
    def test_canvas_matches_layout(self, codec, mode: ResizeMode) -> None:
        source = codec.decode(encode_image(160, 90), "image/png")
        layout = compute_layout(160, 90, 64, 64, mode)

        with source:
            canvas = codec.paint(source, layout, WHITE if mode is ResizeMode.PAD else None)
            data = codec.encode(canvas, "image/png")

        expected = (64, 36) if mode is ResizeMode.INSIDE else (64, 64)
        assert data is not None
        assert open_image(data).size == expected

    def test_opencv_background_is_bgr_white(self, opencv_codec: OpenCVCodec) -> None:
        source = opencv_codec.decode(encode_image(160, 90), "image/png")
        layout = compute_layout(160, 90, 50, 50, ResizeMode.PAD)

        with source:
            canvas = opencv_codec.paint(source, layout, WHITE)

        assert canvas.shape == (50, 50, 3)
        assert np.all(canvas[0, 0] == 255)

    def test_encode_unknown_mime_returns_none(self, codec) -> None:
        source = codec.decode(encode_image(10, 10), "image/png")

        with source:
            canvas = codec.paint(source, compute_layout(10, 10, 10, 10, ResizeMode.FILL))

        assert codec.encode(canvas, "image/tiff") is None

    @pytest.mark.parametrize("mime,pil_format", [("image/png", "PNG"), ("image/jpeg", "JPEG")])
    def test_encode_produces_requested_format(self, codec, mime: str, pil_format: str) -> None:
        source = codec.decode(encode_image(30, 20), "image/png")

        with source:
            canvas = codec.paint(source, compute_layout(30, 20, 15, 10, ResizeMode.FILL))

        data = codec.encode(canvas, mime, 0.85)
        assert data is not None
        assert open_image(data).format == pil_format

    def test_lower_quality_gives_smaller_jpeg(self, pillow_codec: PillowCodec) -> None:
        source = pillow_codec.decode(encode_image(200, 200), "image/png")

        with source:
            canvas = pillow_codec.paint(source, compute_layout(200, 200, 200, 200, ResizeMode.FILL))
            low = pillow_codec.encode(canvas, "image/jpeg", 0.40)
            high = pillow_codec.encode(canvas, "image/jpeg", 0.92)

        assert low is not None and high is not None
        assert len(low) <= len(high)

    def test_pillow_release_canvas_closes_image(self, pillow_codec: PillowCodec) -> None:
        source = pillow_codec.decode(encode_image(20, 20), "image/png")

        with source:
            canvas = pillow_codec.paint(source, compute_layout(20, 20, 10, 10, ResizeMode.FILL))

        pillow_codec.release_canvas(canvas)

        with pytest.raises(ValueError):
            _ = canvas.getpixel((0, 0))

    def test_supports(self, codec) -> None:
        assert codec.supports("image/png")
        assert codec.supports("image/jpeg")
        assert not codec.supports("image/gif")


# ============================================================================
# Decoded buffer ownership
# ============================================================================


class TestDecodedImage:
    def test_close_releases_buffer(self) -> None:
        image = DecodedImage(object(), 4, 3, has_alpha=False, mime="image/png")

        image.close()

        assert image.closed
        with pytest.raises(ValueError):
            _ = image.buffer

    def test_context_manager_closes_on_error(self, pillow_codec: PillowCodec) -> None:
        source = pillow_codec.decode(encode_image(10, 10), "image/png")

        with pytest.raises(RuntimeError):
            with source:
                raise RuntimeError("boom")

        assert source.closed

    def test_close_is_idempotent(self, pillow_codec: PillowCodec) -> None:
        source = pillow_codec.decode(encode_image(10, 10), "image/png")

        source.close()
        source.close()

        assert source.closed


# ============================================================================
# Registry
# ============================================================================


class TestRegistry:
    def test_builtin_codecs_listed(self) -> None:
        assert set(BUILTIN_CODECS) <= set(get_available_codecs())

    @pytest.mark.parametrize("name,cls", [("pillow", PillowCodec), ("opencv", OpenCVCodec)])
    def test_get_codec(self, name: str, cls: type) -> None:
        codec = get_codec(name, max_input_pixels=1234)

        assert isinstance(codec, cls)
        assert isinstance(codec, ImageCodec)
        assert codec.name == name
        assert codec.max_input_pixels == 1234

    def test_unknown_codec(self) -> None:
        with pytest.raises(CapabilityUnavailableError, match="Unknown codec 'imagemagick'"):
            _ = get_codec("imagemagick")
