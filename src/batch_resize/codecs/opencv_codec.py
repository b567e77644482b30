"""OpenCV-backed codec (native image-processing library, server deployment)."""

from io import BytesIO
from typing import cast

import cv2
import numpy as np
from loguru import logger
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError

from ..common.codec import RGB, DecodedImage
from ..common.errors import DecodeError
from ..common.formats import get_format, quality_percent
from ..common.schemas import TargetLayout

Pixels = NDArray[np.uint8]

# OpenCV's AVIF flag only exists in builds with libavif support
_QUALITY_FLAGS: dict[str, int | None] = {
    "image/jpeg": cv2.IMWRITE_JPEG_QUALITY,
    "image/webp": cv2.IMWRITE_WEBP_QUALITY,
    "image/avif": getattr(cv2, "IMWRITE_AVIF_QUALITY", None),
}


def _header_size(data: bytes) -> tuple[int, int] | None:
    """Width and height from the image header, without decoding pixels."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.size
    except Image.DecompressionBombError as exc:
        raise DecodeError(f"Image exceeds the pixel limit: {exc}") from exc
    except (UnidentifiedImageError, OSError):
        return None


def _to_uint8(pixels: NDArray[np.generic]) -> Pixels:
    if pixels.dtype == np.uint8:
        return cast(Pixels, pixels)
    if pixels.dtype == np.uint16:
        return (pixels >> 8).astype(np.uint8)
    return cast(Pixels, np.clip(pixels, 0, 255).astype(np.uint8))


def _normalize_channels(pixels: Pixels) -> Pixels:
    """Return a BGR or BGRA array."""
    if pixels.ndim == 2:
        return cast(Pixels, cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR))
    channels = pixels.shape[2]
    if channels == 1:
        return cast(Pixels, cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR))
    if channels == 2:
        gray, alpha = pixels[:, :, 0], pixels[:, :, 1]
        bgr = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
        return cast(Pixels, np.dstack([bgr, alpha]))
    return pixels


def _composite(background: Pixels, overlay: Pixels) -> Pixels:
    """Alpha-blend a BGRA overlay onto a BGR background of the same size."""
    alpha = overlay[:, :, 3:4].astype(np.float32) / 255.0
    blended = overlay[:, :, :3].astype(np.float32) * alpha + background.astype(np.float32) * (
        1.0 - alpha
    )
    return cast(Pixels, np.round(blended).astype(np.uint8))


class OpenCVCodec:
    """Decode, paint and encode with OpenCV / numpy."""

    name: str = "opencv"

    def __init__(self, max_input_pixels: int = 80_000_000):
        self.max_input_pixels: int = max_input_pixels

    def decode(self, data: bytes, mime_hint: str | None = None) -> DecodedImage[Pixels]:
        raw = np.frombuffer(data, dtype=np.uint8)
        if raw.size == 0:
            raise DecodeError("Empty image data")

        header = _header_size(data)
        if header is not None:
            self._check_pixels(*header)

        try:
            decoded = cv2.imdecode(raw, cv2.IMREAD_UNCHANGED)
        except cv2.error as exc:
            raise DecodeError(f"Failed to decode image: {exc}") from exc
        if decoded is None:
            raise DecodeError(f"Cannot identify image data ({mime_hint or 'unknown type'})")

        height, width = decoded.shape[:2]
        self._check_pixels(width, height)

        pixels = _normalize_channels(_to_uint8(decoded))
        has_alpha = pixels.shape[2] == 4
        return DecodedImage(
            pixels,
            width,
            height,
            has_alpha=has_alpha,
            mime=mime_hint or "application/octet-stream",
        )

    def _check_pixels(self, width: int, height: int) -> None:
        if width * height > self.max_input_pixels:
            raise DecodeError(
                f"Image of {width}x{height} pixels exceeds the limit of {self.max_input_pixels}"
            )

    def paint(
        self,
        source: DecodedImage[Pixels],
        layout: TargetLayout,
        background: RGB | None = None,
    ) -> Pixels:
        out = layout.output
        src_rect = layout.draw.source
        dest = layout.draw.dest

        crop = np.ascontiguousarray(
            source.buffer[src_rect.y : src_rect.y + src_rect.h, src_rect.x : src_rect.x + src_rect.w]
        )
        region = cast(
            Pixels,
            cv2.resize(crop, (dest.w, dest.h), interpolation=cv2.INTER_LINEAR),
        )
        target = (slice(dest.y, dest.y + dest.h), slice(dest.x, dest.x + dest.w))

        if background is not None:
            # Colours are BGR in OpenCV
            canvas = np.empty((out.height, out.width, 3), dtype=np.uint8)
            canvas[:, :] = background[::-1]
            if source.has_alpha:
                canvas[target] = _composite(canvas[target], region)
            else:
                canvas[target] = region
            return canvas

        if layout.covers_canvas:
            return region
        channels = 4 if source.has_alpha else 3
        canvas = np.zeros((out.height, out.width, channels), dtype=np.uint8)
        canvas[target] = region
        return canvas

    def encode(self, canvas: Pixels, mime: str, quality: float | None = None) -> bytes | None:
        descriptor = get_format(mime)
        if descriptor is None or not self.supports(mime):
            return None

        pixels = canvas
        if not descriptor.supports_alpha and pixels.shape[2] == 4:
            pixels = cast(Pixels, cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR))

        params: list[int] = []
        flag = _QUALITY_FLAGS.get(mime)
        if descriptor.accepts_quality and quality is not None and flag is not None:
            params = [flag, quality_percent(quality)]
        if descriptor.pil_format == "PNG":
            params = [cv2.IMWRITE_PNG_COMPRESSION, 9]

        try:
            ok, encoded = cv2.imencode(f".{descriptor.extension}", pixels, params)
        except cv2.error as exc:
            logger.debug(f"OpenCV failed to encode {mime}: {exc}")
            return None
        if not ok:
            return None
        return encoded.tobytes()

    def supports(self, mime: str) -> bool:
        descriptor = get_format(mime)
        if descriptor is None:
            return False
        try:
            return bool(cv2.haveImageWriter(f"image.{descriptor.extension}"))
        except cv2.error:
            return False

    def release_canvas(self, canvas: Pixels) -> None:
        """numpy arrays are freed once unreferenced."""
