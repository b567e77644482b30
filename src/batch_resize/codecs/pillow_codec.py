"""Pillow-backed codec (in-process graphics primitives)."""

from io import BytesIO
from typing import override

from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..common.codec import RGB, DecodedImage
from ..common.errors import DecodeError
from ..common.formats import get_format, quality_percent
from ..common.schemas import TargetLayout

ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")


class PillowImage(DecodedImage[Image.Image]):
    @override
    def _release(self, buffer: Image.Image) -> None:
        buffer.close()


class PillowCodec:
    """Decode, paint and encode with Pillow."""

    name: str = "pillow"

    def __init__(self, max_input_pixels: int = 80_000_000):
        self.max_input_pixels: int = max_input_pixels

    def decode(self, data: bytes, mime_hint: str | None = None) -> PillowImage:
        try:
            img = Image.open(BytesIO(data))
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Cannot identify image data ({mime_hint or 'unknown type'})") from exc

        source_format = img.format or ""
        try:
            width, height = img.size
            if width * height > self.max_input_pixels:
                raise DecodeError(
                    f"Image of {width}x{height} pixels exceeds the limit of {self.max_input_pixels}"
                )
            img.load()

            has_alpha = img.mode in ALPHA_MODES or "transparency" in img.info
            target_mode = "RGBA" if has_alpha else "RGB"
            if img.mode != target_mode:
                converted = img.convert(target_mode)
                img.close()
                img = converted
        except DecodeError:
            img.close()
            raise
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            img.close()
            raise DecodeError(f"Failed to decode image: {exc}") from exc

        return PillowImage(
            img,
            width,
            height,
            has_alpha=has_alpha,
            mime=mime_hint or Image.MIME.get(source_format, "application/octet-stream"),
        )

    def paint(
        self,
        source: DecodedImage[Image.Image],
        layout: TargetLayout,
        background: RGB | None = None,
    ) -> Image.Image:
        out = layout.output
        src_rect = layout.draw.source
        dest = layout.draw.dest

        region = source.buffer.resize(
            (dest.w, dest.h),
            Image.Resampling.BILINEAR,
            box=src_rect.box,
        )

        if background is not None:
            canvas = Image.new("RGB", (out.width, out.height), background)
            # Alpha is composited onto the background
            canvas.paste(region, (dest.x, dest.y), region if region.mode == "RGBA" else None)
        elif source.has_alpha:
            canvas = Image.new("RGBA", (out.width, out.height), (0, 0, 0, 0))
            canvas.paste(region, (dest.x, dest.y))
        elif layout.covers_canvas:
            return region
        else:
            canvas = Image.new("RGB", (out.width, out.height))
            canvas.paste(region, (dest.x, dest.y))

        region.close()
        return canvas

    def encode(self, canvas: Image.Image, mime: str, quality: float | None = None) -> bytes | None:
        descriptor = get_format(mime)
        if descriptor is None or not self.supports(mime):
            return None

        img = canvas
        if not descriptor.supports_alpha and img.mode != "RGB":
            img = img.convert("RGB")

        save_kwargs: dict[str, object] = {}
        if descriptor.accepts_quality and quality is not None:
            save_kwargs["quality"] = quality_percent(quality)
        if descriptor.pil_format == "PNG":
            save_kwargs["optimize"] = True

        buffer = BytesIO()
        try:
            img.save(buffer, format=descriptor.pil_format, **save_kwargs)
        except (OSError, KeyError, ValueError) as exc:
            logger.debug(f"Pillow failed to encode {mime}: {exc}")
            return None
        finally:
            if img is not canvas:
                img.close()
        return buffer.getvalue()

    def supports(self, mime: str) -> bool:
        descriptor = get_format(mime)
        if descriptor is None:
            return False
        _ = Image.init()
        return descriptor.pil_format in Image.SAVE

    def release_canvas(self, canvas: Image.Image) -> None:
        canvas.close()
