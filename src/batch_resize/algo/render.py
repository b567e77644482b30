"""Render a decoded image onto its output canvas and encode it."""

from collections.abc import Mapping
from pathlib import PurePath

from loguru import logger
from pydantic import BaseModel

from ..common.codec import WHITE, DecodedImage, ImageCodec
from ..common.errors import EncodeError
from ..common.formats import (
    FALLBACK_MIME,
    extension_for_mime,
    get_format,
    map_quality,
    pick_output_mime,
)
from ..common.schemas import ImageDimensions, ResizeMode, ResizeOptions
from .geometry import layout_for


class RenderResult(BaseModel):
    data: bytes
    mime: str
    dimensions: ImageDimensions


def needs_background(mode: ResizeMode, mime: str) -> bool:
    """White is painted for pad margins and for formats that cannot store alpha."""
    if mode is ResizeMode.PAD:
        return True
    descriptor = get_format(mime)
    return descriptor is None or not descriptor.supports_alpha


def encode_with_fallback(
    codec: ImageCodec,
    canvas: object,
    requested_mime: str,
    quality: float,
) -> tuple[bytes, str]:
    """Encode ``canvas``; fall back to PNG when the requested MIME is unavailable.

    Raises:
        EncodeError: If neither the requested MIME nor PNG could be produced
    """
    descriptor = get_format(requested_mime)
    if descriptor is not None and codec.supports(requested_mime):
        data = codec.encode(
            canvas,
            requested_mime,
            quality if descriptor.accepts_quality else None,
        )
        if data is not None:
            return data, requested_mime

    logger.warning(f"{codec.name} cannot encode {requested_mime}, falling back to {FALLBACK_MIME}")
    data = codec.encode(canvas, FALLBACK_MIME, None)
    if data is None:
        raise EncodeError(f"Failed to encode the image as {requested_mime} or {FALLBACK_MIME}")
    return data, FALLBACK_MIME


def render_and_encode(
    codec: ImageCodec,
    source: DecodedImage[object],
    input_mime: str,
    options: ResizeOptions,
    *,
    quality_table: Mapping[int, float] | None = None,
) -> RenderResult:
    """
    Paint ``source`` at the size dictated by ``options`` and encode it.

    The caller keeps ownership of ``source`` and must close it.

    Args:
        codec: Imaging backend
        source: Decoded source image
        input_mime: MIME of the original file, used for ``keep``
        options: Resize options of the batch
        quality_table: Level -> fraction table, defaults to the built-in one

    Returns:
        RenderResult with encoded bytes, the final MIME and output dimensions
    """
    layout = layout_for(source.dimensions, options)
    requested_mime = pick_output_mime(input_mime, options.format)
    background = WHITE if needs_background(options.mode, requested_mime) else None

    canvas = codec.paint(source, layout, background)
    try:
        data, mime = encode_with_fallback(
            codec,
            canvas,
            requested_mime,
            map_quality(options.quality, quality_table),
        )
    finally:
        codec.release_canvas(canvas)
    return RenderResult(data=data, mime=mime, dimensions=layout.output)


def base_name_of(filename: str) -> str:
    """Strip directories and the last extension."""
    name = PurePath(filename.replace("\\", "/")).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def output_filename(filename: str, dimensions: ImageDimensions, mime: str) -> str:
    """``{base}_{width}x{height}.{ext}`` using the extension of the final MIME."""
    return (
        f"{base_name_of(filename)}_{dimensions.width}x{dimensions.height}"
        f".{extension_for_mime(mime)}"
    )
