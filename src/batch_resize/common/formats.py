"""Output format registry and quality mapping."""

from collections.abc import Mapping
from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class OutputFormat(StrEnum):
    KEEP = "keep"
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"


class FormatDescriptor(BaseModel):
    """Capabilities of one concrete output format."""

    mime: str
    extension: str
    pil_format: str
    supports_alpha: bool
    accepts_quality: bool

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


FORMATS: dict[str, FormatDescriptor] = {
    "image/jpeg": FormatDescriptor(
        mime="image/jpeg",
        extension="jpg",
        pil_format="JPEG",
        supports_alpha=False,
        accepts_quality=True,
    ),
    "image/png": FormatDescriptor(
        mime="image/png",
        extension="png",
        pil_format="PNG",
        supports_alpha=True,
        accepts_quality=False,
    ),
    "image/webp": FormatDescriptor(
        mime="image/webp",
        extension="webp",
        pil_format="WEBP",
        supports_alpha=True,
        accepts_quality=True,
    ),
    "image/avif": FormatDescriptor(
        mime="image/avif",
        extension="avif",
        pil_format="AVIF",
        supports_alpha=True,
        accepts_quality=True,
    ),
}

FALLBACK_MIME = "image/png"

DEFAULT_QUALITY = 0.75

QUALITY_TABLE: dict[int, float] = {1: 0.40, 2: 0.60, 3: 0.75, 4: 0.85, 5: 0.92}


def get_format(mime: str) -> FormatDescriptor | None:
    return FORMATS.get(mime.lower())


def pick_output_mime(input_mime: str, fmt: OutputFormat) -> str:
    """Resolve the MIME to request from the encoder.

    ``keep`` reuses the input MIME when it is a known output format and asks
    for PNG otherwise.
    """
    if fmt is OutputFormat.KEEP:
        mime = input_mime.lower()
        return mime if mime in FORMATS else FALLBACK_MIME
    return f"image/{fmt.value}"


def extension_for_mime(mime: str) -> str:
    descriptor = get_format(mime)
    return descriptor.extension if descriptor is not None else FORMATS[FALLBACK_MIME].extension


def map_quality(level: int, table: Mapping[int, float] | None = None) -> float:
    """Map a 1..5 quality level to an encoder quality fraction in [0, 1]."""
    table = QUALITY_TABLE if table is None else table
    return table.get(level, DEFAULT_QUALITY)


def quality_percent(fraction: float) -> int:
    return max(1, min(100, round(fraction * 100)))
