"""Pydantic schemas for resize options, layouts and results."""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .formats import OutputFormat

MIN_DIM = 1
MAX_DIM = 8000


class ResizeMode(StrEnum):
    """How aspect ratio is handled when both width and height are given."""

    INSIDE = "inside"
    COVER = "cover"
    PAD = "pad"
    FILL = "fill"


# ─────────────────────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────────────────────


class ImageDimensions(BaseModel):
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class Rect(BaseModel):
    x: int = Field(0, ge=0)
    y: int = Field(0, ge=0)
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as used by imaging libraries."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)


class DrawSpec(BaseModel):
    """Source rectangle (source pixels) painted into dest rectangle (canvas pixels)."""

    source: Rect
    dest: Rect

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class TargetLayout(BaseModel):
    output: ImageDimensions
    draw: DrawSpec

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def covers_canvas(self) -> bool:
        dest = self.draw.dest
        return (
            dest.x == 0
            and dest.y == 0
            and dest.w == self.output.width
            and dest.h == self.output.height
        )


# ─────────────────────────────────────────────────────────────
# Options
# ─────────────────────────────────────────────────────────────


class ResizeOptions(BaseModel):
    """Caller-supplied options, read-only for the duration of a batch run.

    Attributes:
        width: Target width in pixels (1-8000)
        height: Target height in pixels (1-8000), None for a width-only resize
        mode: Geometric policy used when both axes are given
        format: Output format, ``keep`` reuses the input format
        quality: Quality level 1-5, mapped to an encoder quality fraction
        allow_enlarge: If False, targets are clamped to the source size per axis
    """

    width: int = Field(..., ge=MIN_DIM, le=MAX_DIM, description="Target width in pixels")
    height: int | None = Field(
        default=None, ge=MIN_DIM, le=MAX_DIM, description="Target height in pixels"
    )
    mode: ResizeMode = ResizeMode.INSIDE
    format: OutputFormat = OutputFormat.KEEP
    quality: int = Field(default=3, ge=1, le=5, description="Quality level (1-5)")
    allow_enlarge: bool = False

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


# ─────────────────────────────────────────────────────────────
# Batch input / output
# ─────────────────────────────────────────────────────────────


class SourceFile(BaseModel):
    name: str = Field(..., min_length=1)
    mime: str
    data: bytes

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def size(self) -> int:
        return len(self.data)


class ProcessedItem(BaseModel):
    """One successfully resized file. Immutable once created."""

    id: str
    filename: str
    mime: str
    data: bytes
    dimensions: ImageDimensions
    size_info: str

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class ProgressEvent(BaseModel):
    total: int = Field(..., ge=0)
    done: int = Field(..., ge=0)
    current_file: str | None = None

    @model_validator(mode="after")
    def validate_done_within_total(self) -> "ProgressEvent":
        if self.done > self.total:
            raise ValueError("done cannot exceed total")
        return self


class FieldIssue(BaseModel):
    """One violated field, shaped for structured 400 responses."""

    path: list[str | int]
    message: str
    code: str = "custom"

    @property
    def field(self) -> str:
        return ".".join(str(part) for part in self.path) or "form"
