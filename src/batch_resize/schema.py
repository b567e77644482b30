"""Request and response schemas of the HTTP resize endpoint."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.formats import OutputFormat
from .common.schemas import MAX_DIM, MIN_DIM, FieldIssue, ResizeMode, ResizeOptions

DownloadMode = Literal["zip", "json"]


def parse_bool(value: object) -> bool:
    """Only an explicit true (or the string "true", any case) enables a flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


class ResizeForm(BaseModel):
    """Multipart form fields of ``POST /resize``.

    Empty strings are dropped before validation, so ``height=""`` behaves like
    an omitted height.
    """

    width: int = Field(..., ge=MIN_DIM, le=MAX_DIM, description="Target width in pixels")
    height: int | None = Field(
        default=None, ge=MIN_DIM, le=MAX_DIM, description="Target height in pixels"
    )
    mode: ResizeMode = ResizeMode.INSIDE
    format: Literal["jpeg", "png", "webp", "avif"] | None = Field(
        default=None, description="Output format, omitted keeps the input format"
    )
    quality_scale: int = Field(default=3, ge=1, le=5, alias="qualityScale")
    allow_enlarge: bool = Field(default=False, alias="allowEnlarge")
    download: DownloadMode = "zip"

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("allow_enlarge", mode="before")
    @classmethod
    def validate_allow_enlarge(cls, v: object) -> bool:
        return parse_bool(v)

    def to_options(self) -> ResizeOptions:
        return ResizeOptions(
            width=self.width,
            height=self.height,
            mode=self.mode,
            format=OutputFormat(self.format) if self.format else OutputFormat.KEEP,
            quality=self.quality_scale,
            allow_enlarge=self.allow_enlarge,
        )


class ResizedImage(BaseModel):
    filename: str
    mime: str
    data_url: str = Field(..., serialization_alias="dataUrl")


class ResizeJsonResponse(BaseModel):
    items: list[ResizedImage]


class ValidationErrorResponse(BaseModel):
    message: str = "Validation error"
    issues: list[FieldIssue]
    field_errors: dict[str, list[str]] = Field(..., serialization_alias="fieldErrors")


class ItemErrorResponse(BaseModel):
    message: str
    file: str
    stage: str


class HealthResponse(BaseModel):
    status: str = "ok"
    codec: str
    output_formats: list[str]
