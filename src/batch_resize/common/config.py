"""Resizer configuration.

Limits, batch size and the quality table are passed explicitly to the
orchestrator and the HTTP router, so runs with different limits can coexist.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .formats import QUALITY_TABLE

MB = 1024 * 1024

CONFIG_FILE = Path("batch_resize.toml")

ALLOWED_INPUT_MIMES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/avif",
)


class ResizerConfig(BaseModel):
    batch_size: int = Field(default=5, ge=1, description="Images processed concurrently")
    max_files: int = Field(default=20, ge=1, description="Maximum files per batch")
    max_file_size: int = Field(default=15 * MB, ge=1, description="Maximum bytes per file")
    max_input_pixels: int = Field(
        default=80_000_000, ge=1, description="Decompression-bomb guard (width * height)"
    )
    allowed_input_mimes: tuple[str, ...] = ALLOWED_INPUT_MIMES
    quality_table: dict[int, float] = Field(default_factory=lambda: dict(QUALITY_TABLE))
    codec: str = "opencv"

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    @field_validator("quality_table")
    @classmethod
    def validate_quality_fractions(cls, v: dict[int, float]) -> dict[int, float]:
        for level, fraction in v.items():
            if not 0.0 <= fraction <= 1.0:
                raise ValueError(f"Quality for level {level} must be within [0, 1]")
        return v

    @classmethod
    def server(cls) -> "ResizerConfig":
        return cls()

    @classmethod
    def client(cls) -> "ResizerConfig":
        """Looser limits for the local pipeline, bounded by the machine's memory."""
        return cls(max_files=40, max_file_size=50 * MB, codec="pillow")


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"[{name}] must be a table")
    return value


def load_config(path: Path | None = None, base: ResizerConfig | None = None) -> ResizerConfig:
    """Overlay an optional TOML file on a preset.

    Recognised keys::

        codec = "pillow"

        [limits]
        max_files = 10
        max_file_size_mb = 8
        max_input_pixels = 40000000

        [batch]
        size = 3

        [quality]
        1 = 0.5
    """
    base = base or ResizerConfig.server()
    raw = _read_toml(path or CONFIG_FILE)
    if not raw:
        return base

    updates: dict[str, object] = {}
    limits = _section(raw, "limits")
    batch = _section(raw, "batch")
    quality = _section(raw, "quality")

    if "codec" in raw:
        updates["codec"] = raw["codec"]
    if "max_files" in limits:
        updates["max_files"] = limits["max_files"]
    if "max_file_size_mb" in limits:
        size_mb = limits["max_file_size_mb"]
        if not isinstance(size_mb, (int, float)):
            raise ConfigurationError("limits.max_file_size_mb must be a number")
        updates["max_file_size"] = int(size_mb * MB)
    if "max_input_pixels" in limits:
        updates["max_input_pixels"] = limits["max_input_pixels"]
    if "allowed_input_mimes" in limits:
        updates["allowed_input_mimes"] = limits["allowed_input_mimes"]
    if "size" in batch:
        updates["batch_size"] = batch["size"]
    if quality:
        table = dict(base.quality_table)
        try:
            table.update({int(level): float(str(value)) for level, value in quality.items()})
        except ValueError as exc:
            raise ConfigurationError(f"Invalid [quality] table: {exc}") from exc
        updates["quality_table"] = table

    try:
        return ResizerConfig.model_validate(base.model_dump() | updates)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
