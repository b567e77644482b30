"""Error hierarchy for batch resizing.

Geometry never raises; only validation, decoding, encoding and capability
lookup can fail.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .schemas import FieldIssue, ProcessedItem

Stage = Literal["decode", "render", "encode"]


class ResizeError(Exception):
    """Base class for all batch-resize errors."""


class BatchValidationError(ResizeError):
    """Options or files were rejected before any decode work started.

    Every violated field is reported, not just the first one.
    """

    def __init__(self, issues: Sequence[FieldIssue]):
        self.issues: list[FieldIssue] = list(issues)
        super().__init__(self._summary())

    @property
    def field_errors(self) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        for issue in self.issues:
            errors.setdefault(issue.field, []).append(issue.message)
        return errors

    def _summary(self) -> str:
        parts = [f"{key}: {'; '.join(messages)}" for key, messages in self.field_errors.items()]
        return "Validation error - " + ", ".join(parts)


class DecodeError(ResizeError):
    """Input bytes could not be decoded as an image."""

    stage: Stage = "decode"


class EncodeError(ResizeError):
    """Neither the requested format nor the lossless fallback could be produced."""

    stage: Stage = "encode"


class CapabilityUnavailableError(ResizeError):
    """The runtime lacks the imaging library a codec needs."""


class ConfigurationError(ResizeError):
    """A configuration file or value is invalid."""


class BatchProcessingError(ResizeError):
    def __init__(
        self,
        filename: str,
        stage: Stage,
        cause: BaseException,
        completed: Sequence[ProcessedItem] = (),
    ):
        self.filename: str = filename
        self.stage: Stage = stage
        self.cause: BaseException = cause
        self.completed: list[ProcessedItem] = list(completed)
        super().__init__(f"Failed to {stage} '{filename}': {cause}")
