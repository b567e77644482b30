"""Common module - protocols, schemas, configuration and errors."""

from .codec import WHITE, DecodedImage, ImageCodec
from .config import ResizerConfig, load_config
from .errors import (
    BatchProcessingError,
    BatchValidationError,
    CapabilityUnavailableError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    ResizeError,
)
from .formats import FormatDescriptor, OutputFormat, map_quality
from .schemas import (
    DrawSpec,
    FieldIssue,
    ImageDimensions,
    ProcessedItem,
    ProgressEvent,
    Rect,
    ResizeMode,
    ResizeOptions,
    SourceFile,
    TargetLayout,
)

__all__ = [
    "WHITE",
    "DecodedImage",
    "ImageCodec",
    "ResizerConfig",
    "load_config",
    "BatchProcessingError",
    "BatchValidationError",
    "CapabilityUnavailableError",
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "ResizeError",
    "FormatDescriptor",
    "OutputFormat",
    "map_quality",
    "DrawSpec",
    "FieldIssue",
    "ImageDimensions",
    "ProcessedItem",
    "ProgressEvent",
    "Rect",
    "ResizeMode",
    "ResizeOptions",
    "SourceFile",
    "TargetLayout",
]
