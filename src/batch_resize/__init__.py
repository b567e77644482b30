"""batch_resize - resize batches of images under four geometric policies."""

__version__ = "0.1.0"

from .algo.geometry import compute_layout, effective_target, layout_for
from .algo.render import render_and_encode
from .archive import archive_filename, build_archive
from .codecs import get_codec
from .common.config import ResizerConfig, load_config
from .common.errors import (
    BatchProcessingError,
    BatchValidationError,
    CapabilityUnavailableError,
    DecodeError,
    EncodeError,
    ResizeError,
)
from .common.formats import OutputFormat
from .common.schemas import (
    ImageDimensions,
    ProcessedItem,
    ProgressEvent,
    ResizeMode,
    ResizeOptions,
    SourceFile,
    TargetLayout,
)
from .orchestrator import BatchOrchestrator

__all__ = [
    "__version__",
    "compute_layout",
    "effective_target",
    "layout_for",
    "render_and_encode",
    "archive_filename",
    "build_archive",
    "get_codec",
    "ResizerConfig",
    "load_config",
    "BatchProcessingError",
    "BatchValidationError",
    "CapabilityUnavailableError",
    "DecodeError",
    "EncodeError",
    "ResizeError",
    "OutputFormat",
    "ImageDimensions",
    "ProcessedItem",
    "ProgressEvent",
    "ResizeMode",
    "ResizeOptions",
    "SourceFile",
    "TargetLayout",
    "BatchOrchestrator",
]
