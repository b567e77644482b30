"""FastAPI application factory for the resize service."""

from pathlib import Path

from fastapi import FastAPI
from loguru import logger

from . import __version__
from .codecs import get_codec
from .common.codec import ImageCodec
from .common.config import ResizerConfig, load_config
from .routes import create_router


def create_app(
    config_path: Path | None = None,
    *,
    config: ResizerConfig | None = None,
    codec: ImageCodec | None = None,
) -> FastAPI:
    """Build the service.

    Raises:
        CapabilityUnavailableError: If the configured codec cannot be loaded
        ConfigurationError: If the configuration file is invalid

    Example:
        uvicorn --factory batch_resize.app:create_app
    """
    config = config or load_config(config_path, ResizerConfig.server())
    codec = codec or get_codec(config.codec, max_input_pixels=config.max_input_pixels)
    logger.info(
        f"Starting resize service with codec {codec.name} "
        + f"(max {config.max_files} files, {config.max_file_size} bytes per file)"
    )

    app = FastAPI(title="Batch Resize", version=__version__)
    app.include_router(create_router(config, codec), prefix="/api")
    return app
