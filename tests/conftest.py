"""Test configuration and fixtures for batch_resize.

This module provides:
- Synthetic image factories built with PIL
- Codec fixtures (Pillow and OpenCV)
- A tracking codec that records decode/release activity
- FastAPI TestClient and progress recorder fixtures
"""

import threading
from collections.abc import Callable
from io import BytesIO
from typing import override

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw

from batch_resize.codecs.opencv_codec import OpenCVCodec
from batch_resize.codecs.pillow_codec import PillowCodec, PillowImage
from batch_resize.common.config import ResizerConfig
from batch_resize.common.schemas import ProgressEvent, SourceFile

RED = (200, 30, 30)

ImageFactory = Callable[..., bytes]
SourceFactory = Callable[..., SourceFile]


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: full HTTP round trips through the FastAPI app",
    )


# ============================================================================
# Image Fixtures
# ============================================================================


def encode_image(
    width: int,
    height: int,
    fmt: str = "PNG",
    color: tuple[int, ...] = RED,
    mode: str = "RGB",
) -> bytes:
    """Build an image of a single colour with a darker cross through the middle."""
    img = Image.new(mode, (width, height), color=color)
    if mode == "RGB" and width > 4 and height > 4:
        draw = ImageDraw.Draw(img)
        draw.line([(width // 2, 0), (width // 2, height)], fill=(20, 20, 20), width=1)
        draw.line([(0, height // 2), (width, height // 2)], fill=(20, 20, 20), width=1)
    buffer = BytesIO()
    img.save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> ImageFactory:
    """Factory for encoded synthetic images."""
    return encode_image


@pytest.fixture
def make_source() -> SourceFactory:
    """Factory for SourceFile instances holding synthetic PNG/JPEG images."""

    def factory(
        name: str = "photo.png",
        width: int = 160,
        height: int = 90,
        fmt: str = "PNG",
        mime: str = "image/png",
        **kwargs: object,
    ) -> SourceFile:
        return SourceFile(name=name, mime=mime, data=encode_image(width, height, fmt, **kwargs))

    return factory


def open_image(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


# ============================================================================
# Codec Fixtures
# ============================================================================


@pytest.fixture
def pillow_codec() -> PillowCodec:
    return PillowCodec()


@pytest.fixture
def opencv_codec() -> OpenCVCodec:
    return OpenCVCodec()


@pytest.fixture(params=["pillow", "opencv"])
def codec(request: pytest.FixtureRequest) -> PillowCodec | OpenCVCodec:
    """Run a test once per built-in codec."""
    return PillowCodec() if request.param == "pillow" else OpenCVCodec()


class TrackingCodec(PillowCodec):
    """Pillow codec that counts decoded buffers in flight."""

    def __init__(self) -> None:
        super().__init__()
        self._lock: threading.Lock = threading.Lock()
        self.decoded: int = 0
        self.released: int = 0
        self.in_flight: int = 0
        self.max_in_flight: int = 0

    def _on_release(self) -> None:
        with self._lock:
            self.released += 1
            self.in_flight -= 1

    @override
    def decode(self, data: bytes, mime_hint: str | None = None) -> PillowImage:
        image = super().decode(data, mime_hint)
        with self._lock:
            self.decoded += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        tracker = self

        class TrackedImage(PillowImage):
            @override
            def _release(self, buffer: Image.Image) -> None:
                super()._release(buffer)
                tracker._on_release()

        return TrackedImage(
            image.buffer,
            image.width,
            image.height,
            has_alpha=image.has_alpha,
            mime=image.mime,
        )


@pytest.fixture
def tracking_codec() -> TrackingCodec:
    return TrackingCodec()


# ============================================================================
# Progress / Service Fixtures
# ============================================================================


class ProgressRecorder:
    """Mock progress callback for testing."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def completions(self) -> list[int]:
        return [e.done for e in self.events[1:] if e.current_file is None]

    @property
    def started(self) -> list[str]:
        return [e.current_file for e in self.events if e.current_file is not None]

    def group_sizes(self) -> list[int]:
        """Sizes of runs of 'started' events; a run ends at the next completion."""
        sizes: list[int] = []
        previous_was_start = False
        for event in self.events[1:]:
            if event.current_file is not None:
                if previous_was_start:
                    sizes[-1] += 1
                else:
                    sizes.append(1)
                previous_was_start = True
            else:
                previous_was_start = False
        return sizes


@pytest.fixture
def progress_recorder() -> ProgressRecorder:
    return ProgressRecorder()


@pytest.fixture
def server_config() -> ResizerConfig:
    return ResizerConfig.server()


@pytest.fixture
def api_client() -> TestClient:
    """Provide FastAPI TestClient backed by the Pillow codec."""
    from batch_resize.app import create_app

    app = create_app(config=ResizerConfig.server(), codec=PillowCodec())
    return TestClient(app)
