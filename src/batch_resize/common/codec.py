"""
ImageCodec Protocol - interface for the decode / paint / encode capability.

Design goals:
- Keep geometry and orchestration independent of the imaging library
- Make buffer ownership explicit (DecodedImage.close)
- Report unsupported output formats as None, never as an exception
"""

from __future__ import annotations

from types import TracebackType
from typing import Generic, Protocol, TypeVar, runtime_checkable

from .schemas import ImageDimensions, TargetLayout

RGB = tuple[int, int, int]

WHITE: RGB = (255, 255, 255)

B = TypeVar("B")


class DecodedImage(Generic[B]):
    """A decoded pixel buffer owned by exactly one processing task.

    The buffer is dropped by ``close()``; use the instance as a context
    manager so release happens on every path.
    """

    def __init__(self, buffer: B, width: int, height: int, *, has_alpha: bool, mime: str):
        self._buffer: B | None = buffer
        self.width: int = width
        self.height: int = height
        self.has_alpha: bool = has_alpha
        self.mime: str = mime

    @property
    def buffer(self) -> B:
        if self._buffer is None:
            raise ValueError("Decoded image has already been released")
        return self._buffer

    @property
    def closed(self) -> bool:
        return self._buffer is None

    @property
    def dimensions(self) -> ImageDimensions:
        return ImageDimensions(width=self.width, height=self.height)

    def _release(self, buffer: B) -> None:
        """Hook for codecs whose buffers hold native resources."""

    def close(self) -> None:
        if self._buffer is not None:
            buffer, self._buffer = self._buffer, None
            self._release(buffer)

    def __enter__(self) -> DecodedImage[B]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


@runtime_checkable
class ImageCodec(Protocol):
    """
    Protocol for an imaging backend.

    Implementations own:
    - decoding bytes into a DecodedImage
    - allocating and painting the output canvas
    - encoding a canvas into bytes of a target MIME
    """

    name: str

    def decode(self, data: bytes, mime_hint: str | None = None) -> DecodedImage[object]:
        """Decode bytes into a pixel buffer. Raises DecodeError."""
        ...

    def paint(
        self,
        source: DecodedImage[object],
        layout: TargetLayout,
        background: RGB | None = None,
    ) -> object:
        """Return a canvas of ``layout.output`` with the source drawn into it."""
        ...

    def encode(self, canvas: object, mime: str, quality: float | None = None) -> bytes | None:
        """Encode the canvas. Returns None when ``mime`` cannot be produced."""
        ...

    def supports(self, mime: str) -> bool:
        """Whether ``encode`` can produce ``mime`` at all."""
        ...

    def release_canvas(self, canvas: object) -> None:
        """Free the native memory behind a canvas returned by ``paint``."""
        ...
