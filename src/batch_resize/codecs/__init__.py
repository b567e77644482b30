"""Codec registry.

Built-in codecs are ``pillow`` and ``opencv``. Additional codecs are
discovered from [project.entry-points."batch_resize.codecs"] in
pyproject.toml.
"""

from importlib import import_module
from importlib.metadata import entry_points
from typing import Callable, cast

from ..common.codec import ImageCodec
from ..common.errors import CapabilityUnavailableError

CodecFactory = Callable[..., ImageCodec]

BUILTIN_CODECS: dict[str, str] = {
    "pillow": "batch_resize.codecs.pillow_codec:PillowCodec",
    "opencv": "batch_resize.codecs.opencv_codec:OpenCVCodec",
}


def _load_builtin(name: str) -> CodecFactory:
    module_name, _, attr = BUILTIN_CODECS[name].partition(":")
    try:
        module = import_module(module_name)
    except ImportError as exc:
        raise CapabilityUnavailableError(
            f"Codec '{name}' is unavailable: {exc}. Install with: pip install batch-resize"
        ) from exc
    return cast(CodecFactory, getattr(module, attr))


def get_available_codecs() -> list[str]:
    """Names of built-in and entry-point codecs."""
    names = set(BUILTIN_CODECS)
    names.update(ep.name for ep in entry_points(group="batch_resize.codecs"))
    return sorted(names)


def get_codec(name: str, *, max_input_pixels: int = 80_000_000) -> ImageCodec:
    """Instantiate a codec by name.

    Raises:
        CapabilityUnavailableError: If the name is unknown or its library cannot be loaded
    """
    if name in BUILTIN_CODECS:
        factory = _load_builtin(name)
    else:
        matches = [ep for ep in entry_points(group="batch_resize.codecs") if ep.name == name]
        if not matches:
            raise CapabilityUnavailableError(
                f"Unknown codec '{name}'. Available: {', '.join(get_available_codecs())}"
            )
        try:
            factory = cast(CodecFactory, matches[0].load())
        except Exception as e:
            # Plugin dependency missing = exception (fail fast)
            raise CapabilityUnavailableError(f"Failed to load codec '{name}': {e}") from e

    return factory(max_input_pixels=max_input_pixels)


__all__ = ["BUILTIN_CODECS", "get_available_codecs", "get_codec"]
