"""Resize geometry and the render/encode step."""

from .geometry import compute_layout, effective_target, layout_for
from .render import RenderResult, output_filename, render_and_encode

__all__ = [
    "compute_layout",
    "effective_target",
    "layout_for",
    "RenderResult",
    "output_filename",
    "render_and_encode",
]
