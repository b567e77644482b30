"""Pure resize geometry (no I/O).

Every intermediate pixel value goes through the built-in ``round`` and every
computed dimension is floored at 1.
"""

from ..common.schemas import (
    DrawSpec,
    ImageDimensions,
    Rect,
    ResizeMode,
    ResizeOptions,
    TargetLayout,
)


def _layout(out_w: int, out_h: int, source: Rect, dest: Rect) -> TargetLayout:
    return TargetLayout(
        output=ImageDimensions(width=out_w, height=out_h),
        draw=DrawSpec(source=source, dest=dest),
    )


def effective_target(
    src_w: int,
    src_h: int,
    target_w: int,
    target_h: int | None,
    allow_enlarge: bool,
) -> tuple[int, int | None]:
    """Clamp the target to the source size per axis unless enlarging is allowed."""
    if allow_enlarge:
        return target_w, target_h
    clamped_h = min(target_h, src_h) if target_h is not None else None
    return min(target_w, src_w), clamped_h


def compute_layout(
    src_w: int,
    src_h: int,
    target_w: int,
    target_h: int | None,
    mode: ResizeMode,
) -> TargetLayout:
    """
    Compute output size and the source -> destination mapping.

    - target_h is None -> width-only, aspect ratio preserved, no crop.
    - fill   -> exactly target_w x target_h, each axis scaled independently.
    - cover  -> source cropped (centered) to the target ratio, then scaled to fit exactly.
    - inside -> fitted within the box; output adopts the fitted size.
    - pad    -> fitted within the box and centered on a target_w x target_h canvas.

    Args:
        src_w: Native source width
        src_h: Native source height
        target_w: Target width
        target_h: Target height, None for a width-only resize
        mode: Resize mode, ignored for a width-only resize

    Returns:
        TargetLayout with output dimensions and the draw rectangles
    """
    full_source = Rect(x=0, y=0, w=src_w, h=src_h)

    if target_h is None:
        out_h = max(1, round(target_w * src_h / src_w))
        return _layout(target_w, out_h, full_source, Rect(w=target_w, h=out_h))

    if mode is ResizeMode.FILL:
        return _layout(target_w, target_h, full_source, Rect(w=target_w, h=target_h))

    if mode is ResizeMode.COVER:
        src_ratio = src_w / src_h
        dst_ratio = target_w / target_h
        if src_ratio > dst_ratio:
            # Source relatively wider: crop width
            crop_w = max(1, min(src_w, round(src_h * dst_ratio)))
            crop = Rect(x=round((src_w - crop_w) / 2), y=0, w=crop_w, h=src_h)
        else:
            crop_h = max(1, min(src_h, round(src_w / dst_ratio)))
            crop = Rect(x=0, y=round((src_h - crop_h) / 2), w=src_w, h=crop_h)
        return _layout(target_w, target_h, crop, Rect(w=target_w, h=target_h))

    scale = min(target_w / src_w, target_h / src_h)
    fit_w = max(1, round(src_w * scale))
    fit_h = max(1, round(src_h * scale))

    if mode is ResizeMode.INSIDE:
        return _layout(fit_w, fit_h, full_source, Rect(w=fit_w, h=fit_h))

    # Pad: centered on the full target canvas
    dx = round((target_w - fit_w) / 2)
    dy = round((target_h - fit_h) / 2)
    return _layout(target_w, target_h, full_source, Rect(x=dx, y=dy, w=fit_w, h=fit_h))


def layout_for(source: ImageDimensions, options: ResizeOptions) -> TargetLayout:
    target_w, target_h = effective_target(
        source.width,
        source.height,
        options.width,
        options.height,
        options.allow_enlarge,
    )
    return compute_layout(source.width, source.height, target_w, target_h, options.mode)
