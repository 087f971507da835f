from __future__ import annotations

import math
from typing import NamedTuple

from cornerbrand.errors import GeometryError
from cornerbrand.settings import ResolvedSettings


class LogoRect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def place(
    canvas_w: float,
    canvas_h: float,
    logo_w: float,
    logo_h: float,
    settings: ResolvedSettings,
    snap: bool = True,
) -> LogoRect:
    """
    Compute where the logo goes on a canvas, in top-left-origin coordinates.

    The logo's longer side is scaled to ``size_ratio`` of the canvas's shorter
    side, then placed ``margin_percent`` of that shorter side away from the
    chosen corner. The scale is capped so the logo always fits on the canvas,
    and the margin gives way before the logo is pushed off the canvas.

    Args:
        canvas_w: Canvas width.
        canvas_h: Canvas height.
        logo_w: Intrinsic logo width.
        logo_h: Intrinsic logo height.
        settings: Resolved stamp settings.
        snap: Round margin, target and drawn sizes to whole pixels (raster
            targets). With ``snap=False`` full float precision is kept.

    Returns:
        LogoRect(x, y, width, height) with y measured from the top edge.

    Raises:
        GeometryError: if the canvas or the logo has a non-positive side.
    """
    if canvas_w <= 0 or canvas_h <= 0:
        raise GeometryError(f"Invalid canvas size: {canvas_w}x{canvas_h}.")
    if logo_w <= 0 or logo_h <= 0:
        raise GeometryError(f"Invalid logo size: {logo_w}x{logo_h}.")

    short_side = min(canvas_w, canvas_h)

    margin = short_side * settings.margin_percent / 100.0
    target_max = short_side * settings.size_ratio
    if snap:
        margin = round_half_up(margin)
        target_max = round_half_up(target_max)
    margin = max(margin, 0)
    target_max = max(target_max, 1)

    scale = target_max / max(logo_w, logo_h)
    scale = min(scale, canvas_w / logo_w, canvas_h / logo_h)

    draw_w = logo_w * scale
    draw_h = logo_h * scale
    if snap:
        draw_w = round_half_up(draw_w)
        draw_h = round_half_up(draw_h)
    draw_w = min(max(draw_w, 1), canvas_w)
    draw_h = min(max(draw_h, 1), canvas_h)

    max_x = canvas_w - draw_w
    max_y = canvas_h - draw_h

    if settings.position.is_left:
        x = min(margin, max_x)
    else:
        x = min(max(canvas_w - draw_w - margin, 0), max_x)

    if settings.position.is_top:
        y = min(margin, max_y)
    else:
        y = min(max(canvas_h - draw_h - margin, 0), max_y)

    return LogoRect(x, y, draw_w, draw_h)


def place_on_page(
    page_w: float,
    page_h: float,
    logo_w: float,
    logo_h: float,
    settings: ResolvedSettings,
) -> LogoRect:
    """
    Same placement as ``place`` but for PDF space: float precision, y measured
    from the bottom edge. Corners keep their visual meaning.
    """
    rect = place(page_w, page_h, logo_w, logo_h, settings, snap=False)
    return rect._replace(y=max(page_h - rect.y - rect.height, 0.0))
