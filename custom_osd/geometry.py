"""Show-time geometry helpers: corner radii, padding, square boxes and placement."""
from __future__ import annotations

from typing import Tuple

from custom_osd.monitors import MonitorGeometry

RadiusPair = Tuple[float, float]


def corner_radius_pair(bradius: float, *, progress_ring: bool = False) -> RadiusPair:
    """Map the shape parameter to (br1, br2) percentages of the half height.

    [0, 100] runs from rectangle to pill with both pairs equal. Past either end
    the value wraps: below 0 one pair stays square while the other grows, above
    100 one pair stays fully round while the other shrinks back. The progress
    ring needs a uniform outline, so it always mirrors br1.
    """
    if bradius < 0:
        br1, br2 = 0.0, -bradius
    elif bradius > 100:
        br1, br2 = 100.0, 200.0 - bradius
    else:
        br1, br2 = float(bradius), float(bradius)
    if progress_ring:
        br2 = br1
    return br1, br2


def border_radius_px(pair: RadiusPair, box_height: float) -> RadiusPair:
    half = max(0.0, box_height) / 2.0
    return pair[0] * half / 100.0, pair[1] * half / 100.0


def show_padding(hpadding: float, internal_size: float, numeric_visible: bool) -> float:
    """Right padding of the box; the numeric label already adds room on that side."""
    if numeric_visible:
        return max(0.0, hpadding - (100.0 - internal_size) / 10.0)
    return hpadding * 1.65 + (100.0 - internal_size) / 10.0


def square_box(width: float, height: float, enabled: bool) -> Tuple[float, float]:
    if enabled:
        return width, width
    return width, height


def translation(
    h_percent: float,
    v_percent: float,
    monitor: MonitorGeometry,
    box_width: float,
    box_height: float,
    *,
    rotate: bool = False,
) -> Tuple[float, float]:
    """Offset from the centered position as a percentage of the free space on each axis.

    A rotated box keeps its unrotated layout size, so width and height swap
    roles. Positive vertical values move the box up.
    """
    h_percent = max(-50.0, min(50.0, h_percent))
    v_percent = max(-50.0, min(50.0, v_percent))
    if rotate:
        box_width, box_height = box_height, box_width
    trans_x = h_percent * (monitor.width - box_width) / 100.0
    trans_y = -v_percent * (monitor.height - box_height) / 100.0
    return trans_x, trans_y
