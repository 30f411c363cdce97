"""Progress-ring SVG generation for the `progress-ring` background effect.

The ring is two rounded rectangles stroked along the same path: a faint full
track and a dashed progress arc. Geometry is computed with a wider "dummy"
stroke (stroke plus a gap on each side) so the visible stroke sits inset from
the box border, while drawing uses the real stroke width.
"""
from __future__ import annotations

import logging
import math
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Tuple

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

# (8 - 2*pi) * r: straight-edge length a rounded corner replaces minus its arc.
CORNER_CORRECTION = 1.716
TRACK_ALPHA_HEX = "33"
SVG_NS = "http://www.w3.org/2000/svg"


@dataclass(frozen=True)
class RingGeometry:
    width: float
    height: float
    radius: float
    stroke_width: float
    gap: float
    dummy_stroke: float
    drawable_width: float
    drawable_height: float
    perimeter: float
    dash_offset: float

    @property
    def inset(self) -> float:
        return self.dummy_stroke / 2.0


def coerce_level_percent(value: Any) -> int:
    """Truncate a level (number or numeric text) to an int percentage in [0, 100]."""
    if isinstance(value, str):
        text = value.strip().rstrip("%")
        try:
            number = float(text)
        except ValueError:
            return 0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
    if not math.isfinite(number):
        return 0
    return int(max(0.0, min(100.0, number)))


def _ratio(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def compute_ring_geometry(
    level_percent: Any,
    width: Optional[float],
    height: Optional[float],
    *,
    radius: float,
    thickness_ratio: float,
    gap_ratio: float,
) -> Optional[RingGeometry]:
    """Ring layout for a box, or None when the box has no usable size."""
    if not width or not height:
        return None
    try:
        width = float(width)
        height = float(height)
        radius = float(radius)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        return None
    if not math.isfinite(radius):
        radius = 0.0

    level = coerce_level_percent(level_percent)
    stroke = _ratio(thickness_ratio) * height / 2.0
    gap = _ratio(gap_ratio) * (height / 2.0 - stroke)
    dummy_stroke = 2.0 * gap + stroke

    radius = max(radius - dummy_stroke / 2.0, stroke / 2.0)

    drawable_width = max(0.0, width - dummy_stroke)
    drawable_height = max(0.0, height - dummy_stroke)
    perimeter = max(0.0, 2.0 * drawable_height + 2.0 * drawable_width - CORNER_CORRECTION * radius)
    dash_offset = perimeter * (100 - level) / 100.0

    return RingGeometry(
        width=width,
        height=height,
        radius=radius,
        stroke_width=stroke,
        gap=gap,
        dummy_stroke=dummy_stroke,
        drawable_width=drawable_width,
        drawable_height=drawable_height,
        perimeter=perimeter,
        dash_offset=dash_offset,
    )


def _num(value: float, digits: int) -> str:
    return f"{value:.{digits}f}"


def _plain(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def build_ring_svg(geometry: RingGeometry, level_hex: str, level_alpha_hex: str) -> str:
    width = _num(geometry.drawable_width, 2)
    height = _num(geometry.drawable_height, 2)
    xy = _num(geometry.inset, 2)
    radius = _plain(geometry.radius)
    stroke = _plain(geometry.stroke_width)
    perimeter = _num(geometry.perimeter, 4)
    offset = _num(geometry.dash_offset, 4)
    box_width = _plain(geometry.width)
    box_height = _plain(geometry.height)
    return (
        f"<svg xmlns='{SVG_NS}' width='{box_width}' height='{box_height}'>\n"
        f"  <rect rx='{radius}' x='{xy}' y='{xy}' width='{width}' height='{height}' fill='transparent' "
        f"stroke='{level_hex}{TRACK_ALPHA_HEX}' stroke-width='{stroke}'></rect>\n"
        f"  <rect rx='{radius}' x='{xy}' y='{xy}' width='{width}' height='{height}' fill='transparent' "
        f"stroke='{level_hex}{level_alpha_hex}' stroke-width='{stroke}' "
        f"stroke-dasharray='{perimeter}' stroke-dashoffset='{offset}'></rect>\n"
        f"</svg>\n"
    )


@dataclass(frozen=True)
class RingStyle:
    radius: float = 0.0
    thickness_ratio: float = 0.0
    gap_ratio: float = 0.0
    level_hex: str = "#ffffff"
    level_alpha_hex: str = "ff"


def render_ring_svg(level_percent: Any, width: Optional[float], height: Optional[float], style: RingStyle) -> Optional[str]:
    geometry = compute_ring_geometry(
        level_percent,
        width,
        height,
        radius=style.radius,
        thickness_ratio=style.thickness_ratio,
        gap_ratio=style.gap_ratio,
    )
    if geometry is None:
        return None
    return build_ring_svg(geometry, style.level_hex, style.level_alpha_hex)


def write_ring_svg(path: Path, markup: str) -> bool:
    """Atomically replace the ring file; on failure log and keep the previous file."""
    data = (markup or "").encode("utf-8")
    if not data:
        _CLIENT_LOGGER.warning("Failed to write ring SVG %s: empty markup", path)
        return False
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".ring-", suffix=".svg", dir=str(path.parent))
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        _CLIENT_LOGGER.warning("Failed to write ring SVG %s: %s", path, exc)
        return False
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return True


class RingRenderer:
    """Holds the ring style and the last saved box shared by all monitors.

    The saved box is written at show time; level updates arriving without a
    size, or while the saved box is square, reuse it.
    """

    def __init__(self, svg_path: Path) -> None:
        self.svg_path = Path(svg_path)
        self.active = False
        self.width = 0.0
        self.height = 0.0
        self.style = RingStyle()

    def update_style(self, *, thickness_ratio: float, gap_ratio: float, level_hex: str, level_alpha_hex: str) -> None:
        self.style = replace(
            self.style,
            thickness_ratio=thickness_ratio,
            gap_ratio=gap_ratio,
            level_hex=level_hex,
            level_alpha_hex=level_alpha_hex,
        )

    def save_box(self, width: float, height: float, radius: float) -> None:
        self.active = True
        self.width = width
        self.height = height
        self.style = replace(self.style, radius=radius)

    def deactivate(self) -> None:
        self.active = False

    def _resolve_box(self, width: Optional[float], height: Optional[float]) -> Tuple[float, float]:
        if not height or not width or self.width == self.height:
            return self.width, self.height
        return width, height

    def geometry(self, level: Any, width: Optional[float] = None, height: Optional[float] = None) -> Optional[RingGeometry]:
        width, height = self._resolve_box(width, height)
        return compute_ring_geometry(
            level,
            width,
            height,
            radius=self.style.radius,
            thickness_ratio=self.style.thickness_ratio,
            gap_ratio=self.style.gap_ratio,
        )

    def render(self, level: Any, width: Optional[float] = None, height: Optional[float] = None) -> Optional[str]:
        width, height = self._resolve_box(width, height)
        return render_ring_svg(level, width, height, self.style)

    def update(self, level: Any, width: Optional[float] = None, height: Optional[float] = None) -> bool:
        """Render and persist the ring; returns True when the file was rewritten."""
        if not self.active:
            return False
        markup = self.render(level, width, height)
        if markup is None:
            _CLIENT_LOGGER.debug("Skipping ring update: no usable box size (level=%s)", level)
            return False
        return write_ring_svg(self.svg_path, markup)
