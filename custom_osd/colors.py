"""Color helpers shared by the style computer, ring renderer and stylesheet writer."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class Rgba:
    """Normalized color channels in [0, 1]."""

    red: float
    green: float
    blue: float
    alpha: float = 1.0


@dataclass(frozen=True)
class RgbColor:
    """Opaque 8-bit color; alpha travels separately."""

    red: int
    green: int
    blue: int

    def hex(self) -> str:
        return rgb_to_hex(self.red, self.green, self.blue)


def _unit(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return max(0.0, min(1.0, number))


def coerce_rgba(raw: Any, fallback: Rgba) -> Rgba:
    """Build an Rgba from a 3/4 item sequence of floats or numeric strings."""
    if isinstance(raw, Rgba):
        return raw
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or len(raw) < 3:
        return fallback
    red = _unit(raw[0], fallback.red)
    green = _unit(raw[1], fallback.green)
    blue = _unit(raw[2], fallback.blue)
    alpha = _unit(raw[3], fallback.alpha) if len(raw) > 3 else 1.0
    return Rgba(red, green, blue, alpha)


def to_rgb8(color: Rgba) -> RgbColor:
    # Channels are truncated, not rounded.
    return RgbColor(int(color.red * 255), int(color.green * 255), int(color.blue * 255))


def rgb_to_hex(red: int, green: int, blue: int) -> str:
    return "#" + format(1 << 24 | red << 16 | green << 8 | blue, "x")[1:]


def alpha_hex(alpha: float) -> str:
    """Two-digit hex byte for a [0, 1] alpha."""
    value = int(round(_unit(alpha, 1.0) * 255))
    return format(value, "02x")


def qss_rgba(color: RgbColor, alpha: float) -> str:
    """Qt style sheet rgba() with the alpha expressed as 0-255."""
    value = int(round(_unit(alpha, 1.0) * 255))
    return f"rgba({color.red}, {color.green}, {color.blue}, {value})"
