"""Font description parsing and OSD font resolution."""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

BASE_FONT_SIZE = 12.0
# Font sizes are authored for an internal OSD size of 22.
FONT_SCALE_REFERENCE = 22.0

_STYLES: Dict[str, str] = {
    "normal": "normal",
    "roman": "normal",
    "oblique": "oblique",
    "italic": "italic",
}
_WEIGHTS: Dict[str, int] = {
    "thin": 100,
    "ultra-light": 200,
    "extra-light": 200,
    "light": 300,
    "semi-light": 350,
    "demi-light": 350,
    "book": 380,
    "regular": 400,
    "medium": 500,
    "semi-bold": 600,
    "demi-bold": 600,
    "bold": 700,
    "ultra-bold": 800,
    "extra-bold": 800,
    "heavy": 900,
    "black": 900,
    "ultra-heavy": 1000,
    "ultra-black": 1000,
    "extra-black": 1000,
}
_STRETCHES: Dict[str, str] = {
    "ultra-condensed": "ultra-condensed",
    "extra-condensed": "extra-condensed",
    "condensed": "condensed",
    "semi-condensed": "semi-condensed",
    "semi-expanded": "semi-expanded",
    "expanded": "expanded",
    "extra-expanded": "extra-expanded",
    "ultra-expanded": "ultra-expanded",
}
_IGNORED = frozenset({"small-caps", "not-rotated", "south", "upside-down", "north", "rotated-left", "east", "rotated-right", "west"})
_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)(px)?$", re.IGNORECASE)


@dataclass(frozen=True)
class FontDescription:
    family: str = ""
    style: str = "normal"
    weight: int = 400
    stretch: str = "normal"
    size: float = 0.0


@dataclass(frozen=True)
class FontSpec:
    """Resolved OSD font; `explicit` is False when the session font is used as-is."""

    family: str
    size_pt: float
    weight: int
    style: str
    stretch: str
    explicit: bool


def parse_font_description(text: str) -> FontDescription:
    """Parse "[FAMILY-LIST] [STYLE-OPTIONS] [SIZE]" (e.g. "Cantarell Bold Italic 11")."""
    words = (text or "").replace(",", " , ").split()
    style = "normal"
    weight = 400
    stretch = "normal"
    size = 0.0

    if words:
        match = _SIZE_RE.match(words[-1])
        if match:
            size = float(match.group(1))
            if match.group(2):
                # Absolute pixel sizes are converted at 96 dpi.
                size *= 0.75
            words.pop()

    while words:
        token = words[-1].lower()
        if token in _STYLES:
            style = _STYLES[token]
        elif token in _WEIGHTS:
            weight = _WEIGHTS[token]
        elif token in _STRETCHES:
            stretch = _STRETCHES[token]
        elif token not in _IGNORED:
            break
        words.pop()

    family = " ".join(words).replace(" , ", ",").strip().strip(",").strip()
    return FontDescription(family=family, style=style, weight=weight, stretch=stretch, size=size)


def css_font_weight(weight: int) -> int:
    return int(max(100, min(900, math.floor(weight / 100.0 + 0.5) * 100)))


def resolve_font(font: str, default_font: str, internal_size: float) -> FontSpec:
    """Resolve the OSD font, scaling its size by the internal OSD size.

    An empty `font` keeps the session font and uses the fixed base size.
    """
    ratio = internal_size / FONT_SCALE_REFERENCE
    if not font:
        fallback = parse_font_description(default_font) if default_font else FontDescription()
        return FontSpec(
            family=fallback.family,
            size_pt=BASE_FONT_SIZE * ratio,
            weight=400,
            style="normal",
            stretch="normal",
            explicit=False,
        )

    desc = parse_font_description(font)
    base = desc.size if desc.size > 0 else BASE_FONT_SIZE
    if desc.size <= 0:
        _CLIENT_LOGGER.debug("Font '%s' has no size; using %.1fpt", font, BASE_FONT_SIZE)
    family = desc.family
    if not family and default_font:
        family = parse_font_description(default_font).family
    return FontSpec(
        family=family,
        size_pt=base * ratio,
        weight=css_font_weight(desc.weight),
        style=desc.style,
        stretch=desc.stretch,
        explicit=True,
    )
