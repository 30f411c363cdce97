"""Qt style sheet rendering for OSD windows.

Widgets are addressed by object name: ``osdBox`` (the rounded box),
``osdIcon``, ``osdLabel``, ``osdLevel`` (the bar) and ``levLabel`` (numeric %).
Box shadow, blur and font stretch have no style sheet equivalent; the host maps
those descriptor fields onto graphics effects and ``QFont`` instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from custom_osd.colors import qss_rgba
from custom_osd.style_computer import GradientSpec, StyleDescriptor

BOX = "QFrame#osdBox"
ICON = "QLabel#osdIcon"
LABEL = "QLabel#osdLabel"
LEVEL = "QProgressBar#osdLevel"
NUMERIC = "QLabel#levLabel"


@dataclass(frozen=True)
class BoxOverrides:
    """Show-time additions layered over the computed box style."""

    padding_right: Optional[float] = None
    border_radius: Optional[Tuple[float, float]] = None
    background_image: Optional[str] = None
    clear_background_image: bool = False


def _px(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text or '0'}px"


def _pt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text or '0'}pt"


def _gradient(spec: GradientSpec) -> str:
    start = qss_rgba(spec.start, spec.start_alpha)
    end = qss_rgba(spec.end, spec.end_alpha)
    if spec.direction == "radial":
        return f"qradialgradient(cx:0.5, cy:0.5, radius:0.5, fx:0.5, fy:0.5, stop:0 {start}, stop:1 {end})"
    if spec.direction == "vertical":
        return f"qlineargradient(x1:0, y1:0, x2:0, y2:1, stop:0 {start}, stop:1 {end})"
    return f"qlineargradient(x1:0, y1:0, x2:1, y2:0, stop:0 {start}, stop:1 {end})"


def _font_rules(style: StyleDescriptor) -> List[str]:
    font = style.font
    rules = [f"font-size: {_pt(font.size_pt)};"]
    if font.explicit:
        if font.family:
            rules.append(f'font-family: "{font.family}";')
        rules.append(f"font-weight: {font.weight};")
        rules.append(f"font-style: {font.style};")
    return rules


def box_rules(style: StyleDescriptor, overrides: Optional[BoxOverrides] = None) -> List[str]:
    overrides = overrides or BoxOverrides()
    top, right, bottom, left = style.padding
    if overrides.padding_right is not None:
        right = overrides.padding_right
    rules = _font_rules(style)
    rules.append(f"color: {qss_rgba(style.foreground, style.foreground_alpha)};")
    rules.append(f"padding: {_px(top)} {_px(right)} {_px(bottom)} {_px(left)};")
    rules.append("margin: 0px;")

    if style.gradient is not None:
        rules.append(f"background: {_gradient(style.gradient)};")
    elif style.background is not None:
        rules.append(f"background-color: {qss_rgba(style.background, style.background_alpha)};")
    else:
        rules.append("background-color: transparent;")

    border = style.border
    if border.width > 0 and border.color is not None:
        rules.append(f"border: {_px(border.width)} solid {qss_rgba(border.color, border.alpha)};")
    else:
        rules.append("border-width: 0px; border-color: transparent;")

    if overrides.border_radius is not None:
        first, second = overrides.border_radius
        rules.append(f"border-top-left-radius: {_px(first)};")
        rules.append(f"border-bottom-right-radius: {_px(first)};")
        rules.append(f"border-top-right-radius: {_px(second)};")
        rules.append(f"border-bottom-left-radius: {_px(second)};")

    image = overrides.background_image or style.background_image
    if overrides.clear_background_image:
        image = None
    if image:
        rules.append(f'background-image: url("{image}");')
        rules.append("background-repeat: no-repeat;")
        rules.append("background-position: center;")
    else:
        rules.append("background-image: none;")
    return rules


def build_stylesheet(style: StyleDescriptor, overrides: Optional[BoxOverrides] = None) -> str:
    label_color = qss_rgba(style.foreground, style.label_alpha)
    level = style.level_bar
    half_thickness = level.thickness / 2.0
    numeric = style.numeric
    sections = [
        (BOX, box_rules(style, overrides)),
        (
            ICON,
            [
                f"margin-right: {_px(style.icon_margin_right)};",
                f"margin-left: {_px(style.icon_margin_left)};",
                "background: transparent;",
            ],
        ),
        (LABEL, [f"color: {label_color};", "margin-right: 0px;", "margin-left: 0px;", "background: transparent;"]),
        (
            LEVEL,
            [
                f"min-height: {_px(level.thickness)};",
                f"max-height: {_px(level.thickness)};",
                f"min-width: {_px(level.min_width)};",
                "margin-right: 0px;",
                "margin-left: 0px;",
                "border: none;",
                f"border-radius: {_px(half_thickness)};",
                f"background-color: {qss_rgba(level.color, level.track_alpha)};",
            ],
        ),
        (
            f"{LEVEL}::chunk",
            [
                f"border-radius: {_px(half_thickness)};",
                f"background-color: {qss_rgba(level.color, level.alpha)};",
            ],
        ),
        (
            NUMERIC,
            [
                f"font-size: {_pt(numeric.font_size_pt)};",
                "font-weight: bold;",
                f"min-width: {_px(numeric.min_width)};",
                f"color: {qss_rgba(style.foreground, style.foreground_alpha)};",
                "background: transparent;",
            ],
        ),
    ]
    blocks = []
    for selector, rules in sections:
        body = "\n".join(f"    {rule}" for rule in rules)
        blocks.append(f"{selector} {{\n{body}\n}}")
    return "\n".join(blocks) + "\n"
