"""Derive per-monitor OSD style descriptors from a configuration snapshot.

Pure and stateless: every call recomputes every descriptor from scratch, so a
settings or monitor-layout change never leaves a half-updated style behind.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from custom_osd.colors import Rgba, RgbColor, alpha_hex, to_rgb8
from custom_osd.config_snapshot import (
    EFFECT_BACKGROUND_IMAGE,
    EFFECT_DYNAMIC_BLUR,
    EFFECT_GLASS,
    EFFECT_GRADIENT,
    EFFECT_NONE,
    EFFECT_WOOD_POLISHED,
    EFFECT_WOOD_RAW,
    ConfigurationSnapshot,
)
from custom_osd.fonts import FontSpec, resolve_font
from custom_osd.monitors import MonitorGeometry

MEDIA_DIR = Path(__file__).resolve().parent / "media"
TEXTURES = {
    EFFECT_GLASS: "glass.svg",
    EFFECT_WOOD_RAW: "wood1.svg",
    EFFECT_WOOD_POLISHED: "wood2.svg",
}
# Distances are authored for an internal OSD size of 55.
METRIC_SCALE_REFERENCE = 55.0
NUMERIC_FONT_FACTOR = 1.2
LEVEL_TRACK_ALPHA = 0.2

# (offset_y, blur, spread) per shadow tier.
SHADOW_LIGHT = (1, 8, 0)
SHADOW_MEDIUM = (1, 6, -12)
SHADOW_HEAVY = (1, 8, 2)


@dataclass(frozen=True)
class ShadowSpec:
    offset_y: int
    blur: int
    spread: int
    color: RgbColor
    alpha: float


@dataclass(frozen=True)
class BorderSpec:
    width: int
    color: Optional[RgbColor]
    alpha: float


@dataclass(frozen=True)
class GradientSpec:
    start: RgbColor
    start_alpha: float
    end: RgbColor
    end_alpha: float
    direction: str


@dataclass(frozen=True)
class BlurSpec:
    brightness: float = 0.8
    sigma: float = 25.0
    radius: float = 25.0
    mode: str = "background"


@dataclass(frozen=True)
class LevelBarStyle:
    thickness: int
    min_width: int
    color: RgbColor
    alpha: float
    track_alpha: float = LEVEL_TRACK_ALPHA


@dataclass(frozen=True)
class NumericLabelStyle:
    font_size_pt: float
    min_width: int


@dataclass(frozen=True)
class RingParams:
    thickness_ratio: float
    gap_ratio: float
    level_hex: str
    level_alpha_hex: str


@dataclass(frozen=True)
class StyleDescriptor:
    monitor_index: int
    internal_size: float
    foreground: RgbColor
    foreground_alpha: float
    label_alpha: float
    background: Optional[RgbColor]
    background_alpha: float
    padding: Tuple[float, float, float, float]
    spacing: float
    hpadding: int
    vpadding: int
    shadow: Optional[ShadowSpec]
    border: BorderSpec
    effect: str
    gradient: Optional[GradientSpec]
    blur: Optional[BlurSpec]
    background_image: Optional[str]
    font: FontSpec
    icon_size: int
    icon_margin_left: float
    icon_margin_right: float
    level_bar: LevelBarStyle
    numeric: NumericLabelStyle
    ring: RingParams
    rotate: bool


def scale_metric(value: float, internal_size: float) -> int:
    return int(round(value * internal_size / METRIC_SCALE_REFERENCE))


def shadow_threshold(internal_size: float) -> float:
    return 75.0 + 0.25 * internal_size


def resolve_shadow(config: ConfigurationSnapshot, alpha: float) -> Optional[ShadowSpec]:
    """Three-tier box shadow keyed on the shape parameter and the active effect."""
    if not config.shadow or config.bg_effect == EFFECT_DYNAMIC_BLUR:
        return None
    thresh = shadow_threshold(config.internal_size)
    if -thresh < config.bradius < thresh:
        tier = SHADOW_LIGHT if config.bg_effect == EFFECT_NONE else SHADOW_MEDIUM
    else:
        tier = SHADOW_HEAVY
    offset_y, blur, spread = tier
    return ShadowSpec(
        offset_y=offset_y,
        blur=blur,
        spread=spread,
        color=to_rgb8(config.shcolor),
        alpha=0.05 + 0.2 * alpha,
    )


def resolve_border(config: ConfigurationSnapshot) -> BorderSpec:
    if not config.border:
        return BorderSpec(width=0, color=None, alpha=0.0)
    return BorderSpec(
        width=scale_metric(config.bthickness, config.internal_size),
        color=to_rgb8(config.bcolor),
        alpha=config.balpha / 100.0,
    )


def _effect_image(config: ConfigurationSnapshot, media_dir: Path) -> Optional[str]:
    texture = TEXTURES.get(config.bg_effect)
    if texture is not None:
        return (media_dir / texture).as_posix()
    if config.bg_effect == EFFECT_BACKGROUND_IMAGE and config.background_image:
        return Path(config.background_image).expanduser().as_posix()
    return None


def compute_style(
    config: ConfigurationSnapshot,
    monitor: MonitorGeometry,
    *,
    media_dir: Path = MEDIA_DIR,
) -> StyleDescriptor:
    internal = config.internal_size
    alpha = config.alpha / 100.0
    fg: Rgba = config.color
    bg = to_rgb8(config.bgcolor)
    level = to_rgb8(config.levcolor)
    level_alpha = config.levalpha / 100.0

    hpadding = scale_metric(config.hpadding, internal)
    vpadding = scale_metric(config.vpadding, internal)
    levthickness = scale_metric(config.levthickness, internal)
    left_padding = (100.0 - internal) / 10.0 + hpadding * 1.25

    font = resolve_font(config.font, config.default_font, internal)
    icon_size = int(round(internal / 150.0 * monitor.height / 5.0))

    effect = config.bg_effect
    gradient = None
    if effect == EFFECT_GRADIENT:
        gradient = GradientSpec(
            start=bg,
            start_alpha=alpha,
            end=to_rgb8(config.bgcolor2),
            end_alpha=config.alpha2 / 100.0,
            direction=config.gradient_direction,
        )
    blur = BlurSpec() if effect == EFFECT_DYNAMIC_BLUR else None
    background: Optional[RgbColor] = None if effect == EFFECT_DYNAMIC_BLUR else bg

    return StyleDescriptor(
        monitor_index=monitor.index,
        internal_size=internal,
        foreground=to_rgb8(fg),
        foreground_alpha=fg.alpha,
        label_alpha=0.95 * fg.alpha,
        background=background,
        background_alpha=alpha if background is not None else 0.0,
        padding=(float(vpadding), float(hpadding), float(vpadding), left_padding),
        spacing=0.75 * hpadding,
        hpadding=hpadding,
        vpadding=vpadding,
        shadow=resolve_shadow(config, alpha),
        border=resolve_border(config),
        effect=effect,
        gradient=gradient,
        blur=blur,
        background_image=_effect_image(config, media_dir),
        font=font,
        icon_size=icon_size,
        icon_margin_left=(110.0 - internal) / 10.0 + 0.2 * icon_size,
        icon_margin_right=0.2 * icon_size,
        level_bar=LevelBarStyle(
            thickness=levthickness,
            min_width=int(round(3 * icon_size)),
            color=level,
            alpha=level_alpha,
        ),
        numeric=NumericLabelStyle(
            font_size_pt=font.size_pt * NUMERIC_FONT_FACTOR,
            min_width=int(round((100.0 - internal) / 10.0 + internal * 2.22)),
        ),
        ring=RingParams(
            thickness_ratio=config.levthickness / 100.0,
            gap_ratio=config.ring_gap / 100.0,
            level_hex=level.hex(),
            level_alpha_hex=alpha_hex(level_alpha),
        ),
        rotate=config.rotate,
    )


def compute_styles(
    config: ConfigurationSnapshot,
    monitors: Iterable[MonitorGeometry],
    *,
    media_dir: Path = MEDIA_DIR,
) -> List[StyleDescriptor]:
    """One descriptor per monitor, in monitor order."""
    return [compute_style(config, monitor, media_dir=media_dir) for monitor in monitors]
