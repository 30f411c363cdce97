"""Typed, immutable view of the OSD options read at recompute time."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from custom_osd.colors import Rgba, coerce_rgba

EFFECT_NONE = "none"
EFFECT_PROGRESS_RING = "progress-ring"
EFFECT_DYNAMIC_BLUR = "dynamic-blur"
EFFECT_GRADIENT = "gradient"
EFFECT_GLASS = "glass"
EFFECT_WOOD_RAW = "wood1"
EFFECT_WOOD_POLISHED = "wood2"
EFFECT_BACKGROUND_IMAGE = "background-image"
BACKGROUND_EFFECTS = frozenset(
    {
        EFFECT_NONE,
        EFFECT_PROGRESS_RING,
        EFFECT_DYNAMIC_BLUR,
        EFFECT_GRADIENT,
        EFFECT_GLASS,
        EFFECT_WOOD_RAW,
        EFFECT_WOOD_POLISHED,
        EFFECT_BACKGROUND_IMAGE,
    }
)
GRADIENT_DIRECTIONS = frozenset({"horizontal", "vertical", "radial"})
MONITOR_FILTERS = frozenset({"all", "primary", "external"})

OSD_KIND_ALL = "osd-all"
OSD_KIND_NOLABEL = "osd-nolabel"
OSD_KIND_NOLEVEL = "osd-nolevel"

DEFAULTS: Dict[str, Any] = {
    "size": 20.0,
    "delay": 1500.0,
    "color": ["1.0", "1.0", "1.0", "1.0"],
    "bgcolor": ["0.0", "0.0", "0.0", "1.0"],
    "bgcolor2": ["0.25", "0.25", "0.3", "1.0"],
    "levcolor": ["0.36", "0.6", "0.95", "1.0"],
    "bcolor": ["1.0", "1.0", "1.0", "1.0"],
    "shcolor": ["0.0", "0.0", "0.0", "1.0"],
    "alpha": 95.0,
    "alpha2": 95.0,
    "levalpha": 100.0,
    "balpha": 40.0,
    "bg-effect": EFFECT_NONE,
    "gradient-direction": "horizontal",
    "shadow": True,
    "border": False,
    "rotate": False,
    "square-circle": False,
    "font": "",
    "default-font": "Cantarell 11",
    "bradius": 100.0,
    "levthickness": 30.0,
    "bthickness": 10.0,
    "hpadding": 20.0,
    "vpadding": 10.0,
    "ring-gap": 10.0,
    "monitors": "all",
    "horizontal": 0.0,
    "vertical": 0.0,
    "background-image": "",
    OSD_KIND_ALL: {"icon-all": True, "label-all": True, "level-all": True, "numeric-all": True},
    OSD_KIND_NOLABEL: {"icon-nolabel": True, "level-nolabel": True, "numeric-nolabel": True},
    OSD_KIND_NOLEVEL: {"icon-nolevel": True, "label-nolevel": True},
    "showosd": "",
    "clock-osd": ["<Super>t"],
}

_RANGES: Dict[str, Tuple[float, float]] = {
    "size": (0.0, 100.0),
    "delay": (0.0, 60000.0),
    "alpha": (0.0, 100.0),
    "alpha2": (0.0, 100.0),
    "levalpha": (0.0, 100.0),
    "balpha": (0.0, 100.0),
    "bradius": (-100.0, 200.0),
    "levthickness": (0.0, 100.0),
    "bthickness": (0.0, 100.0),
    "hpadding": (0.0, 100.0),
    "vpadding": (0.0, 100.0),
    "ring-gap": (0.0, 100.0),
    "horizontal": (-50.0, 50.0),
    "vertical": (-50.0, 50.0),
}


@dataclass(frozen=True)
class ComponentToggles:
    """Which OSD parts a given OSD kind may show."""

    icon: bool = True
    label: bool = True
    level: bool = True
    numeric: bool = True


def coerce_double(raw: Any, key: str) -> float:
    """Float option with default fallback for unparseable/NaN values and range clamping."""
    fallback = float(DEFAULTS[key])
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = fallback
    if not math.isfinite(value):
        value = fallback
    bounds = _RANGES.get(key)
    if bounds is not None:
        value = max(bounds[0], min(bounds[1], value))
    return value


def coerce_bool(raw: Any, key: str) -> bool:
    if raw is None:
        return bool(DEFAULTS[key])
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token in {"1", "true", "yes", "on"}:
            return True
        if token in {"0", "false", "no", "off", ""}:
            return False
        return bool(DEFAULTS[key])
    return bool(raw)


def coerce_choice(raw: Any, key: str, choices: frozenset) -> str:
    value = str(raw).strip().lower() if raw is not None else ""
    return value if value in choices else str(DEFAULTS[key])


def coerce_string(raw: Any, key: str) -> str:
    if raw is None:
        return str(DEFAULTS[key])
    return str(raw).strip()


def coerce_toggles(raw: Any, key: str) -> ComponentToggles:
    suffix = key.split("-", 1)[1]
    defaults: Mapping[str, bool] = DEFAULTS[key]
    data = raw if isinstance(raw, Mapping) else {}

    def flag(part: str) -> bool:
        name = f"{part}-{suffix}"
        if name in data:
            return bool(data[name])
        return bool(defaults.get(name, False))

    return ComponentToggles(
        icon=flag("icon"),
        label=flag("label"),
        level=flag("level"),
        numeric=flag("numeric"),
    )


def _default_rgba(key: str) -> Rgba:
    raw = DEFAULTS[key]
    return Rgba(float(raw[0]), float(raw[1]), float(raw[2]), float(raw[3]) if len(raw) > 3 else 1.0)


@dataclass(frozen=True)
class ConfigurationSnapshot:
    size: float
    delay: float
    color: Rgba
    bgcolor: Rgba
    bgcolor2: Rgba
    levcolor: Rgba
    bcolor: Rgba
    shcolor: Rgba
    alpha: float
    alpha2: float
    levalpha: float
    balpha: float
    bg_effect: str
    gradient_direction: str
    shadow: bool
    border: bool
    rotate: bool
    square_circle: bool
    font: str
    default_font: str
    bradius: float
    levthickness: float
    bthickness: float
    hpadding: float
    vpadding: float
    ring_gap: float
    monitors: str
    horizontal: float
    vertical: float
    background_image: str
    osd_all: ComponentToggles
    osd_nolabel: ComponentToggles
    osd_nolevel: ComponentToggles
    showosd: str
    clock_osd: Tuple[str, ...]

    @property
    def internal_size(self) -> float:
        """User-facing size [0, 100] remapped to [10, 110]; smaller sizes render illegibly."""
        return self.size + 10.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ConfigurationSnapshot":
        def get(key: str) -> Any:
            return raw.get(key, DEFAULTS[key])

        def color(key: str) -> Rgba:
            return coerce_rgba(get(key), _default_rgba(key))

        clock_raw = get("clock-osd")
        if isinstance(clock_raw, str):
            clock_osd: Tuple[str, ...] = (clock_raw,) if clock_raw else ()
        elif isinstance(clock_raw, (list, tuple)):
            clock_osd = tuple(str(item) for item in clock_raw if str(item).strip())
        else:
            clock_osd = tuple(DEFAULTS["clock-osd"])

        return cls(
            size=coerce_double(get("size"), "size"),
            delay=coerce_double(get("delay"), "delay"),
            color=color("color"),
            bgcolor=color("bgcolor"),
            bgcolor2=color("bgcolor2"),
            levcolor=color("levcolor"),
            bcolor=color("bcolor"),
            shcolor=color("shcolor"),
            alpha=coerce_double(get("alpha"), "alpha"),
            alpha2=coerce_double(get("alpha2"), "alpha2"),
            levalpha=coerce_double(get("levalpha"), "levalpha"),
            balpha=coerce_double(get("balpha"), "balpha"),
            bg_effect=coerce_choice(get("bg-effect"), "bg-effect", BACKGROUND_EFFECTS),
            gradient_direction=coerce_choice(get("gradient-direction"), "gradient-direction", GRADIENT_DIRECTIONS),
            shadow=coerce_bool(get("shadow"), "shadow"),
            border=coerce_bool(get("border"), "border"),
            rotate=coerce_bool(get("rotate"), "rotate"),
            square_circle=coerce_bool(get("square-circle"), "square-circle"),
            font=coerce_string(get("font"), "font"),
            default_font=coerce_string(get("default-font"), "default-font"),
            bradius=coerce_double(get("bradius"), "bradius"),
            levthickness=coerce_double(get("levthickness"), "levthickness"),
            bthickness=coerce_double(get("bthickness"), "bthickness"),
            hpadding=coerce_double(get("hpadding"), "hpadding"),
            vpadding=coerce_double(get("vpadding"), "vpadding"),
            ring_gap=coerce_double(get("ring-gap"), "ring-gap"),
            monitors=coerce_choice(get("monitors"), "monitors", MONITOR_FILTERS),
            horizontal=coerce_double(get("horizontal"), "horizontal"),
            vertical=coerce_double(get("vertical"), "vertical"),
            background_image=coerce_string(get("background-image"), "background-image"),
            osd_all=coerce_toggles(get(OSD_KIND_ALL), OSD_KIND_ALL),
            osd_nolabel=coerce_toggles(get(OSD_KIND_NOLABEL), OSD_KIND_NOLABEL),
            osd_nolevel=coerce_toggles(get(OSD_KIND_NOLEVEL), OSD_KIND_NOLEVEL),
            showosd=coerce_string(get("showosd"), "showosd"),
            clock_osd=clock_osd,
        )

    @classmethod
    def defaults(cls) -> "ConfigurationSnapshot":
        return cls.from_mapping({})
