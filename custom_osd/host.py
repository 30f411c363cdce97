"""Adapter interfaces between the Qt-free core and the presentation host.

The lifecycle controller only talks to these; `custom_osd.qt_host` provides the
PyQt6 implementation and the tests provide recording fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Sequence, Tuple

from custom_osd.style_computer import BlurSpec, StyleDescriptor
from custom_osd.stylesheet import BoxOverrides

ALL_MONITORS = -1
DISABLE_CLIPPED_REDRAWS = "disable-clipped-redraws"


@dataclass(frozen=True)
class ShowRequest:
    """One OSD show event as produced by the host's baseline show logic."""

    icon: Optional[str] = None
    label: Optional[str] = None
    level: Optional[float] = None
    max_level: float = 1.0
    sample: bool = False

    @property
    def has_label(self) -> bool:
        return bool(self.label)

    @property
    def has_level(self) -> bool:
        return self.level is not None


ShowHook = Callable[[int, ShowRequest], None]
LevelObserver = Callable[[Optional[float]], None]


class OsdSurfaceAdapter:
    """One OSD window on one monitor."""

    def apply_style(self, style: StyleDescriptor, overrides: Optional[BoxOverrides] = None) -> None: ...
    def reset_style(self) -> None: ...
    def refresh_background(self) -> None: ...
    def set_rotation(self, degrees: float) -> None: ...
    def reset_rotation(self) -> None: ...

    def size_is_rotated(self) -> bool:
        """True when box_size already reports the rotated, on-screen extent."""
        return False

    def set_component_visibility(self, *, icon: bool, label: bool, level: bool, numeric: bool) -> None: ...
    def box_size(self) -> Tuple[float, float]: ...
    def set_box_height(self, height: Optional[float]) -> None: ...
    def set_translation(self, x: float, y: float) -> None: ...
    def has_blur_effect(self) -> bool: ...
    def add_blur_effect(self, spec: BlurSpec) -> None: ...
    def remove_blur_effect(self) -> None: ...
    def ensure_numeric_label(self) -> None: ...
    def remove_numeric_label(self) -> None: ...
    def connect_level_changed(self, observer: LevelObserver) -> object: ...
    def disconnect_level_changed(self, handle: object) -> None: ...
    def icon_size(self) -> int: ...
    def restore_defaults(self, icon_size: Optional[int]) -> None: ...
    def cancel(self) -> None: ...
    def hide(self) -> None: ...


class CompositorAdapter:
    """Compositor-level debug flags (e.g. disabling clipped redraws for live blur)."""

    def debug_flags(self) -> FrozenSet[str]: ...
    def add_debug_flag(self, flag: str) -> None: ...
    def remove_debug_flag(self, flag: str) -> None: ...


class OsdHostAdapter:
    """Window manager side: surfaces, the show hook, keybindings and layout signals."""

    def create_surface(self, monitor_index: int) -> OsdSurfaceAdapter: ...
    def show_osd(self, monitor_index: int, request: ShowRequest) -> None: ...
    def add_show_hook(self, hook: ShowHook) -> object: ...
    def remove_show_hook(self, handle: object) -> None: ...
    def add_keybinding(self, name: str, accelerators: Sequence[str], callback: Callable[[], None]) -> bool: ...
    def remove_keybinding(self, name: str) -> None: ...
    def connect_monitors_changed(self, callback: Callable[[], None]) -> object: ...
    def disconnect_monitors_changed(self, handle: object) -> None: ...
