"""Per-monitor OSD lifecycle: styling, show-time geometry, timers and teardown.

The host runs its own baseline show logic and then calls
``OsdLifecycleController.on_show``; level changes arrive through the observer
registered on each surface. Everything here runs on the host's event loop.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Set

from custom_osd.config_snapshot import EFFECT_PROGRESS_RING, ComponentToggles, ConfigurationSnapshot
from custom_osd.debug_config import DebugConfig
from custom_osd.geometry import border_radius_px, corner_radius_pair, show_padding, square_box, translation
from custom_osd.host import (
    DISABLE_CLIPPED_REDRAWS,
    CompositorAdapter,
    OsdHostAdapter,
    OsdSurfaceAdapter,
    ShowRequest,
)
from custom_osd.monitors import MonitorLayoutAdapter, matches_monitor_filter
from custom_osd.ring_renderer import RingRenderer
from custom_osd.style_computer import MEDIA_DIR, StyleDescriptor, compute_styles
from custom_osd.stylesheet import BoxOverrides
from custom_osd.timers import Scheduler, TimerSlot

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

CLIPPED_REDRAW_PROBE_MS = 2000
ROTATED_DEGREES = -90.0


class OsdState:
    HIDDEN = "hidden"
    SHOWING = "showing"
    VISIBLE = "visible"


class SnapshotSource(Protocol):
    def snapshot(self) -> ConfigurationSnapshot: ...


@dataclass
class OsdInstance:
    monitor_index: int
    surface: OsdSurfaceAdapter
    hide_timer: TimerSlot
    blur_timer: TimerSlot
    state: str = OsdState.HIDDEN
    icon_visible: bool = True
    label_visible: bool = False
    level_visible: bool = False
    numeric_visible: bool = False
    rotation: float = 0.0
    style: Optional[StyleDescriptor] = None
    level_handle: Optional[object] = None
    original_icon_size: Optional[int] = None


class OsdRegistry:
    """OSD instances keyed by monitor index, kept in step with the monitor layout."""

    def __init__(self, surface_factory: Callable[[int], OsdSurfaceAdapter], scheduler: Scheduler) -> None:
        self._surface_factory = surface_factory
        self._scheduler = scheduler
        self._instances: Dict[int, OsdInstance] = {}

    def __iter__(self) -> Iterator[OsdInstance]:
        return iter([self._instances[index] for index in sorted(self._instances)])

    def __len__(self) -> int:
        return len(self._instances)

    def get(self, monitor_index: int) -> Optional[OsdInstance]:
        return self._instances.get(monitor_index)

    def indices(self) -> List[int]:
        return sorted(self._instances)

    def sync(self, monitor_indices: Iterable[int]) -> List[OsdInstance]:
        """Create instances for new monitors; return the ones whose monitor went away."""
        wanted = set(monitor_indices)
        removed = [self._instances.pop(index) for index in sorted(set(self._instances) - wanted)]
        for index in sorted(wanted - set(self._instances)):
            surface = self._surface_factory(index)
            self._instances[index] = OsdInstance(
                monitor_index=index,
                surface=surface,
                hide_timer=TimerSlot(self._scheduler, f"hide[{index}]"),
                blur_timer=TimerSlot(self._scheduler, f"blur[{index}]"),
            )
        return removed

    def clear(self) -> List[OsdInstance]:
        instances = list(self)
        self._instances.clear()
        return instances


class ClippedRedrawGuard:
    """Owns the compositor's "disable clipped redraws" flag while blur OSDs are visible.

    A startup probe records whether someone else already set the flag; in that
    case the guard never touches it.
    """

    def __init__(
        self,
        compositor: CompositorAdapter,
        scheduler: Scheduler,
        probe_delay_ms: int = CLIPPED_REDRAW_PROBE_MS,
    ) -> None:
        self.compositor = compositor
        self.scheduler = scheduler
        self.probe_delay_ms = probe_delay_ms
        self.externally_set = False
        self._holders: Set[int] = set()
        self._probe: Optional[TimerSlot] = None

    def start_probe(self) -> None:
        if self._probe is None:
            self._probe = TimerSlot(self.scheduler, "clipped-redraw-probe")
        self._probe.start(self.probe_delay_ms, self._run_probe)

    def cancel_probe(self) -> None:
        if self._probe is not None:
            self._probe.cancel()

    def _run_probe(self) -> None:
        flags = self.compositor.debug_flags() or frozenset()
        self.externally_set = DISABLE_CLIPPED_REDRAWS in flags and not self._holders
        if self.externally_set:
            _CLIENT_LOGGER.debug("Clipped redraws already disabled externally; leaving the flag alone")

    def arm(self, slot: TimerSlot, duration_ms: float) -> bool:
        """Set the flag for one hide-delay window unless the slot already holds it."""
        if self.externally_set or slot.active:
            return False
        key = id(slot)
        if not self._holders:
            self.compositor.add_debug_flag(DISABLE_CLIPPED_REDRAWS)
        self._holders.add(key)
        slot.start(duration_ms, partial(self._release, key))
        return True

    def _release(self, key: int) -> None:
        if key not in self._holders:
            return
        self._holders.discard(key)
        if not self._holders:
            self.compositor.remove_debug_flag(DISABLE_CLIPPED_REDRAWS)

    def release(self, slot: TimerSlot) -> None:
        slot.cancel()
        self._release(id(slot))


def resolve_components(config: ConfigurationSnapshot, request: ShowRequest) -> ComponentToggles:
    """Per-kind toggles for a show event; an OSD with neither label nor level is icon-only."""
    has_label = request.has_label
    has_level = request.has_level
    if has_label and has_level:
        return config.osd_all
    if has_level:
        toggles = config.osd_nolabel
        return ComponentToggles(icon=toggles.icon, label=False, level=toggles.level, numeric=toggles.numeric)
    if has_label:
        toggles = config.osd_nolevel
        return ComponentToggles(icon=toggles.icon, label=toggles.label, level=False, numeric=False)
    return ComponentToggles(icon=True, label=False, level=False, numeric=False)


def level_text(level: Optional[float]) -> str:
    """Numeric label text for a level fraction."""
    if level is None:
        return ""
    value = float(level) * 100.0
    if not math.isfinite(value):
        return ""
    return str(int(round(value)))


class OsdLifecycleController:
    def __init__(
        self,
        *,
        settings: SnapshotSource,
        layout: MonitorLayoutAdapter,
        host: OsdHostAdapter,
        scheduler: Scheduler,
        compositor: CompositorAdapter,
        ring: RingRenderer,
        media_dir: Path = MEDIA_DIR,
        debug_config: Optional[DebugConfig] = None,
    ) -> None:
        self._settings = settings
        self._layout = layout
        self._host = host
        self._ring = ring
        self._media_dir = media_dir
        self._debug = debug_config or DebugConfig()
        self.registry = OsdRegistry(host.create_surface, scheduler)
        self.redraw_guard = ClippedRedrawGuard(compositor, scheduler)
        self._config: Optional[ConfigurationSnapshot] = None
        self._on_settings_applied: Optional[Callable[[], None]] = None

    @property
    def config(self) -> Optional[ConfigurationSnapshot]:
        return self._config

    def set_settings_applied_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._on_settings_applied = callback

    # Settings / layout ----------------------------------------------------

    def sync_settings(self, setting_changed: bool = False) -> None:
        """Recompute every descriptor and apply it before returning."""
        config = self._settings.snapshot()
        monitors = self._layout.monitors()
        for instance in self.registry.sync(monitor.index for monitor in monitors):
            self._teardown_instance(instance)

        styles = compute_styles(config, monitors, media_dir=self._media_dir)
        self._config = config
        if styles:
            ring = styles[0].ring
            self._ring.update_style(
                thickness_ratio=ring.thickness_ratio,
                gap_ratio=ring.gap_ratio,
                level_hex=ring.level_hex,
                level_alpha_hex=ring.level_alpha_hex,
            )
        if config.bg_effect != EFFECT_PROGRESS_RING:
            self._ring.deactivate()

        for style in styles:
            instance = self.registry.get(style.monitor_index)
            if instance is None:
                continue
            self._apply_style(instance, style)
            if self._debug.log_styles:
                _CLIENT_LOGGER.debug("Applied OSD style for monitor %d: %s", style.monitor_index, style)

        if setting_changed and self._on_settings_applied is not None:
            self._on_settings_applied()

    def on_monitors_changed(self) -> None:
        _CLIENT_LOGGER.debug(
            "Monitors changed: %d present, primary=%s",
            len(self._layout.monitors()),
            self._layout.primary_index(),
        )
        self.sync_settings(False)

    def _apply_style(self, instance: OsdInstance, style: StyleDescriptor) -> None:
        surface = instance.surface
        if instance.original_icon_size is None:
            instance.original_icon_size = surface.icon_size()
        if instance.level_handle is None:
            surface.ensure_numeric_label()
            instance.level_handle = surface.connect_level_changed(partial(self.on_level_changed, instance.monitor_index))

        rotation = ROTATED_DEGREES if style.rotate else 0.0
        if rotation != instance.rotation:
            if rotation:
                surface.set_rotation(rotation)
            else:
                surface.reset_rotation()
            instance.rotation = rotation

        surface.apply_style(style, None)
        if style.blur is not None:
            if not surface.has_blur_effect():
                surface.add_blur_effect(style.blur)
        else:
            surface.remove_blur_effect()
        instance.style = style

    # Show -----------------------------------------------------------------

    def on_show(self, monitor_index: int, request: ShowRequest) -> None:
        instance = self.registry.get(monitor_index)
        config = self._config
        if instance is None or config is None or instance.style is None:
            _CLIENT_LOGGER.debug("Ignoring show on monitor %d: no synced OSD instance", monitor_index)
            return
        if self._debug.trace_show:
            _CLIENT_LOGGER.debug("Show on monitor %d: %s", monitor_index, request)

        monitor = self._layout.monitor(monitor_index)
        if monitor is None or not matches_monitor_filter(config.monitors, monitor):
            instance.surface.cancel()
            if instance.state != OsdState.HIDDEN:
                instance.hide_timer.cancel()
                instance.state = OsdState.HIDDEN
            return

        style = instance.style
        surface = instance.surface
        instance.state = OsdState.SHOWING
        instance.hide_timer.start(config.delay, partial(self._hide, monitor_index))

        toggles = resolve_components(config, request)
        level_on = toggles.level and request.has_level
        numeric_on = level_on and toggles.numeric
        progress_ring = style.effect == EFFECT_PROGRESS_RING
        instance.icon_visible = toggles.icon
        instance.label_visible = toggles.label and request.has_label
        instance.level_visible = level_on
        instance.numeric_visible = numeric_on
        surface.set_component_visibility(
            icon=instance.icon_visible,
            label=instance.label_visible,
            level=level_on and not progress_ring,
            numeric=numeric_on,
        )

        padding_right = show_padding(style.hpadding, style.internal_size, numeric_on)
        pair = corner_radius_pair(config.bradius, progress_ring=progress_ring)
        surface.set_box_height(None)
        width, height = surface.box_size()
        width, height = square_box(width, height, config.square_circle)
        if config.square_circle:
            surface.set_box_height(height)
        radius = border_radius_px(pair, height)

        background_image = None
        clear_background = False
        if progress_ring and level_on:
            self._ring.save_box(width, height, radius[0])
            if self._ring.update(level_text(request.level), width, height):
                background_image = self._ring.svg_path.as_posix()
            elif self._ring.svg_path.exists():
                background_image = self._ring.svg_path.as_posix()
        elif progress_ring:
            clear_background = True

        surface.apply_style(
            style,
            BoxOverrides(
                padding_right=padding_right,
                border_radius=radius,
                background_image=background_image,
                clear_background_image=clear_background,
            ),
        )

        trans_x, trans_y = translation(
            config.horizontal,
            config.vertical,
            monitor,
            width,
            height,
            rotate=config.rotate and not surface.size_is_rotated(),
        )
        surface.set_translation(trans_x, trans_y)

        if style.blur is not None and surface.has_blur_effect():
            self.redraw_guard.arm(instance.blur_timer, config.delay)
        instance.state = OsdState.VISIBLE

    def _hide(self, monitor_index: int) -> None:
        instance = self.registry.get(monitor_index)
        if instance is None:
            return
        instance.state = OsdState.HIDDEN
        instance.surface.hide()

    def on_level_changed(self, monitor_index: int, level: Optional[float]) -> None:
        instance = self.registry.get(monitor_index)
        config = self._config
        if instance is None or config is None or config.bg_effect != EFFECT_PROGRESS_RING:
            return
        if not instance.level_visible or not self._ring.active:
            return
        width, height = instance.surface.box_size()
        if self._ring.update(level_text(level), width, height):
            instance.surface.refresh_background()

    # Teardown -------------------------------------------------------------

    def teardown(self) -> None:
        for instance in self.registry.clear():
            self._teardown_instance(instance)
        self.redraw_guard.cancel_probe()
        self._ring.deactivate()
        self._config = None

    def _teardown_instance(self, instance: OsdInstance) -> None:
        surface = instance.surface
        steps = [
            ("hide timer", instance.hide_timer.cancel),
            ("blur timer", partial(self.redraw_guard.release, instance.blur_timer)),
            ("style", surface.reset_style),
            ("rotation", surface.reset_rotation),
            ("blur effect", surface.remove_blur_effect),
        ]
        if instance.level_handle is not None:
            steps.append(("level observer", partial(surface.disconnect_level_changed, instance.level_handle)))
        steps.append(("numeric label", surface.remove_numeric_label))
        steps.append(("defaults", partial(surface.restore_defaults, instance.original_icon_size)))
        for name, step in steps:
            try:
                step()
            except Exception:
                _CLIENT_LOGGER.warning(
                    "Failed to restore %s on monitor %d", name, instance.monitor_index, exc_info=True
                )
        instance.level_handle = None
        instance.style = None
        instance.state = OsdState.HIDDEN
