from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from custom_osd.actions import CLOCK_KEYBINDING, OsdActions, clock_text
from custom_osd.debug_config import DebugConfig
from custom_osd.host import CompositorAdapter, OsdHostAdapter
from custom_osd.lifecycle import OsdLifecycleController
from custom_osd.monitors import MonitorLayoutAdapter
from custom_osd.ring_renderer import RingRenderer
from custom_osd.settings import OsdSettings
from custom_osd.style_computer import MEDIA_DIR
from custom_osd.timers import Scheduler

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

RING_SVG_NAME = "circle.svg"
COMMAND_KEY = "showosd"


class CustomOsdExtension:
    """Owns every subscription the OSD customisation makes; enable/disable are idempotent."""

    def __init__(
        self,
        *,
        settings: OsdSettings,
        layout: MonitorLayoutAdapter,
        host: OsdHostAdapter,
        scheduler: Scheduler,
        compositor: CompositorAdapter,
        ring_svg_path: Path,
        media_dir: Path = MEDIA_DIR,
        debug_config: Optional[DebugConfig] = None,
        clock: Callable[[], str] = clock_text,
    ) -> None:
        self._settings = settings
        self._layout = layout
        self._host = host
        self._scheduler = scheduler
        self._compositor = compositor
        self._ring_svg_path = Path(ring_svg_path)
        self._media_dir = media_dir
        self._debug_config = debug_config
        self._clock = clock
        self.controller: Optional[OsdLifecycleController] = None
        self.actions: Optional[OsdActions] = None
        self._settings_handler: Optional[int] = None
        self._monitors_handle: Optional[object] = None
        self._show_hook_handle: Optional[object] = None
        self._keybinding_bound = False

    @property
    def enabled(self) -> bool:
        return self.controller is not None

    def enable(self) -> None:
        if self.controller is not None:
            return
        controller = OsdLifecycleController(
            settings=self._settings,
            layout=self._layout,
            host=self._host,
            scheduler=self._scheduler,
            compositor=self._compositor,
            ring=RingRenderer(self._ring_svg_path),
            media_dir=self._media_dir,
            debug_config=self._debug_config,
        )
        actions = OsdActions(self._host, self._clock)
        controller.set_settings_applied_callback(actions.show_sample)
        self.controller = controller
        self.actions = actions

        self._monitors_handle = self._host.connect_monitors_changed(controller.on_monitors_changed)
        self._settings_handler = self._settings.connect(self._on_setting_changed)
        controller.sync_settings(False)
        self._bind_clock()
        controller.redraw_guard.start_probe()
        self._show_hook_handle = self._host.add_show_hook(controller.on_show)
        _CLIENT_LOGGER.debug("Custom OSD enabled on %d monitor(s)", len(controller.registry))

    def disable(self) -> None:
        controller = self.controller
        if controller is None:
            return
        self.controller = None
        self.actions = None
        if self._show_hook_handle is not None:
            self._host.remove_show_hook(self._show_hook_handle)
            self._show_hook_handle = None
        if self._keybinding_bound:
            self._host.remove_keybinding(CLOCK_KEYBINDING)
            self._keybinding_bound = False
        self._settings.disconnect(self._settings_handler)
        self._settings_handler = None
        if self._monitors_handle is not None:
            self._host.disconnect_monitors_changed(self._monitors_handle)
            self._monitors_handle = None
        controller.teardown()
        _CLIENT_LOGGER.debug("Custom OSD disabled")

    def _bind_clock(self) -> None:
        if self._keybinding_bound:
            self._host.remove_keybinding(CLOCK_KEYBINDING)
            self._keybinding_bound = False
        if self.actions is None:
            return
        accelerators = self._settings.snapshot().clock_osd
        if not accelerators:
            return
        self._keybinding_bound = bool(
            self._host.add_keybinding(CLOCK_KEYBINDING, accelerators, self.actions.show_clock)
        )
        if not self._keybinding_bound:
            _CLIENT_LOGGER.warning("Failed to bind clock OSD keybinding %s", list(accelerators))

    def _on_setting_changed(self, key: str) -> None:
        controller = self.controller
        actions = self.actions
        if controller is None or actions is None:
            return
        if key == COMMAND_KEY:
            actions.show_command(str(self._settings.get(COMMAND_KEY) or ""))
        elif key == CLOCK_KEYBINDING:
            self._bind_clock()
        else:
            controller.sync_settings(True)
