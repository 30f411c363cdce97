"""PyQt6 presentation host: OSD windows, timers, screens and compositor flags."""
from __future__ import annotations

import logging
import os
import sys
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from PyQt6.QtCore import QObject, QRect, Qt, QTimer
from PyQt6.QtGui import QColor, QFont, QGuiApplication, QIcon, QKeySequence, QPainter, QPixmap, QPixmapCache, QScreen, QShortcut
from PyQt6.QtWidgets import (
    QBoxLayout,
    QFrame,
    QGraphicsBlurEffect,
    QGraphicsDropShadowEffect,
    QLabel,
    QProgressBar,
    QVBoxLayout,
    QWidget,
)

from custom_osd.host import (
    ALL_MONITORS,
    CompositorAdapter,
    LevelObserver,
    OsdHostAdapter,
    OsdSurfaceAdapter,
    ShowHook,
    ShowRequest,
)
from custom_osd.lifecycle import level_text
from custom_osd.monitors import MonitorGeometry, primary_index
from custom_osd.style_computer import BlurSpec, StyleDescriptor
from custom_osd.stylesheet import BoxOverrides, build_stylesheet

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

COMPOSITOR_FLAGS_ENV_VAR = "CUSTOM_OSD_COMPOSITOR_FLAGS"
DEFAULT_ICON_SIZE = 64
DEFAULT_HIDE_MS = 1500
SHADOW_MARGIN = 24
QWIDGETSIZE_MAX = 16777215
_STRETCH_VALUES = {
    "ultra-condensed": 50,
    "extra-condensed": 62,
    "condensed": 75,
    "semi-condensed": 87,
    "normal": 100,
    "semi-expanded": 112,
    "expanded": 125,
    "extra-expanded": 150,
    "ultra-expanded": 200,
}


class QtScheduler:
    """Single-shot QTimers as scheduler handles."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._timers: Set[QTimer] = set()

    def after(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)

        def _fire() -> None:
            self._timers.discard(timer)
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: object) -> None:
        if not isinstance(handle, QTimer) or handle not in self._timers:
            return
        self._timers.discard(handle)
        handle.stop()
        handle.deleteLater()

    def pending(self) -> int:
        return len(self._timers)


class QtMonitorLayout:
    def _screens(self) -> List[QScreen]:
        return list(QGuiApplication.screens())

    def screen(self, index: int) -> Optional[QScreen]:
        screens = self._screens()
        if 0 <= index < len(screens):
            return screens[index]
        return None

    def monitors(self) -> List[MonitorGeometry]:
        primary = QGuiApplication.primaryScreen()
        monitors: List[MonitorGeometry] = []
        for index, screen in enumerate(self._screens()):
            geometry = screen.geometry()
            monitors.append(
                MonitorGeometry(
                    index=index,
                    width=geometry.width(),
                    height=geometry.height(),
                    is_primary=screen is primary,
                )
            )
        return monitors

    def monitor(self, index: int) -> Optional[MonitorGeometry]:
        for monitor in self.monitors():
            if monitor.index == index:
                return monitor
        return None

    def primary_index(self) -> Optional[int]:
        return primary_index(self.monitors())


class QtCompositor(CompositorAdapter):
    """In-process debug flag set; flags named in the environment count as externally set."""

    def __init__(self, initial: Optional[Sequence[str]] = None) -> None:
        if initial is None:
            raw = os.getenv(COMPOSITOR_FLAGS_ENV_VAR, "")
            initial = [token.strip() for token in raw.split(",")]
        self._flags: Set[str] = {flag for flag in initial if flag}

    def debug_flags(self) -> FrozenSet[str]:
        return frozenset(self._flags)

    def add_debug_flag(self, flag: str) -> None:
        self._flags.add(flag)
        _CLIENT_LOGGER.debug("Compositor flag set: %s", flag)

    def remove_debug_flag(self, flag: str) -> None:
        self._flags.discard(flag)
        _CLIENT_LOGGER.debug("Compositor flag cleared: %s", flag)


def _qcolor(color, alpha: float) -> QColor:
    return QColor(color.red, color.green, color.blue, int(round(max(0.0, min(1.0, alpha)) * 255)))


class QtOsdWindow(QWidget, OsdSurfaceAdapter):
    """Frameless, click-through OSD window for one screen."""

    def __init__(self, monitor_index: int, screen_provider: Callable[[], Optional[QScreen]]) -> None:
        super().__init__()
        self.monitor_index = monitor_index
        self._screen_provider = screen_provider
        self._stylesheet = ""
        self._icon_size = DEFAULT_ICON_SIZE
        self._icon_name: Optional[str] = None
        self._translation: Tuple[float, float] = (0.0, 0.0)
        self._bottom_aligned = True
        self._cancelled = False
        self._level_value: Optional[float] = None
        self._observers: Dict[int, LevelObserver] = {}
        self._next_observer = 1
        self._blur_spec: Optional[BlurSpec] = None
        self._rotated = False

        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        window_flags = (
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
            | Qt.WindowType.WindowTransparentForInput
        )
        if sys.platform.startswith("linux"):
            window_flags |= Qt.WindowType.X11BypassWindowManagerHint
        self.setWindowFlags(window_flags)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating, True)

        self._backdrop = QLabel(self)
        self._backdrop.setObjectName("osdBackdrop")
        self._backdrop.hide()

        self.box = QFrame(self)
        self.box.setObjectName("osdBox")
        self._box_layout = QBoxLayout(QBoxLayout.Direction.LeftToRight, self.box)
        self.icon = QLabel(self.box)
        self.icon.setObjectName("osdIcon")
        self.label = QLabel(self.box)
        self.label.setObjectName("osdLabel")
        self.level = QProgressBar(self.box)
        self.level.setObjectName("osdLevel")
        self.level.setTextVisible(False)
        self.level.setRange(0, 100)
        self.numeric: Optional[QLabel] = None
        for widget in (self.icon, self.label, self.level):
            self._box_layout.addWidget(widget, 0, Qt.AlignmentFlag.AlignCenter)

        outer = QVBoxLayout(self)
        outer.setContentsMargins(SHADOW_MARGIN, SHADOW_MARGIN, SHADOW_MARGIN, SHADOW_MARGIN)
        outer.addWidget(self.box)

    # Styling ---------------------------------------------------------------

    def apply_style(self, style: StyleDescriptor, overrides: Optional[BoxOverrides] = None) -> None:
        self._stylesheet = build_stylesheet(style, overrides)
        self.setStyleSheet(self._stylesheet)
        self._box_layout.setSpacing(int(round(style.spacing)))
        if style.icon_size != self._icon_size:
            self._icon_size = style.icon_size
            self._set_icon(self._icon_name)

        font = QFont(self.box.font())
        if style.font.explicit:
            font.setStretch(_STRETCH_VALUES.get(style.font.stretch, 100))
        else:
            font.setStretch(100)
        self.box.setFont(font)

        if style.shadow is not None:
            effect = self.box.graphicsEffect()
            if not isinstance(effect, QGraphicsDropShadowEffect):
                effect = QGraphicsDropShadowEffect(self.box)
                self.box.setGraphicsEffect(effect)
            effect.setOffset(0, style.shadow.offset_y)
            effect.setBlurRadius(max(0, style.shadow.blur + style.shadow.spread))
            effect.setColor(_qcolor(style.shadow.color, style.shadow.alpha))
        else:
            self.box.setGraphicsEffect(None)

    def reset_style(self) -> None:
        self._stylesheet = ""
        self.setStyleSheet("")
        self.box.setGraphicsEffect(None)
        self.box.setFont(QFont())

    def refresh_background(self) -> None:
        QPixmapCache.clear()
        self.setStyleSheet("")
        self.setStyleSheet(self._stylesheet)

    def set_rotation(self, degrees: float) -> None:
        self._rotated = bool(degrees)
        if self._rotated:
            self._box_layout.setDirection(QBoxLayout.Direction.TopToBottom)
        else:
            self._box_layout.setDirection(QBoxLayout.Direction.LeftToRight)

    def reset_rotation(self) -> None:
        self._rotated = False
        self._box_layout.setDirection(QBoxLayout.Direction.LeftToRight)

    def size_is_rotated(self) -> bool:
        # The rotated box is laid out top-to-bottom, so its size is already the displayed one.
        return self._rotated

    def set_component_visibility(self, *, icon: bool, label: bool, level: bool, numeric: bool) -> None:
        self.icon.setVisible(icon)
        self.label.setVisible(label)
        self.level.setVisible(level)
        if self.numeric is not None:
            self.numeric.setVisible(numeric)

    def box_size(self) -> Tuple[float, float]:
        self.box.adjustSize()
        return float(self.box.width()), float(self.box.height())

    def set_box_height(self, height: Optional[float]) -> None:
        if height is None:
            self.box.setMinimumHeight(0)
            self.box.setMaximumHeight(QWIDGETSIZE_MAX)
        else:
            self.box.setFixedHeight(int(round(height)))

    def set_translation(self, x: float, y: float) -> None:
        self._translation = (x, y)
        self._bottom_aligned = False

    # Dynamic blur ----------------------------------------------------------

    def has_blur_effect(self) -> bool:
        return self._blur_spec is not None

    def add_blur_effect(self, spec: BlurSpec) -> None:
        self._blur_spec = spec
        effect = QGraphicsBlurEffect(self._backdrop)
        effect.setBlurRadius(spec.radius)
        self._backdrop.setGraphicsEffect(effect)

    def remove_blur_effect(self) -> None:
        if self._blur_spec is None:
            return
        self._blur_spec = None
        self._backdrop.setGraphicsEffect(None)
        self._backdrop.clear()
        self._backdrop.hide()

    def _refresh_backdrop(self, screen: Optional[QScreen]) -> None:
        spec = self._blur_spec
        if spec is None or screen is None:
            return
        rect = self.box.geometry()
        origin = self.mapToGlobal(rect.topLeft())
        local = origin - screen.geometry().topLeft()
        pixmap = screen.grabWindow(0, local.x(), local.y(), rect.width(), rect.height())
        if pixmap.isNull():
            return
        dimmed = QPixmap(pixmap)
        painter = QPainter(dimmed)
        painter.fillRect(dimmed.rect(), QColor(0, 0, 0, int(round((1.0 - spec.brightness) * 255))))
        painter.end()
        self._backdrop.setPixmap(dimmed)
        self._backdrop.setGeometry(rect)
        self._backdrop.lower()
        self._backdrop.show()

    # Numeric label and level observers -------------------------------------

    def ensure_numeric_label(self) -> None:
        if self.numeric is not None:
            return
        self.numeric = QLabel(self.box)
        self.numeric.setObjectName("levLabel")
        self.numeric.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        self.numeric.setText(level_text(self._level_value))
        self._box_layout.addWidget(self.numeric, 0, Qt.AlignmentFlag.AlignCenter)

    def remove_numeric_label(self) -> None:
        if self.numeric is None:
            return
        self._box_layout.removeWidget(self.numeric)
        self.numeric.deleteLater()
        self.numeric = None

    def connect_level_changed(self, observer: LevelObserver) -> object:
        handle = self._next_observer
        self._next_observer += 1
        self._observers[handle] = observer
        return handle

    def disconnect_level_changed(self, handle: object) -> None:
        if isinstance(handle, int):
            self._observers.pop(handle, None)

    def _set_level(self, level: Optional[float], max_level: float) -> None:
        if level is not None:
            self.level.setMaximum(max(1, int(round(max_level * 100))))
            self.level.setValue(int(round(max(0.0, min(level, max_level)) * 100)))
        if self.numeric is not None:
            self.numeric.setText(level_text(level))
        if level == self._level_value:
            return
        self._level_value = level
        for handle, observer in list(self._observers.items()):
            try:
                observer(level)
            except Exception:
                _CLIENT_LOGGER.exception("Level observer %s failed", handle)

    # Show / hide -----------------------------------------------------------

    def icon_size(self) -> int:
        return self._icon_size

    def _set_icon(self, name: Optional[str]) -> None:
        self._icon_name = name
        icon = QIcon.fromTheme(name) if name else QIcon()
        self.icon.setPixmap(icon.pixmap(self._icon_size, self._icon_size))

    def restore_defaults(self, icon_size: Optional[int]) -> None:
        self._icon_size = icon_size or DEFAULT_ICON_SIZE
        self._set_icon(self._icon_name)
        self._translation = (0.0, 0.0)
        self._bottom_aligned = True
        self.set_box_height(None)
        self.set_component_visibility(icon=True, label=True, level=True, numeric=False)

    def prepare(self, request: ShowRequest) -> None:
        """Baseline show: content and default visibility before any hook runs."""
        self._cancelled = False
        self._set_icon(request.icon)
        self.label.setText(request.label or "")
        self.set_component_visibility(
            icon=True,
            label=request.has_label,
            level=request.has_level,
            numeric=request.has_level,
        )
        self._set_level(request.level, request.max_level)

    def present(self) -> None:
        if self._cancelled:
            return
        self.adjustSize()
        layout = self.layout()
        if layout is not None:
            layout.activate()
        screen = self._screen_provider()
        area = screen.geometry() if screen is not None else QRect(0, 0, self.width(), self.height())
        x = area.x() + (area.width() - self.width()) / 2.0
        if self._bottom_aligned:
            y = area.y() + area.height() - self.height() - area.height() / 8.0
        else:
            y = area.y() + (area.height() - self.height()) / 2.0
            x += self._translation[0]
            y += self._translation[1]
        self.move(int(round(x)), int(round(y)))
        self._refresh_backdrop(screen)
        self.show()
        self.raise_()

    def cancel(self) -> None:
        self._cancelled = True
        super().hide()


class QtOsdHost(OsdHostAdapter):
    def __init__(self, layout: QtMonitorLayout, scheduler: QtScheduler) -> None:
        self._layout = layout
        self._scheduler = scheduler
        self.windows: Dict[int, QtOsdWindow] = {}
        self._hooks: Dict[int, ShowHook] = {}
        self._next_hook = 1
        self._shortcuts: Dict[str, List[QShortcut]] = {}
        self._fallback_hides: Dict[int, object] = {}

    def create_surface(self, monitor_index: int) -> QtOsdWindow:
        previous = self.windows.pop(monitor_index, None)
        if previous is not None:
            previous.hide()
            previous.deleteLater()
        window = QtOsdWindow(monitor_index, lambda: self._layout.screen(monitor_index))
        self.windows[monitor_index] = window
        return window

    def _window_for(self, monitor_index: int) -> QtOsdWindow:
        window = self.windows.get(monitor_index)
        if window is None:
            window = self.create_surface(monitor_index)
        return window

    def show_osd(self, monitor_index: int, request: ShowRequest) -> None:
        if monitor_index == ALL_MONITORS:
            indices = [monitor.index for monitor in self._layout.monitors()]
        else:
            indices = [monitor_index]
        for index in indices:
            window = self._window_for(index)
            window.prepare(request)
            for handle, hook in list(self._hooks.items()):
                try:
                    hook(index, request)
                except Exception:
                    _CLIENT_LOGGER.exception("Show hook %s failed on monitor %d", handle, index)
            window.present()
            if not self._hooks:
                self._schedule_fallback_hide(index, window)

    def _schedule_fallback_hide(self, index: int, window: QtOsdWindow) -> None:
        previous = self._fallback_hides.pop(index, None)
        if previous is not None:
            self._scheduler.cancel(previous)

        def _hide() -> None:
            self._fallback_hides.pop(index, None)
            window.hide()

        self._fallback_hides[index] = self._scheduler.after(DEFAULT_HIDE_MS, _hide)

    def add_show_hook(self, hook: ShowHook) -> object:
        handle = self._next_hook
        self._next_hook += 1
        self._hooks[handle] = hook
        return handle

    def remove_show_hook(self, handle: object) -> None:
        if isinstance(handle, int):
            self._hooks.pop(handle, None)

    def add_keybinding(self, name: str, accelerators: Sequence[str], callback: Callable[[], None]) -> bool:
        self.remove_keybinding(name)
        shortcuts: List[QShortcut] = []
        for window in self.windows.values():
            for accelerator in accelerators:
                sequence = QKeySequence(accelerator_to_sequence(accelerator))
                if sequence.isEmpty():
                    continue
                shortcut = QShortcut(sequence, window)
                shortcut.setContext(Qt.ShortcutContext.ApplicationShortcut)
                shortcut.activated.connect(callback)
                shortcuts.append(shortcut)
        if not shortcuts:
            return False
        self._shortcuts[name] = shortcuts
        return True

    def remove_keybinding(self, name: str) -> None:
        for shortcut in self._shortcuts.pop(name, []):
            shortcut.setEnabled(False)
            shortcut.deleteLater()

    def connect_monitors_changed(self, callback: Callable[[], None]) -> object:
        app = QGuiApplication.instance()
        if app is None:
            return None

        def _changed(*_args) -> None:
            callback()

        signals = [app.screenAdded, app.screenRemoved, app.primaryScreenChanged]
        for signal in signals:
            signal.connect(_changed)
        return [(signal, _changed) for signal in signals]

    def disconnect_monitors_changed(self, handle: object) -> None:
        if not isinstance(handle, list):
            return
        for signal, slot in handle:
            try:
                signal.disconnect(slot)
            except (TypeError, RuntimeError):
                _CLIENT_LOGGER.debug("Screen signal already disconnected")


def accelerator_to_sequence(accelerator: str) -> str:
    """Translate a GTK-style accelerator ("<Super>t") into QKeySequence text ("Meta+T")."""
    modifiers = {
        "super": "Meta",
        "meta": "Meta",
        "primary": "Ctrl",
        "control": "Ctrl",
        "ctrl": "Ctrl",
        "shift": "Shift",
        "alt": "Alt",
    }
    parts: List[str] = []
    rest = accelerator.strip()
    while rest.startswith("<"):
        end = rest.find(">")
        if end < 0:
            return ""
        modifier = modifiers.get(rest[1:end].lower())
        if modifier is None:
            return ""
        if modifier not in parts:
            parts.append(modifier)
        rest = rest[end + 1:].strip()
    if not rest:
        return ""
    parts.append(rest.upper() if len(rest) == 1 else rest)
    return "+".join(parts)
