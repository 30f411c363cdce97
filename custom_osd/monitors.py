"""Monitor layout view consumed by the style computer and lifecycle controller."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol


@dataclass(frozen=True)
class MonitorGeometry:
    index: int
    width: int
    height: int
    is_primary: bool = False


class MonitorLayoutAdapter(Protocol):
    def monitors(self) -> List[MonitorGeometry]: ...

    def monitor(self, index: int) -> Optional[MonitorGeometry]: ...

    def primary_index(self) -> Optional[int]: ...


class StaticMonitorLayout:
    """In-memory layout; `replace` stands in for a monitors-changed event."""

    def __init__(self, monitors: Iterable[MonitorGeometry] = ()) -> None:
        self._monitors: List[MonitorGeometry] = list(monitors)

    def monitors(self) -> List[MonitorGeometry]:
        return list(self._monitors)

    def monitor(self, index: int) -> Optional[MonitorGeometry]:
        for monitor in self._monitors:
            if monitor.index == index:
                return monitor
        return None

    def primary_index(self) -> Optional[int]:
        return primary_index(self._monitors)

    def replace(self, monitors: Iterable[MonitorGeometry]) -> None:
        self._monitors = list(monitors)


def primary_index(monitors: Iterable[MonitorGeometry]) -> Optional[int]:
    for monitor in monitors:
        if monitor.is_primary:
            return monitor.index
    return None


def matches_monitor_filter(monitor_filter: str, monitor: Optional[MonitorGeometry]) -> bool:
    """Return False when the OSD must not be shown on this monitor."""
    if monitor is None:
        return False
    if monitor_filter == "primary":
        return monitor.is_primary
    if monitor_filter == "external":
        return not monitor.is_primary
    return True
