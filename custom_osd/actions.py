"""Entry points that trigger OSDs: the sample, the clock keybinding and `showosd` commands."""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional

from custom_osd.host import ALL_MONITORS, OsdHostAdapter, ShowRequest

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

SAMPLE_ICON = "preferences-color-symbolic"
SAMPLE_LABEL = "Custom OSD"
SAMPLE_LEVEL = 1.0
CLOCK_ICON = "preferences-system-time-symbolic"
CLOCK_KEYBINDING = "clock-osd"
CLOCK_FORMAT = "%H:%M"

_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def sample_request() -> ShowRequest:
    return ShowRequest(icon=SAMPLE_ICON, label=SAMPLE_LABEL, level=SAMPLE_LEVEL, sample=True)


def clock_text(now: Optional[float] = None) -> str:
    return time.strftime(CLOCK_FORMAT, time.localtime(now))


def _leading_float(text: str) -> Optional[float]:
    match = _LEADING_FLOAT_RE.match(text)
    if match is None:
        return None
    return float(match.group(0))


def parse_command(text: str) -> Optional[ShowRequest]:
    """Parse ``"<stamp>,<icon>,<label>,<level>"``.

    The stamp only makes repeated identical commands register as changes. An
    empty icon falls back to the sample icon; a missing or unparseable level
    shows no level bar. Returns None for an empty command.
    """
    if not text or not text.strip():
        return None
    parts = text.split(",")
    icon = parts[1].strip() if len(parts) > 1 else ""
    label = parts[2] if len(parts) > 2 else ""
    level = _leading_float(parts[3]) if len(parts) > 3 else None
    return ShowRequest(icon=icon or SAMPLE_ICON, label=label or None, level=level)


class OsdActions:
    def __init__(self, host: OsdHostAdapter, clock: Callable[[], str] = clock_text) -> None:
        self._host = host
        self._clock = clock

    def show_sample(self) -> None:
        self._host.show_osd(ALL_MONITORS, sample_request())

    def show_clock(self) -> None:
        self._host.show_osd(ALL_MONITORS, ShowRequest(icon=CLOCK_ICON, label=self._clock()))

    def show_command(self, command: str) -> bool:
        request = parse_command(command)
        if request is None:
            return False
        _CLIENT_LOGGER.debug("Showing command OSD: %s", request)
        self._host.show_osd(ALL_MONITORS, request)
        return True
