from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)


class Scheduler(Protocol):
    def after(self, delay_ms: int, callback: Callable[[], None]) -> object: ...

    def cancel(self, handle: object) -> None: ...


class TimerSlot:
    """At most one live one-shot timer; starting a new one cancels the previous."""

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self._scheduler = scheduler
        self._name = name
        self._handle: Optional[object] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> Optional[object]:
        return self._handle

    def start(self, delay_ms: float, callback: Callable[[], None]) -> object:
        self.cancel()
        delay = max(0, int(delay_ms))
        handle: Optional[object] = None

        def _fire() -> None:
            if self._handle is not handle:
                return
            self._handle = None
            callback()

        handle = self._scheduler.after(delay, _fire)
        self._handle = handle
        return handle

    def cancel(self) -> bool:
        """Cancel the live timer; returns True when one was pending."""
        handle = self._handle
        self._handle = None
        if handle is None:
            return False
        try:
            self._scheduler.cancel(handle)
        except Exception:
            _CLIENT_LOGGER.warning("Failed to cancel %s timer", self._name, exc_info=True)
        return True
