"""JSON-backed option store with change subscriptions."""
from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from custom_osd.config_snapshot import DEFAULTS, ConfigurationSnapshot

_LOGGER_NAME = "CustomOSD.Client"
_CLIENT_LOGGER = logging.getLogger(_LOGGER_NAME)

SETTINGS_FILE = "osd_settings.json"

ChangeCallback = Callable[[str], None]


class OsdSettings:
    """Key/value option store persisted as JSON.

    Every option has a default in ``DEFAULTS``; unknown keys are rejected so a
    typo never silently creates a new option. Subscribers are notified with the
    key that changed, either for every key or for one key only.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._values: Dict[str, Any] = {}
        self._handlers: Dict[int, Tuple[Optional[str], ChangeCallback]] = {}
        self._next_handler_id = 1
        self._values = self._read_file()

    @property
    def path(self) -> Path:
        return self._path

    # Persistence ---------------------------------------------------------

    def _read_file(self) -> Dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            _CLIENT_LOGGER.warning("Failed to read settings from %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            _CLIENT_LOGGER.warning("Ignoring settings file %s: top level is not an object", self._path)
            return {}
        return {key: value for key, value in data.items() if key in DEFAULTS}

    def save(self) -> bool:
        payload = {key: self.get(key) for key in sorted(DEFAULTS)}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as exc:
            _CLIENT_LOGGER.warning("Failed to write settings to %s: %s", self._path, exc)
            return False
        return True

    def reload(self) -> list[str]:
        """Re-read the file and notify subscribers once per changed key."""
        fresh = self._read_file()
        changed = [key for key in DEFAULTS if fresh.get(key, DEFAULTS[key]) != self.get(key)]
        self._values = fresh
        for key in changed:
            self._emit(key)
        return changed

    # Access --------------------------------------------------------------

    def get(self, key: str) -> Any:
        if key not in DEFAULTS:
            raise KeyError(key)
        if key in self._values:
            return deepcopy(self._values[key])
        return deepcopy(DEFAULTS[key])

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULTS:
            raise KeyError(key)
        if self._values.get(key, DEFAULTS[key]) == value:
            return
        self._values[key] = deepcopy(value)
        self._emit(key)

    def reset(self, key: str) -> None:
        if key not in DEFAULTS:
            raise KeyError(key)
        if key not in self._values:
            return
        previous = self._values.pop(key)
        if previous != DEFAULTS[key]:
            self._emit(key)

    def snapshot(self) -> ConfigurationSnapshot:
        return ConfigurationSnapshot.from_mapping({key: self.get(key) for key in DEFAULTS})

    # Subscriptions -------------------------------------------------------

    def connect(self, callback: ChangeCallback, key: Optional[str] = None) -> int:
        if key is not None and key not in DEFAULTS:
            raise KeyError(key)
        handler_id = self._next_handler_id
        self._next_handler_id += 1
        self._handlers[handler_id] = (key, callback)
        return handler_id

    def disconnect(self, handler_id: Optional[int]) -> None:
        if handler_id is None:
            return
        self._handlers.pop(handler_id, None)

    def _emit(self, key: str) -> None:
        for handler_id, (filter_key, callback) in list(self._handlers.items()):
            if filter_key is not None and filter_key != key:
                continue
            if handler_id not in self._handlers:
                continue
            try:
                callback(key)
            except Exception:
                _CLIENT_LOGGER.exception("Settings subscriber failed for key '%s'", key)
