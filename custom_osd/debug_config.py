"""Debug configuration loader for OSD tracing."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from custom_osd.version import __version__ as CUSTOM_OSD_VERSION, is_dev_build

DEBUG_CONFIG_ENABLED = is_dev_build(CUSTOM_OSD_VERSION)
OSD_LOG_RETENTION_MIN = 1
OSD_LOG_RETENTION_MAX = 20


@dataclass(frozen=True)
class DebugConfig:
    trace_show: bool = False
    log_styles: bool = False
    osd_logs_to_keep: Optional[int] = None


def _coerce_log_retention(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return None
    if numeric <= 0:
        return OSD_LOG_RETENTION_MIN
    if numeric > OSD_LOG_RETENTION_MAX:
        return OSD_LOG_RETENTION_MAX
    return numeric


def load_debug_config(path: Path) -> DebugConfig:
    """Load debug.json. Tracing toggles are honoured only in dev builds; log retention always is."""

    defaults = {
        "trace_show": False,
        "log_styles": False,
    }
    raw_data: dict[str, Any] = {}
    needs_write = False
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError:
        raw_data = deepcopy(defaults)
        needs_write = DEBUG_CONFIG_ENABLED
    else:
        try:
            loaded = json.loads(raw_text)
        except json.JSONDecodeError:
            loaded = None
        raw_data = loaded if isinstance(loaded, dict) else {}

    osd_logs_to_keep = _coerce_log_retention(raw_data.get("osd_logs_to_keep"))
    if not DEBUG_CONFIG_ENABLED:
        return DebugConfig(osd_logs_to_keep=osd_logs_to_keep)

    data: dict[str, Any] = deepcopy(raw_data)
    for key, default_value in defaults.items():
        if key not in data:
            data[key] = default_value
            needs_write = True

    normalized = DebugConfig(
        trace_show=bool(data.get("trace_show", False)),
        log_styles=bool(data.get("log_styles", False)),
        osd_logs_to_keep=osd_logs_to_keep,
    )

    if needs_write:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError:
            pass

    return normalized
