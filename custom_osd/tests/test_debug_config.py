from __future__ import annotations

import json

from custom_osd import debug_config as module


def test_release_mode_reads_only_retention(monkeypatch, tmp_path):
    path = tmp_path / "debug.json"
    path.write_text(json.dumps({"trace_show": True, "osd_logs_to_keep": 7}), encoding="utf-8")
    monkeypatch.setattr(module, "DEBUG_CONFIG_ENABLED", False, raising=False)
    cfg = module.load_debug_config(path)
    assert cfg.trace_show is False
    assert cfg.osd_logs_to_keep == 7


def test_release_mode_does_not_create_file(monkeypatch, tmp_path):
    path = tmp_path / "debug.json"
    monkeypatch.setattr(module, "DEBUG_CONFIG_ENABLED", False, raising=False)
    cfg = module.load_debug_config(path)
    assert cfg == module.DebugConfig()
    assert not path.exists()


def test_dev_mode_reads_toggles(monkeypatch, tmp_path):
    path = tmp_path / "debug.json"
    path.write_text(json.dumps({"trace_show": True, "log_styles": True}), encoding="utf-8")
    monkeypatch.setattr(module, "DEBUG_CONFIG_ENABLED", True, raising=False)
    cfg = module.load_debug_config(path)
    assert cfg.trace_show is True
    assert cfg.log_styles is True


def test_dev_mode_writes_missing_defaults(monkeypatch, tmp_path):
    path = tmp_path / "debug.json"
    monkeypatch.setattr(module, "DEBUG_CONFIG_ENABLED", True, raising=False)
    module.load_debug_config(path)
    assert json.loads(path.read_text(encoding="utf-8")) == {"log_styles": False, "trace_show": False}


def test_retention_is_clamped():
    assert module._coerce_log_retention(0) == module.OSD_LOG_RETENTION_MIN
    assert module._coerce_log_retention(99) == module.OSD_LOG_RETENTION_MAX
    assert module._coerce_log_retention("x") is None
    assert module._coerce_log_retention(None) is None
