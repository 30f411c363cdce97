from __future__ import annotations

import json

import pytest

from custom_osd.settings import OsdSettings


def test_missing_file_uses_defaults(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    assert settings.get("delay") == 1500.0
    assert settings.snapshot().monitors == "all"


def test_unknown_keys_are_rejected(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    with pytest.raises(KeyError):
        settings.get("colour")
    with pytest.raises(KeyError):
        settings.set("colour", [1, 1, 1])
    with pytest.raises(KeyError):
        settings.connect(lambda key: None, key="colour")


def test_set_notifies_only_on_change(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    seen = []
    settings.connect(seen.append)
    only_delay = []
    settings.connect(only_delay.append, key="delay")

    settings.set("size", 20.0)
    settings.set("size", 40.0)
    settings.set("delay", 900)
    settings.reset("size")

    assert seen == ["size", "delay", "size"]
    assert only_delay == ["delay"]


def test_disconnect_stops_notifications(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    seen = []
    handler = settings.connect(seen.append)
    settings.disconnect(handler)
    settings.disconnect(None)
    settings.set("rotate", True)
    assert seen == []


def test_failing_subscriber_does_not_block_others(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    seen = []

    def _boom(_key: str) -> None:
        raise RuntimeError("subscriber failure")

    settings.connect(_boom)
    settings.connect(seen.append)
    settings.set("border", True)
    assert seen == ["border"]


def test_save_and_reload_round_trip(tmp_path) -> None:
    path = tmp_path / "nested" / "osd_settings.json"
    settings = OsdSettings(path)
    settings.set("bg-effect", "glass")
    assert settings.save() is True
    assert json.loads(path.read_text(encoding="utf-8"))["bg-effect"] == "glass"

    data = json.loads(path.read_text(encoding="utf-8"))
    data["bg-effect"] = "wood1"
    data["monitors"] = "external"
    data["bogus"] = 1
    path.write_text(json.dumps(data), encoding="utf-8")

    seen = []
    settings.connect(seen.append)
    changed = settings.reload()
    assert sorted(changed) == ["bg-effect", "monitors"]
    assert sorted(seen) == ["bg-effect", "monitors"]
    assert settings.snapshot().bg_effect == "wood1"


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "osd_settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert OsdSettings(path).get("alpha") == 95.0
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert OsdSettings(path).get("alpha") == 95.0


def test_get_returns_copies(tmp_path) -> None:
    settings = OsdSettings(tmp_path / "osd_settings.json")
    color = settings.get("color")
    color[0] = "0.0"
    assert settings.get("color")[0] == "1.0"
