from __future__ import annotations

import pytest

from custom_osd.host import DISABLE_CLIPPED_REDRAWS, ShowRequest
from custom_osd.lifecycle import OsdLifecycleController, OsdState, level_text, resolve_components
from custom_osd.monitors import MonitorGeometry, StaticMonitorLayout
from custom_osd.ring_renderer import RingRenderer
from custom_osd.settings import OsdSettings

from osd_fakes import AfterHarness, FakeCompositor, FakeHost

PRIMARY = MonitorGeometry(index=0, width=1920, height=1080, is_primary=True)
EXTERNAL = MonitorGeometry(index=1, width=2560, height=1440)
VOLUME = ShowRequest(icon="audio-volume-medium-symbolic", label="Speakers", level=0.42)


class Rig:
    def __init__(self, tmp_path, values=None, monitors=None, compositor_flags=()) -> None:
        self.layout = StaticMonitorLayout(monitors or [PRIMARY, EXTERNAL])
        self.settings = OsdSettings(tmp_path / "osd_settings.json")
        for key, value in (values or {}).items():
            self.settings.set(key, value)
        self.harness = AfterHarness()
        self.host = FakeHost(self.layout)
        self.compositor = FakeCompositor(compositor_flags)
        self.ring = RingRenderer(tmp_path / "circle.svg")
        self.controller = OsdLifecycleController(
            settings=self.settings,
            layout=self.layout,
            host=self.host,
            scheduler=self.harness,
            compositor=self.compositor,
            ring=self.ring,
        )
        self.controller.sync_settings()

    def instance(self, index: int = 0):
        return self.controller.registry.get(index)

    def surface(self, index: int = 0):
        return self.host.surfaces[index]


def test_sync_creates_one_styled_instance_per_monitor(tmp_path) -> None:
    rig = Rig(tmp_path)
    assert rig.controller.registry.indices() == [0, 1]
    for index in (0, 1):
        surface = rig.surface(index)
        assert surface.numeric is True
        assert len(surface.observers) == 1
        style, overrides = surface.styles[-1]
        assert style.monitor_index == index
        assert overrides is None
        assert rig.instance(index).state == OsdState.HIDDEN


def test_show_makes_instance_visible_with_one_hide_timer(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)

    instance = rig.instance(0)
    assert instance.state == OsdState.VISIBLE
    assert rig.harness.live() == [instance.hide_timer.handle]
    assert rig.harness.scheduled[-1][1] == 1500
    assert rig.surface(0).visibility == {"icon": True, "label": True, "level": True, "numeric": True}


def test_reshow_restarts_rather_than_stacks_hide_timer(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)
    first = rig.instance(0).hide_timer.handle
    rig.controller.on_show(0, VOLUME)

    assert rig.harness.cancelled == [first]
    assert rig.harness.live() == [rig.instance(0).hide_timer.handle]


def test_hide_timer_expiry_hides_surface(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)
    rig.harness.run(rig.instance(0).hide_timer.handle)

    assert rig.instance(0).state == OsdState.HIDDEN
    assert rig.surface(0).calls[-1] == "hide"
    assert rig.instance(0).hide_timer.active is False


def test_stale_hide_timer_is_ignored(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)
    stale = rig.instance(0).hide_timer.handle
    rig.controller.on_show(0, VOLUME)
    rig.harness.run(stale)
    assert rig.instance(0).state == OsdState.VISIBLE


def test_monitor_filter_cancels_without_touching_state(tmp_path) -> None:
    rig = Rig(tmp_path, {"monitors": "primary"})
    surface = rig.surface(1)
    styles_before = len(surface.styles)

    rig.controller.on_show(1, VOLUME)

    assert rig.instance(1).state == OsdState.HIDDEN
    assert rig.harness.scheduled == []
    assert len(surface.styles) == styles_before
    assert surface.visibility is None
    assert surface.calls == ["cancel"]


def test_external_filter_rejects_primary(tmp_path) -> None:
    rig = Rig(tmp_path, {"monitors": "external"})
    rig.controller.on_show(0, VOLUME)
    rig.controller.on_show(1, VOLUME)
    assert rig.instance(0).state == OsdState.HIDDEN
    assert rig.instance(1).state == OsdState.VISIBLE


def test_show_before_sync_is_ignored(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(7, VOLUME)
    assert rig.harness.scheduled == []


@pytest.mark.parametrize(
    "request_, expected",
    [
        (ShowRequest(icon="x", level=0.5), {"icon": True, "label": False, "level": True, "numeric": True}),
        (ShowRequest(icon="x", label="Caps Lock"), {"icon": True, "label": True, "level": False, "numeric": False}),
        (ShowRequest(icon="x"), {"icon": True, "label": False, "level": False, "numeric": False}),
    ],
)
def test_component_visibility_by_kind(tmp_path, request_, expected) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, request_)
    assert rig.surface(0).visibility == expected


def test_numeric_toggle_off_hides_numeric_label(tmp_path) -> None:
    rig = Rig(tmp_path, {"osd-all": {"numeric-all": False}})
    rig.controller.on_show(0, VOLUME)
    assert rig.surface(0).visibility["numeric"] is False
    assert rig.surface(0).visibility["level"] is True


def test_resolve_components_icon_only_kind(tmp_path) -> None:
    rig = Rig(tmp_path, {"osd-nolevel": {"icon-nolevel": False}})
    toggles = resolve_components(rig.controller.config, ShowRequest(label="Wi-Fi"))
    assert toggles.icon is False and toggles.label is True


def test_padding_shrinks_when_numeric_label_shown(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)
    with_numeric = rig.surface(0).last_overrides.padding_right
    rig.controller.on_show(0, ShowRequest(icon="x", label="Caps Lock"))
    without_numeric = rig.surface(0).last_overrides.padding_right
    assert with_numeric < without_numeric


def test_progress_ring_replaces_level_bar(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "progress-ring", "bradius": -50})
    rig.controller.on_show(0, VOLUME)

    surface = rig.surface(0)
    assert surface.visibility == {"icon": True, "label": True, "level": False, "numeric": True}
    overrides = surface.last_overrides
    assert overrides.background_image == rig.ring.svg_path.as_posix()
    assert overrides.border_radius == (0.0, 0.0)
    markup = rig.ring.svg_path.read_text(encoding="utf-8")
    geometry = rig.ring.geometry(42, 200, 100)
    assert f"stroke-dashoffset='{geometry.dash_offset:.4f}'" in markup


def test_level_observer_rerenders_ring(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "progress-ring"})
    rig.controller.on_show(0, VOLUME)
    surface = rig.surface(0)

    surface.emit_level(1.0)

    assert surface.calls[-1] == "refresh_background"
    assert "stroke-dashoffset='0.0000'" in rig.ring.svg_path.read_text(encoding="utf-8")


def test_ring_write_failure_keeps_previous_image_bound(tmp_path, monkeypatch, caplog) -> None:
    from custom_osd import ring_renderer

    rig = Rig(tmp_path, {"bg-effect": "progress-ring"})
    rig.controller.on_show(0, VOLUME)
    previous = rig.ring.svg_path.read_text(encoding="utf-8")

    def _boom(*_args, **_kwargs):
        raise OSError("read-only file system")

    monkeypatch.setattr(ring_renderer.tempfile, "mkstemp", _boom)
    with caplog.at_level("WARNING", logger="CustomOSD.Client"):
        rig.controller.on_show(0, ShowRequest(icon="x", label="Speakers", level=0.9))

    assert rig.surface(0).last_overrides.background_image == rig.ring.svg_path.as_posix()
    assert rig.ring.svg_path.read_text(encoding="utf-8") == previous
    assert any("Failed to write ring SVG" in message for message in caplog.messages)


def test_level_observer_ignored_without_ring(tmp_path) -> None:
    rig = Rig(tmp_path)
    rig.controller.on_show(0, VOLUME)
    rig.surface(0).emit_level(0.9)
    assert "refresh_background" not in rig.surface(0).calls
    assert not rig.ring.svg_path.exists()


def test_progress_ring_without_level_clears_background(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "progress-ring"})
    rig.controller.on_show(0, ShowRequest(icon="x", label="Caps Lock"))
    overrides = rig.surface(0).last_overrides
    assert overrides.clear_background_image is True
    assert overrides.background_image is None


def test_square_mode_forces_height_to_width(tmp_path) -> None:
    rig = Rig(tmp_path, {"square-circle": True})
    rig.controller.on_show(0, VOLUME)
    surface = rig.surface(0)
    assert surface.fixed_height == 200
    assert surface.last_overrides.border_radius == (100.0, 100.0)


def test_translation_uses_monitor_free_space(tmp_path) -> None:
    rig = Rig(tmp_path, {"horizontal": 50, "vertical": -25})
    rig.controller.on_show(0, VOLUME)
    assert rig.surface(0).translation == pytest.approx((860.0, 245.0))


def test_rotated_translation_swaps_unrotated_box_size(tmp_path) -> None:
    rig = Rig(tmp_path, {"rotate": True, "horizontal": 50})
    rig.controller.on_show(0, VOLUME)
    assert rig.surface(0).translation == pytest.approx((910.0, 0.0))


def test_rotated_translation_keeps_size_already_reported_rotated(tmp_path) -> None:
    rig = Rig(tmp_path, {"rotate": True, "horizontal": 50})
    rig.surface(0).rotated_size = True
    rig.controller.on_show(0, VOLUME)
    assert rig.surface(0).translation == pytest.approx((860.0, 0.0))


def test_rotation_follows_setting(tmp_path) -> None:
    rig = Rig(tmp_path, {"rotate": True})
    assert rig.surface(0).rotation == -90.0
    rig.settings.set("rotate", False)
    rig.controller.sync_settings()
    assert rig.surface(0).rotation == 0.0


def test_blur_arms_clipped_redraw_flag_once(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "dynamic-blur"})
    surface = rig.surface(0)
    assert surface.blur is not None

    rig.controller.on_show(0, VOLUME)
    blur_handle = rig.instance(0).blur_timer.handle
    rig.controller.on_show(0, VOLUME)

    assert DISABLE_CLIPPED_REDRAWS in rig.compositor.flags
    assert rig.compositor.history == [("add", DISABLE_CLIPPED_REDRAWS)]
    assert rig.instance(0).blur_timer.handle == blur_handle

    rig.harness.run(blur_handle)
    assert DISABLE_CLIPPED_REDRAWS not in rig.compositor.flags


def test_flag_held_until_last_blur_window_ends(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "dynamic-blur"})
    rig.controller.on_show(0, VOLUME)
    rig.controller.on_show(1, VOLUME)
    rig.harness.run(rig.instance(0).blur_timer.handle)
    assert DISABLE_CLIPPED_REDRAWS in rig.compositor.flags
    rig.harness.run(rig.instance(1).blur_timer.handle)
    assert DISABLE_CLIPPED_REDRAWS not in rig.compositor.flags


def test_externally_set_flag_is_left_alone(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "dynamic-blur"}, compositor_flags=[DISABLE_CLIPPED_REDRAWS])
    rig.controller.redraw_guard.start_probe()
    assert rig.harness.scheduled[-1][1] == 2000
    rig.harness.run_last()

    rig.controller.on_show(0, VOLUME)

    assert rig.controller.redraw_guard.externally_set is True
    assert rig.compositor.history == []
    assert rig.instance(0).blur_timer.active is False


def test_switching_away_from_blur_removes_effect(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "dynamic-blur"})
    rig.settings.set("bg-effect", "gradient")
    rig.controller.sync_settings()
    assert rig.surface(0).blur is None
    rig.controller.sync_settings()
    assert rig.surface(0).blur is None


def test_settings_change_shows_sample(tmp_path) -> None:
    rig = Rig(tmp_path)
    calls = []
    rig.controller.set_settings_applied_callback(lambda: calls.append("sample"))
    rig.controller.sync_settings(False)
    rig.controller.sync_settings(True)
    assert calls == ["sample"]


def test_removed_monitor_is_torn_down(tmp_path) -> None:
    rig = Rig(tmp_path)
    removed = rig.surface(1)
    rig.layout.replace([PRIMARY])
    rig.controller.on_monitors_changed()

    assert rig.controller.registry.indices() == [0]
    assert "restore_defaults" in removed.calls
    assert removed.observers == {}


def test_teardown_reverts_every_instance(tmp_path) -> None:
    rig = Rig(tmp_path, {"bg-effect": "dynamic-blur"})
    rig.controller.on_show(0, VOLUME)
    hide_handle = rig.instance(0).hide_timer.handle
    blur_handle = rig.instance(0).blur_timer.handle
    surfaces = list(rig.host.surfaces.values())

    rig.controller.teardown()

    assert hide_handle in rig.harness.cancelled and blur_handle in rig.harness.cancelled
    assert DISABLE_CLIPPED_REDRAWS not in rig.compositor.flags
    for surface in surfaces:
        assert surface.blur is None
        assert surface.numeric is False
        assert surface.observers == {}
        assert surface.restored_icon_size == 48
        assert {"reset_style", "reset_rotation", "remove_numeric", "restore_defaults"} <= set(surface.calls)
    assert len(rig.controller.registry) == 0

    rig.controller.teardown()


def test_teardown_before_first_sync_is_safe(tmp_path) -> None:
    layout = StaticMonitorLayout([PRIMARY])
    harness = AfterHarness()
    controller = OsdLifecycleController(
        settings=OsdSettings(tmp_path / "osd_settings.json"),
        layout=layout,
        host=FakeHost(layout),
        scheduler=harness,
        compositor=FakeCompositor(),
        ring=RingRenderer(tmp_path / "circle.svg"),
    )
    controller.teardown()
    controller.teardown()
    assert harness.scheduled == []


def test_teardown_survives_failing_surface(tmp_path) -> None:
    rig = Rig(tmp_path)
    surface = rig.surface(0)

    def _boom() -> None:
        raise RuntimeError("widget already gone")

    surface.reset_style = _boom
    rig.controller.teardown()
    assert "restore_defaults" in surface.calls


def test_level_text() -> None:
    assert level_text(0.426) == "43"
    assert level_text(1.5) == "150"
    assert level_text(float("nan")) == ""
    assert level_text(None) == ""
