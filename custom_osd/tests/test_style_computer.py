from __future__ import annotations

from pathlib import Path

import pytest

from custom_osd.config_snapshot import ConfigurationSnapshot
from custom_osd.monitors import MonitorGeometry
from custom_osd.style_computer import (
    SHADOW_HEAVY,
    SHADOW_LIGHT,
    SHADOW_MEDIUM,
    BlurSpec,
    compute_style,
    compute_styles,
    scale_metric,
    shadow_threshold,
)

PRIMARY = MonitorGeometry(index=0, width=1920, height=1080, is_primary=True)
EXTERNAL = MonitorGeometry(index=1, width=2560, height=1440)


def _config(**overrides) -> ConfigurationSnapshot:
    return ConfigurationSnapshot.from_mapping(overrides)


def _tier(style):
    shadow = style.shadow
    return (shadow.offset_y, shadow.blur, shadow.spread)


def test_default_metrics_scale_with_internal_size() -> None:
    style = compute_style(_config(), PRIMARY)
    assert style.internal_size == 30
    assert style.hpadding == 11
    assert style.vpadding == 5
    assert style.level_bar.thickness == 16
    assert style.padding == (5.0, 11.0, 5.0, pytest.approx(20.75))
    assert style.spacing == pytest.approx(8.25)
    assert style.icon_size == 43
    assert style.icon_margin_left == pytest.approx(8.0 + 0.2 * 43)
    assert style.level_bar.color.hex() == "#5b99f2"
    assert style.ring.level_alpha_hex == "ff"


def test_icon_size_follows_monitor_height() -> None:
    small, large = compute_styles(_config(), [PRIMARY, EXTERNAL])
    assert small.monitor_index == 0 and large.monitor_index == 1
    assert large.icon_size > small.icon_size


def test_scale_metric_and_threshold() -> None:
    assert scale_metric(55, 55) == 55
    assert scale_metric(20, 110) == 40
    assert shadow_threshold(30) == pytest.approx(82.5)


@pytest.mark.parametrize(
    "bradius, effect, tier",
    [
        (50, "none", SHADOW_LIGHT),
        (50, "gradient", SHADOW_MEDIUM),
        (50, "progress-ring", SHADOW_MEDIUM),
        (100, "none", SHADOW_HEAVY),
        (-90, "glass", SHADOW_HEAVY),
        (-80, "none", SHADOW_LIGHT),
    ],
)
def test_shadow_tiers(bradius, effect, tier) -> None:
    style = compute_style(_config(bradius=bradius, **{"bg-effect": effect}), PRIMARY)
    assert _tier(style) == tier
    assert style.shadow.alpha == pytest.approx(0.05 + 0.2 * 0.95)


def test_shadow_disabled_or_blurred_has_no_shadow() -> None:
    assert compute_style(_config(shadow=False), PRIMARY).shadow is None
    blurred = compute_style(_config(**{"bg-effect": "dynamic-blur"}), PRIMARY)
    assert blurred.shadow is None
    assert blurred.background is None
    assert blurred.blur == BlurSpec(brightness=0.8, sigma=25.0, radius=25.0, mode="background")


def test_border_only_when_enabled() -> None:
    assert compute_style(_config(), PRIMARY).border.width == 0
    border = compute_style(_config(border=True, bthickness=11, balpha=50), PRIMARY).border
    assert border.width == 6
    assert border.alpha == pytest.approx(0.5)
    assert border.color.hex() == "#ffffff"


def test_gradient_effect_carries_both_stops() -> None:
    style = compute_style(_config(alpha2=50, **{"bg-effect": "gradient", "gradient-direction": "radial"}), PRIMARY)
    assert style.gradient is not None
    assert style.gradient.direction == "radial"
    assert style.gradient.start.hex() == "#000000"
    assert style.gradient.end_alpha == pytest.approx(0.5)


def test_texture_effects_point_into_media_dir(tmp_path) -> None:
    style = compute_style(_config(**{"bg-effect": "wood2"}), PRIMARY, media_dir=tmp_path)
    assert style.background_image == (tmp_path / "wood2.svg").as_posix()


def test_custom_background_image(tmp_path) -> None:
    image = tmp_path / "bg.png"
    style = compute_style(_config(**{"bg-effect": "background-image", "background-image": str(image)}), PRIMARY)
    assert style.background_image == Path(image).as_posix()
    assert compute_style(_config(**{"bg-effect": "background-image"}), PRIMARY).background_image is None


def test_ring_parameters() -> None:
    style = compute_style(_config(levthickness=20, levalpha=50, **{"ring-gap": 10}), PRIMARY)
    assert style.ring.thickness_ratio == pytest.approx(0.2)
    assert style.ring.gap_ratio == pytest.approx(0.1)
    assert style.ring.level_alpha_hex == "80"


def test_bundled_textures_exist() -> None:
    from custom_osd.style_computer import MEDIA_DIR, TEXTURES

    for name in TEXTURES.values():
        assert (MEDIA_DIR / name).is_file()
