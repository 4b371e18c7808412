import pytest
import yaml

from market_assistant.modules.calibration import (
    CalibrationError,
    CalibrationProfile,
    PointPct,
    RandomizationProfile,
    RegionPct,
    default_profiles,
    load_calibration,
    parse_calibration,
    save_calibration,
)


def test_missing_file_falls_back_to_defaults(tmp_path):
    calibration, randomization = load_calibration(tmp_path / "absent.yaml")

    assert (calibration, randomization) == default_profiles()


def test_broken_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("calibration: [unclosed\n", encoding="utf-8")

    calibration, _ = load_calibration(path)

    assert calibration == CalibrationProfile()


def test_invalid_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "invalid.yaml"
    path.write_text(
        yaml.safe_dump({"calibration": {"hard_price_cap": 0, "first_row": {"x": 1.5, "y": 0.2}}}),
        encoding="utf-8",
    )

    calibration, _ = load_calibration(path)

    assert calibration.hard_price_cap == CalibrationProfile().hard_price_cap


def test_empty_and_non_mapping_documents(tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")

    assert load_calibration(empty) == default_profiles()
    assert load_calibration(listing) == default_profiles()


def test_save_then_load_keeps_custom_values(tmp_path):
    calibration = CalibrationProfile(
        name="tablet",
        first_row=PointPct(x=0.4, y=0.25),
        rows_per_screen=7,
        hard_price_cap=5000,
        price_increment=10,
    )
    randomization = RandomizationProfile(enabled=False, min_delay_ms=10, max_delay_ms=20)

    path = save_calibration(tmp_path / "nested" / "profile.yaml", calibration, randomization)
    loaded = load_calibration(path)

    assert loaded == (calibration, randomization)


def test_parse_rejects_bad_delay_range():
    with pytest.raises(CalibrationError):
        parse_calibration({"randomization": {"min_delay_ms": 300, "max_delay_ms": 100}})


def test_parse_rejects_inverted_region():
    with pytest.raises(CalibrationError):
        parse_calibration(
            {"calibration": {"buy_orders_region": {"left": 0.8, "top": 0.2, "right": 0.4, "bottom": 0.5}}}
        )


def test_parse_normalizes_hex_color():
    calibration, _ = parse_calibration({"calibration": {"highlight_color_hex": "a0b0c0"}})

    assert calibration.highlight_color_hex == "#a0b0c0"


def test_profiles_are_read_only():
    calibration, _ = default_profiles()

    with pytest.raises(Exception):
        calibration.hard_price_cap = 1


def test_row_anchor_wraps_per_screen():
    calibration = CalibrationProfile(first_row=PointPct(x=0.5, y=0.3), row_pitch_pct=0.1, rows_per_screen=4)

    assert calibration.row_anchor(0).y == pytest.approx(0.3)
    assert calibration.row_anchor(2).y == pytest.approx(0.5)
    assert calibration.row_anchor(4).y == pytest.approx(0.3)
    assert calibration.edit_target(1).x == calibration.edit_button_x_pct


def test_coordinates_resolve_against_frame_size():
    assert PointPct(x=0.5, y=1.0).to_pixels(101, 201) == (50, 200)
    assert RegionPct(left=0.1, top=0.2, right=0.6, bottom=0.7).to_roi(100, 200) == (10, 40, 50, 100)


def test_point_and_region_share_scaling():
    region = RegionPct(left=0.1, top=0.2, right=0.6, bottom=0.7)
    x, y, _, _ = region.to_roi(100, 200)

    assert PointPct(x=region.left, y=region.top).to_pixels(100, 200) == (x, y)
    assert PointPct(x=0.0, y=0.0).to_pixels(100, 200) == (0, 0)
