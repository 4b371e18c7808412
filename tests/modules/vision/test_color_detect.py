import numpy as np
import pytest

from market_assistant.modules.vision import (
    classify_region,
    dominant_color,
    is_color_match,
    parse_hex_color,
    pixel_at,
)


def _frame(bgr, w=200, h=100):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:, :] = bgr
    return img


def test_uniform_target_color_is_full_match():
    img = _frame((0xE8, 0xE8, 0xE8))

    result = classify_region(img, (20, 10, 100, 50), "#E8E8E8", 0)

    assert result.confidence == 1.0
    assert result.is_match is True
    assert result.sampled_pixels == 50
    assert result.sampled_region == (20, 10, 100, 50)


def test_unrelated_color_does_not_match():
    img = _frame((100, 100, 100))

    result = classify_region(img, (0, 0, 200, 100), "#E8E8E8", 30)

    assert result.confidence == 0.0
    assert result.is_match is False


def test_very_dark_background_counts_as_match():
    img = _frame((5, 10, 15))

    result = classify_region(img, (0, 0, 200, 100), "#E8E8E8", 30)

    assert result.is_match is True


def test_tolerance_is_per_channel():
    # RGB (0x10, 0x80, 0xF0) stored as BGR
    img = _frame((0xF0 - 20, 0x80 + 20, 0x10))

    assert classify_region(img, (0, 0, 50, 50), "#1080F0", 20).is_match is True
    assert classify_region(img, (0, 0, 50, 50), "#1080F0", 19).is_match is False


def test_partial_coverage_below_ratio():
    img = _frame((100, 100, 100), w=100)
    img[:, :50] = (0xE8, 0xE8, 0xE8)

    result = classify_region(img, (0, 0, 100, 100), "#E8E8E8", 0)

    assert result.confidence == pytest.approx(0.5)
    assert result.is_match is False


def test_region_outside_image_is_empty():
    img = _frame((0xE8, 0xE8, 0xE8))

    result = classify_region(img, (500, 500, 20, 20), "#E8E8E8", 0)

    assert result.is_match is False
    assert result.confidence == 0.0
    assert result.sampled_region is None


def test_tiny_region_uses_one_pixel_stride():
    img = _frame((0xE8, 0xE8, 0xE8))

    result = classify_region(img, (10, 10, 3, 2), "#E8E8E8", 0)

    assert result.sampled_pixels == 6
    assert result.is_match is True


def test_dominant_color_and_pixel_helpers():
    img = _frame((0xE8, 0xE8, 0xE8))
    img[0, 0] = (0, 0, 255)

    assert dominant_color(img, (0, 0, 200, 100)) == "#E0E0E0"
    assert pixel_at(img, 0, 0) == (0, 0, 255)
    assert is_color_match(img, 0, 0, "#FF0000", tolerance=0)
    assert not is_color_match(img, 999, 0, "#FF0000")
    assert parse_hex_color("#1080f0") == (0x10, 0x80, 0xF0)
    with pytest.raises(ValueError):
        parse_hex_color("#123")
