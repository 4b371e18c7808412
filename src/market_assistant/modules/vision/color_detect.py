"""
Color-based detection utilities.

Provides highlighted-row classification over a screen region using coarse
grid sampling, plus single-pixel and dominant-color helpers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ...core.constants import COLOR_MATCH_RATIO
from .utils import ImageLike, Roi, clip_roi, load_image, parse_hex_color, pixel_at, rgb_to_hex

# 采样网格：列 × 行
GRID_COLS = 10
GRID_ROWS = 5
# 默认行背景极暗，三通道均低于该值视为匹配
DARK_CHANNEL_LIMIT = 20
# 主色统计的量化步长
QUANT_STEP = 32


@dataclass
class ColorClassification:
    """区域取色判定结果"""
    is_match: bool
    confidence: float
    sampled_region: Optional[Roi]
    sampled_pixels: int = 0
    matching_pixels: int = 0
    dominant_color: str = ""


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return np.stack([img, img, img], axis=-1)
    return img[:, :, :3]


def _grid_axis(start: int, length: int, count: int) -> np.ndarray:
    """在 [start, start+length) 内均匀取至多 count 个坐标，步长至少 1 像素。"""
    n = max(1, min(count, length))
    return np.linspace(start, start + length - 1, num=n).astype(int)


def sample_grid(img: ImageLike, roi: Roi, cols: int = GRID_COLS, rows: int = GRID_ROWS) -> Tuple[np.ndarray, Optional[Roi]]:
    """按网格采样 ROI 内像素，返回 (N×3 BGR 数组, 实际采样区域)。"""
    mat = _as_bgr(load_image(img))
    clipped = clip_roi(mat, roi)
    if clipped is None:
        return np.empty((0, 3), dtype=np.uint8), None
    x, y, w, h = clipped
    xs = _grid_axis(x, w, cols)
    ys = _grid_axis(y, h, rows)
    samples = mat[np.ix_(ys, xs)].reshape(-1, 3)
    return samples, clipped


def dominant_quantized(samples: np.ndarray, step: int = QUANT_STEP) -> str:
    """量化后出现次数最多的颜色（#RRGGBB），无样本时返回空串。"""
    if samples.size == 0:
        return ""
    quantized = (samples // step) * step
    colors, counts = np.unique(quantized, axis=0, return_counts=True)
    b, g, r = (int(c) for c in colors[int(np.argmax(counts))])
    return rgb_to_hex((r, g, b))


def classify_region(
    image: ImageLike,
    roi: Roi,
    target_hex: str,
    tolerance: int,
    *,
    match_ratio: float = COLOR_MATCH_RATIO,
) -> ColorClassification:
    """判断区域是否呈现目标颜色（如"已挂单"行的高亮底色）。

    算法:
      1. ROI 裁剪到图像范围内，按约 10 列 × 5 行网格采样
      2. 像素三通道与目标色之差均 <= tolerance，或三通道均 < 20（默认暗色行背景）即计为匹配
      3. confidence = 匹配数 / 采样数，confidence >= match_ratio 判定为命中

    Args:
        image: 截图 (path / bytes / np.ndarray)，BGR 格式
        roi: 采样区域 (x, y, w, h)
        target_hex: 目标色 #RRGGBB（RGB 顺序）
        tolerance: 单通道容差

    Returns:
        ColorClassification，附带量化主色用于调试
    """
    samples, region = sample_grid(image, roi)
    if samples.shape[0] == 0:
        return ColorClassification(is_match=False, confidence=0.0, sampled_region=None)

    r, g, b = parse_hex_color(target_hex)
    target_bgr = np.array([b, g, r], dtype=np.int16)
    pixels = samples.astype(np.int16)

    within = np.all(np.abs(pixels - target_bgr) <= tolerance, axis=1)
    dark = np.all(pixels < DARK_CHANNEL_LIMIT, axis=1)
    matching = int(np.count_nonzero(within | dark))
    total = int(samples.shape[0])
    confidence = matching / total

    return ColorClassification(
        is_match=confidence >= match_ratio,
        confidence=confidence,
        sampled_region=region,
        sampled_pixels=total,
        matching_pixels=matching,
        dominant_color=dominant_quantized(samples),
    )


def dominant_color(image: ImageLike, roi: Roi) -> str:
    """区域量化主色"""
    samples, _ = sample_grid(image, roi)
    return dominant_quantized(samples)


def is_color_match(image: ImageLike, x: int, y: int, target_hex: str, tolerance: int = 30) -> bool:
    """单点颜色比对（三通道差绝对值之和 <= tolerance）。越界返回 False。"""
    try:
        b, g, r = pixel_at(image, x, y)
    except IndexError:
        return False
    tr, tg, tb = parse_hex_color(target_hex)
    return abs(r - tr) + abs(g - tg) + abs(b - tb) <= tolerance


__all__ = [
    "ColorClassification",
    "classify_region",
    "dominant_color",
    "is_color_match",
    "sample_grid",
]
