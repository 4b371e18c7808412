"""
Vision utilities: image loading/decoding, ROI clipping and color helpers.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple, Union

import cv2  # type: ignore
import numpy as np


ImageLike = Union[str, bytes, np.ndarray]
Roi = Tuple[int, int, int, int]


def load_image(img: ImageLike) -> np.ndarray:
    """Load an image into a BGR numpy array.

    - str: treated as a file path and loaded via cv2.imread
    - bytes: decoded via cv2.imdecode (PNG from `adb exec-out screencap -p`)
    - np.ndarray: returned as-is (assumed BGR or single-channel)
    """
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    if isinstance(img, str):
        if not os.path.isfile(img):
            raise FileNotFoundError(f"Image file not found: {img}")
        mat = cv2.imread(img, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError(f"Failed to load image from path: {img}")
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def image_size(img: np.ndarray) -> Tuple[int, int]:
    """Return (width, height)."""
    h, w = img.shape[:2]
    return w, h


def clip_roi(img: np.ndarray, roi: Roi) -> Optional[Roi]:
    """Clip an (x, y, w, h) ROI to the image bounds; None when nothing remains."""
    img_w, img_h = image_size(img)
    x, y, w, h = roi
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(img_w, x + w), min(img_h, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1 - x0, y1 - y0


def crop(img: np.ndarray, roi: Optional[Roi]) -> Tuple[np.ndarray, int, int]:
    """Crop to ROI, returning (sub_image, offset_x, offset_y)."""
    if roi is None:
        return img, 0, 0
    clipped = clip_roi(img, roi)
    if clipped is None:
        return img[0:0, 0:0], 0, 0
    x, y, w, h = clipped
    return img[y:y + h, x:x + w], x, y


def parse_hex_color(hex_color: str) -> Tuple[int, int, int]:
    """Parse '#RRGGBB' (or 'RRGGBB') into an (R, G, B) tuple."""
    value = hex_color.strip().lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {hex_color}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    r, g, b = rgb
    return f"#{r:02X}{g:02X}{b:02X}"


def pixel_at(img: ImageLike, x: int, y: int) -> Tuple[int, int, int]:
    """Return pixel color at (x, y) as BGR tuple.

    Raises IndexError if out of bounds.
    """
    mat = load_image(img)
    h, w = mat.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        raise IndexError(f"Pixel ({x},{y}) is out of bounds for image {w}x{h}")
    if mat.ndim == 2:
        v = int(mat[y, x])
        return (v, v, v)
    b, g, r = mat[y, x][:3]
    return int(b), int(g), int(r)


__all__ = [
    "ImageLike",
    "Roi",
    "load_image",
    "image_size",
    "clip_roi",
    "crop",
    "parse_hex_color",
    "rgb_to_hex",
    "pixel_at",
]
