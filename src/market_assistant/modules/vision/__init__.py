from .color_detect import (
    ColorClassification,
    classify_region,
    dominant_color,
    is_color_match,
)
from .utils import (
    ImageLike,
    Roi,
    clip_roi,
    crop,
    image_size,
    load_image,
    parse_hex_color,
    pixel_at,
)

__all__ = [
    "ColorClassification",
    "classify_region",
    "dominant_color",
    "is_color_match",
    "ImageLike",
    "Roi",
    "clip_roi",
    "crop",
    "image_size",
    "load_image",
    "parse_hex_color",
    "pixel_at",
]
