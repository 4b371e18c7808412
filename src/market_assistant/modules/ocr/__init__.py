from .types import OcrBox, OcrResult
from .prices import PerceivedPrice, extract_numeric_prices, parse_price, top_price

__all__ = [
    "OcrBox",
    "OcrResult",
    "PerceivedPrice",
    "extract_numeric_prices",
    "parse_price",
    "top_price",
]
