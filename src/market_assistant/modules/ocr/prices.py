"""OCR 结果后处理：从识别行中提取价格。"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ...core.constants import OCR_CONFIDENCE_THRESHOLD
from .types import OcrBox

_NON_DIGIT = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class PerceivedPrice:
    """一行识别出的价格"""
    value: int
    confidence: float
    top: int


def parse_price(text: str) -> Optional[int]:
    """去掉千分位、空格、货币图标等非数字字符后转为整数；无数字返回 None。"""
    digits = _NON_DIGIT.sub("", text)
    if not digits:
        return None
    return int(digits)


def extract_numeric_prices(
    lines: Iterable[OcrBox],
    min_confidence: float = OCR_CONFIDENCE_THRESHOLD,
) -> List[PerceivedPrice]:
    """过滤低置信度行（严格大于阈值才保留）、提取数字，并按屏幕自上而下排序。"""
    prices: List[PerceivedPrice] = []
    for line in lines:
        if line.confidence <= min_confidence:
            continue
        value = parse_price(line.text)
        if value is None:
            continue
        prices.append(PerceivedPrice(value=value, confidence=line.confidence, top=line.top))
    prices.sort(key=lambda p: p.top)
    return prices


def top_price(
    lines: Iterable[OcrBox],
    min_confidence: float = OCR_CONFIDENCE_THRESHOLD,
) -> Optional[int]:
    """列表最上方的价格，即当前市场最高求购价；识别不到返回 None。"""
    prices = extract_numeric_prices(lines, min_confidence=min_confidence)
    return prices[0].value if prices else None
