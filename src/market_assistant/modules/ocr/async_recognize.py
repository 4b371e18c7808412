"""异步 OCR 识别包装器。

将同步 OCR 推理 offload 到计算线程池，避免阻塞控制循环所在的事件循环。
PaddleOcrReader 实现控制循环所需的 recognize(image, region) 接口。
"""
from __future__ import annotations

import functools
from typing import List, Optional

from ...core.logger import logger
from ...core.thread_pool import run_in_compute
from ..vision.utils import ImageLike, Roi
from .recognize import ocr, ocr_digits
from .types import OcrBox


async def async_ocr(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
    min_confidence: float = 0.0,
) -> List[OcrBox]:
    """异步 OCR 识别，返回逐行结果。"""
    result = await run_in_compute(
        functools.partial(ocr, image, roi=roi, min_confidence=min_confidence)
    )
    return result.boxes


async def async_ocr_digits(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
) -> List[OcrBox]:
    """异步纯数字 OCR 识别。"""
    result = await run_in_compute(functools.partial(ocr_digits, image, roi=roi))
    return result.boxes


class PaddleOcrReader:
    """控制循环使用的 OCR 读取器。

    recognize_digits 用于价格输入框等纯数字区域，默认改走 ddddocr 数字引擎。
    """

    def __init__(self, *, use_digit_engine_for_inputs: bool = True) -> None:
        self.use_digit_engine_for_inputs = use_digit_engine_for_inputs
        self._log = logger.bind(module="PaddleOcrReader")

    async def recognize(self, image: ImageLike, region: Roi) -> List[OcrBox]:
        boxes = await async_ocr(image, roi=region)
        self._log.debug(f"OCR 区域 {region}: {[(b.text, round(b.confidence, 2)) for b in boxes]}")
        return boxes

    async def recognize_digits(self, image: ImageLike, region: Roi) -> List[OcrBox]:
        if not self.use_digit_engine_for_inputs:
            return await self.recognize(image, region)
        boxes = await async_ocr_digits(image, roi=region)
        self._log.debug(f"数字 OCR 区域 {region}: {[b.text for b in boxes]}")
        return boxes
