"""核心 OCR 识别函数。"""
from __future__ import annotations

from typing import List, Optional

import cv2

from ..vision.utils import ImageLike, Roi, crop, load_image
from .engine import digit_infer_lock, get_digit_ocr_engine, get_ocr_engine, ocr_infer_lock
from .types import OcrBox, OcrResult


def ocr(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
    min_confidence: float = 0.0,
) -> OcrResult:
    """对图像执行 OCR 识别。

    Args:
        image: 图像来源（路径 / bytes / np.ndarray）
        roi: 可选区域 (x, y, w, h)，仅识别该区域内的文字
        min_confidence: 最低置信度阈值，低于此值的结果将被过滤。
            默认不过滤，由调用方按业务规则筛选。

    Returns:
        OcrResult，包含所有识别结果（坐标为大图坐标）
    """
    engine = get_ocr_engine()
    img, offset_x, offset_y = crop(load_image(image), roi)
    if img.size == 0:
        return OcrResult(boxes=[])

    # PaddleOCR 3.x: predict() 接受 BGR ndarray，返回 OCRResult 列表
    with ocr_infer_lock:
        results = engine.predict(img)

    boxes: List[OcrBox] = []
    if results:
        result = results[0]
        rec_texts = result["rec_texts"]
        rec_scores = result["rec_scores"]
        rec_polys = result["rec_polys"]
        for text, confidence, poly in zip(rec_texts, rec_scores, rec_polys):
            if confidence < min_confidence:
                continue
            # 坐标偏移还原为大图坐标
            adjusted_box = [
                (int(p[0] + offset_x), int(p[1] + offset_y))
                for p in poly
            ]
            boxes.append(OcrBox(
                text=text,
                confidence=float(confidence),
                box=adjusted_box,
            ))

    return OcrResult(boxes=boxes)


def ocr_digits(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
) -> OcrResult:
    """对图像执行纯数字 OCR 识别（使用 ddddocr 引擎）。

    适用于价格输入框等已知为纯数字的 ROI 区域。
    ddddocr 不输出置信度，命中时按 1.0 计，边界框取整个 ROI。
    """
    engine = get_digit_ocr_engine()
    img, offset_x, offset_y = crop(load_image(image), roi)
    if img.size == 0:
        return OcrResult(boxes=[])

    # ddddocr 接受 PNG bytes
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        return OcrResult(boxes=[])
    with digit_infer_lock:
        text = engine.classification(buf.tobytes())

    boxes: List[OcrBox] = []
    if text:
        h, w = img.shape[:2]
        boxes.append(OcrBox(
            text=text,
            confidence=1.0,
            box=[
                (offset_x, offset_y),
                (offset_x + w, offset_y),
                (offset_x + w, offset_y + h),
                (offset_x, offset_y + h),
            ],
        ))

    return OcrResult(boxes=boxes)


def ocr_text(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
    min_confidence: float = 0.6,
) -> str:
    """OCR 识别并返回按行拼接的纯文本（便捷函数）。"""
    return ocr(image, roi=roi, min_confidence=min_confidence).text
