"""PaddleOCR / ddddocr 引擎管理（懒加载 + 线程安全）。"""
from __future__ import annotations

import os
import threading
from pathlib import Path

from ...core.config import settings
from ...core.logger import logger

# ── 在导入 PaddleOCR 之前设置环境变量，防止自动下载模型 ──
_ocr_dir = str(Path(settings.ocr_model_dir).resolve())
os.environ.setdefault('PADDLEX_HOME', _ocr_dir)
os.environ.setdefault('PPOCR_HOME', _ocr_dir)
os.environ.setdefault('PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK', 'True')

_ocr_instance = None
_ocr_lock = threading.Lock()
# 推理锁：PaddleOCR predict() 非线程安全，多线程并发调用需串行化
ocr_infer_lock = threading.Lock()

_digit_instance = None
_digit_lock = threading.Lock()
# 推理锁：ddddocr classification() 非线程安全
digit_infer_lock = threading.Lock()


def get_ocr_engine():
    """获取 PaddleOCR 单例。

    首次调用时初始化引擎（约 3-5 秒），后续调用直接返回缓存实例。
    线程安全（双检锁）。
    """
    global _ocr_instance
    if _ocr_instance is not None:
        return _ocr_instance

    with _ocr_lock:
        if _ocr_instance is not None:
            return _ocr_instance

        logger.info(
            "正在初始化 PaddleOCR (lang={})...",
            settings.paddle_ocr_lang,
        )
        try:
            from paddleocr import PaddleOCR  # noqa: delay import
        except ImportError as e:
            logger.error(f"PaddleOCR 导入失败，请检查依赖: {e}")
            raise

        try:
            _ocr_instance = PaddleOCR(
                use_textline_orientation=False,
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                lang=settings.paddle_ocr_lang,
                device="cpu",
            )
        except Exception as e:
            logger.error(f"PaddleOCR 初始化失败: {e}")
            raise
        logger.info("PaddleOCR 初始化完成")
        return _ocr_instance


def get_digit_ocr_engine():
    """获取 ddddocr 数字识别单例。

    价格输入框内只有数字，ddddocr 对小尺寸数字识别更稳定。
    """
    global _digit_instance
    if _digit_instance is not None:
        return _digit_instance

    with _digit_lock:
        if _digit_instance is not None:
            return _digit_instance

        logger.info("正在初始化 ddddocr 数字识别引擎...")
        import ddddocr  # noqa: delay import

        _digit_instance = ddddocr.DdddOcr(show_ad=False)
        logger.info("ddddocr 数字识别引擎初始化完成")
        return _digit_instance
