"""
列表到底检测

每次翻页后对列表区域做整页 OCR，生成页面签名并与上一页比较；
连续判定为同一页的次数达到阈值时认为列表已经到底。
"""
from __future__ import annotations

from typing import Optional

from ...core.logger import logger
from ..calibration.types import EndOfListSettings
from ..similarity import PageMatchResult, PageSignature, compare_signatures


class EndOfListTracker:
    def __init__(self, settings: EndOfListSettings) -> None:
        self.settings = settings
        self._previous: Optional[PageSignature] = None
        self._same_count = 0
        self.last_result: Optional[PageMatchResult] = None
        self._log = logger.bind(module="EndOfList")

    @property
    def has_baseline(self) -> bool:
        return self._previous is not None

    @property
    def same_page_count(self) -> int:
        return self._same_count

    def reset(self) -> None:
        self._previous = None
        self._same_count = 0
        self.last_result = None

    def observe(self, page_text: str) -> bool:
        """记录一页文本，返回是否应当停止。空白页不参与比较。"""
        if not page_text.strip():
            self._log.debug("列表区域未识别到文字，跳过本次比较")
            return False

        current = PageSignature.from_text(page_text)
        result = compare_signatures(
            self._previous,
            current,
            first_line_threshold=self.settings.first_line_threshold,
            overall_threshold=self.settings.overall_threshold,
        )
        self._previous = current
        self.last_result = result

        if result is not None and result.is_likely_same_page:
            self._same_count += 1
            self._log.info(
                f"翻页后页面未变化 ({self._same_count}/{self.settings.identical_page_threshold}), "
                f"首行={result.first_line_similarity:.2f}, 整页={result.overall_similarity:.2f}"
            )
        else:
            self._same_count = 0

        return self._same_count >= self.settings.identical_page_threshold
