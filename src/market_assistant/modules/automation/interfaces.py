"""
控制循环依赖的外部协作者接口

手势派发、文本注入、屏幕截图由 modules.emu.AsyncDeviceAdapter 实现，
OCR 由 modules.ocr.async_recognize.PaddleOcrReader 实现，
统计接收器由 modules.stats.SessionStatsRecorder 实现。
协作者可选提供 acquire() / release()，会话开始时获取、结束时释放。
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

from ..ocr.types import OcrBox

Point = Tuple[int, int]
Roi = Tuple[int, int, int, int]


@runtime_checkable
class GestureDispatcher(Protocol):
    async def tap(self, x: int, y: int, duration_ms: int) -> bool:
        """点击，平台确认完成返回 True，失败或超时返回 False，不抛异常。"""
        ...

    async def swipe(
        self,
        x1: int,
        y1: int,
        x2: int,
        y2: int,
        duration_ms: int,
        path: Optional[Sequence[Point]] = None,
    ) -> bool:
        ...


@runtime_checkable
class TextInjector(Protocol):
    async def clear_field(self) -> None:
        ...

    async def set_field_text(self, text: str) -> bool:
        """向当前获得焦点的输入框写入文本。"""
        ...


@runtime_checkable
class ScreenCapture(Protocol):
    async def capture_frame(self) -> Optional[np.ndarray]:
        """返回 BGR 图像，None 表示临时截图失败。"""
        ...

    async def screen_size(self) -> Tuple[int, int]:
        ...


@runtime_checkable
class OcrReader(Protocol):
    async def recognize(self, image: np.ndarray, region: Roi) -> List[OcrBox]:
        """识别区域内文字，空列表表示未识别到内容。"""
        ...


@runtime_checkable
class StatisticsSink(Protocol):
    def record_success(self, kind: str, price: Optional[int] = None) -> None:
        ...

    def record_failure(self, kind: str) -> None:
        ...

    def record_cycle(self) -> None:
        ...

    def update_state(self, name: str) -> None:
        ...
