"""
设备适配器：封装 ADB，对控制循环暴露统一的手势 / 输入 / 截图方法

接口：
- ensure_connected() -> bool
- tap(x, y, duration_ms) -> bool
- swipe(x1, y1, x2, y2, duration_ms, path=None) -> bool
- clear_field() -> None
- set_field_text(text) -> bool
- capture_frame() -> ndarray | None
- screen_size() -> (w, h)

手势失败（ADB 报错 / 超时）只记日志并返回 False，不向上抛出。
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ...core.logger import logger
from ..vision.utils import load_image
from .adb import KEYCODE_DEL, KEYCODE_MOVE_END, Adb, AdbError, AdbTimeout

Point = Tuple[int, int]

# 清空输入框时连续发送的退格次数
FIELD_CLEAR_DELETES = 20


@dataclass
class DeviceConfig:
    adb_path: str
    adb_addr: str
    gesture_timeout_sec: float = 3.0
    use_motion_events: bool = True


class DeviceAdapter:
    def __init__(self, cfg: DeviceConfig) -> None:
        self.cfg = cfg
        self.adb = Adb(cfg.adb_path)
        self._log = logger.bind(module="DeviceAdapter", addr=cfg.adb_addr)
        self._screen_size: Optional[Tuple[int, int]] = None
        # 设备不支持 motionevent 时退回 input swipe
        self._motion_supported = cfg.use_motion_events

    def ensure_connected(self) -> bool:
        try:
            ok = self.adb.connect(self.cfg.adb_addr)
        except AdbError as e:
            self._log.warning(f"adb connect 失败: {e}")
            return False
        if not ok:
            self._log.warning("adb connect 未返回 connected")
        return ok

    def screen_size(self) -> Tuple[int, int]:
        if self._screen_size is None:
            self._screen_size = self.adb.screen_size(self.cfg.adb_addr)
        return self._screen_size

    # ── 手势 ──

    def swipe_timeout(self, duration_ms: int) -> float:
        """一次滑动（含退回直线滑动）的总时间预算，秒。"""
        return self.cfg.gesture_timeout_sec + max(0, duration_ms) / 1000.0

    def tap(self, x: int, y: int, duration_ms: int = 80) -> bool:
        try:
            self.adb.tap(self.cfg.adb_addr, x, y, duration_ms, timeout=self.cfg.gesture_timeout_sec)
            return True
        except AdbError as e:
            self._log.error(f"点击失败 ({x}, {y}): {e}")
            return False

    def swipe(
        self,
        x1: int,
        y1: int,
        x2: int,
        y2: int,
        duration_ms: int = 300,
        path: Optional[Sequence[Point]] = None,
    ) -> bool:
        addr = self.cfg.adb_addr
        budget = self.swipe_timeout(duration_ms)
        deadline = time.monotonic() + budget
        if path and len(path) > 2 and self._motion_supported:
            try:
                self.adb.motion_path(addr, path, duration_ms, timeout=budget)
                return True
            except AdbTimeout as e:
                # 设备端触摸事件可能仍在执行，不能再叠加一次直线滑动
                self._log.error(f"轨迹滑动超时: {e}")
                return False
            except AdbError as e:
                self._log.warning(f"轨迹滑动失败，退回直线滑动: {e}")
                self._motion_supported = False
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            self._log.error("滑动超出时间预算，放弃直线滑动")
            return False
        try:
            self.adb.swipe(addr, x1, y1, x2, y2, duration_ms, timeout=remaining)
            return True
        except AdbError as e:
            self._log.error(f"滑动失败 ({x1}, {y1}) -> ({x2}, {y2}): {e}")
            return False

    # ── 文本输入 ──

    def clear_field(self) -> None:
        codes = [KEYCODE_MOVE_END] + [KEYCODE_DEL] * FIELD_CLEAR_DELETES
        try:
            self.adb.keyevent(self.cfg.adb_addr, *codes, timeout=self.cfg.gesture_timeout_sec)
        except AdbError as e:
            self._log.warning(f"清空输入框失败: {e}")

    def set_field_text(self, text: str) -> bool:
        try:
            self.adb.input_text(self.cfg.adb_addr, text, timeout=self.cfg.gesture_timeout_sec)
            return True
        except AdbError as e:
            self._log.error(f"输入文本失败 '{text}': {e}")
            return False

    # ── 截图 ──

    def capture_frame(self) -> Optional[np.ndarray]:
        try:
            data = self.adb.screencap(self.cfg.adb_addr)
        except AdbError as e:
            self._log.error(f"截图失败: {e}")
            return None
        if not data:
            self._log.error("截图返回空数据")
            return None
        try:
            return load_image(data)
        except ValueError as e:
            self._log.error(f"截图解码失败: {e}")
            return None
