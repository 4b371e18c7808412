"""
异步 DeviceAdapter 包装器

将同步的 DeviceAdapter 方法通过设备专属线程池转为异步方法，
同一设备上的 ADB 命令串行执行，不阻塞控制循环所在的事件循环。

使用方式：
    adapter = DeviceAdapter(cfg)
    device = AsyncDeviceAdapter(adapter)
    frame = await device.capture_frame()
"""
from __future__ import annotations

import asyncio
import functools
from typing import Optional, Sequence, Tuple

from ...core.logger import logger
from ...core.thread_pool import run_in_device_io
from .adapter import DeviceAdapter, DeviceConfig, Point

SWIPE_TIMEOUT_GRACE_SEC = 0.5


class AsyncDeviceAdapter:
    """DeviceAdapter 的异步包装器（代理模式）。

    同时满足控制循环的手势派发、文本注入、屏幕截图三个接口。
    手势在 gesture_timeout_sec 内未完成视为失败，返回 False。
    """

    def __init__(self, adapter: DeviceAdapter) -> None:
        self._sync = adapter
        self._io_key = adapter.cfg.adb_addr
        self._log = logger.bind(module="AsyncDeviceAdapter", addr=adapter.cfg.adb_addr)

    @property
    def sync(self) -> DeviceAdapter:
        """获取底层同步适配器。"""
        return self._sync

    @property
    def cfg(self) -> DeviceConfig:
        return self._sync.cfg

    async def _run(self, func, *args):
        return await run_in_device_io(self._io_key, func, *args)

    async def _gesture(self, func, *args, timeout: Optional[float] = None) -> bool:
        if timeout is None:
            timeout = self.cfg.gesture_timeout_sec
        try:
            return await asyncio.wait_for(self._run(func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            self._log.error(f"手势超时 ({timeout:.1f}s)")
            return False

    # ── 会话资源 ──

    async def acquire(self) -> None:
        if not await self._run(self._sync.ensure_connected):
            self._log.warning("设备连接未确认，继续尝试执行")
        await self._run(self._sync.screen_size)

    async def release(self) -> None:
        self._log.debug("设备会话结束")

    # ── 接口实现 ──

    async def screen_size(self) -> Tuple[int, int]:
        return await self._run(self._sync.screen_size)

    async def tap(self, x: int, y: int, duration_ms: int = 80) -> bool:
        return await self._gesture(self._sync.tap, x, y, duration_ms)

    async def swipe(
        self,
        x1: int,
        y1: int,
        x2: int,
        y2: int,
        duration_ms: int = 300,
        path: Optional[Sequence[Point]] = None,
    ) -> bool:
        # 同步侧总耗时不超过 swipe_timeout
        timeout = self._sync.swipe_timeout(duration_ms) + SWIPE_TIMEOUT_GRACE_SEC
        return await self._gesture(
            functools.partial(self._sync.swipe, x1, y1, x2, y2, duration_ms, path=path),
            timeout=timeout,
        )

    async def clear_field(self) -> None:
        await self._run(self._sync.clear_field)

    async def set_field_text(self, text: str) -> bool:
        return await self._run(self._sync.set_field_text, text)

    async def capture_frame(self):
        """异步截图，返回 BGR ndarray，失败返回 None。"""
        return await self._run(self._sync.capture_frame)
