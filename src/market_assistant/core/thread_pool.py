"""
全局线程池管理

提供统一的 ThreadPoolExecutor 实例，供 AsyncDeviceAdapter 和 OCR 服务
将阻塞操作 offload 到线程，避免阻塞控制循环所在的事件循环。

- 设备 I/O 池：ADB subprocess 调用，单设备单线程，保证手势严格串行
- 计算池：OpenCV 取色、OCR 推理等 CPU 密集操作
"""
from __future__ import annotations

import asyncio
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from .config import settings
from .logger import logger

_io_pool: Optional[ThreadPoolExecutor] = None
_compute_pool: Optional[ThreadPoolExecutor] = None
_device_io_pools: Dict[str, ThreadPoolExecutor] = {}
_pool_lock = threading.Lock()


def _auto_compute_pool_size() -> int:
    """根据 CPU 核数自动计算计算线程池大小。

    规则: max(2, cpu_count // 2)，上限 8。
    """
    cpu = os.cpu_count() or 4
    return min(max(2, cpu // 2), 8)


def get_io_pool() -> ThreadPoolExecutor:
    """获取通用 I/O 线程池。"""
    global _io_pool
    with _pool_lock:
        if _io_pool is None:
            size = settings.io_thread_pool_size
            if size <= 0:
                size = 4
            _io_pool = ThreadPoolExecutor(
                max_workers=size,
                thread_name_prefix="adb-io",
            )
            logger.info("I/O 线程池已创建: max_workers={}", size)
        return _io_pool


def get_compute_pool() -> ThreadPoolExecutor:
    """获取计算线程池（OpenCV 取色、OCR 等）。"""
    global _compute_pool
    with _pool_lock:
        if _compute_pool is None:
            size = settings.compute_thread_pool_size
            if size <= 0:
                size = _auto_compute_pool_size()
            _compute_pool = ThreadPoolExecutor(
                max_workers=size,
                thread_name_prefix="cv-compute",
            )
            logger.info("计算线程池已创建: max_workers={}", size)
        return _compute_pool


def get_device_io_pool(io_key: str) -> ThreadPoolExecutor:
    """获取指定设备的单线程 I/O 池。"""
    key = str(io_key or "").strip()
    if not key:
        return get_io_pool()

    with _pool_lock:
        pool = _device_io_pools.get(key)
        if pool is None:
            pool = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix=f"device-io-{len(_device_io_pools) + 1}",
            )
            _device_io_pools[key] = pool
            logger.info("设备 I/O 线程池已创建: io_key={}", key)
        return pool


async def run_in_device_io(io_key: str, func, *args):
    """在指定设备单线程 I/O 池中执行同步函数并 await 结果。"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_device_io_pool(io_key), func, *args)


async def run_in_compute(func, *args):
    """在计算线程池中执行同步函数并 await 结果。"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_compute_pool(), func, *args)


def shutdown_pools() -> None:
    """关闭所有线程池（进程退出时调用）。"""
    global _io_pool, _compute_pool
    with _pool_lock:
        if _io_pool:
            _io_pool.shutdown(wait=False)
            _io_pool = None
        if _compute_pool:
            _compute_pool.shutdown(wait=False)
            _compute_pool = None
        for pool in _device_io_pools.values():
            pool.shutdown(wait=False)
        _device_io_pools.clear()
    logger.info("线程池已关闭")
