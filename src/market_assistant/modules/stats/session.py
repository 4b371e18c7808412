"""
会话统计

控制循环在同一事件循环线程上同步调用记录方法，使用普通计数器即可。
记录方法吞掉自身异常并写日志，保证统计问题不会影响控制循环。
"""
from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

from ...core.constants import OutcomeKind
from ...core.logger import logger

Kind = Union[OutcomeKind, str]

_CREATED_KINDS = {OutcomeKind.ORDER_CREATED.value}
_EDITED_KINDS = {OutcomeKind.ORDER_UPDATED.value}


def _kind_value(kind: Kind) -> str:
    return kind.value if isinstance(kind, OutcomeKind) else str(kind)


def format_duration(ms: int) -> str:
    """毫秒格式化为 1h 5m / 3m 20s / 12s。"""
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


@dataclass(frozen=True)
class SessionStatistics:
    """会话统计快照"""

    start_time: float = 0.0
    duration_ms: int = 0
    total_cycles: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    price_updates: int = 0
    orders_created: int = 0
    orders_edited: int = 0
    consecutive_errors: int = 0
    last_state: str = ""
    last_price: Optional[int] = None

    @property
    def success_rate(self) -> float:
        total = self.successful_operations + self.failed_operations
        return self.successful_operations / total if total > 0 else 0.0

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.duration_ms)

    def export_text(self) -> str:
        started = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.start_time)) if self.start_time else "-"
        last_price = "-" if self.last_price is None else str(self.last_price)
        lines = [
            "=== 会话统计 ===",
            f"开始时间: {started}",
            f"运行时长: {self.duration_formatted}",
            f"处理行数: {self.total_cycles}",
            f"成功: {self.successful_operations}",
            f"失败: {self.failed_operations}",
            f"成功率: {self.success_rate * 100:.1f}%",
            f"新建求购: {self.orders_created}",
            f"修改求购: {self.orders_edited}",
            f"价格更新: {self.price_updates}",
            f"最近价格: {last_price}",
            f"连续错误: {self.consecutive_errors}",
            f"最后状态: {self.last_state}",
        ]
        return "\n".join(lines)


class SessionStatsRecorder:
    """统计接收器：实现控制循环的 record_success / record_failure / record_cycle / update_state。"""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._log = logger.bind(module="SessionStats")
        self._stats = SessionStatistics()

    def start_session(self) -> None:
        self._stats = SessionStatistics(start_time=self._clock(), last_state="initializing")
        self._log.info("统计会话开始")

    def end_session(self) -> SessionStatistics:
        snap = self.snapshot()
        self._log.info(
            f"统计会话结束: 行数={snap.total_cycles}, 成功={snap.successful_operations}, "
            f"失败={snap.failed_operations}, 时长={snap.duration_formatted}"
        )
        return snap

    def snapshot(self) -> SessionStatistics:
        s = self._stats
        if s.start_time:
            return replace(s, duration_ms=int((self._clock() - s.start_time) * 1000))
        return s

    @property
    def consecutive_errors(self) -> int:
        return self._stats.consecutive_errors

    # ── 接收器接口 ──

    def record_success(self, kind: Kind, price: Optional[int] = None) -> None:
        try:
            value = _kind_value(kind)
            s = self._stats
            price_changed = price is not None
            self._stats = replace(
                s,
                successful_operations=s.successful_operations + 1,
                price_updates=s.price_updates + (1 if price_changed else 0),
                orders_created=s.orders_created + (1 if value in _CREATED_KINDS else 0),
                orders_edited=s.orders_edited + (1 if value in _EDITED_KINDS else 0),
                consecutive_errors=0,
                last_price=price if price_changed else s.last_price,
            )
        except Exception as e:
            self._log.error(f"记录成功事件失败: {e}")

    def record_failure(self, kind: Kind) -> None:
        try:
            s = self._stats
            self._stats = replace(
                s,
                failed_operations=s.failed_operations + 1,
                consecutive_errors=s.consecutive_errors + 1,
            )
            self._log.debug(f"失败事件: {_kind_value(kind)} (连续 {self._stats.consecutive_errors})")
        except Exception as e:
            self._log.error(f"记录失败事件失败: {e}")

    def record_cycle(self) -> None:
        s = self._stats
        self._stats = replace(s, total_cycles=s.total_cycles + 1)

    def update_state(self, name: str) -> None:
        self._stats = replace(self._stats, last_state=name)
