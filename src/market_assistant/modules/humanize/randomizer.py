"""
手势随机化（防检测）

对点击时长、滑动时长、循环间隔做小幅抖动，滑动轨迹用三次贝塞尔曲线代替直线，
避免输入序列完全一致、周期完全固定。随机化只改变时序和轨迹形状，
不改变逻辑目标：点击落点偏移受 path_jitter_px 约束，仍在校准容差内。
"""
from __future__ import annotations

import math
import random
from typing import List, Optional, Tuple

from ...core.constants import LOOP_DELAY_JITTER, SWIPE_DURATION_JITTER, TAP_DURATION_JITTER
from ..calibration.types import RandomizationProfile

Point = Tuple[int, int]

# 滑动距离抖动后的最短距离（像素）
MIN_SWIPE_DISTANCE = 10


def _bezier_point(t: float, p0, p1, p2, p3) -> Tuple[float, float]:
    """Evaluate a cubic Bézier curve at parameter *t* ∈ [0, 1]."""
    u = 1.0 - t
    c0 = u * u * u
    c1 = 3.0 * u * u * t
    c2 = 3.0 * u * t * t
    c3 = t * t * t
    return (
        c0 * p0[0] + c1 * p1[0] + c2 * p2[0] + c3 * p3[0],
        c0 * p0[1] + c1 * p1[1] + c2 * p2[1] + c3 * p3[1],
    )


class Randomizer:
    """随机化引擎，会话开始时以只读的 RandomizationProfile 构造。"""

    def __init__(self, profile: RandomizationProfile, rng: Optional[random.Random] = None) -> None:
        self.profile = profile
        self._rng = rng or random.Random()

    @property
    def enabled(self) -> bool:
        return self.profile.enabled

    # ── 时序 ──

    def jitter_delay(self) -> int:
        """在 [min_delay_ms, max_delay_ms] 内均匀取随机停顿；关闭随机化时取中值。"""
        lo, hi = self.profile.min_delay_ms, self.profile.max_delay_ms
        if not self.enabled:
            return (lo + hi) // 2
        return self._rng.randint(lo, hi)

    def jitter_duration(self, base_ms: int, variation: float, floor_ms: int) -> int:
        """base ± variation*base 的均匀抖动，结果不低于 floor_ms。"""
        if not self.enabled or base_ms <= 0:
            return max(int(base_ms), floor_ms)
        spread = variation * base_ms
        value = base_ms + self._rng.uniform(-spread, spread)
        return max(int(round(value)), floor_ms)

    def tap_duration(self, base_ms: int) -> int:
        return self.jitter_duration(base_ms, *TAP_DURATION_JITTER)

    def swipe_duration(self, base_ms: int) -> int:
        return self.jitter_duration(base_ms, *SWIPE_DURATION_JITTER)

    def loop_delay(self, base_ms: int) -> int:
        return self.jitter_duration(base_ms, *LOOP_DELAY_JITTER)

    # ── 轨迹 ──

    def jitter_point(self, x: int, y: int) -> Point:
        """点击落点在 ±path_jitter_px 范围内偏移。"""
        px = self.profile.path_jitter_px
        if not self.enabled or not self.profile.path_randomization_enabled or px <= 0:
            return x, y
        return x + self._rng.randint(-px, px), y + self._rng.randint(-px, px)

    def jitter_swipe_distance(self, start: Point, end: Point) -> Point:
        """按 ±swipe_distance_jitter_pct 缩放滑动向量，返回新的终点（起点不变）。"""
        pct = self.profile.swipe_distance_jitter_pct
        if not self.enabled or pct <= 0:
            return end
        dx, dy = end[0] - start[0], end[1] - start[1]
        distance = math.hypot(dx, dy)
        if distance == 0:
            return end
        scale = 1.0 + self._rng.uniform(-pct, pct)
        scale = max(scale, MIN_SWIPE_DISTANCE / distance)
        return int(round(start[0] + dx * scale)), int(round(start[1] + dy * scale))

    def jitter_path(self, start: Point, end: Point, num_points: Optional[int] = None) -> List[Point]:
        """生成从 start 到 end 的轨迹点。

        启用时为三次贝塞尔曲线，两个控制点在中点附近 ±path_jitter_px 内随机；
        关闭时为线性插值。首尾点始终精确等于 start / end。
        """
        n = max(2, num_points or self.profile.path_points)
        ts = [i / (n - 1) for i in range(n)]
        px = self.profile.path_jitter_px

        if not self.enabled or not self.profile.path_randomization_enabled or px <= 0:
            points = [
                (start[0] + (end[0] - start[0]) * t, start[1] + (end[1] - start[1]) * t)
                for t in ts
            ]
        else:
            mid = ((start[0] + end[0]) / 2.0, (start[1] + end[1]) / 2.0)
            cp1 = (mid[0] + self._rng.uniform(-px, px), mid[1] + self._rng.uniform(-px, px))
            cp2 = (mid[0] + self._rng.uniform(-px, px), mid[1] + self._rng.uniform(-px, px))
            points = [_bezier_point(t, start, cp1, cp2, end) for t in ts]

        path = [(int(round(x)), int(round(y))) for x, y in points]
        path[0] = (int(start[0]), int(start[1]))
        path[-1] = (int(end[0]), int(end[1]))
        return path

    # ── 人类化停顿 ──

    def human_variation(self) -> float:
        """0.8 ~ 1.2 的倍率，关闭随机化时为 1.0。"""
        if not self.enabled:
            return 1.0
        return 0.8 + self._rng.random() * 0.4

    def should_hesitate(self, recent_actions: int) -> bool:
        """5% 基础概率，每个近期连续动作 +2%。"""
        if not self.enabled:
            return False
        probability = 0.05 + recent_actions * 0.02
        return self._rng.random() < probability

    def hesitation_delay(self) -> int:
        if not self.enabled:
            return 300
        return self._rng.randint(100, 500)
