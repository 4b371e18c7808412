"""
控制循环（状态机）

会话流程：
    start(mode) -> 获取协作者资源 -> 逐行执行模式主体 -> 行尾翻页钩子 -> ... -> 释放资源 -> Idle

新建模式（CREATE_SWEEP）每行：
    点击行锚点 -> 等待弹窗 -> 截图取色
    ├─ 已高亮（已有挂单）: 点关闭
    └─ 未高亮: OCR 最高求购价 -> +price_increment -> 上限校验 -> 输入价格 -> 确认

修改模式（EDIT_UPDATE）每行：
    点击编辑按钮 -> 等待弹窗 -> OCR 市场最高价与当前挂单价
    ├─ 当前价 >= 市场价: 点关闭
    └─ 否则: 市场价 +edit_increment -> 上限 / 涨幅校验 -> 输入价格 -> 确认

取消是协作式的：stop() / pause() 只在检查点（阶段之间、等待期间）生效，
已发出的手势一定会等到完成或超时。
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from ...core.constants import (
    FIELD_CLEAR_DELAY_MS,
    OCR_CONFIDENCE_THRESHOLD,
    SCROLL_SETTLE_MS,
    OperationMode,
    OutcomeKind,
    Phase,
)
from ...core.logger import get_session_logger, logger
from ..calibration.types import CalibrationProfile, PointPct, RandomizationProfile
from ..humanize import Randomizer
from ..ocr.prices import top_price
from ..ocr.types import OcrBox, OcrResult
from ..stats import SessionStatsRecorder
from ..vision.color_detect import classify_region
from ..vision.utils import image_size
from .end_of_list import EndOfListTracker
from .errors import AlreadyRunning, SessionBusy
from .interfaces import GestureDispatcher, OcrReader, ScreenCapture, StatisticsSink, TextInjector
from .state import ControlState

StateListener = Callable[[ControlState], None]
ErrorListener = Callable[[str], None]

# 文本注入失败后的重试次数
TEXT_INPUT_RETRIES = 1


class _SessionStopped(Exception):
    """检查点发现 stop() 后用于退出当前会话"""


class ControlLoop:
    """感知-动作控制循环，同一时间只允许一个会话。"""

    def __init__(
        self,
        *,
        gestures: GestureDispatcher,
        text_input: TextInjector,
        capture: ScreenCapture,
        ocr: OcrReader,
        calibration: CalibrationProfile,
        randomization: RandomizationProfile,
        stats: Optional[StatisticsSink] = None,
        on_state_change: Optional[StateListener] = None,
        on_error: Optional[ErrorListener] = None,
        min_confidence: float = OCR_CONFIDENCE_THRESHOLD,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._gestures = gestures
        self._text = text_input
        self._capture = capture
        self._ocr = ocr
        self.stats = stats if stats is not None else SessionStatsRecorder()
        self._calibration = calibration
        self._randomization = randomization
        self._rng = rng
        self._rand = Randomizer(randomization, rng)
        self.min_confidence = min_confidence

        self._listeners: List[StateListener] = []
        if on_state_change is not None:
            self._listeners.append(on_state_change)
        self._on_error = on_error

        self._state = ControlState()
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._resume_event.set()

        self._screen: Tuple[int, int] = (0, 0)
        self._eol: Optional[EndOfListTracker] = None
        self._consecutive_failures = 0
        self._rows_done = 0
        self._row_failed = False
        self._recent_actions = 0
        self.stop_reason: Optional[str] = None
        self._log = logger.bind(module="ControlLoop")

    # ── 状态 ──

    @property
    def state(self) -> ControlState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def calibration(self) -> CalibrationProfile:
        return self._calibration

    @property
    def randomization(self) -> RandomizationProfile:
        return self._randomization

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """订阅状态变化，返回取消订阅函数。"""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        if "phase" in changes:
            self._log.debug(f"阶段 -> {self._state.phase.value} (行 {self._state.row_index})")
            self._stats_call("update_state", self._state.phase.value)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                self._log.error(f"状态订阅回调异常: {e}")

    def _stats_call(self, name: str, *args: Any) -> None:
        try:
            getattr(self.stats, name)(*args)
        except Exception as e:
            self._log.error(f"统计接收器 {name} 异常: {e}")

    # ── 公共控制接口 ──

    def update_profiles(
        self,
        calibration: Optional[CalibrationProfile] = None,
        randomization: Optional[RandomizationProfile] = None,
    ) -> None:
        """替换校准 / 随机化配置，仅允许在会话之间调用。"""
        if self.is_running:
            raise SessionBusy("会话运行中，不能修改校准或随机化配置")
        if calibration is not None:
            self._calibration = calibration
        if randomization is not None:
            self._randomization = randomization
            self._rand = Randomizer(randomization, self._rng)
        self._log.info("配置已更新，下次会话生效")

    async def start(self, mode: OperationMode, *, max_rows: Optional[int] = None) -> None:
        """开始会话；已有会话在运行时抛出 AlreadyRunning。"""
        if self.is_running:
            raise AlreadyRunning(f"会话正在运行: {self._state.mode.value}")

        mode = OperationMode(mode)
        self._stop_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self._consecutive_failures = 0
        self._rows_done = 0
        self._recent_actions = 0
        self.stop_reason = None
        self._eol = EndOfListTracker(self._calibration.end_of_list) if self._calibration.end_of_list.enabled else None
        self._state = ControlState(mode=mode)
        self._task = asyncio.create_task(self._run_session(mode, max_rows))

    def stop(self, reason: str = "用户停止") -> None:
        """请求停止，幂等；在下一个检查点生效。"""
        if not self.is_running or self._stop_event.is_set():
            return
        self.stop_reason = reason
        self._log.info(f"请求停止会话: {reason}")
        self._stop_event.set()
        # 暂停中的会话也要能退出
        self._resume_event.set()

    def pause(self) -> None:
        if not self.is_running or not self._resume_event.is_set():
            return
        self._resume_event.clear()
        self._log.info("会话暂停")
        self._set_state(paused=True)

    def resume(self) -> None:
        if not self.is_running or self._resume_event.is_set():
            return
        self._resume_event.set()
        self._log.info("会话恢复")
        self._set_state(paused=False)

    async def wait(self) -> ControlState:
        """等待当前会话结束，返回最终状态。"""
        if self._task is not None:
            await self._task
        return self._state

    # ── 会话主循环 ──

    async def _run_session(self, mode: OperationMode, max_rows: Optional[int]) -> None:
        log = get_session_logger(mode.value)
        acquired: List[Any] = []
        if hasattr(self.stats, "start_session"):
            self._stats_call("start_session")
        log.info(f"会话开始: 模式={mode.value}, 校准={self._calibration.name}")
        try:
            for res in self._collaborators():
                acquire = getattr(res, "acquire", None)
                if acquire is not None:
                    await acquire()
                    acquired.append(res)

            if mode == OperationMode.IDLE:
                return

            self._screen = await self._capture.screen_size()
            log.info(f"屏幕尺寸: {self._screen[0]}x{self._screen[1]}")
            body = self._body_for(mode)

            while True:
                await self._checkpoint()
                await self._maybe_hesitate()
                await self._run_row(body)

                reason = self._policy_stop_reason(max_rows)
                if reason:
                    self.stop_reason = reason
                    log.info(f"会话结束: {reason}")
                    break

                delay = self._rand.loop_delay(self._calibration.timing.polling_interval_ms)
                await self._checkpoint(delay)
        except _SessionStopped:
            log.info(f"会话已停止: {self.stop_reason or '-'}")
        except Exception as e:
            log.exception(f"控制循环致命错误: {e}")
            self.stop_reason = f"致命错误: {e}"
            self._set_state(error_message=str(e))
            if self._on_error is not None:
                try:
                    self._on_error(str(e))
                except Exception as cb_err:
                    log.error(f"错误回调异常: {cb_err}")
        finally:
            for res in reversed(acquired):
                try:
                    await res.release()
                except Exception as e:
                    log.error(f"释放资源失败: {e}")
            if hasattr(self.stats, "end_session"):
                self._stats_call("end_session")
            self._set_state(phase=Phase.IDLE, mode=OperationMode.IDLE, paused=False)
            log.info(f"会话结束，共处理 {self._rows_done} 行")

    def _collaborators(self) -> List[Any]:
        seen: List[Any] = []
        for res in (self._capture, self._gestures, self._text, self._ocr):
            if not any(res is s for s in seen):
                seen.append(res)
        return seen

    def _body_for(self, mode: OperationMode) -> Callable[[int], Awaitable[None]]:
        if mode == OperationMode.CREATE_SWEEP:
            return self._run_create_sweep
        if mode == OperationMode.EDIT_UPDATE:
            return self._run_edit_update
        raise ValueError(f"未知运行模式: {mode}")

    def _policy_stop_reason(self, max_rows: Optional[int]) -> Optional[str]:
        if max_rows is not None and self._rows_done >= max_rows:
            return f"已处理 {self._rows_done} 行"
        max_cycles = self._calibration.end_of_list.max_cycles_before_stop
        if max_cycles > 0 and self._rows_done >= max_cycles:
            return f"达到行数上限 {max_cycles}"
        max_errors = self._calibration.error_recovery.max_consecutive_errors
        if max_errors > 0 and self._consecutive_failures >= max_errors:
            return f"连续失败 {self._consecutive_failures} 行"
        return None

    async def _run_row(self, body: Callable[[int], Awaitable[None]]) -> None:
        """执行一行：主体异常只影响本行，行尾钩子总会执行。"""
        row = self._state.row_index
        self._row_failed = False
        self._set_state(error_message=None)
        try:
            await body(row)
        except _SessionStopped:
            raise
        except Exception as e:
            self._log.exception(f"第 {row} 行执行异常: {e}")
            self._fail(OutcomeKind.ROW_ERROR, str(e))

        # 行尾钩子可能触发停止，先计数
        self._stats_call("record_cycle")
        self._rows_done += 1
        self._set_state(row_index=row + 1)
        try:
            await self._row_iteration_hook()
        except _SessionStopped:
            raise
        except Exception as e:
            self._log.exception(f"翻页异常: {e}")
            self._fail(OutcomeKind.ROW_ERROR, str(e))

    # ── 检查点 ──

    async def _checkpoint(self, delay_ms: int = 0) -> None:
        """暂停门 + 停止检查，delay_ms > 0 时在等待期间也响应 stop()。"""
        await self._resume_event.wait()
        if self._stop_event.is_set():
            raise _SessionStopped()
        if delay_ms > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay_ms / 1000.0)
            except asyncio.TimeoutError:
                pass
            else:
                raise _SessionStopped()
            await self._resume_event.wait()
            if self._stop_event.is_set():
                raise _SessionStopped()

    async def _wait_phase(self, phase: Phase, delay_ms: int) -> None:
        self._set_state(phase=phase)
        await self._checkpoint(delay_ms)

    async def _maybe_hesitate(self) -> None:
        if self._rand.should_hesitate(self._recent_actions):
            delay = self._rand.hesitation_delay()
            self._log.debug(f"随机停顿 {delay}ms")
            self._recent_actions = 0
            await self._checkpoint(delay)
        else:
            self._recent_actions = min(self._recent_actions + 1, 10)

    # ── 结果记录 ──

    def _succeed(self, kind: OutcomeKind, price: Optional[int] = None) -> None:
        self._consecutive_failures = 0
        self._stats_call("record_success", kind.value, price)

    def _fail(self, kind: OutcomeKind, message: str) -> None:
        # 同一行多次失败只计一次
        if not self._row_failed:
            self._row_failed = True
            self._consecutive_failures += 1
        self._log.warning(f"跳过第 {self._state.row_index} 行: {message}")
        self._set_state(phase=Phase.ERROR_RETRY, error_message=message)
        self._stats_call("record_failure", kind.value)

    # ── 手势与感知 ──

    def _to_pixels(self, point: PointPct) -> Tuple[int, int]:
        w, h = self._screen
        return point.to_pixels(w, h)

    def _clamp(self, x: int, y: int) -> Tuple[int, int]:
        w, h = self._screen
        return min(max(x, 0), max(w - 1, 0)), min(max(y, 0), max(h - 1, 0))

    async def _tap(self, point: PointPct, phase: Phase) -> bool:
        await self._checkpoint()
        x, y = self._clamp(*self._rand.jitter_point(*self._to_pixels(point)))
        self._set_state(phase=phase, last_coordinate=(x, y))
        duration = self._rand.tap_duration(self._calibration.timing.tap_duration_ms)
        self._log.debug(f"点击 ({x}, {y}) {duration}ms")
        ok = await self._gestures.tap(x, y, duration)
        if not ok:
            self._log.warning(f"点击未确认完成 ({x}, {y})")
        await self._checkpoint(self._rand.jitter_delay())
        return ok

    async def _swipe(self, start: PointPct, end: PointPct) -> bool:
        await self._checkpoint()
        p0 = self._to_pixels(start)
        p1 = self._clamp(*self._rand.jitter_swipe_distance(p0, self._to_pixels(end)))
        path = self._rand.jitter_path(p0, p1)
        duration = self._rand.swipe_duration(self._calibration.timing.swipe_duration_ms)
        self._set_state(phase=Phase.SCROLL_NEXT, last_coordinate=p1)
        self._log.debug(f"滑动 {p0} -> {p1} {duration}ms, 轨迹点 {len(path)}")
        ok = await self._gestures.swipe(p0[0], p0[1], p1[0], p1[1], duration, path=path)
        if not ok:
            self._log.warning(f"滑动未确认完成 {p0} -> {p1}")
        await self._checkpoint(self._rand.jitter_delay())
        return ok

    async def _capture_frame(self):
        await self._checkpoint()
        return await self._capture.capture_frame()

    async def _read_price(self, frame, region, digits: bool = False) -> Optional[int]:
        w, h = image_size(frame)
        roi = region.to_roi(w, h)
        recognize = getattr(self._ocr, "recognize_digits", None) if digits else None
        if recognize is None:
            recognize = self._ocr.recognize
        boxes: List[OcrBox] = await recognize(frame, roi)
        return top_price(boxes, min_confidence=self.min_confidence)

    async def _close_popup(self) -> None:
        await self._tap(self._calibration.close_button, Phase.TAP)
        await self._checkpoint(self._calibration.timing.popup_close_wait_ms)

    async def _inject_price(self, price: int) -> bool:
        """点击价格输入框、清空并写入价格；写入失败重试一次。"""
        timing = self._calibration.timing
        await self._tap(self._calibration.price_input, Phase.TEXT_INPUT)
        await self._checkpoint(timing.text_input_delay_ms)
        text = str(price)
        for attempt in range(TEXT_INPUT_RETRIES + 1):
            await self._text.clear_field()
            await self._checkpoint(FIELD_CLEAR_DELAY_MS)
            if await self._text.set_field_text(text):
                await self._checkpoint(timing.text_input_delay_ms)
                return True
            self._log.warning(f"价格写入失败 '{text}' (第 {attempt + 1} 次)")
        return False

    async def _submit_price(self, price: int, kind: OutcomeKind) -> None:
        if not await self._inject_price(price):
            self._fail(OutcomeKind.TEXT_INPUT_FAILED, f"价格 {price} 写入失败")
            await self._close_popup()
            return
        await self._tap(self._calibration.confirm_button, Phase.CONFIRM_BUTTON)
        await self._checkpoint(self._calibration.timing.popup_close_wait_ms)
        self._log.info(f"第 {self._state.row_index} 行价格已提交: {price}")
        self._succeed(kind, price)

    # ── 模式主体 ──

    async def _run_create_sweep(self, row: int) -> None:
        cal = self._calibration
        await self._tap(cal.row_anchor(row), Phase.TAP)
        await self._wait_phase(Phase.WAIT_POPUP_OPEN, cal.timing.popup_open_wait_ms)

        frame = await self._capture_frame()
        if frame is None:
            self._fail(OutcomeKind.CAPTURE_FAILED, "截图失败")
            return

        self._set_state(phase=Phase.SCAN_COLOR)
        w, h = image_size(frame)
        color = classify_region(
            frame, cal.buy_orders_region.to_roi(w, h), cal.highlight_color_hex, cal.color_tolerance
        )
        if color.is_match:
            self._log.info(f"第 {row} 行已有挂单 (置信度 {color.confidence:.2f})，关闭弹窗")
            await self._close_popup()
            self._succeed(OutcomeKind.ALREADY_ORDERED)
            return

        self._set_state(phase=Phase.SCAN_TEXT)
        market = await self._read_price(frame, cal.buy_orders_region)
        if market is None:
            self._fail(OutcomeKind.OCR_FAILED, "未识别到最高求购价")
            return

        new_price = market + cal.price_increment
        if new_price > cal.hard_price_cap:
            self._fail(OutcomeKind.PRICE_CAP, f"新价格 {new_price} 超过上限 {cal.hard_price_cap}")
            return

        self._log.debug(f"第 {row} 行: 市场价 {market} -> 新价格 {new_price}")
        await self._submit_price(new_price, OutcomeKind.ORDER_CREATED)

    async def _run_edit_update(self, row: int) -> None:
        cal = self._calibration
        await self._tap(cal.edit_target(row), Phase.TAP)
        await self._wait_phase(Phase.WAIT_POPUP_OPEN, cal.timing.popup_open_wait_ms)

        frame = await self._capture_frame()
        self._set_state(phase=Phase.SCAN_TEXT)
        market = current = None
        if frame is not None:
            market = await self._read_price(frame, cal.buy_orders_region)
            current = await self._read_price(frame, cal.price_input_region, digits=True)
        if market is None or current is None:
            self._fail(OutcomeKind.OCR_FAILED, f"价格识别失败: 市场价={market}, 当前价={current}")
            await self._close_popup()
            return

        if current >= market:
            self._log.info(f"第 {row} 行已是最高价 ({current} >= {market})，关闭弹窗")
            await self._close_popup()
            self._succeed(OutcomeKind.ALREADY_BEST)
            return

        new_price = market + cal.edit_increment
        if new_price > cal.hard_price_cap:
            self._fail(OutcomeKind.PRICE_CAP, f"新价格 {new_price} 超过上限 {cal.hard_price_cap}")
            await self._close_popup()
            return

        max_change = cal.safety.max_price_change_pct
        if max_change > 0 and current > 0 and (new_price - current) / current > max_change:
            self._fail(
                OutcomeKind.PRICE_SANITY,
                f"涨幅异常: {current} -> {new_price} 超过 {max_change:.0%}",
            )
            await self._close_popup()
            return

        self._log.debug(f"第 {row} 行: 当前价 {current}, 市场价 {market} -> 新价格 {new_price}")
        await self._submit_price(new_price, OutcomeKind.ORDER_UPDATED)

    # ── 行尾翻页 ──

    async def _row_iteration_hook(self) -> None:
        """行号已递增；每处理完一屏（row_index 为 rows_per_screen 的倍数）滑动翻页。"""
        cal = self._calibration
        if self._state.row_index % cal.rows_per_screen != 0:
            return

        if self._eol is not None and not self._eol.has_baseline:
            await self._observe_page()

        await self._swipe(cal.swipe_start, cal.swipe_end)
        await self._checkpoint(SCROLL_SETTLE_MS)

        if self._eol is not None and await self._observe_page():
            self.stop("列表已到底")
            raise _SessionStopped()

    async def _observe_page(self) -> bool:
        frame = await self._capture_frame()
        if frame is None:
            self._log.warning("列表检测截图失败")
            return False
        w, h = image_size(frame)
        roi = self._calibration.end_of_list.list_region.to_roi(w, h)
        boxes = await self._ocr.recognize(frame, roi)
        return self._eol.observe(OcrResult(boxes).text)
