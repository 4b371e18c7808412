"""校准档案数据结构。

所有屏幕坐标均为相对比例（0.0~1.0），使用时按当前截图尺寸换算为像素，
因此同一份档案可用于不同分辨率的设备。档案在会话期间只读（frozen）。
"""
from __future__ import annotations

import re
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# 像素 ROI：(x, y, w, h)，与 OCR / 取色接口保持一致
Roi = Tuple[int, int, int, int]

_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class PointPct(_Frozen):
    """比例坐标点"""

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)

    def to_pixels(self, width: int, height: int) -> Tuple[int, int]:
        """与 RegionPct.to_roi 同样按 width / height 缩放，1.0 落在最后一个像素上。"""
        return min(int(self.x * width), max(width - 1, 0)), min(int(self.y * height), max(height - 1, 0))


class RegionPct(_Frozen):
    """比例矩形区域（左上 / 右下）"""

    left: float = Field(ge=0.0, le=1.0)
    top: float = Field(ge=0.0, le=1.0)
    right: float = Field(ge=0.0, le=1.0)
    bottom: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self) -> "RegionPct":
        if self.left >= self.right or self.top >= self.bottom:
            raise ValueError(
                f"区域边界非法: left={self.left} right={self.right} "
                f"top={self.top} bottom={self.bottom}"
            )
        return self

    def to_roi(self, width: int, height: int) -> Roi:
        """换算为像素 ROI (x, y, w, h)，至少 1 像素宽高。"""
        x0 = int(self.left * width)
        y0 = int(self.top * height)
        x1 = int(self.right * width)
        y1 = int(self.bottom * height)
        return x0, y0, max(1, x1 - x0), max(1, y1 - y0)


class TimingSettings(_Frozen):
    """时序参数（毫秒）"""

    tap_duration_ms: int = Field(default=80, ge=0)
    swipe_duration_ms: int = Field(default=300, ge=0)
    popup_open_wait_ms: int = Field(default=300, ge=0)
    popup_close_wait_ms: int = Field(default=400, ge=0)
    text_input_delay_ms: int = Field(default=200, ge=0)
    polling_interval_ms: int = Field(default=300, ge=0)


class SafetySettings(_Frozen):
    # 编辑模式下新价格相对当前挂单价的最大涨幅，0 表示不检查
    max_price_change_pct: float = Field(default=0.5, ge=0.0)


class EndOfListSettings(_Frozen):
    """列表到底检测"""

    enabled: bool = True
    list_region: RegionPct = RegionPct(left=0.05, top=0.25, right=0.95, bottom=0.85)
    identical_page_threshold: int = Field(default=1, ge=1)
    first_line_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    overall_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    # 处理行数上限，0 表示不限
    max_cycles_before_stop: int = Field(default=500, ge=0)


class ErrorRecoverySettings(_Frozen):
    # 连续失败行数达到该值时停止会话，0 表示不限
    max_consecutive_errors: int = Field(default=0, ge=0)


class CalibrationProfile(_Frozen):
    """一套界面布局的校准档案"""

    name: str = "default"

    # 行定位：第 n 行锚点 = first_row + (n mod rows_per_screen) * row_pitch_pct
    first_row: PointPct = PointPct(x=0.50, y=0.30)
    row_pitch_pct: float = Field(default=0.07, ge=0.0, le=1.0)
    rows_per_screen: int = Field(default=5, ge=1)
    # 编辑模式下每行编辑按钮的横向位置，纵向与行锚点一致
    edit_button_x_pct: float = Field(default=0.88, ge=0.0, le=1.0)

    # 弹窗内按钮
    price_input: PointPct = PointPct(x=0.30, y=0.40)
    confirm_button: PointPct = PointPct(x=0.50, y=0.55)
    close_button: PointPct = PointPct(x=0.93, y=0.10)

    # 翻页滑动
    swipe_start: PointPct = PointPct(x=0.50, y=0.75)
    swipe_end: PointPct = PointPct(x=0.50, y=0.35)

    # 识别区域
    buy_orders_region: RegionPct = RegionPct(left=0.55, top=0.20, right=0.97, bottom=0.50)
    price_input_region: RegionPct = RegionPct(left=0.20, top=0.36, right=0.45, bottom=0.44)
    highlight_color_hex: str = "#E8E8E8"
    color_tolerance: int = Field(default=30, ge=0, le=255)

    # 定价
    hard_price_cap: int = Field(default=100000, gt=0)
    price_increment: int = Field(default=1, gt=0)
    edit_increment: int = Field(default=1, gt=0)

    timing: TimingSettings = TimingSettings()
    safety: SafetySettings = SafetySettings()
    end_of_list: EndOfListSettings = EndOfListSettings()
    error_recovery: ErrorRecoverySettings = ErrorRecoverySettings()

    @field_validator("highlight_color_hex")
    @classmethod
    def _check_hex(cls, v: str) -> str:
        if not _HEX_COLOR.match(v):
            raise ValueError(f"颜色格式应为 #RRGGBB: {v}")
        return v if v.startswith("#") else f"#{v}"

    def row_anchor(self, row_index: int) -> PointPct:
        """第 row_index 行在当前屏上的锚点。"""
        slot = row_index % self.rows_per_screen
        y = min(1.0, self.first_row.y + slot * self.row_pitch_pct)
        return PointPct(x=self.first_row.x, y=y)

    def edit_target(self, row_index: int) -> PointPct:
        anchor = self.row_anchor(row_index)
        return PointPct(x=self.edit_button_x_pct, y=anchor.y)


class RandomizationProfile(_Frozen):
    """防检测随机化参数"""

    enabled: bool = True
    min_delay_ms: int = Field(default=50, ge=0)
    max_delay_ms: int = Field(default=200, ge=0)
    swipe_distance_jitter_pct: float = Field(default=0.1, ge=0.0, le=1.0)
    path_jitter_px: int = Field(default=5, ge=0)
    path_randomization_enabled: bool = True
    path_points: int = Field(default=20, ge=2)

    @model_validator(mode="after")
    def _check_delay_range(self) -> "RandomizationProfile":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"min_delay_ms({self.min_delay_ms}) 不能大于 max_delay_ms({self.max_delay_ms})"
            )
        return self
