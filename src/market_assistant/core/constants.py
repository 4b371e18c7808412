"""
常量和枚举定义
"""
from enum import Enum


class OperationMode(str, Enum):
    """运行模式"""
    IDLE = "idle"
    CREATE_SWEEP = "create_sweep"  # 逐行新建求购单
    EDIT_UPDATE = "edit_update"  # 逐行上调已有求购单


class Phase(str, Enum):
    """状态机阶段"""
    IDLE = "idle"
    TAP = "tap"
    WAIT_POPUP_OPEN = "wait_popup_open"
    SCAN_COLOR = "scan_color"
    SCAN_TEXT = "scan_text"
    TEXT_INPUT = "text_input"
    CONFIRM_BUTTON = "confirm_button"
    SCROLL_NEXT = "scroll_next"
    ERROR_RETRY = "error_retry"


class OutcomeKind(str, Enum):
    """统计事件类别"""
    ORDER_CREATED = "order_created"
    ORDER_UPDATED = "order_updated"
    ALREADY_ORDERED = "already_ordered"
    ALREADY_BEST = "already_best"
    OCR_FAILED = "ocr_failed"
    CAPTURE_FAILED = "capture_failed"
    PRICE_CAP = "price_cap"
    PRICE_SANITY = "price_sanity"
    TEXT_INPUT_FAILED = "text_input_failed"
    ROW_ERROR = "row_error"


# 手势时长抖动参数：(浮动比例, 下限毫秒)
TAP_DURATION_JITTER = (0.10, 50)
SWIPE_DURATION_JITTER = (0.15, 100)
LOOP_DELAY_JITTER = (0.20, 100)

# 滑动后等待列表稳定的固定时长
SCROLL_SETTLE_MS = 300

# 清空输入框后到注入文本之间的间隔
FIELD_CLEAR_DELAY_MS = 100

# OCR 结果置信度下限（严格大于）
OCR_CONFIDENCE_THRESHOLD = 0.6

# 取色判定阈值
COLOR_MATCH_RATIO = 0.6
