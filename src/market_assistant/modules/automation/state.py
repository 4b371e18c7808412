"""
控制循环状态
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ...core.constants import OperationMode, Phase


@dataclass(frozen=True)
class ControlState:
    """每次阶段切换后发布的状态快照，仅由 ControlLoop 生成。"""

    phase: Phase = Phase.IDLE
    mode: OperationMode = OperationMode.IDLE
    row_index: int = 0
    last_coordinate: Optional[Tuple[int, int]] = None
    error_message: Optional[str] = None
    paused: bool = False

    @property
    def is_idle(self) -> bool:
        return self.phase == Phase.IDLE
