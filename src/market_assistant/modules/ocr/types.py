"""OCR 识别结果数据结构。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class OcrBox:
    """单个 OCR 识别结果（一行文字）。"""

    text: str
    confidence: float
    # 边界框四点坐标 [(x1,y1), (x2,y2), (x3,y3), (x4,y4)]
    # 坐标始终为原始大图坐标（ROI 偏移已还原），数字专用引擎无边界框时为空
    box: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def top(self) -> int:
        """边界框上沿，用于自上而下排序。"""
        if not self.box:
            return 0
        return min(p[1] for p in self.box)

    @property
    def center(self) -> Tuple[int, int]:
        """边界框中心点"""
        if not self.box:
            return (0, 0)
        xs = [p[0] for p in self.box]
        ys = [p[1] for p in self.box]
        return (sum(xs) // len(xs), sum(ys) // len(ys))


@dataclass
class OcrResult:
    """OCR 识别结果集合。"""

    boxes: List[OcrBox]

    @property
    def text(self) -> str:
        """所有识别文本按自上而下顺序逐行拼接。"""
        return "\n".join(b.text for b in sorted(self.boxes, key=lambda b: b.top))

    def find(self, keyword: str) -> Optional[OcrBox]:
        """查找包含指定关键词的第一个结果。"""
        for b in self.boxes:
            if keyword in b.text:
                return b
        return None
