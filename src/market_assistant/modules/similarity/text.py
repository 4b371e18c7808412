"""
文本相似度工具

用于列表到底 / 重复页检测：比较滑动前后两次 OCR 得到的页面文本，
若首行和整体内容都几乎一致，说明滑动没有带出新内容。
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

_WS = re.compile(r"\s+")
_DIGITS = re.compile(r"\d+")

_FINGERPRINT_EDGE = 20
# 整体相似度中编辑距离与词集合 Jaccard 的权重
_EDIT_WEIGHT = 0.7
_JACCARD_WEIGHT = 0.3


def edit_distance(a: str, b: str) -> int:
    """经典动态规划编辑距离（插入 / 删除 / 替换代价均为 1）。"""
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr[j] = min(
                prev[j] + 1,  # 删除
                curr[j - 1] + 1,  # 插入
                prev[j - 1] + cost,  # 替换
            )
        prev = curr
    return prev[len(b)]


def similarity(a: str, b: str) -> float:
    """归一化编辑相似度 ∈ [0, 1]，两者皆空为 1.0，仅一方为空为 0.0。"""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - edit_distance(a, b) / max(len(a), len(b))


def is_similar(a: str, b: str, threshold: float = 0.9) -> bool:
    return similarity(a, b) >= threshold


def jaccard(a: str, b: str) -> float:
    """小写、按空白切词后的词集合 Jaccard 相似度。"""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def composite_score(a: str, b: str) -> float:
    """页面整体相似度：0.7 * 编辑相似度 + 0.3 * Jaccard。"""
    return _EDIT_WEIGHT * similarity(a, b) + _JACCARD_WEIGHT * jaccard(a, b)


def normalize_text(text: str) -> str:
    return _WS.sub(" ", text.lower()).strip()


def fingerprint(text: str) -> str:
    """O(1) 比较用的文本指纹：长度:前20字符:后20字符（规范化后）。"""
    normalized = normalize_text(text)
    return (
        f"{len(normalized)}:"
        f"{normalized[:_FINGERPRINT_EDGE]}:"
        f"{normalized[-_FINGERPRINT_EDGE:] if normalized else ''}"
    )


def fingerprints_match(fp1: str, fp2: str) -> bool:
    return fp1 == fp2


def extract_first_line(text: str, max_length: int = 100) -> str:
    """取第一条非空行（截断到 max_length 后去首尾空白）。"""
    for line in text.splitlines():
        if line.strip():
            return line[:max_length].strip()
    return ""


def extract_numbers(text: str) -> List[int]:
    return [int(m) for m in _DIGITS.findall(text)]


def compare_numeric_content(a: str, b: str) -> float:
    """比较两段文本中的数字序列（排序后逐位相等的比例）。"""
    nums_a = sorted(extract_numbers(a))
    nums_b = sorted(extract_numbers(b))
    if not nums_a and not nums_b:
        return 1.0
    if not nums_a or not nums_b or len(nums_a) != len(nums_b):
        return 0.0
    matched = sum(1 for x, y in zip(nums_a, nums_b) if x == y)
    return matched / len(nums_a)


@dataclass(frozen=True)
class PageMatchResult:
    """页面比较结果"""

    first_line_similarity: float
    overall_similarity: float
    is_first_line_match: bool
    is_overall_match: bool

    @property
    def is_likely_same_page(self) -> bool:
        return self.is_first_line_match and self.is_overall_match


def page_match(
    previous_text: str,
    current_text: str,
    first_line_threshold: float = 0.95,
    overall_threshold: float = 0.9,
) -> PageMatchResult:
    """比较前后两页文本，判断滑动是否真正推进了列表。"""
    first_line_sim = similarity(
        extract_first_line(previous_text), extract_first_line(current_text)
    )
    overall_sim = composite_score(previous_text, current_text)
    return PageMatchResult(
        first_line_similarity=first_line_sim,
        overall_similarity=overall_sim,
        is_first_line_match=first_line_sim >= first_line_threshold,
        is_overall_match=overall_sim >= overall_threshold,
    )


@dataclass(frozen=True)
class PageSignature:
    """一次整页 OCR 的签名"""

    first_line: str
    fingerprint: str
    text: str = ""

    @classmethod
    def from_text(cls, text: str) -> "PageSignature":
        return cls(
            first_line=extract_first_line(text),
            fingerprint=fingerprint(text),
            text=text,
        )


def compare_signatures(
    previous: Optional[PageSignature],
    current: PageSignature,
    first_line_threshold: float = 0.95,
    overall_threshold: float = 0.9,
) -> Optional[PageMatchResult]:
    """先用指纹快速判等，不等时再做完整文本比较；无上一页时返回 None。"""
    if previous is None:
        return None
    if fingerprints_match(previous.fingerprint, current.fingerprint):
        return PageMatchResult(1.0, 1.0, True, True)
    return page_match(
        previous.text,
        current.text,
        first_line_threshold=first_line_threshold,
        overall_threshold=overall_threshold,
    )
