from .text import (
    PageMatchResult,
    PageSignature,
    compare_numeric_content,
    compare_signatures,
    composite_score,
    edit_distance,
    extract_first_line,
    extract_numbers,
    fingerprint,
    fingerprints_match,
    is_similar,
    jaccard,
    normalize_text,
    page_match,
    similarity,
)

__all__ = [
    "PageMatchResult",
    "PageSignature",
    "compare_numeric_content",
    "compare_signatures",
    "composite_score",
    "edit_distance",
    "extract_first_line",
    "extract_numbers",
    "fingerprint",
    "fingerprints_match",
    "is_similar",
    "jaccard",
    "normalize_text",
    "page_match",
    "similarity",
]
