import itertools

import pytest

from market_assistant.modules.similarity import (
    PageSignature,
    compare_numeric_content,
    compare_signatures,
    composite_score,
    edit_distance,
    extract_first_line,
    extract_numbers,
    fingerprint,
    is_similar,
    jaccard,
    page_match,
    similarity,
)

SAMPLES = ["", "a", "kitten", "sitting", "Iron Sword 1,250", "iron sword 1250", "xyz"]


@pytest.mark.parametrize("text", SAMPLES)
def test_similarity_to_self_is_one(text):
    assert similarity(text, text) == 1.0


def test_similarity_empty_conventions():
    assert similarity("", "") == 1.0
    assert similarity("", "x") == 0.0
    assert similarity("x", "") == 0.0


def test_edit_distance_known_value():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3


def test_edit_distance_symmetric_and_triangle():
    for a, b in itertools.product(SAMPLES, repeat=2):
        assert edit_distance(a, b) == edit_distance(b, a)
    for a, b, c in itertools.product(SAMPLES, repeat=3):
        assert edit_distance(a, c) <= edit_distance(a, b) + edit_distance(b, c)


def test_jaccard_range_and_case_insensitive():
    for a, b in itertools.product([s for s in SAMPLES if s], repeat=2):
        assert 0.0 <= jaccard(a, b) <= 1.0
    assert jaccard("Iron SWORD", "iron sword") == 1.0
    assert jaccard("a b", "b c") == pytest.approx(1 / 3)
    assert jaccard("", "") == 1.0
    assert jaccard("", "word") == 0.0


def test_composite_score_weights():
    assert composite_score("a b", "a b") == pytest.approx(1.0)
    expected = 0.7 * similarity("a b", "b c") + 0.3 * jaccard("a b", "b c")
    assert composite_score("a b", "b c") == pytest.approx(expected)


def test_fingerprint_ignores_case_and_whitespace():
    assert fingerprint("Iron   Sword\n 1,250 ") == fingerprint("iron sword 1,250")
    assert fingerprint("iron sword") != fingerprint("iron shield")
    assert fingerprint("") == "0::"


def test_first_line_and_numbers():
    assert extract_first_line("\n  \n  Top Order 500 \nnext") == "Top Order 500"
    assert extract_first_line("") == ""
    assert extract_numbers("500 x 3, total 1500") == [500, 3, 1500]
    assert compare_numeric_content("500 600", "600 500") == 1.0
    assert compare_numeric_content("500", "501") == 0.0
    assert is_similar("order 500", "order 500")


def test_identical_pages_are_same_page():
    page = "Iron Sword 1,250\nIron Sword 1,240\nIron Sword 1,200"
    result = page_match(page, page)

    assert result.is_first_line_match
    assert result.is_overall_match
    assert result.is_likely_same_page


def test_advanced_page_is_not_same_page():
    before = "Iron Sword 1,250\nIron Sword 1,240\nIron Sword 1,200"
    after = "Steel Axe 980\nSteel Axe 975\nLeather Cap 120"

    assert not page_match(before, after).is_likely_same_page


def test_compare_signatures_fingerprint_shortcut():
    first = PageSignature.from_text("Iron Sword 1,250\nIron Sword 1,240")
    again = PageSignature.from_text("iron sword 1,250   iron sword 1,240")

    assert compare_signatures(None, first) is None
    result = compare_signatures(first, again)
    assert result.is_likely_same_page
    assert result.overall_similarity == 1.0
