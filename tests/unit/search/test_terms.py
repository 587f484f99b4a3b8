"""Unit tests for term extraction and tile coordinates."""

from __future__ import annotations

import hashlib

import pytest

from tilesearch.search.terms import (
    TileCoordinate,
    extract_field_terms,
    extract_terms,
    normalize_text,
    split_fields,
    term_id,
    tokenize,
)


pytestmark = pytest.mark.unit


def test_tokenize_folds_case_and_splits_on_punctuation() -> None:
    assert tokenize("MAIN St., Springfield-North") == ["main", "st", "springfield", "north"]


def test_tokenize_transliterates_accents() -> None:
    assert normalize_text("Café Olé") == "cafe ole"
    assert tokenize("Café-Olé") == ["cafe", "ole"]


def test_tokenize_drops_scripts_without_ascii_form() -> None:
    assert tokenize("Москва") == []
    assert tokenize("Москва Moskva") == ["moskva"]


def test_tokenize_discards_empty_tokens() -> None:
    assert tokenize("  ,,;  ") == []
    assert tokenize("") == []


def test_term_id_is_md5_prefix() -> None:
    expected = int(hashlib.md5(b"maple").hexdigest()[:8], 16)
    assert term_id("maple") == expected
    assert 0 <= term_id("maple") < 2**32


def test_extract_terms_equal_tokens_share_ids() -> None:
    assert extract_terms("Maple maple MAPLE") == [term_id("maple")] * 3


def test_extract_terms_empty_input() -> None:
    assert extract_terms("") == []


def test_split_fields_uses_delimiter() -> None:
    assert split_fields("a b,c") == ["a b", "c"]
    assert split_fields("a b|c", "|") == ["a b", "c"]


def test_extract_field_terms_groups_and_dedupes_per_field() -> None:
    fields = extract_field_terms("Main St, main street main")

    assert fields == [
        [term_id("main"), term_id("st")],
        [term_id("main"), term_id("street")],
    ]


def test_extract_field_terms_keeps_empty_fields() -> None:
    assert extract_field_terms("elm,") == [[term_id("elm")], []]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2/1/1", TileCoordinate(2, 1, 1)),
        (" 14/8190/5447 ", TileCoordinate(14, 8190, 5447)),
        ([3, 4, 5], TileCoordinate(3, 4, 5)),
        (("3", "4", "5"), TileCoordinate(3, 4, 5)),
        (TileCoordinate(1, 0, 1), TileCoordinate(1, 0, 1)),
    ],
)
def test_tile_coordinate_parse(value, expected) -> None:
    assert TileCoordinate.parse(value) == expected


@pytest.mark.parametrize("value", ["2/1", "a/b/c", "-1/0/0", 42, [1, 2, 3, 4]])
def test_tile_coordinate_parse_rejects_invalid(value) -> None:
    with pytest.raises(ValueError):
        TileCoordinate.parse(value)


def test_tile_coordinate_str() -> None:
    assert str(TileCoordinate(6, 12, 40)) == "6/12/40"
