"""Unit tests for grid records, patches and shard payload codecs."""

import pytest

from tilesearch.errors import MalformedDataError, StorageError
from tilesearch.search.models import (
    GridRecord,
    IndexPatch,
    decode_grid_shard,
    decode_term_shard,
    encode_grid_shard,
    encode_term_shard,
)
from tilesearch.search.terms import TileCoordinate


pytestmark = pytest.mark.unit


def _record() -> GridRecord:
    return GridRecord(text=((10, 11), (11, 12)), zxy=(TileCoordinate(2, 1, 1),))


def test_grid_record_payload_shape() -> None:
    assert _record().to_payload() == {"text": [[10, 11], [11, 12]], "zxy": ["2/1/1"]}


def test_grid_record_distinct_terms_keeps_first_occurrence_order() -> None:
    assert _record().distinct_terms == [10, 11, 12]


def test_encoded_shards_decode_to_equal_values() -> None:
    term_shard = {101: [1, 2], 202: [3]}
    grid_shard = {1: _record()}

    assert decode_term_shard(encode_term_shard(term_shard)) == term_shard
    assert decode_grid_shard(encode_grid_shard(grid_shard)) == grid_shard


def test_missing_payload_decodes_to_empty_shard() -> None:
    assert decode_term_shard(None) == {}
    assert decode_grid_shard(None) == {}


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "a", "mapping"],
        {"abc": [1]},
        {"12": "1,2"},
        {"12": [True]},
    ],
)
def test_decode_term_shard_rejects_malformed_payload(payload) -> None:
    with pytest.raises(MalformedDataError):
        decode_term_shard(payload)


@pytest.mark.parametrize(
    "payload",
    [
        {"1": "oops"},
        {"1": {"text": "maple", "zxy": []}},
        {"1": {"text": [[1]], "zxy": ["2/1"]}},
        {"x": {"text": [], "zxy": []}},
    ],
)
def test_decode_grid_shard_rejects_malformed_payload(payload) -> None:
    with pytest.raises(MalformedDataError):
        decode_grid_shard(payload)


def test_malformed_data_is_a_storage_error() -> None:
    assert issubclass(MalformedDataError, StorageError)


def test_index_patch_dedupes_document_references() -> None:
    patch = IndexPatch()
    patch.add_term(5, 105, 1)
    patch.add_term(5, 105, 1)
    patch.add_term(5, 105, 2)

    assert patch.term[5] == {105: [1, 2]}


def test_index_patch_last_record_wins() -> None:
    patch = IndexPatch()
    first = GridRecord(text=((1,),), zxy=())
    second = GridRecord(text=((2,),), zxy=())
    patch.add_record(1, 1, first)
    patch.add_record(1, 1, second)

    assert patch.grid[1] == {1: second}
