"""Index data models and shard payload codecs.

Shard payloads cross the storage boundary as JSON-ready mappings with string
keys. Inside the engine they are decoded into integer-keyed dictionaries:

* term shard: ``{term_id: [doc_id, ...]}``
* grid shard: ``{doc_id: GridRecord}``
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tilesearch.errors import MalformedDataError
from tilesearch.search.terms import TileCoordinate


TermShard = dict[int, list[int]]
GridShard = dict[int, "GridRecord"]


@dataclass(frozen=True)
class GridRecord:
    """Grouped term ids (one tuple per sub-field) and tile coordinates of one document."""

    text: tuple[tuple[int, ...], ...]
    zxy: tuple[TileCoordinate, ...]

    @property
    def distinct_terms(self) -> list[int]:
        """Every term id referenced by the record, first occurrence order."""
        return list(dict.fromkeys(term for field_terms in self.text for term in field_terms))

    def to_payload(self) -> dict[str, Any]:
        return {
            "text": [list(field_terms) for field_terms in self.text],
            "zxy": [str(tile) for tile in self.zxy],
        }

    @classmethod
    def from_payload(cls, data: Any) -> GridRecord:
        if not isinstance(data, Mapping):
            raise MalformedDataError(f"Grid record must be a mapping, got {type(data).__name__}")
        raw_text = data.get("text", [])
        raw_zxy = data.get("zxy", [])
        if not _is_list(raw_text) or not _is_list(raw_zxy):
            raise MalformedDataError("Grid record 'text' and 'zxy' must be lists")
        try:
            text = tuple(tuple(_as_int(term) for term in _require_list(field_terms)) for field_terms in raw_text)
            zxy = tuple(TileCoordinate.parse(tile) for tile in raw_zxy)
        except ValueError as err:
            raise MalformedDataError(f"Invalid grid record: {err}") from err
        return cls(text=text, zxy=zxy)


@dataclass
class IndexPatch:
    """Shard-level deltas computed from one document batch."""

    term: dict[int, dict[int, list[int]]] = field(default_factory=lambda: defaultdict(dict))
    grid: dict[int, dict[int, GridRecord]] = field(default_factory=lambda: defaultdict(dict))

    def add_term(self, shard: int, term: int, doc_id: int) -> None:
        doc_ids = self.term[shard].setdefault(term, [])
        if doc_id not in doc_ids:
            doc_ids.append(doc_id)

    def add_record(self, shard: int, doc_id: int, record: GridRecord) -> None:
        self.grid[shard][doc_id] = record


def decode_term_shard(payload: Mapping[str, Any] | None) -> TermShard:
    """Parse a stored term shard; ``None`` decodes to an empty shard."""
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise MalformedDataError(f"Term shard must be a mapping, got {type(payload).__name__}")
    shard: TermShard = {}
    try:
        for key, doc_ids in payload.items():
            shard[_as_int(key)] = [_as_int(doc_id) for doc_id in _require_list(doc_ids)]
    except ValueError as err:
        raise MalformedDataError(f"Invalid term shard: {err}") from err
    return shard


def encode_term_shard(shard: Mapping[int, Sequence[int]]) -> dict[str, list[int]]:
    return {str(term): list(doc_ids) for term, doc_ids in shard.items()}


def decode_grid_shard(payload: Mapping[str, Any] | None) -> GridShard:
    """Parse a stored grid shard; ``None`` decodes to an empty shard."""
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise MalformedDataError(f"Grid shard must be a mapping, got {type(payload).__name__}")
    shard: GridShard = {}
    for key, record in payload.items():
        try:
            doc_id = _as_int(key)
        except ValueError as err:
            raise MalformedDataError(f"Invalid grid shard key: {err}") from err
        shard[doc_id] = GridRecord.from_payload(record)
    return shard


def encode_grid_shard(shard: Mapping[int, GridRecord]) -> dict[str, dict[str, Any]]:
    return {str(doc_id): record.to_payload() for doc_id, record in shard.items()}


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _require_list(value: Any) -> Sequence[Any]:
    if not _is_list(value):
        raise ValueError(f"expected a list, got {type(value).__name__}")
    return value


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value)
    raise ValueError(f"expected an integer, got {value!r}")
