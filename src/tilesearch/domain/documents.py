"""Domain models for indexing and search.

Value objects are immutable (frozen=True); validation happens at the edge so
the engine only ever sees well-formed ids and tile coordinates.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tilesearch.search.terms import TileCoordinate


class IndexableDocument(BaseModel):
    """A document offered for indexing.

    ``text`` holds delimiter-joined searchable sub-fields; ``doc`` is the
    arbitrary metadata persisted alongside the index.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    text: str = ""
    zxy: tuple[TileCoordinate, ...] = ()
    doc: Any = None

    @field_validator("zxy", mode="before")
    @classmethod
    def _parse_tiles(cls, value: Any) -> tuple[TileCoordinate, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [part for part in value.split(",") if part]
        elif not isinstance(value, Sequence):
            raise ValueError(f"zxy must be a tile string or a sequence of tiles, got {type(value).__name__}")
        return tuple(TileCoordinate.parse(tile) for tile in value)


class SearchHit(BaseModel):
    """One scored candidate returned by a search."""

    model_config = ConfigDict(frozen=True)

    id: int
    score: float = Field(ge=0.0)
    zxy: tuple[TileCoordinate, ...] = ()


class IndexPointer(BaseModel):
    """Opaque pagination cursor for an indexable document source."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=10000, ge=1)
    offset: int = Field(default=0, ge=0)

    def advance(self) -> "IndexPointer":
        return self.model_copy(update={"offset": self.offset + self.limit})
