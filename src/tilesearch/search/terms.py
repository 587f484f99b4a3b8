"""Term extraction and tile coordinate helpers.

Text is transliterated to ASCII, case-folded and split on every run of
non-alphanumeric characters. Each surviving token maps to a stable 32-bit
integer term id so shards can be keyed by number.

Only characters with an ASCII decomposition survive folding. Words written
in other scripts, Cyrillic for example, yield no tokens and cannot be searched.
"""

from __future__ import annotations

from collections.abc import Sequence
import hashlib
import re
from typing import Any, NamedTuple
import unicodedata


_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")

DEFAULT_FIELD_DELIMITER = ","


def normalize_text(text: str) -> str:
    """Fold ``text`` to lowercase ASCII, dropping characters with no ASCII form."""
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii").lower()


def tokenize(text: str) -> list[str]:
    """Split ``text`` into normalized tokens, discarding empty ones."""
    if not text:
        return []
    return [token for token in _SPLIT_PATTERN.split(normalize_text(text)) if token]


def term_id(token: str) -> int:
    """Return the stable integer id of an already normalized token."""
    digest = hashlib.md5(token.encode("utf-8"), usedforsecurity=False).hexdigest()
    return int(digest[:8], 16)


def extract_terms(text: str) -> list[int]:
    """Map free text to its sequence of term ids (duplicates preserved)."""
    return [term_id(token) for token in tokenize(text)]


def split_fields(text: str, delimiter: str = DEFAULT_FIELD_DELIMITER) -> list[str]:
    """Split delimiter-joined text into its sub-fields."""
    return text.split(delimiter)


def extract_field_terms(text: str, delimiter: str = DEFAULT_FIELD_DELIMITER) -> list[list[int]]:
    """Return one term-id list per sub-field, duplicates inside a sub-field collapsed."""
    fields: list[list[int]] = []
    for segment in split_fields(text, delimiter):
        # dict preserves first-occurrence order
        fields.append(list(dict.fromkeys(extract_terms(segment))))
    return fields


class TileCoordinate(NamedTuple):
    """A map tile address."""

    z: int
    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"

    @classmethod
    def parse(cls, value: Any) -> TileCoordinate:
        """Build a coordinate from ``"z/x/y"``, a 3-item sequence or an existing coordinate."""
        if isinstance(value, TileCoordinate):
            return value
        if isinstance(value, str):
            parts: Sequence[Any] = value.strip().split("/")
        elif isinstance(value, Sequence):
            parts = value
        else:
            raise ValueError(f"Unsupported tile coordinate: {value!r}")

        if len(parts) != 3:
            raise ValueError(f"Tile coordinate needs exactly 3 components: {value!r}")
        try:
            z, x, y = (int(part) for part in parts)
        except (TypeError, ValueError) as err:
            raise ValueError(f"Tile coordinate components must be integers: {value!r}") from err
        if z < 0 or x < 0 or y < 0:
            raise ValueError(f"Tile coordinate components must be non-negative: {value!r}")
        return cls(z, x, y)
