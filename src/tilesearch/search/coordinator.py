"""Query execution against the term and grid indexes."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping, Sequence
import logging

from tilesearch.domain.documents import SearchHit
from tilesearch.search.scorer import score_document
from tilesearch.search.shard_index import GridIndex, TermIndex
from tilesearch.search.terms import extract_terms


logger = logging.getLogger(__name__)


class TermFrequencyTable(Mapping[int, int]):
    """Document frequency per term, memoized for the duration of one search."""

    def __init__(self, term_index: TermIndex) -> None:
        self._term_index = term_index
        self._counts: dict[int, int] = {}

    def __getitem__(self, term: int) -> int:
        return self._counts[term]

    def __iter__(self) -> Iterator[int]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def record(self, term: int, count: int) -> None:
        self._counts[term] = count

    async def resolve(self, terms: Iterable[int]) -> None:
        """Look up, one term at a time, every term not already known."""
        for term in terms:
            if term in self._counts:
                continue
            self._counts[term] = len(await self._term_index.document_ids(term))


class SearchCoordinator:
    """Resolve query terms to candidates, then score each candidate's grid record."""

    def __init__(self, term_index: TermIndex, grid_index: GridIndex) -> None:
        self.term_index = term_index
        self.grid_index = grid_index

    async def search(self, query: str) -> list[SearchHit]:
        """Return every candidate document with its score and tiles.

        Results come back in candidate order (documents matching more query
        terms first); ranking by score is left to the caller.
        """
        terms = extract_terms(query)
        if not terms:
            return []

        frequencies = TermFrequencyTable(self.term_index)
        candidates = await self._candidate_ids(terms, frequencies)
        logger.debug("Query %r: %d terms, %d candidates", query, len(terms), len(candidates))

        hits: list[SearchHit] = []
        for doc_id in candidates:
            record = await self.grid_index.record(doc_id)
            if record is None:
                logger.debug("Document %s is referenced by the term index but has no grid record", doc_id)
                continue
            # Scores normalize by every term of a sub-field, not only the query terms.
            await frequencies.resolve(record.distinct_terms)
            hits.append(
                SearchHit(
                    id=doc_id,
                    score=score_document(record.text, terms, frequencies),
                    zxy=record.zxy,
                )
            )
        return hits

    async def _candidate_ids(self, terms: Sequence[int], frequencies: TermFrequencyTable) -> list[int]:
        # Sequential on purpose: later terms reuse shards and counts fetched by earlier ones.
        references: Counter[int] = Counter()
        for term in terms:
            doc_ids = await self.term_index.document_ids(term)
            frequencies.record(term, len(doc_ids))
            references.update(doc_ids)
        return [doc_id for doc_id, _ in references.most_common()]
