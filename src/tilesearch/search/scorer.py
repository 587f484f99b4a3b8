"""Frequency-weighted sub-field scoring."""

from __future__ import annotations

from collections.abc import Mapping, Sequence


def score_document(
    fields: Sequence[Sequence[int]],
    query_terms: Sequence[int],
    frequencies: Mapping[int, int],
) -> float:
    """Score one document against a query.

    For every sub-field the score is the summed document frequency of the
    query terms present in it, divided by the summed document frequency of
    all its terms. The document scores the best sub-field. Query terms are
    counted as given, so a repeated query term counts twice and the result
    can exceed 1.0.
    """
    best = 0.0
    for field_terms in fields:
        total = sum(frequencies.get(term, 0) for term in field_terms)
        if total <= 0:
            continue
        present = set(field_terms)
        matched = sum(frequencies.get(term, 0) for term in query_terms if term in present)
        best = max(best, matched / total)
    return best
