"""Pick the best search hit for a cleaned title.

Hey future me - this is deliberately dumb and predictable, NOT fuzzy-ratio magic:

    1.0  exact match (case-insensitive)
    0.9  candidate name contains the whole query
    x    otherwise: share of query words that appear in (or contain) some candidate word

The best score wins; ties go to the earlier candidate. If even the winner scores below
LOW_CONFIDENCE_THRESHOLD we ignore the ranking and return the provider's FIRST hit -
provider relevance ordering beats our word counting when we have no real signal.
That fallback can pick a wrong game; keep the threshold where it is unless you know
exactly what you're trading.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from mediaset.domain.entities import CandidateResult

LOW_CONFIDENCE_THRESHOLD = 0.5

_TOKEN_SPLIT_RE = re.compile(r"[ \-:.]+")


def _tokens(value: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT_RE.split(value) if token]


def score_match(candidate_name: str | None, query: str | None) -> float:
    """Similarity between a candidate name and the cleaned query, in [0, 1]."""
    if not candidate_name or not candidate_name.strip() or not query or not query.strip():
        return 0.0

    candidate = candidate_name.strip().lower()
    search = query.strip().lower()

    if candidate == search:
        return 1.0
    if search in candidate:
        return 0.9

    candidate_words = _tokens(candidate)
    search_words = _tokens(search)
    if not candidate_words or not search_words:
        return 0.0

    matching = sum(
        1
        for search_word in search_words
        if any(
            search_word in candidate_word or candidate_word in search_word
            for candidate_word in candidate_words
        )
    )
    return matching / len(search_words)


def select_best_match(
    candidates: Sequence[CandidateResult], query: str
) -> CandidateResult | None:
    """Choose one candidate; None only when there are no candidates at all."""
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    # max() keeps the first of equal scores, so ties resolve to provider order.
    best = max(candidates, key=lambda candidate: score_match(candidate.name, query))
    if score_match(best.name, query) < LOW_CONFIDENCE_THRESHOLD:
        return candidates[0]
    return best
