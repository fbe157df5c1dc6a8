"""Pure value-level helpers used by the lookup strategies."""

from mediaset.domain.value_objects.match_scoring import (
    LOW_CONFIDENCE_THRESHOLD,
    score_match,
    select_best_match,
)
from mediaset.domain.value_objects.title_normalization import (
    clean_game_title,
    clean_movie_title,
    derive_format_from_platforms,
    extract_game_format,
    extract_movie_format,
    extract_platform,
    normalize_game_query,
    normalize_movie_query,
)

__all__ = [
    "LOW_CONFIDENCE_THRESHOLD",
    "clean_game_title",
    "clean_movie_title",
    "derive_format_from_platforms",
    "extract_game_format",
    "extract_movie_format",
    "extract_platform",
    "normalize_game_query",
    "normalize_movie_query",
    "score_match",
    "select_best_match",
]
