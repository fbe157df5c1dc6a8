"""Per-media-type lookup strategies and the registry that dispatches to them."""

from mediaset.application.services.lookup.book_strategy import BookLookupStrategy
from mediaset.application.services.lookup.game_strategy import GameLookupStrategy
from mediaset.application.services.lookup.movie_strategy import MovieLookupStrategy
from mediaset.application.services.lookup.music_strategy import MusicLookupStrategy
from mediaset.application.services.lookup.registry import (
    LookupStrategyRegistry,
    StrategyFound,
    StrategyResolution,
    Unsupported,
)

__all__ = [
    "BookLookupStrategy",
    "GameLookupStrategy",
    "LookupStrategyRegistry",
    "MovieLookupStrategy",
    "MusicLookupStrategy",
    "StrategyFound",
    "StrategyResolution",
    "Unsupported",
]
