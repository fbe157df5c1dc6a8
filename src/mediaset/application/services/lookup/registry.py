"""Runtime map from (media type, identifier type) to the lookup strategy that serves it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mediaset.domain.entities import IdentifierType, MediaType
from mediaset.domain.ports import ILookupStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyFound:
    strategy: ILookupStrategy


@dataclass(frozen=True)
class Unsupported:
    """No registered strategy serves this combination. Permanent, never retry."""

    media_type: MediaType
    identifier_type: IdentifierType

    @property
    def message(self) -> str:
        return (
            f"No lookup strategy available for "
            f"{self.media_type.value}/{self.identifier_type.value}"
        )


StrategyResolution = StrategyFound | Unsupported

# The identifier the enrichment pass asks for first: books by ISBN, everything else by
# barcode. A type only counts as available when this pair resolves.
PRIMARY_IDENTIFIER_TYPES: dict[MediaType, IdentifierType] = {
    MediaType.BOOK: IdentifierType.ISBN,
    MediaType.MOVIE: IdentifierType.UPC,
    MediaType.GAME: IdentifierType.UPC,
    MediaType.MUSIC: IdentifierType.UPC,
}


# Hey future me - "unsupported" is a RESULT here, not an exception. Callers match on
# StrategyFound / Unsupported; "strategy ran and found nothing" is the strategy returning
# None, which is a completely different (transient) outcome.
class LookupStrategyRegistry:
    """Holds the configured strategies; the first one that can_handle() wins."""

    def __init__(self, strategies: list[ILookupStrategy] | None = None) -> None:
        self._strategies: list[ILookupStrategy] = []
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: ILookupStrategy) -> None:
        self._strategies.append(strategy)
        logger.debug(
            "Registered %s for %s (%s)",
            type(strategy).__name__,
            strategy.media_type.value,
            ", ".join(sorted(t.value for t in strategy.supported_identifier_types)),
        )

    def get_strategy(
        self, media_type: MediaType, identifier_type: IdentifierType
    ) -> StrategyResolution:
        for strategy in self._strategies:
            if strategy.can_handle(media_type, identifier_type):
                return StrategyFound(strategy)
        return Unsupported(media_type, identifier_type)

    def supports_media_type(self, media_type: MediaType) -> bool:
        identifier_type = PRIMARY_IDENTIFIER_TYPES[media_type]
        return any(s.can_handle(media_type, identifier_type) for s in self._strategies)

    def available_media_types(self) -> list[MediaType]:
        """Media types with at least one strategy, in MediaType definition order."""
        return [mt for mt in MediaType if self.supports_media_type(mt)]

    def __len__(self) -> int:
        return len(self._strategies)
