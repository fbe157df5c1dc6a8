"""External metadata provider client implementations."""

from mediaset.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)
from mediaset.infrastructure.integrations.giantbomb_client import GiantBombClient
from mediaset.infrastructure.integrations.http_pool import HttpClientPool
from mediaset.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from mediaset.infrastructure.integrations.openlibrary_client import OpenLibraryClient
from mediaset.infrastructure.integrations.tmdb_client import TmdbClient
from mediaset.infrastructure.integrations.upcitemdb_client import UpcItemDbClient

__all__ = [
    "CoverArtArchiveClient",
    "GiantBombClient",
    "HttpClientPool",
    "MusicBrainzClient",
    "OpenLibraryClient",
    "TmdbClient",
    "UpcItemDbClient",
]
