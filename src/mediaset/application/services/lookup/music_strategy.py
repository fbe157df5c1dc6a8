"""Music lookup: barcode -> MusicBrainz release -> Cover Art Archive front cover."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any

from mediaset.domain.entities import DiscTrack, IdentifierType, MediaType, MusicResponse
from mediaset.domain.ports import ICoverArtClient, ILookupStrategy, IMusicMetadataClient
from mediaset.infrastructure.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

MAX_GENRES = 5


def capitalize_genre(tag: str) -> str:
    """'progressive-rock' -> 'Progressive Rock'."""
    words = [w for w in re.split(r"[ \-]+", tag or "") if w]
    return " ".join(w[0].upper() + w[1:].lower() for w in words)


def format_track_length(milliseconds: int | None) -> str:
    if not milliseconds:
        return ""
    seconds = milliseconds // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def join_artist_credit(credits: list[dict[str, Any]]) -> str:
    # Each credit carries its own joinphrase (" & ", " feat. ", ...)
    return "".join(
        f"{c.get('name') or (c.get('artist') or {}).get('name', '')}{c.get('joinphrase', '')}"
        for c in credits
    ).strip()


# Hey future me - MusicBrainz nests everything: release -> media[] -> tracks[] -> recording.
# Track length lives on the track, but some releases only fill it on the recording, so we
# fall back to that. Lengths are milliseconds; the response duration is total SECONDS.
def map_release(release: dict[str, Any]) -> MusicResponse:
    tags = sorted(
        release.get("tags") or [], key=lambda t: t.get("count") or 0, reverse=True
    )
    genres = [capitalize_genre(t["name"]) for t in tags[:MAX_GENRES] if t.get("name")]

    label = ""
    label_info = release.get("label-info") or []
    if label_info and label_info[0].get("label"):
        label = label_info[0]["label"].get("name") or ""

    media = release.get("media") or []
    total_ms = 0
    has_length = False
    total_tracks = 0
    disc_list: list[DiscTrack] = []
    for medium in media:
        total_tracks += medium.get("track-count") or len(medium.get("tracks") or [])
        for track in medium.get("tracks") or []:
            length = track.get("length") or (track.get("recording") or {}).get("length")
            if length:
                total_ms += length
                has_length = True
            number = str(track.get("number") or track.get("position") or "")
            if number.isdigit():
                disc_list.append(
                    DiscTrack(
                        track_number=int(number),
                        title=track.get("title") or "",
                        duration=format_track_length(length),
                    )
                )

    return MusicResponse(
        title=release.get("title") or "",
        artist=join_artist_credit(release.get("artist-credit") or []),
        release_date=release.get("date") or "",
        genres=genres,
        duration=total_ms // 1000 if has_length else None,
        label=label,
        tracks=total_tracks or None,
        discs=len(media) or None,
        disc_list=disc_list,
        format=(media[0].get("format") or "") if media else "",
    )


class MusicLookupStrategy(ILookupStrategy):
    """Resolves music releases by UPC/EAN barcode."""

    media_type = MediaType.MUSIC
    supported_identifier_types = frozenset({IdentifierType.UPC, IdentifierType.EAN})

    def __init__(
        self, music_client: IMusicMetadataClient, cover_art_client: ICoverArtClient
    ) -> None:
        self._music = music_client
        self._cover_art = cover_art_client

    async def lookup(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> MusicResponse | None:
        with _tracer.start_as_current_span("lookup.music") as span:
            span.set_attribute("identifier.type", identifier_type.value)
            span.set_attribute("identifier.value", identifier_value)

            releases = await self._music.search_releases_by_barcode(identifier_value)
            if not releases:
                logger.info("No MusicBrainz release for barcode %s", identifier_value)
                return None

            release_id = releases[0].id
            release = await self._music.get_release(release_id)
            if release is None:
                logger.warning("MusicBrainz release %s vanished between calls", release_id)
                return None

            response = map_release(release)
            cover_url = await self._cover_art.get_front_cover_url(release_id)
            if cover_url is None:
                logger.info("No front cover in Cover Art Archive for %s", release_id)
                return response

            return replace(response, image_url=cover_url)
