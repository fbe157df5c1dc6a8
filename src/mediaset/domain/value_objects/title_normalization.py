"""Title, format and platform normalization for barcode lookup results.

Hey future me - barcode providers return RETAIL listing titles, not product names:
"The Matrix (Widescreen) [2-Disc Special Edition] - Blu-ray NEW" or
"Halo Infinite - Xbox Series X". Search providers (TMDB, GiantBomb) choke on that noise,
so we strip it down to "The Matrix" / "Halo Infinite" and keep the useful bits
(format, platform, edition) on the side.

Everything here is a pure function over strings - no I/O, safe to unit test exhaustively.

Examples:
    >>> clean_movie_title("Akira (Widescreen) [DVD] NEW")
    'Akira'
    >>> extract_movie_format("Movie [UHD]")
    '4K UHD'
    >>> clean_game_title("Cyberpunk 2077 Deluxe Edition")
    ('Cyberpunk 2077', 'Deluxe')
    >>> extract_platform("Halo Infinite - Xbox Series X")
    'Xbox Series X|S'
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from mediaset.domain.entities import NormalizedQuery, PlatformRef

# =============================================================================
# MOVIES
# =============================================================================

_MOVIE_FORMAT_TOKENS = r"DVD|Blu[- ]?ray|4K|BD|UHD|Digital|HD"

# "LIKE NEW" must come before "NEW" so the two-word form is stripped as a whole.
_CONDITION_SUFFIX_RE = re.compile(
    r"\s+(?:LIKE NEW|NEW|USED|SEALED|MINT|OPENED|UNOPENED)\s*$", re.IGNORECASE
)
_PAREN_SPAN_RE = re.compile(r"\s*\([^)]*\)")
_BRACKET_SPAN_RE = re.compile(r"\s*\[[^\]]*\]")
_MOVIE_DASH_FORMAT_SUFFIX_RE = re.compile(
    rf"\s+-\s*(?:{_MOVIE_FORMAT_TOKENS})\b.*$", re.IGNORECASE
)
_MOVIE_TRAILING_FORMAT_RE = re.compile(
    rf"\s+(?:{_MOVIE_FORMAT_TOKENS})\s*$", re.IGNORECASE
)
_WHITESPACE_RE = re.compile(r"\s+")

_MOVIE_PAREN_FORMAT_RE = re.compile(
    rf"\(([^)]*?\b(?:{_MOVIE_FORMAT_TOKENS})\b[^)]*)\)", re.IGNORECASE
)
_MOVIE_BRACKET_FORMAT_RE = re.compile(
    rf"\[([^\]]*?\b(?:{_MOVIE_FORMAT_TOKENS})\b[^\]]*)\]", re.IGNORECASE
)
_MOVIE_DASH_FORMAT_RE = re.compile(
    rf"\s-\s*((?:{_MOVIE_FORMAT_TOKENS})\b.*)$", re.IGNORECASE
)
_MOVIE_END_FORMAT_RE = re.compile(rf"\b({_MOVIE_FORMAT_TOKENS})\s*$", re.IGNORECASE)

# Fixed-point guard; real titles settle in two or three rounds.
_MAX_CLEAN_ROUNDS = 10

# Retail listings file titles by their article: "Matrix The", "Scanner Darkly, A"
_TRAILING_ARTICLE_RE = re.compile(r"^(.+?),?\s+(A|The)$", re.IGNORECASE)
_LEADING_ARTICLE_RE = re.compile(r"^(A|The)\b", re.IGNORECASE)


def _collapse(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def _clean_movie_title_once(title: str) -> str:
    title = _CONDITION_SUFFIX_RE.sub("", title)
    title = _PAREN_SPAN_RE.sub("", title)
    title = _BRACKET_SPAN_RE.sub("", title)
    title = _MOVIE_DASH_FORMAT_SUFFIX_RE.sub("", title)
    title = _MOVIE_TRAILING_FORMAT_RE.sub("", title)
    return _collapse(title)


# Hey future me - one round is NOT enough. Removing "(Widescreen)" can expose a trailing
# "NEW", removing "NEW" can expose " - Blu-ray". We keep cleaning until the string stops
# changing, which also makes the function idempotent: clean(clean(x)) == clean(x).
# The article move runs once at the end and never fires on a title that already starts
# with an article, so it keeps that property.
def clean_movie_title(raw_title: str | None) -> str:
    """Strip condition words, bracketed qualifiers and format suffixes from a movie title."""
    if not raw_title or not raw_title.strip():
        return ""

    current = _collapse(raw_title)
    for _ in range(_MAX_CLEAN_ROUNDS):
        cleaned = _clean_movie_title_once(current)
        if cleaned == current:
            break
        current = cleaned
    return _move_trailing_article(current)


def _move_trailing_article(title: str) -> str:
    match = _TRAILING_ARTICLE_RE.match(title)
    if not match:
        return title
    main_title, article = match.group(1).strip(), match.group(2)
    if _LEADING_ARTICLE_RE.match(main_title):
        return title
    return f"{article} {main_title}"


def _normalize_movie_format(value: str) -> str:
    value = _CONDITION_SUFFIX_RE.sub("", value)
    value = re.sub(r"\bBlu[- ]?ray\b", "Blu-ray", value, flags=re.IGNORECASE)
    value = re.sub(r"\bBD\b", "Blu-ray", value, flags=re.IGNORECASE)
    value = re.sub(r"(?<!4K )\bUHD\b", "4K UHD", value, flags=re.IGNORECASE)
    value = re.sub(r"\bDVD\b", "DVD", value, flags=re.IGNORECASE)
    return _collapse(value)


def extract_movie_format(raw_title: str | None) -> str:
    """Find the physical format in a raw movie title.

    Looks inside parentheses first, then brackets, then after a " - " separator, and
    finally at a bare format word ending the title. Returns "" when nothing matches.
    """
    if not raw_title or not raw_title.strip():
        return ""

    for pattern in (
        _MOVIE_PAREN_FORMAT_RE,
        _MOVIE_BRACKET_FORMAT_RE,
        _MOVIE_DASH_FORMAT_RE,
        _MOVIE_END_FORMAT_RE,
    ):
        match = pattern.search(raw_title)
        if match:
            return _normalize_movie_format(match.group(1))
    return ""


def normalize_movie_query(raw_title: str) -> NormalizedQuery:
    return NormalizedQuery(
        cleaned_title=clean_movie_title(raw_title),
        extracted_format=extract_movie_format(raw_title),
    )


# =============================================================================
# GAMES
# =============================================================================

_EDITION_RE = re.compile(
    r"\b(Deluxe|GOTY|Game of the Year|Definitive|Collector'?s Edition|Complete|Ultimate)\b",
    re.IGNORECASE,
)
_RESALE_SUFFIX_RE = re.compile(
    r"\s*-\s*(?:Pre-Played|Pre-Owned|Used|Greatest Hits|Platinum Hits|Player'?s Choice"
    r"|Nintendo Selects|Essentials)\b.*$",
    re.IGNORECASE,
)
_PLATFORM_TOKEN_RE = re.compile(
    r"\b(?:PS5|PS4|PS3|PS2|PlayStation\s*5|PlayStation\s*4|PlayStation\s*3|PlayStation"
    r"|Xbox Series X\|S|Xbox Series [XS]|Xbox One|Xbox 360|Xbox"
    r"|Nintendo Switch|Switch|Wii U|Wii|3DS|DS)\b",
    re.IGNORECASE,
)
_GAME_FORMAT_PAREN_RE = re.compile(
    r"\s*\([^)]*\b(?:Disc|Cartridge|Digital)\b[^)]*\)", re.IGNORECASE
)
_GAME_FORMAT_BRACKET_RE = re.compile(
    r"\s*\[[^\]]*\b(?:Disc|Cartridge|Digital)\b[^\]]*\]", re.IGNORECASE
)
_GAME_FORMAT_DASH_RE = re.compile(
    r"\s*-\s*(?:Disc|Cartridge|Digital)\b.*$", re.IGNORECASE
)
_TRAILING_HYPHEN_RE = re.compile(r"\s*-\s*$")
# Case-sensitive on purpose: retail SKUs are upper case ("CUSA-12345").
_SKU_RE = re.compile(r"\b[A-Z0-9]{3,}-[A-Z0-9]{2,}\b")


# Yo, resale qualifiers ("- Pre-Played", "- Greatest Hits") are cut off BEFORE we look for
# an edition keyword. That way "Halo 3 - Greatest Hits Complete" never reports "Complete"
# as the edition - resale labels are not editions.
def clean_game_title(raw_title: str | None) -> tuple[str, str]:
    """Return (searchable title, edition keyword) for a raw retail game title."""
    if not raw_title or not raw_title.strip():
        return "", ""

    title = raw_title.strip()
    title = _RESALE_SUFFIX_RE.sub("", title)

    edition = ""
    edition_match = _EDITION_RE.search(title)
    if edition_match:
        edition = edition_match.group(1)

    title = _PLATFORM_TOKEN_RE.sub("", title)
    title = _GAME_FORMAT_PAREN_RE.sub("", title)
    title = _GAME_FORMAT_BRACKET_RE.sub("", title)
    title = _GAME_FORMAT_DASH_RE.sub("", title)
    title = _TRAILING_HYPHEN_RE.sub("", title)
    title = _SKU_RE.sub("", title)

    if edition:
        escaped = re.escape(edition)
        title = re.sub(rf"{escaped}\s*Edition\b", "", title, flags=re.IGNORECASE)
        title = re.sub(escaped, "", title, flags=re.IGNORECASE)

    title = _PAREN_SPAN_RE.sub("", title)
    title = _BRACKET_SPAN_RE.sub("", title)
    title = _TRAILING_HYPHEN_RE.sub("", _collapse(title))

    return _collapse(title), edition


def extract_game_format(raw_title: str | None) -> str:
    """Cartridge / Disc / Digital keyword scan over the raw title."""
    if not raw_title:
        return ""
    if re.search(r"Cartridge", raw_title, re.IGNORECASE):
        return "Cartridge"
    if re.search(r"Disc|Blu-?ray|DVD", raw_title, re.IGNORECASE):
        return "Disc"
    if re.search(r"Digital", raw_title, re.IGNORECASE):
        return "Digital"
    return ""


# Hey future me - ORDER IS PRECEDENCE. Specific consoles come before their families
# ("PS5" before "PlayStation", "Wii U" before "Wii", "3DS" before "DS") because the first
# hit wins.
PLATFORM_HINTS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), platform)
    for pattern, platform in (
        (r"\b(?:PS5|PlayStation\s*5)\b", "PlayStation 5"),
        (r"\b(?:PS4|PlayStation\s*4)\b", "PlayStation 4"),
        (r"\b(?:PS3|PlayStation\s*3)\b", "PlayStation 3"),
        (r"\b(?:PS2|PlayStation\s*2)\b", "PlayStation 2"),
        (r"\b(?:Xbox Series X\|S|Xbox Series [XS]|Series X)\b", "Xbox Series X|S"),
        (r"\bXbox One\b", "Xbox One"),
        (r"\bXbox 360\b", "Xbox 360"),
        (r"\b(?:Nintendo Switch|Switch)\b", "Nintendo Switch"),
        (r"\bWii U\b", "Wii U"),
        (r"\bWii\b", "Wii"),
        (r"\b3DS\b", "Nintendo 3DS"),
        (r"\bDS\b", "Nintendo DS"),
        (r"\bXbox\b", "Xbox"),
        (r"\b(?:PlayStation|PS1|PSX)\b", "PlayStation"),
    )
)


def extract_platform(
    title: str | None,
    category: str | None = None,
    brand: str | None = None,
    model: str | None = None,
) -> str:
    """Detect the console from the title, falling back to category/brand/model text."""
    combined = f"{category or ''} {brand or ''} {model or ''}"
    for haystack in (title or "", combined):
        for pattern, platform in PLATFORM_HINTS:
            if pattern.search(haystack):
                return platform
    return ""


_CARTRIDGE_PLATFORM_RE = re.compile(
    r"switch|3ds|\bds\b|game ?boy|nintendo 64|\bn64\b|\bsnes\b|\bnes\b"
    r"|super nintendo|genesis|mega drive|game gear",
    re.IGNORECASE,
)
_BLURAY_PLATFORM_RE = re.compile(
    r"playstation [345]|\bps[345]\b|xbox one|xbox series", re.IGNORECASE
)
_DVD_PLATFORM_RE = re.compile(
    r"playstation 2|\bps2\b|xbox 360|\bxbox\b|\bwii\b", re.IGNORECASE
)
_CD_PLATFORM_RE = re.compile(
    r"^playstation$|\bps1\b|saturn|sega cd", re.IGNORECASE
)


def derive_format_from_platforms(
    platforms: Sequence[PlatformRef] | None, detected_platform: str
) -> str:
    """Guess the physical medium from the provider's platform list.

    Picks the platform whose name matches the detected one (substring either way,
    case-insensitive), else the first listed platform, then maps its family to a medium.
    Returns "" for an empty platform list.
    """
    if not platforms:
        return ""

    detected = (detected_platform or "").lower()
    matching = next(
        (
            p
            for p in platforms
            if detected in p.name.lower() or p.name.lower() in detected
        ),
        platforms[0],
    )
    name = matching.name.strip()

    if _CARTRIDGE_PLATFORM_RE.search(name):
        return "Cartridge"
    if _BLURAY_PLATFORM_RE.search(name):
        return "Blu-ray Disc"
    if _DVD_PLATFORM_RE.search(name):
        return "DVD"
    if re.search(r"dreamcast", name, re.IGNORECASE):
        return "GD-ROM"
    if _CD_PLATFORM_RE.search(name):
        return "CD-ROM"
    # PC and anything unrecognised: physical releases are overwhelmingly disc based.
    return "Disc"


def normalize_game_query(
    raw_title: str,
    category: str | None = None,
    brand: str | None = None,
    model: str | None = None,
) -> NormalizedQuery:
    cleaned, edition = clean_game_title(raw_title)
    return NormalizedQuery(
        cleaned_title=cleaned,
        extracted_format=extract_game_format(raw_title),
        extracted_platform=extract_platform(raw_title, category, brand, model),
        extracted_edition=edition,
    )
