"""Configuration module for MediaSet."""

from .settings import (
    BackgroundImageLookupSettings,
    DatabaseSettings,
    GiantBombSettings,
    ImageSettings,
    MusicBrainzSettings,
    ObservabilitySettings,
    OpenLibrarySettings,
    Settings,
    TmdbSettings,
    UpcItemDbSettings,
    get_settings,
)

__all__ = [
    "BackgroundImageLookupSettings",
    "DatabaseSettings",
    "GiantBombSettings",
    "ImageSettings",
    "MusicBrainzSettings",
    "ObservabilitySettings",
    "OpenLibrarySettings",
    "Settings",
    "TmdbSettings",
    "UpcItemDbSettings",
    "get_settings",
]
