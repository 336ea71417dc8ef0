"""Quarry exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import Sequence


class QuarryError(Exception):
    """Base exception for all Quarry failures."""


class QuarryConfigError(QuarryError):
    """Raised for invalid runtime configuration."""


class QuarryDependencyError(QuarryError):
    """Raised when an optional runtime dependency is missing."""


class QuarryManifestError(QuarryError):
    """Raised for invalid or unreadable asset manifest files."""


class AssetKeyError(QuarryError):
    """Raised when an asset identifier cannot be turned into a key."""


class NotLoadedError(QuarryError):
    """Raised when a key is absent after exact and fuzzy matching."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Tried to use asset '{key}' which was not loaded. "
            "Add it to the requested keys or check its spelling."
        )
        self.key = key


class AmbiguousAssetKeyError(QuarryError):
    """Raised when a fuzzy lookup matches more than one stored key."""

    def __init__(self, key: str, candidates: Sequence[str]) -> None:
        listed = ", ".join(candidates)
        super().__init__(
            f"Asset '{key}' matches several loaded keys: {listed}. "
            "Request the asset by its exact key."
        )
        self.key = key
        self.candidates = tuple(candidates)


class FetchFailedError(QuarryError):
    """Raised when disk or network I/O fails for one key."""

    def __init__(self, key: str, cause: object) -> None:
        super().__init__(f"Failed to load asset '{key}': {cause}")
        self.key = key
        self.cause = cause


class UrlParseError(QuarryError):
    """Raised for malformed or unsupported absolute URLs."""

    def __init__(self, key: str, reason: str = "invalid URL") -> None:
        super().__init__(f"Failed to parse URL '{key}': {reason}.")
        self.key = key


class DataUriParseError(QuarryError):
    """Raised when an inline data URI payload cannot be decoded."""

    def __init__(self, key: str, cause: object) -> None:
        super().__init__(f"Failed to parse data URI '{_shorten(key)}': {cause}")
        self.key = key
        self.cause = cause


class CapabilityMissingError(QuarryError):
    """Raised when a fetch needs a capability the runtime lacks."""

    def __init__(self, feature: str) -> None:
        super().__init__(
            f"Loading requires the '{feature}' capability, which is disabled. "
            "Enable it in the runtime configuration and retry."
        )
        self.feature = feature


class UnsupportedFormatError(QuarryError):
    """Raised when no format handler exists for a key."""


class AssetDecodeError(QuarryError):
    """Raised when stored bytes cannot be decoded into a typed asset."""


def _shorten(value: str, limit: int = 64) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + "..."
