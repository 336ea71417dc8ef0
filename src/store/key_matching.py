"""Exact-then-fuzzy key resolution for raw asset lookups.

Callers may spell a key differently from how it was stored, most commonly
``.jpg`` against ``.jpeg``. Resolution tries an exact match first and then
a substring search over stored keys.
"""

from __future__ import annotations

from typing import Collection

from core.asset_key import AssetKey
from core.constants import JPEG_LONG_SUFFIX, JPEG_SHORT_SUFFIX
from core.errors import AmbiguousAssetKeyError, NotLoadedError


def fuzzy_needle(key_text: str) -> str:
    """Build the substring needle used for fuzzy lookups.

    Args:
        key_text: Normalized requested key text.

    Returns:
        The key text with ``.jpeg``/``.jpg`` cut back to their shared
        ``.jp`` prefix; other keys are returned unchanged.
    """
    if key_text.endswith(JPEG_LONG_SUFFIX):
        return key_text[:-2]
    if key_text.endswith(JPEG_SHORT_SUFFIX):
        return key_text[:-1]
    return key_text


def match_key(
    requested: AssetKey,
    stored_keys: Collection[AssetKey],
    strict: bool = True,
) -> AssetKey:
    """Resolve a requested key against stored keys.

    Args:
        requested: Key the caller asked for.
        stored_keys: Keys currently present in the store.
        strict: Raise when more than one stored key contains the needle.
            When false, the lexicographically first candidate wins.

    Returns:
        The stored key that satisfies the request.

    Raises:
        NotLoadedError: If neither exact nor fuzzy matching finds a key.
        AmbiguousAssetKeyError: If strict and several keys match.
    """
    if requested in stored_keys:
        return requested
    needle = fuzzy_needle(requested.value)
    candidates = sorted(key for key in stored_keys if needle in key.value)
    if not candidates:
        raise NotLoadedError(needle)
    if strict and len(candidates) > 1:
        raise AmbiguousAssetKeyError(requested.value, [key.value for key in candidates])
    return candidates[0]
