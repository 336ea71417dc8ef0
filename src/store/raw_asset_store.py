"""In-memory byte store keyed by asset identifiers.

This module holds the result of a load operation: every fetched asset's
raw bytes under its ``AssetKey``. The store is exact, not a cache, and is
mutated only by the load operation that owns it.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Iterator

from core.asset_key import AssetKey, KeyLike, as_asset_key
from core.errors import AssetKeyError
from store.key_matching import match_key


class RawAssetStore:
    """Mapping from asset keys to owned byte buffers."""

    def __init__(self, strict_key_matching: bool = True) -> None:
        """Create an empty store.

        Args:
            strict_key_matching: Whether ambiguous fuzzy lookups raise.
        """
        self._entries: dict[AssetKey, bytes] = {}
        self._strict_key_matching = strict_key_matching

    def insert(self, key: KeyLike, data: bytes | bytearray | memoryview) -> None:
        """Store bytes under a key, replacing any previous entry."""
        self._entries[as_asset_key(key)] = bytes(data)

    def get(self, key: KeyLike) -> bytes:
        """Return the bytes stored for a key.

        Args:
            key: Requested key, matched exactly and then fuzzily.

        Returns:
            Stored bytes.

        Raises:
            NotLoadedError: If no stored key matches.
            AmbiguousAssetKeyError: If several stored keys match fuzzily.
        """
        return self._entries[self.resolve(key)]

    def remove(self, key: KeyLike) -> bytes:
        """Remove a key and hand its bytes to the caller.

        Args:
            key: Requested key, matched exactly and then fuzzily.

        Returns:
            The removed bytes; the store no longer holds the key.

        Raises:
            NotLoadedError: If no stored key matches.
            AmbiguousAssetKeyError: If several stored keys match fuzzily.
        """
        return self._entries.pop(self.resolve(key))

    def resolve(self, key: KeyLike) -> AssetKey:
        """Return the stored key that answers a request for ``key``."""
        return match_key(as_asset_key(key), self._entries.keys(), self._strict_key_matching)

    def merge(self, other: "RawAssetStore") -> "RawAssetStore":
        """Move every entry of ``other`` into this store.

        Args:
            other: Store to drain; it is empty afterwards.

        Returns:
            This store, for chaining.
        """
        if other is self:
            return self
        self._entries.update(other._entries)
        other._entries.clear()
        return self

    def items(self) -> Iterator[tuple[AssetKey, bytes]]:
        """Iterate over a snapshot of stored entries in no particular order."""
        return iter(list(self._entries.items()))

    def keys(self) -> frozenset[AssetKey]:
        """Return the set of stored keys."""
        return frozenset(self._entries)

    def total_bytes(self) -> int:
        """Return the summed size of all stored buffers."""
        return sum(len(data) for data in self._entries.values())

    def __contains__(self, key: object) -> bool:
        if isinstance(key, AssetKey):
            return key in self._entries
        if not isinstance(key, (str, PurePath)):
            return False
        try:
            return as_asset_key(key) in self._entries
        except AssetKeyError:
            return False

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        entries = ", ".join(
            f"{key.value!r}: {len(data)} bytes" for key, data in sorted(self._entries.items())
        )
        return f"RawAssetStore({{{entries}}})"
