"""Partition a fetch batch by source kind."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from core.asset_key import AssetKey, KeyLike, SourceKind, as_asset_key


@dataclass(frozen=True)
class LoadBatch:
    """Keys of one fetch round split into disjoint source kinds.

    Attributes:
        local_paths: Keys read from disk, or from the base URL in hosted mode.
        urls: Absolute network URLs.
        data_uris: Inline data URIs decoded without I/O.
    """

    local_paths: frozenset[AssetKey]
    urls: frozenset[AssetKey]
    data_uris: frozenset[AssetKey]

    def __len__(self) -> int:
        return len(self.local_paths) + len(self.urls) + len(self.data_uris)


def classify_batch(keys: Iterable[KeyLike]) -> LoadBatch:
    """Split requested keys into local, URL and data-URI sub-batches.

    Args:
        keys: Requested identifiers; duplicates collapse.

    Returns:
        Partitioned batch.
    """
    buckets: dict[SourceKind, set[AssetKey]] = {kind: set() for kind in SourceKind}
    for key in keys:
        asset_key = as_asset_key(key)
        buckets[asset_key.kind].add(asset_key)
    return LoadBatch(
        local_paths=frozenset(buckets[SourceKind.LOCAL_PATH]),
        urls=frozenset(buckets[SourceKind.ABSOLUTE_URL]),
        data_uris=frozenset(buckets[SourceKind.DATA_URI]),
    )
