"""Local-path fetcher for hosted runtimes.

When a base URL is configured, local-path keys are not read from disk but
joined onto the base URL and downloaded. Results keep the requested local
key so later lookups and dependency resolution see the caller's spelling.
"""

from __future__ import annotations

from typing import Collection
from urllib.parse import urljoin

from core.asset_key import AssetKey
from fetch.fetcher_base import Fetcher
from store.raw_asset_store import RawAssetStore


class BaseUrlFetcher:
    """Fetch local-path keys relative to a base URL."""

    def __init__(self, network: Fetcher, base_url: str) -> None:
        """Create a base-URL fetcher.

        Args:
            network: Fetcher that downloads absolute URLs.
            base_url: Document or directory URL relative keys join onto.
        """
        self._network = network
        self._base_url = base_url

    def url_for(self, key: AssetKey) -> AssetKey:
        """Return the absolute URL key a local key is downloaded from."""
        return AssetKey(urljoin(self._base_url, key.value))

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Download local keys through the network fetcher."""
        if not keys:
            return RawAssetStore()
        local_by_url = {self.url_for(key): key for key in keys}
        downloaded = await self._network.fetch(frozenset(local_by_url))
        fragment = RawAssetStore()
        for url_key, data in downloaded.items():
            fragment.insert(local_by_url[url_key], data)
        return fragment
