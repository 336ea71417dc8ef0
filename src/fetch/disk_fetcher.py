"""Local file fetcher.

This module reads local-path keys fully into memory. Each path is one task
on the default asyncio thread pool; the pool, not this fetcher, bounds how
many reads run at once.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Collection

from core.asset_key import AssetKey
from core.errors import FetchFailedError
from core.logging_config import get_logger
from fetch.fetcher_base import gather_fragment
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


class DiskFetcher:
    """Fetcher for local filesystem paths."""

    def __init__(self, base_path: Path) -> None:
        """Create a disk fetcher.

        Args:
            base_path: Directory that relative keys are resolved against.
        """
        self._base_path = base_path

    def resolve_path(self, key: AssetKey) -> Path:
        """Return the filesystem path a local key refers to."""
        path = Path(key.value).expanduser()
        if path.is_absolute():
            return path
        return self._base_path / path

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Read every key from disk.

        Args:
            keys: Local-path keys.

        Returns:
            Fragment with one entry per key.

        Raises:
            FetchFailedError: For the first unreadable path in sorted order,
                after every read has finished.
        """
        if not keys:
            return RawAssetStore()
        return await gather_fragment(self._read_one(key) for key in sorted(keys))

    async def _read_one(self, key: AssetKey) -> tuple[AssetKey, bytes]:
        path = self.resolve_path(key)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as error:
            _LOGGER.warning("disk_fetch_failed", key=key.value, path=str(path), error=str(error))
            raise FetchFailedError(key.value, error) from error
        return key, data
