"""Fetcher contract and the per-fetcher join barrier.

Every source fetcher receives a finite set of keys and returns a private
``RawAssetStore`` fragment. Work inside a fetcher runs as one task per key;
all tasks finish before the fetcher reports its first failure.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Collection, Iterable, Protocol

from core.asset_key import AssetKey
from store.raw_asset_store import RawAssetStore


class Fetcher(Protocol):
    """Source-specific fetcher used by a fetch round."""

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Fetch every key and return the bytes as a store fragment."""
        ...


async def gather_fragment(
    tasks: Iterable[Awaitable[tuple[AssetKey, bytes]]],
) -> RawAssetStore:
    """Await all per-key tasks and collect them into one fragment.

    Args:
        tasks: One awaitable per key, each yielding ``(key, bytes)``.

    Returns:
        Fragment holding every fetched entry.

    Raises:
        Exception: The first failure in task submission order, raised only
            after every task has finished.
    """
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)
    fragment = RawAssetStore()
    first_error: BaseException | None = None
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            if first_error is None:
                first_error = outcome
            continue
        key, data = outcome
        fragment.insert(key, data)
    if first_error is not None:
        raise first_error
    return fragment
