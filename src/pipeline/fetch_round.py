"""One fetch round over a batch of not-yet-stored keys.

The round classifies its batch, runs the local, data-URI and network
fetchers concurrently, waits for all three, and either returns the merged
fragment or raises the first failure without returning partial results.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from core.asset_key import AssetKey
from core.logging_config import get_logger
from fetch.fetcher_set import FetcherSet
from fetch.source_classifier import classify_batch
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


class FetchRound:
    """Runs the three source fetchers over one batch."""

    def __init__(self, fetchers: FetcherSet) -> None:
        self._fetchers = fetchers

    async def run(self, keys: Iterable[AssetKey]) -> RawAssetStore:
        """Fetch a batch of keys.

        Args:
            keys: Keys to fetch in this round.

        Returns:
            Fragment holding every requested key.

        Raises:
            QuarryError: The first failure, checked in the order local,
                data URI, network, after all fetchers have finished.
        """
        batch = classify_batch(keys)
        outcomes = await asyncio.gather(
            self._fetchers.local.fetch(batch.local_paths),
            self._fetchers.data_uri.fetch(batch.data_uris),
            self._fetchers.network.fetch(batch.urls),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                _LOGGER.warning("fetch_round_failed", keys=len(batch), error=str(outcome))
                raise outcome
        fragment = RawAssetStore()
        for outcome in outcomes:
            fragment.merge(outcome)
        _LOGGER.debug(
            "fetch_round_fetched",
            local_paths=len(batch.local_paths),
            data_uris=len(batch.data_uris),
            urls=len(batch.urls),
            fetched_bytes=fragment.total_bytes(),
        )
        return fragment
