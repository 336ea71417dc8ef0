"""Load entry points for the asset-resolution pipeline.

This module wires config, fetchers, the format registry and the dependency
resolver together. ``load`` is synchronous from the caller's side and runs
its own event loop; code already inside an event loop awaits
``load_async`` instead.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

import httpx

from core.asset_key import AssetKey, KeyLike, as_asset_key
from core.config import QuarryConfig
from core.logging_config import get_logger
from fetch.fetcher_set import FetcherSet, build_fetchers
from fetch.host_throttle import HostThrottle
from formats.registry import FormatRegistry, default_registry
from pipeline.dependency_resolver import DependencyResolver, LoadResult
from pipeline.fetch_round import FetchRound
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


class AssetPipeline:
    """Primary entry point for loading assets and their dependencies."""

    def __init__(
        self,
        config: QuarryConfig | None = None,
        registry: FormatRegistry | None = None,
        fetchers: FetcherSet | None = None,
        throttle: HostThrottle | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a pipeline.

        Args:
            config: Optional runtime configuration; read from env if omitted.
            registry: Optional format registry; built-in formats if omitted.
            fetchers: Optional explicit fetchers; selected from config if omitted.
            throttle: Optional host throttle shared with other pipelines.
            transport: Optional httpx transport for the network fetcher.
        """
        self._config = config or QuarryConfig.from_env()
        self._registry = registry or default_registry()
        self._fetchers = fetchers or build_fetchers(
            self._config, throttle=throttle, transport=transport
        )
        self._resolver = DependencyResolver(
            FetchRound(self._fetchers),
            self._registry,
            strict_key_matching=self._config.strict_key_matching,
        )

    @property
    def config(self) -> QuarryConfig:
        """Return the runtime configuration."""
        return self._config

    @property
    def registry(self) -> FormatRegistry:
        """Return the format registry used for discovery and decoding."""
        return self._registry

    def load(
        self,
        keys: Iterable[KeyLike],
        store: RawAssetStore | None = None,
    ) -> RawAssetStore:
        """Load keys and their dependencies, blocking until done.

        Args:
            keys: Requested identifiers.
            store: Optional store to accumulate into.

        Returns:
            Store holding every requested key and its dependencies.

        Raises:
            QuarryError: The first fetch failure.
        """
        return asyncio.run(self.load_async(keys, store))

    async def load_async(
        self,
        keys: Iterable[KeyLike],
        store: RawAssetStore | None = None,
    ) -> RawAssetStore:
        """Awaitable form of :meth:`load`."""
        result = await self.load_with_report_async(keys, store)
        return result.store

    def load_with_report(
        self,
        keys: Iterable[KeyLike],
        store: RawAssetStore | None = None,
    ) -> LoadResult:
        """Load keys and also report which keys each round fetched."""
        return asyncio.run(self.load_with_report_async(keys, store))

    async def load_with_report_async(
        self,
        keys: Iterable[KeyLike],
        store: RawAssetStore | None = None,
    ) -> LoadResult:
        """Awaitable form of :meth:`load_with_report`."""
        requested = [as_asset_key(key) for key in keys]
        result = await self._resolver.resolve(requested, store)
        _LOGGER.info(
            "load_completed",
            requested=len(requested),
            rounds=len(result.rounds),
            assets=len(result.store),
            total_bytes=result.store.total_bytes(),
        )
        return result

    def deserialize(self, store: RawAssetStore, key: KeyLike) -> Any:
        """Decode a loaded asset with the pipeline's format registry."""
        return self._registry.deserialize(key, store)

    def dependencies(self, store: RawAssetStore, key: KeyLike) -> frozenset[AssetKey]:
        """Return the keys a stored asset references, best-effort."""
        return self._registry.dependencies(store.resolve(key), store)


def load(
    keys: Iterable[KeyLike],
    store: RawAssetStore | None = None,
    config: QuarryConfig | None = None,
    registry: FormatRegistry | None = None,
) -> RawAssetStore:
    """Load keys and their dependencies with a one-off pipeline.

    Args:
        keys: Requested identifiers.
        store: Optional store to accumulate into.
        config: Optional runtime configuration.
        registry: Optional format registry.

    Returns:
        Store holding every requested key and its dependencies.
    """
    return AssetPipeline(config, registry).load(keys, store)


async def load_async(
    keys: Iterable[KeyLike],
    store: RawAssetStore | None = None,
    config: QuarryConfig | None = None,
    registry: FormatRegistry | None = None,
) -> RawAssetStore:
    """Awaitable form of :func:`load`."""
    return await AssetPipeline(config, registry).load_async(keys, store)
