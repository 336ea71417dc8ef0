"""Fixed-point dependency resolution over fetch rounds.

After each round the newly stored assets are scanned for references. Keys
already stored are not fetched again, but their own references are walked
in place; whatever remains absent becomes the next round.
Each round adds at least one absent key, so the loop ends once a scan
yields nothing new; cycles end because stored keys are never re-requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from core.asset_key import AssetKey
from core.logging_config import get_logger
from formats.registry import FormatRegistry
from pipeline.fetch_round import FetchRound
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a full load.

    Attributes:
        store: Store holding the requested keys and all their dependencies.
        rounds: Keys fetched per round, each sorted, in round order.
    """

    store: RawAssetStore
    rounds: tuple[tuple[AssetKey, ...], ...]


class DependencyResolver:
    """Repeats fetch rounds until no new references are discovered."""

    def __init__(
        self,
        fetch_round: FetchRound,
        registry: FormatRegistry,
        strict_key_matching: bool = True,
    ) -> None:
        self._fetch_round = fetch_round
        self._registry = registry
        self._strict_key_matching = strict_key_matching

    async def resolve(
        self,
        keys: Iterable[AssetKey],
        store: RawAssetStore | None = None,
    ) -> LoadResult:
        """Load keys and everything they transitively reference.

        Args:
            keys: Requested keys.
            store: Optional store to accumulate into. Keys it already holds
                are not fetched again. It is only modified on success.

        Returns:
            Load result whose store is ``store`` when given, else a new one.

        Raises:
            QuarryError: The first fetch failure; no partial store is returned.
        """
        target = store if store is not None else RawAssetStore(self._strict_key_matching)
        working = RawAssetStore()
        requested = frozenset(keys)
        scanned: set[AssetKey] = set()
        pending = self._absent(
            requested | self._missing_from_stored(requested, target, scanned), target, working
        )
        rounds: list[tuple[AssetKey, ...]] = []
        while pending:
            fragment = await self._fetch_round.run(pending)
            new_keys = tuple(sorted(fragment.keys()))
            working.merge(fragment)
            rounds.append(new_keys)
            discovered: set[AssetKey] = set()
            for key in new_keys:
                discovered.update(self._registry.dependencies(key, working))
            discovered.update(self._missing_from_stored(discovered, target, scanned))
            pending = self._absent(discovered, target, working)
            _LOGGER.info(
                "fetch_round_completed",
                round_number=len(rounds),
                fetched=len(new_keys),
                discovered=len(discovered),
                pending=len(pending),
            )
        target.merge(working)
        return LoadResult(store=target, rounds=tuple(rounds))

    def _missing_from_stored(
        self,
        keys: Iterable[AssetKey],
        target: RawAssetStore,
        scanned: set[AssetKey],
    ) -> frozenset[AssetKey]:
        """Find absent references of keys the caller already stored.

        Stored keys are not fetched again, so their references are walked here
        through every stored asset they reach.

        Args:
            keys: Requested or discovered keys; only stored ones are walked.
            target: Caller store.
            scanned: Stored keys already walked during this load; updated.

        Returns:
            Referenced keys missing from ``target``.
        """
        missing: set[AssetKey] = set()
        frontier = [key for key in keys if key in target]
        while frontier:
            key = frontier.pop()
            if key in scanned:
                continue
            scanned.add(key)
            for dependency in self._registry.dependencies(key, target):
                if dependency in target:
                    frontier.append(dependency)
                else:
                    missing.add(dependency)
        return frozenset(missing)

    @staticmethod
    def _absent(
        keys: Iterable[AssetKey],
        target: RawAssetStore,
        working: RawAssetStore,
    ) -> frozenset[AssetKey]:
        return frozenset(key for key in keys if key not in target and key not in working)
