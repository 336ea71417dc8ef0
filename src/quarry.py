"""Public SDK surface for Quarry.

This module provides a stable import path for library users.
It re-exports the load entry points, the store and the key types.
"""

from __future__ import annotations

from core.asset_key import AssetKey, SourceKind, as_asset_key, resolve_reference
from core.config import QuarryConfig
from core.errors import (
    AmbiguousAssetKeyError,
    AssetDecodeError,
    CapabilityMissingError,
    DataUriParseError,
    FetchFailedError,
    NotLoadedError,
    QuarryError,
    UrlParseError,
)
from core.manifest import AssetManifest, load_asset_manifest
from fetch.host_throttle import HostThrottle
from formats.registry import FormatHandler, FormatRegistry, default_registry
from pipeline.asset_pipeline import AssetPipeline, load, load_async
from pipeline.dependency_resolver import LoadResult
from store.raw_asset_store import RawAssetStore

__all__ = [
    "AmbiguousAssetKeyError",
    "AssetDecodeError",
    "AssetKey",
    "AssetManifest",
    "AssetPipeline",
    "CapabilityMissingError",
    "DataUriParseError",
    "FetchFailedError",
    "FormatHandler",
    "FormatRegistry",
    "HostThrottle",
    "LoadResult",
    "NotLoadedError",
    "QuarryConfig",
    "QuarryError",
    "RawAssetStore",
    "SourceKind",
    "UrlParseError",
    "as_asset_key",
    "default_registry",
    "load",
    "load_async",
    "load_asset_manifest",
    "resolve_reference",
]
