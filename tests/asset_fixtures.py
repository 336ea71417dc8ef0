"""Shared asset builders and test doubles."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
import json
from pathlib import Path
from typing import Any, Callable, Mapping

import httpx

from core.asset_key import AssetKey, resolve_reference
from core.config import QuarryConfig
from fetch.disk_fetcher import DiskFetcher
from formats.registry import FormatRegistry
from store.raw_asset_store import RawAssetStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16


def make_config(base_path: Path, **overrides: Any) -> QuarryConfig:
    """Build a test config rooted at ``base_path``."""
    return replace(QuarryConfig.from_env(), base_path=base_path, **overrides)


def write_file(root: Path, relative_path: str, data: bytes | str) -> Path:
    """Write bytes or UTF-8 text under ``root`` and return the path."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = data.encode("utf-8") if isinstance(data, str) else data
    path.write_bytes(payload)
    return path


def gltf_json(
    buffers: Mapping[str, int] | None = None,
    images: tuple[str, ...] = (),
) -> bytes:
    """Build a minimal glTF JSON document referencing external files."""
    buffers = buffers or {}
    document = {
        "asset": {"version": "2.0"},
        "buffers": [{"uri": uri, "byteLength": length} for uri, length in buffers.items()],
        "images": [{"uri": uri} for uri in images],
    }
    return json.dumps(document).encode("utf-8")


class ListingHandler:
    """Test format whose content lists referenced keys, one per line."""

    extensions = (".deps",)

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        text = store.get(key).decode("utf-8")
        return {resolve_reference(key, line) for line in text.splitlines() if line.strip()}

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> list[str]:
        return store.get(key).decode("utf-8").splitlines()

    def serialize(self, key: AssetKey, value: list[str]) -> dict[AssetKey, bytes]:
        return {key: "\n".join(value).encode("utf-8")}


def listing_registry() -> FormatRegistry:
    """Return a registry that only knows the ``.deps`` test format."""
    return FormatRegistry([ListingHandler()])


class CountingDiskFetcher(DiskFetcher):
    """Disk fetcher that records how often each key is read."""

    def __init__(self, base_path: Path) -> None:
        super().__init__(base_path)
        self.read_counts: Counter[AssetKey] = Counter()

    async def _read_one(self, key: AssetKey) -> tuple[AssetKey, bytes]:
        self.read_counts[key] += 1
        return await super()._read_one(key)


def static_transport(
    responses: Mapping[str, bytes],
    status_overrides: Mapping[str, int] | None = None,
) -> httpx.MockTransport:
    """Serve fixed bodies by URL; unknown URLs answer 404."""
    statuses = status_overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in responses:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(statuses.get(url, 200), content=responses[url])

    return httpx.MockTransport(handler)


def recording_transport(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[httpx.MockTransport, list[str]]:
    """Wrap a handler and record requested URLs in order."""
    seen: list[str] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return handler(request)

    return httpx.MockTransport(recording_handler), seen
