"""Format dispatch for dependency discovery and typed decoding.

This module maps asset extensions onto format handlers. The dependency
resolver calls ``FormatRegistry.dependencies`` after each fetch round;
callers use ``deserialize`` once loading has finished and ``serialize``
to turn typed assets back into keyed bytes.
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from core.asset_key import AssetKey, KeyLike, as_asset_key
from core.errors import UnsupportedFormatError
from core.logging_config import get_logger
from formats.gltf import GltfHandler
from formats.image import ImageHandler
from formats.wavefront import MtlHandler, ObjHandler
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


class FormatHandler(Protocol):
    """Byte-level contract implemented by each asset format."""

    extensions: tuple[str, ...]

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        """Return keys referenced by the stored bytes of ``key``."""
        ...

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> Any:
        """Decode the stored bytes of ``key`` into a typed asset."""
        ...

    def serialize(self, key: AssetKey, value: Any) -> dict[AssetKey, bytes]:
        """Encode a typed asset into the keyed bytes it is stored as."""
        ...


class FormatRegistry:
    """Extension-indexed collection of format handlers."""

    def __init__(self, handlers: Iterable[FormatHandler] = ()) -> None:
        self._handlers: dict[str, FormatHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: FormatHandler) -> None:
        """Register a handler for all of its extensions.

        Later registrations replace earlier ones for the same extension.
        """
        for extension in handler.extensions:
            self._handlers[extension.lower()] = handler

    def handler_for(self, key: AssetKey) -> FormatHandler | None:
        """Return the handler for a key's format, if any."""
        return self._handlers.get(key.format_hint)

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> frozenset[AssetKey]:
        """Discover the assets that ``key``'s content references.

        Discovery is best-effort: unknown formats and content that cannot be
        parsed report no dependencies instead of failing the load.

        Args:
            key: Stored key to scan.
            store: Store holding the key's bytes.

        Returns:
            Referenced keys, possibly empty.
        """
        handler = self.handler_for(key)
        if handler is None:
            return frozenset()
        try:
            return frozenset(handler.dependencies(key, store))
        except Exception as error:
            _LOGGER.debug("dependency_scan_failed", key=key.value, error=str(error))
            return frozenset()

    def deserialize(self, key: KeyLike, store: RawAssetStore) -> Any:
        """Decode a stored asset into its typed form.

        Args:
            key: Requested key, matched exactly and then fuzzily.
            store: Store holding the asset and its dependencies.

        Returns:
            Typed asset produced by the format handler.

        Raises:
            NotLoadedError: If the key or a dependency is missing.
            UnsupportedFormatError: If no handler exists for the format.
            AssetDecodeError: If the bytes cannot be decoded.
        """
        resolved_key = store.resolve(key)
        return self._require_handler(resolved_key).deserialize(resolved_key, store)

    def serialize(self, key: KeyLike, value: Any) -> dict[AssetKey, bytes]:
        """Encode a typed asset as keyed bytes.

        Raises:
            UnsupportedFormatError: If no handler exists for the format.
        """
        asset_key = as_asset_key(key)
        return self._require_handler(asset_key).serialize(asset_key, value)

    def _require_handler(self, key: AssetKey) -> FormatHandler:
        """Return the handler for ``key``.

        Raises:
            UnsupportedFormatError: If no handler claims the extension.
        """
        handler = self.handler_for(key)
        if handler is None:
            raise UnsupportedFormatError(
                f"No format handler for '{key.value}' (extension '{key.format_hint}'). "
                f"Supported extensions: {', '.join(sorted(self._handlers))}."
            )
        return handler


def default_registry() -> FormatRegistry:
    """Build a registry with the built-in glTF, Wavefront and image handlers."""
    return FormatRegistry([GltfHandler(), ObjHandler(), MtlHandler(), ImageHandler()])
