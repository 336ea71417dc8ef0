"""Image assets identified by their magic numbers.

Images reference no other assets. Decoding only identifies the container
format; pixel decoding is left to the caller's imaging library.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.asset_key import AssetKey
from core.errors import AssetDecodeError
from store.raw_asset_store import RawAssetStore

IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
    (b"#?RADIANCE", "hdr"),
    (b"#?RGBE", "hdr"),
    (b"BM", "bmp"),
)
TGA_HEADER_SIZE = 18


@dataclass(frozen=True)
class ImageAsset:
    """Encoded image bytes with their detected container format."""

    format: str
    data: bytes


def sniff_image_format(data: bytes) -> str | None:
    """Return the container format named by leading magic bytes."""
    for signature, image_format in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return image_format
    return None


class ImageHandler:
    """Format handler for raster images."""

    extensions = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".hdr", ".tga")

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        return set()

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> ImageAsset:
        data = store.get(key)
        image_format = sniff_image_format(data)
        # TGA has no magic number; trust the extension when the header fits.
        if image_format is None and key.format_hint == ".tga" and len(data) >= TGA_HEADER_SIZE:
            image_format = "tga"
        if image_format is None:
            raise AssetDecodeError(
                f"'{key.value}' is not a recognized image: unknown leading bytes "
                f"{data[:8]!r}."
            )
        return ImageAsset(format=image_format, data=data)

    def serialize(self, key: AssetKey, value: ImageAsset) -> dict[AssetKey, bytes]:
        return {key: value.data}
