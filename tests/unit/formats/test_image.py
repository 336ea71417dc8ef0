"""Unit tests for image format sniffing."""

from __future__ import annotations

import pytest

from core.asset_key import AssetKey
from core.errors import AssetDecodeError
from formats.image import ImageHandler, sniff_image_format
from store.raw_asset_store import RawAssetStore
from tests.asset_fixtures import JPEG_BYTES, PNG_BYTES


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (PNG_BYTES, "png"),
        (JPEG_BYTES, "jpeg"),
        (b"GIF89a....", "gif"),
        (b"#?RADIANCE\n", "hdr"),
        (b"plain text", None),
    ],
)
def test_sniff_image_format(data: bytes, expected: str | None) -> None:
    """Leading magic bytes should identify the container."""
    assert sniff_image_format(data) == expected


def test_deserialize_detects_format_from_bytes() -> None:
    """Decoding should trust content over a misleading extension."""
    store = RawAssetStore()
    store.insert("texture.jpg", PNG_BYTES)

    image = ImageHandler().deserialize(AssetKey("texture.jpg"), store)

    assert image.format == "png"


def test_deserialize_accepts_tga_by_extension() -> None:
    """TGA files have no magic number and are accepted by extension."""
    store = RawAssetStore()
    store.insert("decal.tga", b"\x00" * 18)

    assert ImageHandler().deserialize(AssetKey("decal.tga"), store).format == "tga"


def test_deserialize_rejects_unknown_bytes() -> None:
    """Unrecognized content should be a decode error."""
    store = RawAssetStore()
    store.insert("broken.png", b"<html>not an image</html>")

    with pytest.raises(AssetDecodeError):
        ImageHandler().deserialize(AssetKey("broken.png"), store)


def test_images_have_no_dependencies() -> None:
    """Images never reference other assets."""
    store = RawAssetStore()
    store.insert("a.png", PNG_BYTES)

    assert ImageHandler().dependencies(AssetKey("a.png"), store) == set()
