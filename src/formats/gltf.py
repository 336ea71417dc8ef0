"""glTF 2.0 scene handling (``.gltf`` JSON and ``.glb`` binary).

Dependencies are the external ``buffers[].uri`` and ``images[].uri``
entries, resolved relative to the scene key. Decoding checks that every
buffer is present and at least as long as its declared ``byteLength``.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import struct
from typing import Any, Mapping

from core.asset_key import AssetKey, resolve_reference
from core.errors import AssetDecodeError
from store.raw_asset_store import RawAssetStore

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
GLB_HEADER = struct.Struct("<4sII")
GLB_CHUNK_HEADER = struct.Struct("<II")
GLB_CHUNK_JSON = 0x4E4F534A
GLB_CHUNK_BIN = 0x004E4942
_EXTERNAL_SECTIONS = ("buffers", "images")


@dataclass(frozen=True)
class GltfAsset:
    """Decoded glTF document with its resolved binary payloads.

    Attributes:
        document: Parsed glTF JSON document.
        buffers: Buffer bytes in document order.
        images: Image bytes for URI-backed images, ``None`` for images
            stored in buffer views.
    """

    document: Mapping[str, Any]
    buffers: tuple[bytes, ...]
    images: tuple[bytes | None, ...]


def parse_container(key: AssetKey, data: bytes) -> tuple[dict[str, Any], bytes | None]:
    """Split glTF bytes into the JSON document and the optional GLB blob.

    Raises:
        AssetDecodeError: If the JSON or GLB framing is invalid.
    """
    if data[:4] == GLB_MAGIC:
        document, binary = _parse_glb(key, data)
    else:
        document, binary = _parse_json(key, data), None
    if not isinstance(document, dict):
        raise AssetDecodeError(f"glTF document in '{key.value}' must be a JSON object.")
    return document, binary


def external_uris(key: AssetKey, document: Mapping[str, Any]) -> list[str]:
    """Return the buffer and image URIs a document references."""
    uris: list[str] = []
    for section in _EXTERNAL_SECTIONS:
        for entry in _section(key, document, section):
            uri = entry.get("uri")
            if isinstance(uri, str) and uri:
                uris.append(uri)
    return uris


class GltfHandler:
    """Format handler for glTF scenes."""

    extensions = (".gltf", ".glb")

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        document, _ = parse_container(key, store.get(key))
        return {resolve_reference(key, uri) for uri in external_uris(key, document)}

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> GltfAsset:
        """Decode a scene and collect its buffers and images from ``store``.

        Raises:
            AssetDecodeError: For invalid framing, a missing GLB blob, or a
                buffer shorter than its declared length.
            NotLoadedError: If an external buffer or image is not stored.
        """
        document, binary = parse_container(key, store.get(key))
        buffers: list[bytes] = []
        for index, entry in enumerate(_section(key, document, "buffers")):
            uri = entry.get("uri")
            if isinstance(uri, str) and uri:
                data = store.get(resolve_reference(key, uri))
            elif binary is not None:
                data, binary = binary, None
            else:
                raise AssetDecodeError(
                    f"glTF buffer {index} in '{key.value}' has no URI and no GLB binary chunk."
                )
            declared_length = entry.get("byteLength", 0)
            if not isinstance(declared_length, int) or len(data) < declared_length:
                raise AssetDecodeError(
                    f"glTF buffer {index} in '{key.value}' is corrupt: declared "
                    f"{declared_length} bytes, found {len(data)}."
                )
            buffers.append(data)
        images: list[bytes | None] = []
        for entry in _section(key, document, "images"):
            uri = entry.get("uri")
            if isinstance(uri, str) and uri:
                images.append(store.get(resolve_reference(key, uri)))
            else:
                images.append(None)
        return GltfAsset(document=document, buffers=tuple(buffers), images=tuple(images))

    def serialize(self, key: AssetKey, value: GltfAsset) -> dict[AssetKey, bytes]:
        """Encode a scene and its URI-backed payloads as keyed bytes.

        ``.glb`` keys embed the first URI-less buffer as the binary chunk;
        ``.gltf`` keys write the JSON document as UTF-8.
        """
        output: dict[AssetKey, bytes] = {}
        embedded: bytes | None = None
        buffer_entries = _section(key, value.document, "buffers")
        for entry, data in zip(buffer_entries, value.buffers):
            uri = entry.get("uri")
            if isinstance(uri, str) and uri:
                output[resolve_reference(key, uri)] = data
            elif embedded is None:
                embedded = data
        image_entries = _section(key, value.document, "images")
        for entry, image in zip(image_entries, value.images):
            uri = entry.get("uri")
            if isinstance(uri, str) and uri and image is not None:
                output[resolve_reference(key, uri)] = image
        if key.format_hint == ".glb":
            output[key] = build_glb(value.document, embedded)
        else:
            output[key] = json.dumps(value.document, indent=2).encode("utf-8")
        return output


def build_glb(document: Mapping[str, Any], binary: bytes | None) -> bytes:
    """Frame a document and optional blob as GLB 2.0 bytes."""
    json_chunk = _pad(json.dumps(document, separators=(",", ":")).encode("utf-8"), b" ")
    chunks = [GLB_CHUNK_HEADER.pack(len(json_chunk), GLB_CHUNK_JSON) + json_chunk]
    if binary is not None:
        bin_chunk = _pad(binary, b"\x00")
        chunks.append(GLB_CHUNK_HEADER.pack(len(bin_chunk), GLB_CHUNK_BIN) + bin_chunk)
    body = b"".join(chunks)
    return GLB_HEADER.pack(GLB_MAGIC, GLB_VERSION, GLB_HEADER.size + len(body)) + body


def _parse_json(key: AssetKey, data: bytes) -> Any:
    """Decode UTF-8 JSON, tolerating a byte order mark.

    Args:
        key: Key of the asset being parsed, used in error messages.
        data: Raw JSON bytes.

    Returns:
        The parsed JSON value.

    Raises:
        AssetDecodeError: If the bytes are not valid UTF-8 JSON.
    """
    try:
        return json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise AssetDecodeError(f"Failed to parse glTF JSON in '{key.value}': {error}") from error


def _parse_glb(key: AssetKey, data: bytes) -> tuple[Any, bytes | None]:
    """Walk GLB chunks and return the first JSON and BIN payloads.

    Args:
        key: Key of the asset being parsed, used in error messages.
        data: Bytes starting with the GLB magic.

    Returns:
        Parsed JSON document and the binary chunk, or ``None`` without one.

    Raises:
        AssetDecodeError: If the header or chunk framing is invalid.
    """
    if len(data) < GLB_HEADER.size:
        raise AssetDecodeError(f"GLB file '{key.value}' is truncated.")
    _, version, total_length = GLB_HEADER.unpack_from(data, 0)
    if version != GLB_VERSION:
        raise AssetDecodeError(f"GLB file '{key.value}' has unsupported version {version}.")
    if total_length > len(data):
        raise AssetDecodeError(
            f"GLB file '{key.value}' is truncated: header declares {total_length} bytes, "
            f"found {len(data)}."
        )
    document: Any = None
    binary: bytes | None = None
    offset = GLB_HEADER.size
    while offset + GLB_CHUNK_HEADER.size <= total_length:
        chunk_length, chunk_type = GLB_CHUNK_HEADER.unpack_from(data, offset)
        start = offset + GLB_CHUNK_HEADER.size
        end = start + chunk_length
        if end > total_length:
            raise AssetDecodeError(f"GLB file '{key.value}' has a chunk past its end.")
        if chunk_type == GLB_CHUNK_JSON and document is None:
            document = _parse_json(key, data[start:end])
        elif chunk_type == GLB_CHUNK_BIN and binary is None:
            binary = data[start:end]
        offset = end
    if document is None:
        raise AssetDecodeError(f"GLB file '{key.value}' has no JSON chunk.")
    return document, binary


def _section(key: AssetKey, document: Mapping[str, Any], name: str) -> list[Mapping[str, Any]]:
    """Return a top-level array of objects, empty when absent.

    Raises:
        AssetDecodeError: If the entry is not a list of objects.
    """
    entries = document.get(name, [])
    if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
        raise AssetDecodeError(f"glTF '{name}' in '{key.value}' must be a list of objects.")
    return entries


def _pad(data: bytes, filler: bytes) -> bytes:
    """Pad ``data`` with ``filler`` to a four-byte boundary."""
    return data + filler * (-len(data) % 4)
