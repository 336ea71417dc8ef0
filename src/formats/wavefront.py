"""Wavefront OBJ meshes and MTL material libraries.

An OBJ file depends on the libraries named by ``mtllib``; an MTL file
depends on the texture maps its materials name. Both are resolved relative
to the referencing file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Mapping

from core.asset_key import AssetKey, resolve_reference
from core.errors import AssetDecodeError
from store.raw_asset_store import RawAssetStore

MTL_MAP_DIRECTIVES = (
    "map_ka",
    "map_kd",
    "map_ks",
    "map_ns",
    "map_d",
    "map_bump",
    "bump",
    "disp",
    "decal",
)


@dataclass(frozen=True)
class MtlAsset:
    """Decoded material library.

    Attributes:
        materials: Texture map keys per material, indexed by lowercase
            directive name (for example ``map_kd``).
        source_text: Original library text.
    """

    materials: Mapping[str, Mapping[str, AssetKey]]
    source_text: str


@dataclass(frozen=True)
class ObjAsset:
    """Decoded OBJ mesh.

    Attributes:
        positions: Vertex positions in file order.
        faces: Zero-based position indices per face.
        material_libraries: Libraries named by ``mtllib``, keyed by store key.
        source_text: Original mesh text.
    """

    positions: tuple[tuple[float, float, float], ...]
    faces: tuple[tuple[int, ...], ...]
    material_libraries: Mapping[AssetKey, MtlAsset] = field(default_factory=dict)
    source_text: str = ""


class ObjHandler:
    """Format handler for ``.obj`` meshes."""

    extensions = (".obj",)

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        text = _decode_text(key, store.get(key))
        return set(_material_library_keys(key, text))

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> ObjAsset:
        """Parse positions and faces and load the referenced libraries.

        Raises:
            AssetDecodeError: If the text or a vertex/face record is invalid.
            NotLoadedError: If a material library is not stored.
        """
        text = _decode_text(key, store.get(key))
        positions: list[tuple[float, float, float]] = []
        faces: list[tuple[int, ...]] = []
        for line_number, directive, arguments in _records(text):
            if directive == "v":
                positions.append(_parse_position(key, line_number, arguments))
            elif directive == "f":
                faces.append(_parse_face(key, line_number, arguments, len(positions)))
        libraries: dict[AssetKey, MtlAsset] = {}
        for library_key in _material_library_keys(key, text):
            libraries[library_key] = MtlHandler().deserialize(library_key, store)
        return ObjAsset(
            positions=tuple(positions),
            faces=tuple(faces),
            material_libraries=libraries,
            source_text=text,
        )

    def serialize(self, key: AssetKey, value: ObjAsset) -> dict[AssetKey, bytes]:
        output = {key: value.source_text.encode("utf-8")}
        for library_key, library in value.material_libraries.items():
            output[library_key] = library.source_text.encode("utf-8")
        return output


class MtlHandler:
    """Format handler for ``.mtl`` material libraries."""

    extensions = (".mtl",)

    def dependencies(self, key: AssetKey, store: RawAssetStore) -> set[AssetKey]:
        library = self.deserialize(key, store)
        return {texture for maps in library.materials.values() for texture in maps.values()}

    def deserialize(self, key: AssetKey, store: RawAssetStore) -> MtlAsset:
        """Collect texture map references per material.

        Raises:
            AssetDecodeError: If the text is not UTF-8 or a map has no file.
        """
        text = _decode_text(key, store.get(key))
        materials: dict[str, dict[str, AssetKey]] = {}
        current: dict[str, AssetKey] | None = None
        for line_number, directive, arguments in _records(text):
            if directive == "newmtl":
                current = materials.setdefault(" ".join(arguments), {})
            elif directive in MTL_MAP_DIRECTIVES:
                if current is None:
                    raise AssetDecodeError(
                        f"'{key.value}' line {line_number}: '{directive}' before any newmtl."
                    )
                if not arguments:
                    raise AssetDecodeError(
                        f"'{key.value}' line {line_number}: '{directive}' names no texture file."
                    )
                # Map options such as "-bm 0.5" precede the file name.
                current[directive] = resolve_reference(key, arguments[-1])
        return MtlAsset(materials=materials, source_text=text)

    def serialize(self, key: AssetKey, value: MtlAsset) -> dict[AssetKey, bytes]:
        return {key: value.source_text.encode("utf-8")}


def _decode_text(key: AssetKey, data: bytes) -> str:
    """Decode UTF-8 text or raise AssetDecodeError."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as error:
        raise AssetDecodeError(f"'{key.value}' is not UTF-8 text: {error}") from error


def _records(text: str) -> Iterator[tuple[int, str, list[str]]]:
    """Yield ``(line_number, directive, arguments)`` for non-comment lines.

    Directives are lowercased and comments after ``#`` are dropped.
    """
    for line_number, line in enumerate(text.splitlines(), 1):
        content = line.split("#", 1)[0].strip()
        if not content:
            continue
        directive, *arguments = content.split()
        yield line_number, directive.lower(), arguments


def _material_library_keys(key: AssetKey, text: str) -> list[AssetKey]:
    """Return ``mtllib`` references resolved relative to ``key``."""
    library_keys: list[AssetKey] = []
    for _, directive, arguments in _records(text):
        if directive == "mtllib":
            library_keys.extend(resolve_reference(key, name) for name in arguments)
    return library_keys


def _parse_position(
    key: AssetKey,
    line_number: int,
    arguments: list[str],
) -> tuple[float, float, float]:
    """Parse the first three numbers of a ``v`` record.

    Raises:
        AssetDecodeError: If fewer than three numbers are given.
    """
    try:
        x, y, z = (float(value) for value in arguments[:3])
    except ValueError as error:
        raise AssetDecodeError(
            f"'{key.value}' line {line_number}: vertex needs three numbers."
        ) from error
    return x, y, z


def _parse_face(
    key: AssetKey,
    line_number: int,
    arguments: list[str],
    position_count: int,
) -> tuple[int, ...]:
    """Parse an ``f`` record into zero-based position indices.

    Args:
        key: Key of the OBJ file, used in error messages.
        line_number: One-based source line.
        arguments: Vertex references such as ``3``, ``3/1`` or ``-1//2``.
        position_count: Number of positions defined so far.

    Returns:
        Zero-based indices; negative references count back from the last position.

    Raises:
        AssetDecodeError: If the face has fewer than three vertices or a bad index.
    """
    if len(arguments) < 3:
        raise AssetDecodeError(f"'{key.value}' line {line_number}: face needs three vertices.")
    indices: list[int] = []
    for argument in arguments:
        try:
            index = int(argument.split("/", 1)[0])
        except ValueError as error:
            raise AssetDecodeError(
                f"'{key.value}' line {line_number}: invalid face index '{argument}'."
            ) from error
        resolved = index - 1 if index > 0 else position_count + index
        if not 0 <= resolved < position_count:
            raise AssetDecodeError(
                f"'{key.value}' line {line_number}: face index {index} is out of range."
            )
        indices.append(resolved)
    return tuple(indices)
