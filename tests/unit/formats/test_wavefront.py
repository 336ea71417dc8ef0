"""Unit tests for Wavefront OBJ and MTL handling."""

from __future__ import annotations

import pytest

from core.asset_key import AssetKey
from core.errors import AssetDecodeError, NotLoadedError
from formats.wavefront import MtlHandler, ObjHandler
from store.raw_asset_store import RawAssetStore

OBJ_TEXT = """# triangle
mtllib car.mtl
v 0 0 0
v 1 0 0
v 0 1 0
usemtl paint
f 1/1/1 2/2/2 3/3/3
f -3 -2 -1
"""

MTL_TEXT = """newmtl paint
Kd 1 0 0
map_Kd -bm 0.5 textures/paint.png
bump normal.png
"""


def _store(entries: dict[str, bytes]) -> RawAssetStore:
    store = RawAssetStore()
    for key, data in entries.items():
        store.insert(key, data)
    return store


def test_obj_dependencies_are_material_libraries() -> None:
    """OBJ files should depend on their mtllib entries."""
    key = AssetKey("models/car.obj")
    store = _store({key.value: OBJ_TEXT.encode("utf-8")})

    assert ObjHandler().dependencies(key, store) == {AssetKey("models/car.mtl")}


def test_mtl_dependencies_are_texture_maps() -> None:
    """MTL files should depend on every texture map, ignoring map options."""
    key = AssetKey("models/car.mtl")
    store = _store({key.value: MTL_TEXT.encode("utf-8")})

    assert MtlHandler().dependencies(key, store) == {
        AssetKey("models/textures/paint.png"),
        AssetKey("models/normal.png"),
    }


def test_obj_deserialize_parses_geometry_and_libraries() -> None:
    """Decoding should read positions, faces and material libraries."""
    key = AssetKey("models/car.obj")
    store = _store(
        {
            key.value: OBJ_TEXT.encode("utf-8"),
            "models/car.mtl": MTL_TEXT.encode("utf-8"),
        }
    )

    mesh = ObjHandler().deserialize(key, store)

    assert len(mesh.positions) == 3
    assert mesh.faces == ((0, 1, 2), (0, 1, 2))
    library = mesh.material_libraries[AssetKey("models/car.mtl")]
    assert library.materials["paint"]["map_kd"] == AssetKey("models/textures/paint.png")


def test_obj_deserialize_requires_material_library() -> None:
    """A missing material library should raise NotLoadedError."""
    key = AssetKey("models/car.obj")
    store = _store({key.value: OBJ_TEXT.encode("utf-8")})

    with pytest.raises(NotLoadedError):
        ObjHandler().deserialize(key, store)


def test_obj_deserialize_rejects_out_of_range_face() -> None:
    """Face indices beyond the vertex list should fail."""
    key = AssetKey("bad.obj")
    store = _store({key.value: b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 9\n"})

    with pytest.raises(AssetDecodeError):
        ObjHandler().deserialize(key, store)


def test_obj_deserialize_rejects_non_utf8() -> None:
    """Binary garbage should be a decode error."""
    key = AssetKey("bad.obj")
    store = _store({key.value: b"\xff\xfe\x00v"})

    with pytest.raises(AssetDecodeError):
        ObjHandler().deserialize(key, store)


def test_mtl_rejects_map_before_material() -> None:
    """Texture maps must belong to a declared material."""
    key = AssetKey("bad.mtl")
    store = _store({key.value: b"map_Kd wood.png\n"})

    with pytest.raises(AssetDecodeError):
        MtlHandler().deserialize(key, store)


def test_obj_serialize_writes_mesh_and_libraries() -> None:
    """Serializing should emit the mesh and its library sources."""
    key = AssetKey("models/car.obj")
    store = _store(
        {
            key.value: OBJ_TEXT.encode("utf-8"),
            "models/car.mtl": MTL_TEXT.encode("utf-8"),
        }
    )
    mesh = ObjHandler().deserialize(key, store)

    output = ObjHandler().serialize(key, mesh)

    assert set(output) == {key, AssetKey("models/car.mtl")}
