"""Asset identifiers and source classification rules.

This module defines the immutable key type shared by the store, the
fetchers and the format handlers. A key is one normalized string whose
source kind is derived from its textual form.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
import posixpath
from typing import Union
from urllib.parse import unquote, urljoin, urlsplit

from core.constants import (
    DATA_URI_PREFIX,
    PROTOCOL_RELATIVE_PREFIX,
    URL_SCHEME_SEPARATOR,
)
from core.errors import AssetKeyError


class SourceKind(str, Enum):
    """Where the bytes of an asset come from."""

    LOCAL_PATH = "local_path"
    ABSOLUTE_URL = "absolute_url"
    DATA_URI = "data_uri"


@dataclass(frozen=True, order=True)
class AssetKey:
    """Normalized identifier of one requested or stored asset.

    Attributes:
        value: Normalized textual form used for equality and ordering.
    """

    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", normalize_key_text(self.value))

    @property
    def kind(self) -> SourceKind:
        """Return the source kind of this key."""
        return classify_text(self.value)

    @property
    def format_hint(self) -> str:
        """Return a lowercase extension used for format dispatch.

        Local paths and URLs use the extension of their path component.
        Data URIs map their media subtype onto an extension-like hint,
        for example ``model/gltf+json`` becomes ``.gltf``.
        """
        if self.kind is SourceKind.DATA_URI:
            return _media_type_hint(self.value)
        path = urlsplit(self.value).path if self.kind is SourceKind.ABSOLUTE_URL else self.value
        return posixpath.splitext(path)[1].lower()

    def __str__(self) -> str:
        return self.value


KeyLike = Union[AssetKey, str, "os.PathLike[str]"]


def as_asset_key(key: KeyLike) -> AssetKey:
    """Coerce a key-like value into an ``AssetKey``.

    Args:
        key: Existing key, string, or path-like object.

    Returns:
        Normalized asset key.

    Raises:
        AssetKeyError: If the identifier is empty.
    """
    if isinstance(key, AssetKey):
        return key
    return AssetKey(os.fspath(key))


def classify_text(text: str) -> SourceKind:
    """Classify an identifier string by its textual form.

    Args:
        text: Raw or normalized identifier.

    Returns:
        Data URI for ``data:`` prefixes, absolute URL for ``scheme://``
        (scheme non-empty) or ``//`` prefixes, local path otherwise.
    """
    if text.startswith(DATA_URI_PREFIX):
        return SourceKind.DATA_URI
    if text.find(URL_SCHEME_SEPARATOR) > 0 or text.startswith(PROTOCOL_RELATIVE_PREFIX):
        return SourceKind.ABSOLUTE_URL
    return SourceKind.LOCAL_PATH


def normalize_key_text(text: str) -> str:
    """Normalize an identifier for store membership comparisons.

    Args:
        text: Raw identifier.

    Returns:
        Stripped text; local paths are additionally collapsed to a
        POSIX-style normal form.

    Raises:
        AssetKeyError: If the identifier is empty.
    """
    stripped = text.strip()
    if not stripped:
        raise AssetKeyError("Asset identifier is empty. Provide a path, URL, or data URI.")
    if classify_text(stripped) is not SourceKind.LOCAL_PATH:
        return stripped
    if os.sep != "/":
        stripped = stripped.replace(os.sep, "/")
    return posixpath.normpath(stripped)


def resolve_reference(parent: AssetKey, reference: str) -> AssetKey:
    """Resolve a reference found inside ``parent``'s content.

    Args:
        parent: Key of the asset whose bytes contain the reference.
        reference: Referenced URI or relative path as written in content.

    Returns:
        Key of the referenced asset. Data URIs and absolute URLs are kept
        verbatim; relative references join the parent's location.
    """
    target = reference.strip()
    if classify_text(target) is not SourceKind.LOCAL_PATH:
        return AssetKey(target)
    if parent.kind is SourceKind.ABSOLUTE_URL:
        return AssetKey(urljoin(parent.value, target))
    decoded = unquote(target)
    if parent.kind is SourceKind.DATA_URI:
        return AssetKey(decoded)
    return AssetKey(posixpath.join(posixpath.dirname(parent.value), decoded))


def _media_type_hint(data_uri: str) -> str:
    """Map a data URI media type to an extension-style format hint."""
    header = data_uri[len(DATA_URI_PREFIX):].split(",", 1)[0]
    media_type = header.split(";", 1)[0].strip().lower()
    if "/" not in media_type:
        return ""
    subtype = media_type.split("/", 1)[1]
    subtype = subtype.split("+", 1)[0]
    if subtype == "gltf-binary":
        return ".glb"
    return f".{subtype}"
