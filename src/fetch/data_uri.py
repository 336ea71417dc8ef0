"""Inline data URI decoding.

This module decodes ``data:[<media type>][;base64],<payload>`` identifiers.
Payloads are percent-decoded; base64 payloads tolerate whitespace and
missing padding. No I/O happens here.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Collection
from urllib.parse import unquote_to_bytes

from core.asset_key import AssetKey
from core.constants import DATA_URI_PREFIX, DEFAULT_DATA_URI_MEDIA_TYPE
from core.errors import DataUriParseError
from store.raw_asset_store import RawAssetStore

_BASE64_MARKER = ";base64"
_ASCII_WHITESPACE = b" \t\n\r\f"


@dataclass(frozen=True)
class DecodedDataUri:
    """Decoded data URI payload."""

    media_type: str
    data: bytes


def decode_data_uri(uri: str) -> DecodedDataUri:
    """Decode one data URI.

    Args:
        uri: Full ``data:`` identifier.

    Returns:
        Media type and decoded bytes.

    Raises:
        DataUriParseError: If the URI is malformed or its payload is not
            valid base64.
    """
    if not uri.startswith(DATA_URI_PREFIX):
        raise DataUriParseError(uri, "missing 'data:' prefix")
    header, separator, payload = uri[len(DATA_URI_PREFIX):].partition(",")
    if not separator:
        raise DataUriParseError(uri, "missing ',' between header and payload")
    is_base64 = header.lower().endswith(_BASE64_MARKER)
    if is_base64:
        header = header[: -len(_BASE64_MARKER)]
    media_type = header.strip() or DEFAULT_DATA_URI_MEDIA_TYPE
    raw_payload = unquote_to_bytes(payload)
    if not is_base64:
        return DecodedDataUri(media_type=media_type, data=raw_payload)
    return DecodedDataUri(media_type=media_type, data=_decode_base64(uri, raw_payload))


def _decode_base64(uri: str, payload: bytes) -> bytes:
    """Decode a base64 payload, ignoring whitespace and missing padding.

    Args:
        uri: Full data URI, used in error messages.
        payload: Raw payload bytes after the comma.

    Returns:
        Decoded bytes.

    Raises:
        DataUriParseError: If the payload is not valid base64.
    """
    compact = bytes(byte for byte in payload if byte not in _ASCII_WHITESPACE)
    unpadded = compact.rstrip(b"=")
    remainder = len(unpadded) % 4
    if remainder == 1:
        raise DataUriParseError(uri, "base64 payload has an impossible length")
    padded = unpadded + b"=" * ((4 - remainder) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error as error:
        raise DataUriParseError(uri, f"invalid base64 payload ({error})") from error


class DataUriFetcher:
    """Fetcher that decodes data URIs in place."""

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Decode every data URI key.

        Raises:
            DataUriParseError: For the first malformed key in sorted order.
        """
        fragment = RawAssetStore()
        for key in sorted(keys):
            fragment.insert(key, decode_data_uri(key.value).data)
        return fragment
