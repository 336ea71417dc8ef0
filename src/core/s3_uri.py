"""S3 URI parsing helpers.

This module centralizes ``s3://bucket/key`` parsing for the network
fetcher so object reads and throttling agree on the bucket name.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import S3_SCHEME, URL_SCHEME_SEPARATOR
from core.errors import UrlParseError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 object location."""

    bucket: str
    object_key: str


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and object key pair.

    Raises:
        UrlParseError: If the scheme is not s3 or bucket or key is missing.
    """
    prefix = S3_SCHEME + URL_SCHEME_SEPARATOR
    if not uri.lower().startswith(prefix):
        raise UrlParseError(uri, "expected an s3:// URI")
    stripped_uri = uri[len(prefix):]
    if "/" not in stripped_uri:
        raise UrlParseError(uri, "expected s3://bucket/key with both bucket and key")
    bucket, object_key = stripped_uri.split("/", 1)
    if not bucket or not object_key:
        raise UrlParseError(uri, "expected s3://bucket/key with both bucket and key")
    return S3Location(bucket=bucket, object_key=object_key)
