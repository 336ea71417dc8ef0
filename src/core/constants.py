"""Core constants used across Quarry modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

PACKAGE_NAME = "quarry"
PACKAGE_VERSION = "0.1.0"
USER_AGENT = f"{PACKAGE_NAME}-{PACKAGE_VERSION}"
DATA_URI_PREFIX = "data:"
URL_SCHEME_SEPARATOR = "://"
PROTOCOL_RELATIVE_PREFIX = "//"
DEFAULT_URL_SCHEME = "https"
HTTP_SCHEMES = ("http", "https")
S3_SCHEME = "s3"
DEFAULT_MAX_CONNECTIONS_PER_HOST = 8
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
HTML_SNIFF_BYTE_COUNT = 64
HTML_ERROR_MARKERS = (b"<!doctype html", b"<html")
HTML_EXTENSIONS = (".html", ".htm", ".xhtml")
JPEG_LONG_SUFFIX = ".jpeg"
JPEG_SHORT_SUFFIX = ".jpg"
DEFAULT_DATA_URI_MEDIA_TYPE = "text/plain;charset=US-ASCII"
MANIFEST_VERSION = 1
NETWORK_CAPABILITY = "network"
