"""Network fetcher for absolute URLs.

HTTP(S) URLs are downloaded with an ``httpx.AsyncClient`` and ``s3://``
URLs with boto3 on worker threads. Every request holds a slot of the
fetcher's ``HostThrottle`` from before it is issued until its body has been
read in full. Requests to different hosts never wait on each other.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Collection
from urllib.parse import urlsplit

import httpx

from core.asset_key import AssetKey
from core.config import QuarryConfig
from core.constants import (
    DEFAULT_URL_SCHEME,
    HTML_ERROR_MARKERS,
    HTML_EXTENSIONS,
    HTML_SNIFF_BYTE_COUNT,
    HTTP_SCHEMES,
    NETWORK_CAPABILITY,
    PROTOCOL_RELATIVE_PREFIX,
    S3_SCHEME,
    USER_AGENT,
)
from core.errors import CapabilityMissingError, FetchFailedError, UrlParseError
from core.logging_config import get_logger
from core.s3_uri import parse_s3_uri
from fetch.fetcher_base import gather_fragment
from fetch.host_throttle import HostThrottle
from fetch.s3_objects import create_s3_client, read_s3_object
from store.raw_asset_store import RawAssetStore

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class UrlRequest:
    """Validated request for one URL key.

    Attributes:
        key: Key the fetched bytes are stored under.
        url: Absolute URL to request.
        scheme: Lowercase URL scheme.
        host: Throttling host; the bucket name for S3 URLs.
    """

    key: AssetKey
    url: str
    scheme: str
    host: str


def build_url_request(key: AssetKey, default_scheme: str = DEFAULT_URL_SCHEME) -> UrlRequest:
    """Validate a URL key and derive its throttling host.

    Args:
        key: Absolute URL key.
        default_scheme: Scheme used for protocol-relative ``//host`` keys.

    Returns:
        Request description.

    Raises:
        UrlParseError: If the URL is malformed, has no host, or uses an
            unsupported scheme.
    """
    url = key.value
    if url.startswith(PROTOCOL_RELATIVE_PREFIX):
        url = f"{default_scheme}:{url}"
    try:
        parts = urlsplit(url)
        host = parts.hostname
        parts.port
        httpx.URL(url)
    except (ValueError, httpx.InvalidURL) as error:
        raise UrlParseError(key.value, str(error)) from error
    scheme = parts.scheme.lower()
    if scheme == S3_SCHEME:
        location = parse_s3_uri(url)
        return UrlRequest(key=key, url=url, scheme=scheme, host=location.bucket)
    if scheme not in HTTP_SCHEMES:
        raise UrlParseError(key.value, f"unsupported scheme '{scheme}'")
    if not host:
        raise UrlParseError(key.value, "missing host")
    return UrlRequest(key=key, url=url, scheme=scheme, host=host)


def looks_like_html_page(key: AssetKey, body: bytes) -> bool:
    """Return whether a body is an HTML page where asset bytes were expected.

    Some hosts answer missing files with status 200 and an HTML error page.
    Keys that name an HTML document are never flagged.
    """
    if key.format_hint in HTML_EXTENSIONS:
        return False
    head = body[:HTML_SNIFF_BYTE_COUNT].lstrip().lower()
    return any(head.startswith(marker) for marker in HTML_ERROR_MARKERS)


class NetworkFetcher:
    """Host-throttled fetcher for HTTP(S) and S3 URLs."""

    def __init__(
        self,
        config: QuarryConfig,
        throttle: HostThrottle | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        s3_client: Any | None = None,
    ) -> None:
        """Create a network fetcher.

        Args:
            config: Runtime config with timeouts, connection cap and S3 session.
            throttle: Optional shared throttle; a private one is created
                from ``config.max_connections_per_host`` when omitted.
            transport: Optional httpx transport, mainly for tests.
            s3_client: Optional preconfigured boto3 S3 client.
        """
        self._config = config
        self._throttle = throttle or HostThrottle(config.max_connections_per_host)
        self._transport = transport
        self._s3_client = s3_client

    @property
    def throttle(self) -> HostThrottle:
        """Return the throttle shared by this fetcher's requests."""
        return self._throttle

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Download every URL key.

        Args:
            keys: Absolute URL keys.

        Returns:
            Fragment with one entry per key.

        Raises:
            UrlParseError: If any URL is invalid; raised before any request.
            FetchFailedError: For the first failed request in sorted key
                order, after all requests have finished.
        """
        if not keys:
            return RawAssetStore()
        requests = [build_url_request(key) for key in sorted(keys)]
        if self._s3_client is None and any(req.scheme == S3_SCHEME for req in requests):
            self._s3_client = create_s3_client(self._config)
        async with self._build_client() as client:
            return await gather_fragment(self._fetch_one(client, req) for req in requests)

    def _build_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(
            self._config.request_timeout_seconds,
            connect=self._config.connect_timeout_seconds,
        )
        return httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch_one(
        self,
        client: httpx.AsyncClient,
        request: UrlRequest,
    ) -> tuple[AssetKey, bytes]:
        async with self._throttle.slot(request.host):
            if request.scheme == S3_SCHEME:
                body = await self._read_s3(request)
            else:
                body = await self._read_http(client, request)
        if looks_like_html_page(request.key, body):
            _LOGGER.warning("network_fetch_html_page", url=request.url)
            raise FetchFailedError(
                request.key.value,
                "server returned an HTML page instead of asset bytes",
            )
        return request.key, body

    async def _read_http(self, client: httpx.AsyncClient, request: UrlRequest) -> bytes:
        try:
            response = await client.get(request.url)
            response.raise_for_status()
        except httpx.HTTPError as error:
            _LOGGER.warning("network_fetch_failed", url=request.url, error=str(error))
            raise FetchFailedError(request.key.value, error) from error
        return response.content

    async def _read_s3(self, request: UrlRequest) -> bytes:
        location = parse_s3_uri(request.url)
        try:
            return await asyncio.to_thread(read_s3_object, self._s3_client, location)
        except Exception as error:
            _LOGGER.warning("network_fetch_failed", url=request.url, error=str(error))
            raise FetchFailedError(request.key.value, error) from error


class DisabledNetworkFetcher:
    """Fetcher used when the runtime has no network capability."""

    async def fetch(self, keys: Collection[AssetKey]) -> RawAssetStore:
        """Return an empty fragment, or fail if any URL was requested.

        Raises:
            CapabilityMissingError: If ``keys`` is non-empty.
        """
        if keys:
            raise CapabilityMissingError(NETWORK_CAPABILITY)
        return RawAssetStore()
