"""Unit tests for HTTP and S3 network fetching."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import httpx
import pytest

from core.asset_key import AssetKey
from core.errors import CapabilityMissingError, FetchFailedError, UrlParseError
from fetch.network_fetcher import (
    DisabledNetworkFetcher,
    NetworkFetcher,
    build_url_request,
    looks_like_html_page,
)
from tests.asset_fixtures import make_config, recording_transport, static_transport


class FakeS3Client:
    """Minimal boto3-like client serving objects from a dict."""

    def __init__(self, objects: dict[tuple[str, str], bytes]) -> None:
        self.objects = objects
        self.calls: list[tuple[str, str]] = []

    def get_object(self, Bucket: str, Key: str) -> dict[str, object]:
        self.calls.append((Bucket, Key))
        if (Bucket, Key) not in self.objects:
            raise KeyError(f"NoSuchKey: {Key}")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


def test_build_url_request_uses_bucket_as_s3_host() -> None:
    """S3 requests should throttle per bucket."""
    request = build_url_request(AssetKey("s3://scene-assets/car.glb"))

    assert (request.scheme, request.host) == ("s3", "scene-assets")


def test_build_url_request_completes_protocol_relative_url() -> None:
    """Protocol-relative URLs should default to https."""
    request = build_url_request(AssetKey("//cdn.example.com/a.bin"))

    assert request.url == "https://cdn.example.com/a.bin"


def test_build_url_request_rejects_unsupported_scheme() -> None:
    """Schemes other than http, https and s3 should be rejected."""
    with pytest.raises(UrlParseError):
        build_url_request(AssetKey("ftp://files.example.com/a.bin"))


def test_build_url_request_rejects_missing_host() -> None:
    """HTTP URLs need a host."""
    with pytest.raises(UrlParseError):
        build_url_request(AssetKey("https:///a.bin"))


def test_looks_like_html_page_flags_error_pages() -> None:
    """HTML bodies for non-HTML keys should be treated as failures."""
    body = b"\n  <!DOCTYPE html><html><body>Not Found</body></html>"

    assert looks_like_html_page(AssetKey("https://h.test/a.png"), body)
    assert not looks_like_html_page(AssetKey("https://h.test/index.html"), body)
    assert not looks_like_html_page(AssetKey("https://h.test/a.png"), b"\x89PNG")


def test_fetch_downloads_every_url(tmp_path: Path) -> None:
    """Each URL should be stored under its own key."""
    transport = static_transport(
        {
            "https://cdn.example.com/a.bin": b"a",
            "https://cdn.example.com/b.bin": b"b",
        }
    )
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)
    keys = {AssetKey("https://cdn.example.com/a.bin"), AssetKey("https://cdn.example.com/b.bin")}

    fragment = asyncio.run(fetcher.fetch(keys))

    assert fragment.get("https://cdn.example.com/b.bin") == b"b"


def test_fetch_keeps_protocol_relative_key(tmp_path: Path) -> None:
    """Bytes fetched for //host keys should be stored under the original key."""
    transport = static_transport({"https://cdn.example.com/a.bin": b"a"})
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)

    fragment = asyncio.run(fetcher.fetch({AssetKey("//cdn.example.com/a.bin")}))

    assert AssetKey("//cdn.example.com/a.bin") in fragment


def test_fetch_fails_on_http_error_status(tmp_path: Path) -> None:
    """A 404 response should fail the fetch."""
    fetcher = NetworkFetcher(make_config(tmp_path), transport=static_transport({}))

    with pytest.raises(FetchFailedError):
        asyncio.run(fetcher.fetch({AssetKey("https://cdn.example.com/missing.bin")}))


def test_fetch_fails_on_html_body(tmp_path: Path) -> None:
    """A 200 HTML page for an asset URL should fail the fetch."""
    transport = static_transport({"https://cdn.example.com/a.png": b"<html>oops</html>"})
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)

    with pytest.raises(FetchFailedError):
        asyncio.run(fetcher.fetch({AssetKey("https://cdn.example.com/a.png")}))


def test_fetch_drains_all_requests_before_failing(tmp_path: Path) -> None:
    """Every request should run even when one of them fails."""
    transport, seen = recording_transport(
        lambda request: httpx.Response(500 if request.url.path == "/a.bin" else 200, content=b"x")
    )
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)
    keys = {AssetKey(f"https://cdn.example.com/{name}.bin") for name in ("a", "b", "c")}

    with pytest.raises(FetchFailedError) as error:
        asyncio.run(fetcher.fetch(keys))

    assert (error.value.key, len(seen)) == ("https://cdn.example.com/a.bin", 3)


def test_fetch_rejects_invalid_url_before_requesting(tmp_path: Path) -> None:
    """URL validation should fail the batch before any request is sent."""
    transport, seen = recording_transport(lambda request: httpx.Response(200, content=b"x"))
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)
    keys = {AssetKey("https://cdn.example.com/a.bin"), AssetKey("gopher://old.example.com/b")}

    with pytest.raises(UrlParseError):
        asyncio.run(fetcher.fetch(keys))

    assert seen == []


def test_fetch_reads_s3_objects(tmp_path: Path) -> None:
    """s3:// keys should be read through the boto3 client."""
    client = FakeS3Client({("scene-assets", "models/car.glb"): b"glb"})
    fetcher = NetworkFetcher(make_config(tmp_path), s3_client=client)

    fragment = asyncio.run(fetcher.fetch({AssetKey("s3://scene-assets/models/car.glb")}))

    assert (fragment.get("s3://scene-assets/models/car.glb"), client.calls) == (
        b"glb",
        [("scene-assets", "models/car.glb")],
    )


def test_fetch_wraps_s3_errors(tmp_path: Path) -> None:
    """Client errors for s3:// keys should surface as fetch failures."""
    fetcher = NetworkFetcher(make_config(tmp_path), s3_client=FakeS3Client({}))

    with pytest.raises(FetchFailedError):
        asyncio.run(fetcher.fetch({AssetKey("s3://scene-assets/missing.bin")}))


def test_disabled_fetcher_rejects_urls() -> None:
    """Runtimes without network should fail for any URL."""
    with pytest.raises(CapabilityMissingError) as error:
        asyncio.run(DisabledNetworkFetcher().fetch({AssetKey("https://cdn.example.com/a.bin")}))

    assert error.value.feature == "network"


def test_disabled_fetcher_accepts_empty_batch() -> None:
    """An empty batch should not require the network."""
    fragment = asyncio.run(DisabledNetworkFetcher().fetch(frozenset()))

    assert len(fragment) == 0


@pytest.mark.parametrize(
    "url",
    ["http://example.com:abc/a.bin", "http://example.com:99999/a.bin"],
)
def test_fetch_rejects_malformed_port(tmp_path: Path, url: str) -> None:
    """Invalid ports should fail URL validation before any request."""
    transport, seen = recording_transport(lambda request: httpx.Response(200, content=b"x"))
    fetcher = NetworkFetcher(make_config(tmp_path), transport=transport)

    with pytest.raises(UrlParseError):
        asyncio.run(fetcher.fetch({AssetKey(url)}))

    assert seen == []


def test_build_url_request_accepts_uppercase_s3_scheme() -> None:
    """The S3 scheme should match regardless of case."""
    request = build_url_request(AssetKey("S3://scene-assets/car.glb"))

    assert request.host == "scene-assets"
