"""Unit tests for per-host request throttling."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from core.asset_key import AssetKey
from core.errors import QuarryConfigError
from fetch.host_throttle import HostThrottle
from fetch.network_fetcher import NetworkFetcher
from tests.asset_fixtures import make_config


async def _slow_response(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(0.01)
    return httpx.Response(200, content=request.url.path.encode("utf-8"))


def test_throttle_rejects_zero_cap() -> None:
    """A cap below one can never admit a request."""
    with pytest.raises(QuarryConfigError):
        HostThrottle(0)


def test_slot_tracks_in_flight_count() -> None:
    """Holding a slot should count as one in-flight request."""
    throttle = HostThrottle(2)

    async def hold_slot() -> int:
        async with throttle.slot("cdn.example.com"):
            return throttle.in_flight("cdn.example.com")

    assert asyncio.run(hold_slot()) == 1
    assert throttle.in_flight("cdn.example.com") == 0


def test_fetch_never_exceeds_per_host_cap(tmp_path: Path) -> None:
    """Ten URLs on one host should never run more than eight at once."""
    throttle = HostThrottle(8)
    fetcher = NetworkFetcher(
        make_config(tmp_path),
        throttle=throttle,
        transport=httpx.MockTransport(_slow_response),
    )
    keys = {AssetKey(f"https://cdn.example.com/{index}.bin") for index in range(10)}

    fragment = asyncio.run(fetcher.fetch(keys))

    assert len(fragment) == 10
    assert 1 <= throttle.peak_in_flight("cdn.example.com") <= 8


def test_fetch_saturates_small_cap(tmp_path: Path) -> None:
    """With slow responses the cap itself should be reached."""
    throttle = HostThrottle(2)
    fetcher = NetworkFetcher(
        make_config(tmp_path),
        throttle=throttle,
        transport=httpx.MockTransport(_slow_response),
    )
    keys = {AssetKey(f"https://cdn.example.com/{index}.bin") for index in range(6)}

    asyncio.run(fetcher.fetch(keys))

    assert throttle.peak_in_flight("cdn.example.com") == 2


def test_hosts_are_throttled_independently(tmp_path: Path) -> None:
    """Requests to different hosts should not share slots."""
    throttle = HostThrottle(1)
    fetcher = NetworkFetcher(
        make_config(tmp_path),
        throttle=throttle,
        transport=httpx.MockTransport(_slow_response),
    )
    keys = {AssetKey("https://one.example.com/a.bin"), AssetKey("https://two.example.com/a.bin")}

    asyncio.run(fetcher.fetch(keys))

    assert (throttle.peak_in_flight("one.example.com"), throttle.peak_in_flight("two.example.com")) == (
        1,
        1,
    )


def test_throttle_is_reusable_across_event_loops(tmp_path: Path) -> None:
    """A shared throttle should keep working across separate asyncio.run calls."""
    throttle = HostThrottle(3)
    fetcher = NetworkFetcher(
        make_config(tmp_path),
        throttle=throttle,
        transport=httpx.MockTransport(_slow_response),
    )
    keys = {AssetKey(f"https://cdn.example.com/{index}.bin") for index in range(4)}

    asyncio.run(fetcher.fetch(keys))
    fragment = asyncio.run(fetcher.fetch(keys))

    assert len(fragment) == 4


def test_slot_rejects_second_live_event_loop() -> None:
    """A loop on another thread should not reset slots still held elsewhere."""
    throttle = HostThrottle(2)
    errors: list[QuarryConfigError] = []

    async def take_slot() -> None:
        async with throttle.slot("cdn.example.com"):
            pass

    def use_from_other_loop() -> None:
        try:
            asyncio.run(take_slot())
        except QuarryConfigError as error:
            errors.append(error)

    async def hold_slot() -> None:
        async with throttle.slot("cdn.example.com"):
            await asyncio.to_thread(use_from_other_loop)

    asyncio.run(hold_slot())

    assert (len(errors), throttle.in_flight("cdn.example.com")) == (1, 0)
