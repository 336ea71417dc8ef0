"""Construction-time selection of the fetchers for each source kind."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from core.config import QuarryConfig
from fetch.base_url_fetcher import BaseUrlFetcher
from fetch.data_uri import DataUriFetcher
from fetch.disk_fetcher import DiskFetcher
from fetch.fetcher_base import Fetcher
from fetch.host_throttle import HostThrottle
from fetch.network_fetcher import DisabledNetworkFetcher, NetworkFetcher


@dataclass(frozen=True)
class FetcherSet:
    """One fetcher per source kind used by every fetch round.

    Attributes:
        local: Fetcher for local-path keys.
        network: Fetcher for absolute URL keys.
        data_uri: Fetcher for inline data URI keys.
    """

    local: Fetcher
    network: Fetcher
    data_uri: Fetcher


def build_fetchers(
    config: QuarryConfig,
    throttle: HostThrottle | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    s3_client: Any | None = None,
) -> FetcherSet:
    """Select fetchers for the runtime described by ``config``.

    Args:
        config: Runtime configuration.
        throttle: Optional host throttle shared with other pipelines.
        transport: Optional httpx transport for the network fetcher.
        s3_client: Optional boto3 S3 client for ``s3://`` keys.

    Returns:
        Disk or base-URL local fetcher, enabled or disabled network fetcher,
        and the data URI decoder.
    """
    network: Fetcher
    if config.network_enabled:
        network = NetworkFetcher(config, throttle, transport=transport, s3_client=s3_client)
    else:
        network = DisabledNetworkFetcher()
    local: Fetcher
    if config.base_url:
        local = BaseUrlFetcher(network, config.base_url)
    else:
        local = DiskFetcher(config.base_path)
    return FetcherSet(local=local, network=network, data_uri=DataUriFetcher())
