"""Runtime configuration model for Quarry.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONNECTIONS_PER_HOST,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)
from core.errors import QuarryConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class QuarryConfig:
    """Validated runtime configuration.

    Attributes:
        base_path: Directory that relative local paths are resolved against.
        base_url: Optional base URL; when set, local paths are fetched from it.
        network_enabled: Whether absolute URLs may be fetched at all.
        max_connections_per_host: Cap on in-flight requests to one host.
        connect_timeout_seconds: HTTP connect timeout.
        request_timeout_seconds: HTTP read/write/pool timeout.
        strict_key_matching: Whether ambiguous fuzzy lookups raise.
        s3_region: Optional default AWS region for S3 reads.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    base_path: Path
    base_url: str | None = None
    network_enabled: bool = True
    max_connections_per_host: int = DEFAULT_MAX_CONNECTIONS_PER_HOST
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    strict_key_matching: bool = True
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def from_env(cls) -> "QuarryConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            QuarryConfigError: If environment values are invalid.
        """
        base_path_value = os.getenv("QUARRY_BASE_PATH", os.getcwd())
        base_url = os.getenv("QUARRY_BASE_URL") or None
        return cls(
            base_path=Path(base_path_value).expanduser().resolve(),
            base_url=base_url,
            network_enabled=_parse_flag("QUARRY_NETWORK_ENABLED", "1"),
            max_connections_per_host=_parse_connection_cap(
                os.getenv(
                    "QUARRY_MAX_CONNECTIONS_PER_HOST", str(DEFAULT_MAX_CONNECTIONS_PER_HOST)
                )
            ),
            connect_timeout_seconds=_parse_timeout(
                "QUARRY_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS
            ),
            request_timeout_seconds=_parse_timeout(
                "QUARRY_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
            strict_key_matching=_parse_flag("QUARRY_STRICT_KEY_MATCHING", "1"),
            s3_region=os.getenv("QUARRY_S3_REGION"),
            s3_profile=os.getenv("QUARRY_S3_PROFILE"),
        )


def _parse_flag(name: str, default: str) -> bool:
    """Parse a boolean environment flag.

    Args:
        name: Environment variable name.
        default: Raw default used when the variable is unset.

    Returns:
        Parsed boolean value.

    Raises:
        QuarryConfigError: If value is not a recognized boolean.
    """
    raw_value = os.getenv(name, default).strip().lower()
    if raw_value in _TRUE_VALUES:
        return True
    if raw_value in _FALSE_VALUES:
        return False
    raise QuarryConfigError(
        f"Invalid {name} value: expected one of {_TRUE_VALUES + _FALSE_VALUES}, "
        f"got '{raw_value}'. Set {name} to 1 or 0."
    )


def _parse_connection_cap(raw_value: str) -> int:
    """Parse the per-host connection cap.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive integer cap.

    Raises:
        QuarryConfigError: If value is not a positive integer.
    """
    try:
        cap = int(raw_value)
    except ValueError as error:
        raise QuarryConfigError(
            "Invalid QUARRY_MAX_CONNECTIONS_PER_HOST value: "
            f"expected integer, got '{raw_value}'. "
            "Set QUARRY_MAX_CONNECTIONS_PER_HOST to a positive number."
        ) from error
    if cap < 1:
        raise QuarryConfigError(
            f"Invalid QUARRY_MAX_CONNECTIONS_PER_HOST value {cap}: must be at least 1."
        )
    return cap


def _parse_timeout(name: str, default: float) -> float:
    """Parse a timeout in seconds from the environment.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Positive timeout in seconds.

    Raises:
        QuarryConfigError: If value is not a positive number.
    """
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise QuarryConfigError(
            f"Invalid {name} value: expected seconds, got '{raw_value}'. "
            f"Set {name} to a positive number."
        ) from error
    if timeout <= 0:
        raise QuarryConfigError(f"Invalid {name} value {timeout}: must be greater than 0.")
    return timeout
