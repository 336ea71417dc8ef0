"""S3 object reads for ``s3://`` asset keys.

This module encapsulates boto3 client creation and single-object reads.
Calls are blocking; the network fetcher runs them on worker threads.
"""

from __future__ import annotations

from typing import Any

from core.config import QuarryConfig
from core.errors import QuarryDependencyError
from core.s3_uri import S3Location


def create_s3_client(config: QuarryConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        QuarryDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise QuarryDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to load s3:// assets."
        ) from error
    session = boto3.session.Session(**_build_boto3_session_kwargs(config))
    return session.client("s3")


def _build_boto3_session_kwargs(config: QuarryConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config.

    Args:
        config: Runtime config.

    Returns:
        Session keyword arguments.
    """
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs


def read_s3_object(s3_client: Any, location: S3Location) -> bytes:
    """Download one object body in full.

    Args:
        s3_client: Boto3 S3 client.
        location: Bucket and object key.

    Returns:
        Object bytes.
    """
    response = s3_client.get_object(Bucket=location.bucket, Key=location.object_key)
    return response["Body"].read()
