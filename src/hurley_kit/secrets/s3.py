"""
S3-backed object getter.

One boto3 session and S3 client is built per S3ObjectGetter, on first use,
in the region of the first request. boto3 sessions load configuration from
the environment and config files each time they are created, so they are
cached rather than rebuilt per fetch.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import boto3

from hurley_kit.errors.exceptions import ConfigurationError
from hurley_kit.secrets.lazy import LazyClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class S3StoreParams:
    """Location of secrets held in S3."""

    bucket: str
    region: str

    def validate(self) -> None:
        if not self.bucket:
            raise ConfigurationError("must specify bucket")
        if not self.region:
            raise ConfigurationError("must specify region")


def create_s3_client(region: str) -> Any:
    session = boto3.session.Session(region_name=region)
    return session.client("s3")


class S3ObjectGetter:
    """Reads whole objects from S3 through one lazily built client."""

    def __init__(self, client_factory: Callable[[str], Any] | None = None):
        """
        Args:
            client_factory: Builds the S3 client for a region
                (default: boto3 session client)
        """
        self._client = LazyClient(client_factory or create_s3_client, name="s3")

    def get_object(self, params: S3StoreParams, key: str) -> bytes:
        """
        Raises:
            botocore errors verbatim (missing key, access denied, ...)
        """
        client = self._client.get(params.region)

        logger.debug(
            "Fetching secret from S3",
            extra={"resource": key, "bucket": params.bucket},
        )
        response = client.get_object(Bucket=params.bucket, Key=key)
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()


_shared_getter: LazyClient[S3ObjectGetter] = LazyClient(S3ObjectGetter, name="s3-getter")


def shared_s3_object_getter() -> S3ObjectGetter:
    """Process-wide getter used by stores that are not handed one explicitly."""
    return _shared_getter.get()


__all__ = [
    "S3ObjectGetter",
    "S3StoreParams",
    "create_s3_client",
    "shared_s3_object_getter",
]
