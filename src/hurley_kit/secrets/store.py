"""
Secret stores: an ExpiringSecretCache bound to a concrete backend.

    store = SecretStore(ttl_seconds=30, bucket="hurley-secrets", region="us-east-1")
    password = store.get("db/password")

    vault = VaultSecretStore(VaultStoreConfig(app_role="profile-service"))
    creds = json.loads(vault.get("secret/data/profile-service/db"))

Both validate their parameters before anything else happens. A store that
is not handed an object getter uses the process-wide one for its backend,
so the underlying SDK client is built once no matter how many stores exist.
"""

import logging
from typing import Optional

from hurley_kit.secrets.cache import ExpiringSecretCache, ObjectGetter, validate_ttl
from hurley_kit.secrets.clock import UtcClock
from hurley_kit.secrets.s3 import S3StoreParams, shared_s3_object_getter
from hurley_kit.secrets.vault import VaultStoreConfig, shared_vault_object_getter

logger = logging.getLogger(__name__)


class SecretStore(ExpiringSecretCache[S3StoreParams]):
    """Secrets stored as S3 objects, cached for ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float,
        bucket: str,
        region: str,
        object_getter: Optional[ObjectGetter[S3StoreParams]] = None,
        clock: Optional[UtcClock] = None,
    ):
        """
        Raises:
            ConfigurationError: If ttl_seconds <= 0 or bucket/region is empty
        """
        validate_ttl(ttl_seconds)
        params = S3StoreParams(bucket=bucket, region=region)
        params.validate()

        super().__init__(
            object_getter or shared_s3_object_getter(),
            params,
            ttl_seconds,
            clock=clock,
        )
        logger.debug(
            "Created S3 secret store: bucket=%s, region=%s, ttl_seconds=%.1f",
            bucket,
            region,
            ttl_seconds,
        )


class VaultSecretStore(ExpiringSecretCache[VaultStoreConfig]):
    """Secrets read from Vault logical paths, cached for ``config.ttl_seconds``."""

    def __init__(
        self,
        config: Optional[VaultStoreConfig] = None,
        object_getter: Optional[ObjectGetter[VaultStoreConfig]] = None,
        clock: Optional[UtcClock] = None,
    ):
        """
        Raises:
            ConfigurationError: If the config is invalid
        """
        config = config or VaultStoreConfig()
        config.validate()

        super().__init__(
            object_getter or shared_vault_object_getter(),
            config,
            config.ttl_seconds,
            clock=clock,
        )
        logger.debug(
            "Created Vault secret store: app_role=%s, cluster_id=%s, ttl_seconds=%.1f",
            config.app_role,
            config.kubernetes_auth_cluster_id,
            config.ttl_seconds,
        )


__all__ = ["SecretStore", "VaultSecretStore"]
