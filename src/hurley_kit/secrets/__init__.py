"""
Secret fetching with in-memory expiry.

Components:
    - ExpiringSecretCache: TTL cache over any ObjectGetter
    - SecretStore / VaultSecretStore: caches bound to S3 and Vault
    - S3ObjectGetter / VaultObjectGetter: remote fetch, one SDK client each
    - LazyClient: once-only, thread-safe construction of shared clients
    - UtcClock / SystemClock: injectable time source
"""

from hurley_kit.secrets.cache import (
    CacheEntry,
    ExpiringSecretCache,
    ObjectGetter,
    validate_ttl,
)
from hurley_kit.secrets.clock import SystemClock, UtcClock
from hurley_kit.secrets.lazy import LazyClient
from hurley_kit.secrets.s3 import (
    S3ObjectGetter,
    S3StoreParams,
    create_s3_client,
    shared_s3_object_getter,
)
from hurley_kit.secrets.store import SecretStore, VaultSecretStore
from hurley_kit.secrets.vault import (
    KUBERNETES_JWT_PATH,
    VAULT_ADDR_ENV,
    VAULT_TOKEN_ENV,
    VaultObjectGetter,
    VaultStoreConfig,
    build_vault_client,
    create_retrying_session,
    exchange_jwt_for_token,
    read_jwt,
    shared_vault_object_getter,
)

__all__ = [
    # Cache
    "CacheEntry",
    "ExpiringSecretCache",
    "ObjectGetter",
    "validate_ttl",
    # Time
    "SystemClock",
    "UtcClock",
    # Shared clients
    "LazyClient",
    # Stores
    "SecretStore",
    "VaultSecretStore",
    # S3
    "S3ObjectGetter",
    "S3StoreParams",
    "create_s3_client",
    "shared_s3_object_getter",
    # Vault
    "KUBERNETES_JWT_PATH",
    "VAULT_ADDR_ENV",
    "VAULT_TOKEN_ENV",
    "VaultObjectGetter",
    "VaultStoreConfig",
    "build_vault_client",
    "create_retrying_session",
    "exchange_jwt_for_token",
    "read_jwt",
    "shared_vault_object_getter",
]
