"""
HashiCorp Vault-backed object getter.

The hvac client is built once per VaultObjectGetter and authenticated once:

1. Resolve the Vault address (explicit config, else ``VAULT_ADDR``)
2. Read the Kubernetes service account JWT from its well-known path and
   exchange it, together with the app role, for a client token via
   ``POST <address>/v1/auth/<cluster id>/login``
3. ``VAULT_TOKEN``, when set, overrides whatever the exchange produced
   (development mode); it also rescues a missing JWT or failed exchange
4. Fail with VaultAuthError if no client token resulted

Secrets are read from the logical path and returned as the JSON encoding
of their ``data`` mapping.
"""

import json
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import hvac
import hvac.exceptions
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hurley_kit.errors.exceptions import (
    ConfigurationError,
    SecretNotFoundError,
    VaultAuthError,
)
from hurley_kit.logging.utilities import log_exception
from hurley_kit.secrets.cache import validate_ttl
from hurley_kit.secrets.lazy import LazyClient

logger = logging.getLogger(__name__)

KUBERNETES_JWT_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"
VAULT_ADDR_ENV = "VAULT_ADDR"
VAULT_TOKEN_ENV = "VAULT_TOKEN"

# 412: performance standby has not caught up with the active node
RETRY_STATUSES = (412, 500, 502, 503, 504)


@dataclass
class VaultStoreConfig:
    """
    Connection and caching settings for a Vault secret store.

    Attributes:
        ttl_seconds: How long fetched secrets are served from memory
        address: Vault cluster address; empty falls back to VAULT_ADDR
        timeout: Per-request timeout for Vault calls, in seconds
        max_retries: Retries for failed Vault HTTP calls
        app_role: Role presented with the Kubernetes JWT
        kubernetes_auth_cluster_id: Mount name of the Kubernetes auth method
    """

    ttl_seconds: float = 10.0
    address: str = ""
    timeout: float = 3.0
    max_retries: int = 5
    app_role: str = ""
    kubernetes_auth_cluster_id: str = "kubernetes"

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On the first invalid field
        """
        validate_ttl(self.ttl_seconds)
        if not self.app_role:
            raise ConfigurationError("must specify app_role")
        if not self.kubernetes_auth_cluster_id:
            raise ConfigurationError("must specify kubernetes_auth_cluster_id")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be greater than 0")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")


def read_jwt(path: str | Path) -> str:
    """Read a service account JWT, dropping the trailing newline."""
    return Path(path).read_text(encoding="utf-8").removesuffix("\n")


def create_retrying_session(max_retries: int) -> requests.Session:
    """requests.Session that retries failed Vault calls ``max_retries`` times."""
    retry = Retry(
        total=max_retries,
        backoff_factor=0.1,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=None,
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def exchange_jwt_for_token(
    session: requests.Session,
    address: str,
    cluster_id: str,
    jwt: str,
    role: str,
    timeout: float,
) -> str:
    """
    Trade a Kubernetes JWT and app role for a Vault client token.

    Raises:
        VaultAuthError: If the login call fails or returns no auth block
    """
    url = f"{address.rstrip('/')}/v1/auth/{cluster_id}/login"
    logger.debug("Using Kubernetes JWT auth flow", extra={"http_url": url})

    try:
        response = session.post(url, json={"jwt": jwt, "role": role}, timeout=timeout)
    except requests.RequestException as e:
        raise VaultAuthError("Vault login request failed", cause=e) from e

    try:
        body = response.json()
    except ValueError as e:
        raise VaultAuthError(
            f"Vault login returned a non-JSON response (HTTP {response.status_code})",
            cause=e,
        ) from e

    auth = body.get("auth") if isinstance(body, dict) else None
    token = auth.get("client_token") if isinstance(auth, dict) else None
    if not token:
        raise VaultAuthError(
            "Error trying to authenticate with provided app role and JWT",
            context={"http_status": response.status_code},
        )
    return token


def build_vault_client(
    config: VaultStoreConfig,
    jwt_path: str | Path = KUBERNETES_JWT_PATH,
    http_session: requests.Session | None = None,
    environ: Mapping[str, str] | None = None,
) -> hvac.Client:
    """
    Build and authenticate an hvac client.

    Raises:
        ConfigurationError: If no Vault address is configured
        VaultAuthError: If neither the JWT exchange nor VAULT_TOKEN yields a token
    """
    environ = os.environ if environ is None else environ

    address = config.address or environ.get(VAULT_ADDR_ENV, "")
    if not address:
        raise ConfigurationError("You must provide a Vault cluster address")

    session = http_session or create_retrying_session(config.max_retries)

    client_token = ""
    exchange_error: VaultAuthError | None = None
    try:
        jwt = read_jwt(jwt_path)
    except (OSError, UnicodeDecodeError):
        logger.warning(
            "A Kubernetes service account JWT could not be read from %s",
            jwt_path,
        )
    else:
        try:
            client_token = exchange_jwt_for_token(
                session,
                address,
                config.kubernetes_auth_cluster_id,
                jwt,
                config.app_role,
                config.timeout,
            )
        except VaultAuthError as e:
            exchange_error = e
            log_exception(
                logger,
                e,
                f"Kubernetes JWT exchange failed, falling back to {VAULT_TOKEN_ENV}",
                level=logging.WARNING,
            )

    override = environ.get(VAULT_TOKEN_ENV, "")
    if override:
        logger.debug("Setting Vault client token from %s", VAULT_TOKEN_ENV)
        client_token = override

    if not client_token:
        raise VaultAuthError(
            "A client token could not be found. If in development mode try "
            f"setting the {VAULT_TOKEN_ENV} environment variable",
            cause=exchange_error,
        )

    return hvac.Client(
        url=address,
        token=client_token,
        timeout=config.timeout,
        session=session,
    )


class VaultObjectGetter:
    """Reads logical Vault paths through one lazily built, authenticated client."""

    def __init__(
        self,
        client_factory: Callable[[VaultStoreConfig], Any] | None = None,
        jwt_path: str | Path = KUBERNETES_JWT_PATH,
        http_session: requests.Session | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        """
        Args:
            client_factory: Builds the client from the store config
                (default: build_vault_client with the arguments below)
            jwt_path: Location of the Kubernetes service account JWT
            http_session: Session for login and reads (e.g. a resilient client)
            environ: Environment used for VAULT_ADDR / VAULT_TOKEN lookups
        """
        self.jwt_path = jwt_path
        self._http_session = http_session
        self._environ = environ
        self._client = LazyClient(client_factory or self._build_client, name="vault")

    def _build_client(self, config: VaultStoreConfig) -> hvac.Client:
        return build_vault_client(config, self.jwt_path, self._http_session, self._environ)

    def get_object(self, params: VaultStoreConfig, key: str) -> bytes:
        """
        Raises:
            SecretNotFoundError: If the path does not exist or holds no data
            ConfigurationError / VaultAuthError: If the client cannot be built
            hvac errors verbatim for other Vault failures
        """
        client = self._client.get(params)

        try:
            secret = client.read(key)
        except hvac.exceptions.InvalidPath as e:
            raise SecretNotFoundError("Secret path does not exist", key) from e

        if not isinstance(secret, dict):
            raise SecretNotFoundError("Secret path does not exist", key)

        data = secret.get("data")
        if data is None:
            raise SecretNotFoundError("Vault response does not contain data", key)

        return json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")


_shared_getter: LazyClient[VaultObjectGetter] = LazyClient(VaultObjectGetter, name="vault-getter")


def shared_vault_object_getter() -> VaultObjectGetter:
    """Process-wide getter used by stores that are not handed one explicitly."""
    return _shared_getter.get()


__all__ = [
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
