"""Kit configuration from a YAML file.

One file configures the HTTP client, the Vault and S3 secret stores and
logging:

    http_client:
      name: profile-service
      window: 5
      minObservations: 10
      failurePercentage: 50
      timeout: 3
    vault:
      endpoint: ${VAULT_ADDR:-https://vault.internal:8200}
      k8SAuthCluster: kubernetes
      appRole: profile-service
      cacheTimeoutInSeconds: 30
      timeoutInSeconds: 3
      maxRetries: 5
    s3:
      bucket: hurley-secrets
      region: us-east-1
      cacheTimeoutInSeconds: 60
    logging:
      level: INFO
      format: json

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax. A .env file, when given, is loaded into the
environment first (existing variables win).
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import yaml
from dotenv import load_dotenv

from hurley_kit.errors.exceptions import ConfigurationError
from hurley_kit.request.client import ClientConfig
from hurley_kit.secrets.cache import validate_ttl
from hurley_kit.secrets.vault import VaultStoreConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file {path}: top level must be a mapping")
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_PATTERN.sub(replacer, data)
    else:
        return data


@dataclass
class S3Config:
    """S3 secret store settings."""

    bucket: str = ""
    region: str = ""
    ttl_seconds: float = 10.0

    def validate(self) -> None:
        validate_ttl(self.ttl_seconds)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "console"

    def validate(self) -> None:
        if self.format not in ("console", "json", "logfmt"):
            raise ConfigurationError(
                f"logging.format must be one of console, json, logfmt (got {self.format!r})"
            )
        if not isinstance(logging.getLevelName(self.level.upper()), int):
            raise ConfigurationError(f"logging.level is not a log level: {self.level!r}")


@dataclass
class KitConfig:
    """Everything a service needs to build the kit's components."""

    http_client: ClientConfig = field(default_factory=ClientConfig)
    vault: VaultStoreConfig = field(default_factory=VaultStoreConfig)
    s3: S3Config = field(default_factory=S3Config)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """
        Validate the sections that do not depend on optional backends.

        Vault settings are only validated when an app role is configured,
        since services without Vault leave the section empty.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        self.http_client.validate()
        self.s3.validate()
        self.logging.validate()
        if self.vault.app_role:
            self.vault.validate()


def _coerce(section: str, data: Dict[str, Any], key: str, kind: Callable[[Any], T], default: T) -> T:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{section}.{key} must be {kind.__name__}, got {value!r}",
            cause=e,
        ) from e


def _string(data: Dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    return str(value)


def _section(yaml_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = yaml_data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid config file: '{name}' must be a mapping")
    return section


def _build_http_client(data: Dict[str, Any]) -> ClientConfig:
    defaults = ClientConfig()
    return ClientConfig(
        window=_coerce("http_client", data, "window", float, defaults.window),
        min_observations=_coerce(
            "http_client", data, "minObservations", int, defaults.min_observations
        ),
        failure_percentage=_coerce(
            "http_client", data, "failurePercentage", float, defaults.failure_percentage
        ),
        timeout=_coerce("http_client", data, "timeout", float, defaults.timeout),
        cool_down=_coerce("http_client", data, "coolDown", float, defaults.cool_down),
        name=_string(data, "name", defaults.name),
    )


def _build_vault(data: Dict[str, Any]) -> VaultStoreConfig:
    defaults = VaultStoreConfig()
    return VaultStoreConfig(
        ttl_seconds=_coerce("vault", data, "cacheTimeoutInSeconds", float, defaults.ttl_seconds),
        address=_string(data, "endpoint", defaults.address),
        timeout=_coerce("vault", data, "timeoutInSeconds", float, defaults.timeout),
        max_retries=_coerce("vault", data, "maxRetries", int, defaults.max_retries),
        app_role=_string(data, "appRole", defaults.app_role),
        kubernetes_auth_cluster_id=_string(data, "k8SAuthCluster", "")
        or defaults.kubernetes_auth_cluster_id,
    )


def _build_s3(data: Dict[str, Any]) -> S3Config:
    defaults = S3Config()
    return S3Config(
        bucket=_string(data, "bucket", defaults.bucket),
        region=_string(data, "region", defaults.region),
        ttl_seconds=_coerce("s3", data, "cacheTimeoutInSeconds", float, defaults.ttl_seconds),
    )


def _build_logging(data: Dict[str, Any]) -> LoggingConfig:
    defaults = LoggingConfig()
    return LoggingConfig(
        level=_string(data, "level", defaults.level),
        format=_string(data, "format", defaults.format),
    )


def load_config(config_path: Path | str, env_file: Optional[Path | str] = None) -> KitConfig:
    """Load kit configuration from a YAML file.

    A missing file yields the defaults. Environment variables ARE supported
    using ${VAR_NAME} syntax in YAML files.

    Raises:
        ConfigurationError: If the file is malformed or a value is invalid
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)

    config_path = Path(config_path)
    if not config_path.exists():
        logger.info("Configuration file not found, using defaults: %s", config_path)

    try:
        yaml_data = load_yaml(config_path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", cause=e) from e
    yaml_data = _expand_env_vars(yaml_data)

    config = KitConfig(
        http_client=_build_http_client(_section(yaml_data, "http_client")),
        vault=_build_vault(_section(yaml_data, "vault")),
        s3=_build_s3(_section(yaml_data, "s3")),
        logging=_build_logging(_section(yaml_data, "logging")),
    )

    config.validate()
    logger.debug(
        "Configuration loaded: circuit_name=%s, vault_configured=%s, s3_bucket=%s",
        config.http_client.name,
        bool(config.vault.app_role),
        config.s3.bucket,
    )
    return config


__all__ = [
    "KitConfig",
    "LoggingConfig",
    "S3Config",
    "load_config",
    "load_yaml",
]
