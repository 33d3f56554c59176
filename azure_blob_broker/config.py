"""Configuration management for the Azure Storage Blob broker."""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from azure_blob_broker.exceptions import ConfigurationError


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class APIConfig:
    """API configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    enable_cors: bool = False

    @property
    def auth_enabled(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class AzureConfig:
    """Azure environment and service principal."""
    environment: str = "AzureCloud"
    subscription_id: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""


def _regional_locations() -> Mapping[str, str]:
    return MappingProxyType({"AzureChinaCloud": "China East"})


@dataclass(frozen=True)
class BrokerDefaults:
    """Defaults applied when a provision or bind request omits a parameter.

    Passed explicitly to the naming helpers so tests can swap regions or
    tiers without touching shared state.
    """
    location: str = "East US"
    regional_locations: Mapping[str, str] = field(default_factory=_regional_locations)
    resource_group_prefix: str = "cloud-foundry-"
    storage_account_prefix: str = "cf"
    container_prefix: str = "cloud-foundry-"
    account_type: str = "Standard_LRS"
    account_kind: str = "StorageV2"
    max_storage_account_name_length: int = 24

    def __post_init__(self):
        if not isinstance(self.regional_locations, MappingProxyType):
            object.__setattr__(self, 'regional_locations', MappingProxyType(dict(self.regional_locations)))

    def location_for(self, environment: Optional[str]) -> str:
        """Default region for a cloud environment."""
        return self.regional_locations.get(environment or "", self.location)

    @classmethod
    def from_env(cls) -> 'BrokerDefaults':
        """Load defaults from environment variables."""
        defaults = cls()
        return replace(
            defaults,
            location=os.getenv('DEFAULT_LOCATION', defaults.location),
            resource_group_prefix=os.getenv('RESOURCE_GROUP_PREFIX', defaults.resource_group_prefix),
            storage_account_prefix=os.getenv('STORAGE_ACCOUNT_PREFIX', defaults.storage_account_prefix),
            container_prefix=os.getenv('CONTAINER_PREFIX', defaults.container_prefix),
            account_type=os.getenv('DEFAULT_ACCOUNT_TYPE', defaults.account_type),
        )


@dataclass
class Config:
    """Main configuration class."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: APIConfig = field(default_factory=APIConfig)
    azure: AzureConfig = field(default_factory=AzureConfig)
    defaults: BrokerDefaults = field(default_factory=BrokerDefaults)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        config = cls()

        # API config
        config.api.host = os.getenv('API_HOST', config.api.host)
        config.api.port = int(os.getenv('API_PORT', str(config.api.port)))
        config.api.debug = os.getenv('API_DEBUG', 'false').lower() == 'true'
        config.api.username = os.getenv('BROKER_USERNAME')
        config.api.password = os.getenv('BROKER_PASSWORD')
        config.api.enable_cors = os.getenv('API_ENABLE_CORS', 'false').lower() == 'true'

        # Logging config
        config.logging.level = os.getenv('LOG_LEVEL', config.logging.level)
        config.logging.file_path = os.getenv('LOG_FILE_PATH')

        # Azure config
        config.azure.environment = os.getenv('AZURE_ENVIRONMENT', config.azure.environment)
        config.azure.subscription_id = os.getenv('AZURE_SUBSCRIPTION_ID', config.azure.subscription_id)
        config.azure.tenant_id = os.getenv('AZURE_TENANT_ID', config.azure.tenant_id)
        config.azure.client_id = os.getenv('AZURE_CLIENT_ID', config.azure.client_id)
        config.azure.client_secret = os.getenv('AZURE_CLIENT_SECRET', config.azure.client_secret)

        config.defaults = BrokerDefaults.from_env()

        return config

    @classmethod
    def from_file(cls, file_path: str) -> 'Config':
        """Load configuration from a YAML file on top of the environment."""
        path = Path(file_path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {file_path}")

        config = cls.from_env()
        for section_name, section in (('logging', config.logging), ('api', config.api), ('azure', config.azure)):
            _apply_section(section, data.get(section_name) or {}, section_name)

        if data.get('defaults'):
            known = {f.name for f in fields(BrokerDefaults)}
            unknown = set(data['defaults']) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown keys in defaults: {sorted(unknown)}", config_key='defaults'
                )
            config.defaults = replace(config.defaults, **data['defaults'])

        return config


def _apply_section(section: Any, values: Dict[str, Any], section_name: str) -> None:
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ConfigurationError(f"Unknown key in {section_name}: {key}", config_key=f"{section_name}.{key}")
        setattr(section, key, value)


# Global configuration instance
config = Config.from_env()
