# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import logging
import os
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ds8k_exporter.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "ds8k.yaml"
DEFAULT_LISTEN_ADDRESS = ":9710"
DEFAULT_METRICS_PATH = "/metrics"


class Target(BaseModel):
    """One DS8K management endpoint and the credentials used to reach it."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    address: str = Field(alias="ipAddress")
    username: str = Field(alias="userid")
    password: str = Field(repr=False)
    # IANA time zone of the device, e.g. America/New_York
    locale: Optional[str] = None


class FileConfig(BaseModel):
    # DS8K targets
    targets: List[Target] = Field(default_factory=list)
    location: Optional[str] = None

    # Resource collector switches, e.g. {"volume": false}
    collectors: Dict[str, bool] = Field(default_factory=dict)

    # Transport settings
    tls_validation: str = "none"
    tls_ca: Optional[str] = None
    timeout: float = 45.0
    connect_timeout: float = 30.0

    model_config = ConfigDict(extra="ignore")


class EnvConfig(BaseSettings):
    CONFIG_FILE: Optional[str] = None
    LISTEN_ADDRESS: Optional[str] = None
    METRICS_PATH: Optional[str] = None
    LOCATION: Optional[str] = None
    TLS_VALIDATION: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="DS8K_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env that aren't defined in the model
    )


def load_config(config_file: str) -> FileConfig:
    """
    Load the exporter configuration from a YAML file.

    Args:
        config_file: Path to the YAML configuration file

    Returns:
        Parsed FileConfig

    Raises:
        ConfigError: if the file is missing, is not valid YAML, or does not match the schema
    """
    if not os.path.exists(config_file):
        raise ConfigError(f"Config file not found: {config_file}")

    logger.debug(f"Loading configuration from file: {config_file}")
    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping at the top level")

    try:
        return FileConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Error parsing config file {config_file}: {e}") from e


def targets_for_request(targets: List[Target], requested: Optional[str]) -> List[Target]:
    """
    Select the targets a scrape request asks for.

    An empty request means every configured target.
    """
    if not requested:
        return list(targets)

    for target in targets:
        if target.address == requested:
            return [target]

    raise ConfigError(f"The target '{requested}' is not defined in the configuration file")
