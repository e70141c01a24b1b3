"""Configuration management for mongo-query-schema.

Defaults ship with the package in ``defaults.yaml``; a handful of
environment variables (optionally from a ``.env`` file) override them.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from mongo_query_schema.logging_config import get_logger

logger = get_logger(__name__)

DEFAULTS_FILE = Path(__file__).resolve().parent / "defaults.yaml"

# environment variable -> (settings section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "QUERY_SCHEMA_SAMPLE_SIZE": ("inference", "sample_size"),
    "QUERY_SCHEMA_CACHE": ("inference", "cache_schemas"),
    "MONGO_DATABASE": ("mongo", "database_name"),
}


class InferenceSettings(BaseModel):
    """Schema inference settings."""

    sample_size: int = Field(
        default=10, ge=1, description="Documents sampled per collection"
    )
    cache_schemas: bool = Field(
        default=True, description="Cache resolved schema text by URI"
    )


class MongoSettings(BaseModel):
    """MongoDB connection settings."""

    connection_env_var: str = "MONGO_URI"
    database_name: str = "test"
    server_selection_timeout_ms: int = Field(default=5000, ge=0)


class AppSettings(BaseModel):
    """Main application settings."""

    inference: InferenceSettings = InferenceSettings()
    mongo: MongoSettings = MongoSettings()


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    logger.debug(f"Loaded configuration from {path}")
    return data or {}


def apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variable values onto raw settings data."""
    for env_var, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is None or value == "":
            continue
        data.setdefault(section, {})[field] = value
        logger.debug(f"{env_var} overrides {section}.{field}")
    return data


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Get application settings with environment override support.

    Loaded lazily and cached; call ``clear_settings_cache`` after changing
    the environment.
    """
    load_dotenv(override=False)
    data = apply_env_overrides(load_yaml_config(DEFAULTS_FILE))
    return AppSettings.model_validate(data)


def clear_settings_cache() -> None:
    """Clear settings cache to force reload from current environment."""
    get_settings.cache_clear()


def get_mongo_connection_string() -> str | None:
    """Get the MongoDB connection string from the configured environment variable.

    Returns:
        Connection string, or None if the variable is not set
    """
    env_var_name = get_settings().mongo.connection_env_var
    connection_string = os.getenv(env_var_name)
    if not connection_string:
        logger.warning(f"Environment variable {env_var_name} not set")
        return None
    return connection_string
