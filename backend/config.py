"""YAML configuration loading and validation."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from jsonschema import Draft7Validator

from models.errors import ConfigError

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"

DEFAULT_CITY = "Salvador,Bahia,Brazil"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-prod"

# Environment variable -> (section, key) in the YAML document
ENV_OVERRIDES = {
    "FLEET_BACKEND_URL": ("backend", "url"),
    "FLEET_BACKEND_KEY": ("backend", "key"),
    "FLEET_WEBHOOK_URL": ("webhook", "url"),
    "FLEET_WEATHER_KEY": ("weather", "key"),
    "SECRET_KEY": (None, "secretKey"),
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the web app and the CLI."""

    backend_url: str
    backend_key: str
    webhook_url: Optional[str] = None
    weather_key: Optional[str] = None
    weather_city: str = DEFAULT_CITY
    weather_refresh_seconds: int = 3600
    request_timeout: float = 10
    secret_key: str = DEFAULT_SECRET_KEY
    log_level: str = "INFO"


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def validate_config_data(data: Any, schema: Optional[dict] = None) -> List[str]:
    """Validate a parsed config document. Returns list of errors."""
    schema = schema or load_schema()
    errors = []
    for error in sorted(Draft7Validator(schema).iter_errors(data), key=lambda e: list(e.path)):
        message = f"Schema validation error: {error.message}"
        if error.path:
            message += f" (at path: {'.'.join(str(p) for p in error.path)})"
        errors.append(message)
    return errors


def validate_config_file(filepath: Union[str, Path], schema: Optional[dict] = None) -> List[str]:
    """Validate a single config YAML file. Returns list of errors."""
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return [f"YAML parse error: {e}"]
    except OSError as e:
        return [f"Error: {e}"]
    return validate_config_data(data, schema)


def _apply_env(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        if section is None:
            data[key] = value
        else:
            if data.get(section) is None:
                data[section] = {}
            data[section][key] = value
    return data


def load_settings(
    filename: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from a YAML file and environment overrides.

    The file path defaults to $FLEET_CONFIG. Without a file, settings come
    from environment variables alone. Raises ConfigError when the merged
    document does not match the schema.
    """
    environ = os.environ if environ is None else environ
    filename = filename or environ.get("FLEET_CONFIG")

    data: Dict[str, Any] = {}
    if filename:
        try:
            with open(filename) as fp:
                data = yaml.safe_load(fp) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {filename}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {filename} must be a mapping")

    data = _apply_env(data, environ)
    errors = validate_config_data(data)
    if errors:
        raise ConfigError("; ".join(errors))

    webhook = data.get("webhook") or {}
    weather = data.get("weather") or {}
    return Settings(
        backend_url=data["backend"]["url"].rstrip("/"),
        backend_key=data["backend"]["key"],
        webhook_url=webhook.get("url"),
        weather_key=weather.get("key"),
        weather_city=weather.get("city", DEFAULT_CITY),
        weather_refresh_seconds=weather.get("refreshSeconds", 3600),
        request_timeout=data.get("requestTimeout", 10),
        secret_key=data.get("secretKey", DEFAULT_SECRET_KEY),
        log_level=data.get("logLevel", "INFO"),
    )
