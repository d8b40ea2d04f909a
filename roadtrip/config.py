"""
Runtime configuration.

Deployment settings and secrets come from the environment (a local .env is
honoured). Tunables such as cost defaults and provider timeouts live in
config.yaml next to this module.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml


class ConfigurationError(Exception):
    """A required setting is missing or invalid."""
    pass


_SETTINGS_FILE = Path(__file__).with_name("config.yaml")
_settings_cache: Optional[dict] = None

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./roadtrip.db"
DEFAULT_AUTH_USER_HEADER = "X-User-Id"
DIRECTIONS_PROVIDERS = ("mapbox", "osrm")


def _load_yaml_config() -> dict:
    """Parse config.yaml on first use."""
    global _settings_cache
    if _settings_cache is None:
        if not _SETTINGS_FILE.is_file():
            raise ConfigurationError(f"Settings file missing: {_SETTINGS_FILE}")
        with _SETTINGS_FILE.open() as fh:
            _settings_cache = yaml.safe_load(fh) or {}
    return _settings_cache


def get_yaml_setting(*keys: str, default: Any = None) -> Any:
    """
    Look up a nested config.yaml value.

    get_yaml_setting("cost", "default_mpg") -> 25
    Missing sections or keys return default.
    """
    node: Any = _load_yaml_config()
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def get_optional_env(key: str) -> Optional[str]:
    """Stripped value of an environment variable, None when unset or blank."""
    raw = os.environ.get(key, "").strip()
    return raw or None


def get_required_env(key: str) -> str:
    value = get_optional_env(key)
    if value is None:
        raise ConfigurationError(
            f"{key} is not set. Add it to .env or export it before starting the server."
        )
    return value


@dataclass(frozen=True)
class Config:
    """Settings resolved at startup; never mutated afterwards."""

    backend_port: int
    backend_host: str
    mapbox_access_token: str
    cors_origins: list[str]

    database_url: str = DEFAULT_DATABASE_URL
    directions_provider: str = "mapbox"
    osrm_base_url: Optional[str] = None
    # Header the identity proxy uses to forward the signed-in user id
    auth_user_header: str = DEFAULT_AUTH_USER_HEADER

    @classmethod
    def from_env(cls) -> "Config":
        port = get_required_env("BACKEND_PORT")
        try:
            backend_port = int(port)
        except ValueError:
            raise ConfigurationError(f"BACKEND_PORT must be an integer, got {port!r}")

        provider = (get_optional_env("DIRECTIONS_PROVIDER") or "mapbox").lower()
        if provider not in DIRECTIONS_PROVIDERS:
            raise ConfigurationError(
                f"DIRECTIONS_PROVIDER={provider} is not supported "
                f"(choose from {', '.join(DIRECTIONS_PROVIDERS)})"
            )

        return cls(
            backend_port=backend_port,
            backend_host=get_required_env("BACKEND_HOST"),
            mapbox_access_token=get_required_env("MAPBOX_ACCESS_TOKEN"),
            cors_origins=[o.strip() for o in get_required_env("CORS_ORIGINS").split(",") if o.strip()],
            database_url=get_optional_env("DATABASE_URL") or DEFAULT_DATABASE_URL,
            directions_provider=provider,
            osrm_base_url=get_optional_env("OSRM_BASE_URL"),
            auth_user_header=get_optional_env("AUTH_USER_HEADER") or DEFAULT_AUTH_USER_HEADER,
        )

    def validate_apis(self) -> dict[str, bool]:
        """Which external services have what they need to start."""
        return {
            "mapbox": bool(self.mapbox_access_token),
            "osrm": self.directions_provider == "osrm",
            "database": bool(self.database_url),
        }


def load_config() -> Config:
    """Read .env if present, then build Config from the environment."""
    from dotenv import load_dotenv

    load_dotenv()
    return Config.from_env()
