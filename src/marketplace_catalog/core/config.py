"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import StorageBackend


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class StorageConfig(BaseModel):
    backend: StorageBackend = StorageBackend.MEMORY
    data_dir: str = "data"
    products_file: str = "products.txt"  # Relative to data_dir
    users_file: str = "users.txt"
    audit_file: str = "audit.jsonl"
    database_url: str = "sqlite:///data/catalog.db"
    echo: bool = False  # SQLAlchemy statement logging

    def path_for(self, filename: str) -> Path:
        return Path(self.data_dir) / filename


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    metrics_port: int = 0  # 0 disables the Prometheus exporter


class AuthConfig(BaseModel):
    min_password_length: int = 4
    # Registered as ADMIN at startup when the username is not taken yet
    bootstrap_admin_username: str = ""
    bootstrap_admin_password: str = ""


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Values passed in (TOML file, overrides) win; environment variables
    such as ``CATALOG_STORAGE__BACKEND=sql`` fill in everything else.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    model_config = {"env_prefix": "CATALOG_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    return Settings(**data)
