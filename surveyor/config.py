"""Configuration — Pydantic Settings + YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"


class HttpSettings(BaseSettings):
    timeout: float = 10.0
    max_connections: int = 50
    max_connections_per_host: int = 10
    user_agent: str = "Surveyor/1.0"
    follow_redirects: bool = True
    max_redirects: int = 5
    verify_ssl: bool = True


class ScanSettings(BaseSettings):
    timeout: float = 30.0              # global ceiling when the scan config has none
    default_probe_timeout: float = 10.0
    max_concurrency: int = 16


class RuleSettings(BaseSettings):
    path: Path | None = None           # None = packaged default rule set


class Settings(BaseSettings):
    """Root settings — merges defaults, YAML config, and env vars."""

    model_config = SettingsConfigDict(env_prefix="SURVEYOR_", env_nested_delimiter="__")

    http: HttpSettings = Field(default_factory=HttpSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    rules: RuleSettings = Field(default_factory=RuleSettings)
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> Settings:
        """Load settings from YAML file, falling back to defaults."""
        data: dict[str, Any] = {}

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        path = Path(config_path)
        if path.exists():
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
                if isinstance(raw, dict):
                    data = raw

        return cls(**data)
