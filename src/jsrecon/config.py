"""Global configuration — XDG paths, env vars, defaults, user settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from jsrecon.scanner.patterns import DEFAULT_PARAMETERS


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "jsrecon"
    return Path.home() / ".local" / "share" / "jsrecon"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "jsrecon"
    return Path.home() / ".config" / "jsrecon"


@dataclass
class Settings:
    """User-editable scan preferences, stored as ``settings.yaml``."""

    excluded_domains: list[str] = field(default_factory=list)
    excluded_rule_ids: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=lambda: list(DEFAULT_PARAMETERS))
    npm_dependency_scan: bool = False
    scanning_enabled: bool = True


def load_settings(path: str | Path) -> Settings:
    """Read settings from YAML; a missing file yields the defaults."""
    path = Path(path)
    if not path.is_file():
        return Settings()
    return parse_settings(path.read_text(encoding="utf-8"))


def parse_settings(text: str) -> Settings:
    data = yaml.safe_load(text)
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ValueError("Settings YAML must be a mapping")

    settings = Settings()

    excluded = data.get("excluded_domains")
    if isinstance(excluded, str):
        excluded = excluded.split("\n")
    if excluded:
        settings.excluded_domains = [str(d).strip() for d in excluded if str(d).strip()]

    rule_ids = data.get("excluded_rule_ids")
    if rule_ids:
        if not isinstance(rule_ids, list):
            raise ValueError("excluded_rule_ids must be a list")
        settings.excluded_rule_ids = [str(r) for r in rule_ids]

    parameters = data.get("parameters")
    if parameters is not None:
        if not isinstance(parameters, list):
            raise ValueError("parameters must be a list")
        settings.parameters = [str(p) for p in parameters]

    if "npm_dependency_scan" in data:
        settings.npm_dependency_scan = bool(data["npm_dependency_scan"])
    if "scanning_enabled" in data:
        settings.scanning_enabled = bool(data["scanning_enabled"])

    return settings


@dataclass
class JsReconConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    config_dir: Path = field(default_factory=_default_config_dir)
    max_concurrent_fetches: int = 3
    request_delay_ms: int = 100
    regex_timeout_ms: int = 500
    max_content_size_bytes: int = 5 * 1024 * 1024
    max_cache_size_bytes: int = 30 * 1024 * 1024
    cache_max_age: float = 2 * 60 * 60
    passive_cache_max_age: float = 12 * 60 * 60
    scanned_pages_cache_limit: int = 100
    web_host: str = "127.0.0.1"  # Hardcoded — never 0.0.0.0
    web_port: int = 8471
    verbose: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / "jsrecon.db"

    @property
    def settings_path(self) -> Path:
        return self.config_dir / "settings.yaml"

    def settings(self, path: str | Path | None = None) -> Settings:
        return load_settings(path or self.settings_path)

    @classmethod
    def load(cls) -> JsReconConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_fetches = os.environ.get("JSRECON_MAX_CONCURRENT_FETCHES")
        if env_fetches:
            config.max_concurrent_fetches = int(env_fetches)

        env_delay = os.environ.get("JSRECON_REQUEST_DELAY_MS")
        if env_delay:
            config.request_delay_ms = int(env_delay)

        env_timeout = os.environ.get("JSRECON_REGEX_TIMEOUT_MS")
        if env_timeout:
            config.regex_timeout_ms = int(env_timeout)

        env_port = os.environ.get("JSRECON_WEB_PORT")
        if env_port:
            config.web_port = int(env_port)

        return config
