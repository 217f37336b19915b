"""Helpers shared by CLI commands."""

from __future__ import annotations

import click
import yaml
from rich.console import Console

from jsrecon.config import JsReconConfig, Settings
from jsrecon.fetch.throttle import ThrottledFetcher

console = Console(stderr=True)


def load_context(ctx: click.Context) -> tuple[JsReconConfig, Settings]:
    """Resolve config from the environment and settings from ``--settings``."""
    config = JsReconConfig.load()
    obj = ctx.obj or {}
    config.verbose = bool(obj.get("verbose"))
    try:
        settings = config.settings(obj.get("settings_path"))
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Invalid settings: {exc}") from exc
    return config, settings


def make_fetcher(config: JsReconConfig) -> ThrottledFetcher:
    return ThrottledFetcher(
        max_concurrent=config.max_concurrent_fetches,
        request_delay_ms=config.request_delay_ms,
    )
