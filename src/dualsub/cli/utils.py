"""Shared CLI utilities."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from dualsub.cache.store import CacheStore
from dualsub.core.config import ConfigStore, DualSubConfig, load_config
from dualsub.core.languages import validate_language
from dualsub.utils.paths import cache_db_path, media_origin

console = Console()


def config_overrides(
    to: Optional[str] = None,
    source: Optional[str] = None,
    provider: Optional[str] = None,
) -> dict[str, object]:
    """Validate CLI language/provider flags and turn them into config overrides."""
    overrides: dict[str, object] = {}
    for key, code in (("translation.target_language", to), ("translation.source_language", source)):
        if code is None:
            continue
        try:
            overrides[key] = validate_language(code)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
    if provider is not None:
        overrides["providers.provider"] = provider
    return overrides


def load_store(**overrides: object) -> ConfigStore:
    config = load_config(**overrides)
    if not config.providers.has_valid_provider():
        console.print(
            f"[yellow]No API key configured for {config.providers.provider}; "
            f"set DUALSUB_PROVIDERS__{config.providers.provider.upper()}_API_KEY.[/yellow]"
        )
    return ConfigStore(config)


def open_cache_store(config: DualSubConfig, media: str) -> CacheStore:
    """Durable store for the origin ``media`` belongs to."""
    return CacheStore(cache_db_path(config.cache_dir, media_origin(media)))
