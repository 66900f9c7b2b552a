"""dualsub cache command: inspect and maintain the translation cache."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from dualsub.cache.store import CacheStore, days_since_epoch
from dualsub.core.config import load_config

console = Console()


def cache(
    clear_words: Annotated[
        bool,
        typer.Option("--clear-words", help="Delete every cached word translation."),
    ] = False,
    evict: Annotated[
        bool,
        typer.Option("--evict", help="Remove works and words past their retention period."),
    ] = False,
) -> None:
    """Show cache statistics per origin, optionally clearing or evicting entries."""
    config = load_config()
    cache_dir = config.cache_dir
    databases = sorted(cache_dir.glob("*.db")) if cache_dir.is_dir() else []
    if not databases:
        console.print(f"[dim]No cache found in {cache_dir}[/dim]")
        return

    today = days_since_epoch()
    table = Table(title=f"Translation cache ({cache_dir})")
    table.add_column("Origin", style="bold cyan")
    table.add_column("Subtitles", justify="right")
    table.add_column("Words", justify="right")

    for db_path in databases:
        store = CacheStore(db_path)
        try:
            if evict:
                works = store.evict_works_before(today - config.cache.subtitle_retention_days)
                words = store.evict_words_before(today - config.cache.word_retention_days)
                console.print(f"[dim]{db_path.stem}: evicted {works} works, {words} words[/dim]")
            if clear_words:
                cleared = store.clear_words()
                console.print(f"[dim]{db_path.stem}: cleared {cleared} word translations[/dim]")
            table.add_row(db_path.stem, str(store.subtitle_row_count()), str(store.word_count()))
        finally:
            store.close()

    console.print(table)
