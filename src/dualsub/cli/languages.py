"""dualsub languages command: list supported target languages."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from dualsub.core.languages import TARGET_LANGUAGES, to_google_code, wiktionary_language

console = Console()


def languages() -> None:
    """List all supported target languages."""
    table = Table(title=f"Supported Languages ({len(TARGET_LANGUAGES)})")
    table.add_column("Code", style="bold cyan", width=8)
    table.add_column("Language", width=24)
    table.add_column("Google", width=7)
    table.add_column("Wiktionary", width=10)

    for code in sorted(TARGET_LANGUAGES):
        table.add_row(
            code, TARGET_LANGUAGES[code], to_google_code(code), wiktionary_language(code)
        )

    console.print(table)
    console.print(
        "\n[dim]Codes follow DeepL. Google and Wiktionary use the converted code shown.[/dim]"
    )
