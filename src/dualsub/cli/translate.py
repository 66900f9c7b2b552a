"""dualsub translate and word commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import pysubs2
import typer
from rich.console import Console

from dualsub.cli.utils import config_overrides, load_store, open_cache_store
from dualsub.core.models import SubtitleCue, normalize_key
from dualsub.core.session import DualSubSession
from dualsub.pipeline.words import WordLookupError
from dualsub.subtitles.cues import load_cues
from dualsub.utils.paths import work_identity

console = Console()


def save_translated(
    cues: list[SubtitleCue],
    translations: dict[str, str],
    path: Path,
    bilingual: bool = False,
) -> Path:
    """Write translated cues; untranslated lines keep the original text."""
    subs = pysubs2.SSAFile()
    for cue in cues:
        translated = translations.get(normalize_key(cue.text), cue.text)
        event = pysubs2.SSAEvent(start=int(cue.start * 1000), end=int(cue.end * 1000))
        event.plaintext = f"{translated}\n{cue.text}" if bilingual else translated
        subs.events.append(event)
    path.parent.mkdir(parents=True, exist_ok=True)
    subs.save(str(path))
    return path


async def _translate_file(session: DualSubSession, cues: list[SubtitleCue]) -> dict[str, str]:
    try:
        await session.translate_all(cues)
        # Lines the contextual pass left out go through the regular queue.
        for cue in cues:
            if session.cache.get(normalize_key(cue.text)) is None:
                session.queue.enqueue(cue.text)
        await session.queue.process_queue()
        translations = {}
        for cue in cues:
            key = normalize_key(cue.text)
            value = session.cache.get(key)
            if value is not None:
                translations[key] = value
        return translations
    finally:
        await session.aclose()


def translate(
    subtitle_file: Annotated[
        Path,
        typer.Argument(help="Path to subtitle file (SRT, VTT, ASS)."),
    ],
    to: Annotated[
        Optional[str],
        typer.Option("--to", "-t", help="Target language code (run 'dualsub languages' to list)."),
    ] = None,
    source: Annotated[
        Optional[str],
        typer.Option("--from", "-s", help="Source language code."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option(help="Translation provider: google, deepl, claude, gemini, grok, kimi."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path."),
    ] = None,
    bilingual: Annotated[
        bool,
        typer.Option("--bilingual", "-b", help="Keep the original line under each translation."),
    ] = False,
) -> None:
    """Translate a subtitle file, using and filling the translation cache."""
    if not subtitle_file.is_file():
        console.print(f"[red]File not found:[/red] {subtitle_file}")
        raise typer.Exit(1)

    store = load_store(**config_overrides(to, source, provider))
    config = store.current
    target = config.translation.target_language

    console.print(f"[bold]Loading subtitles:[/bold] {subtitle_file}")
    cues = load_cues(subtitle_file)
    console.print(f"[bold]Cues:[/bold] {len(cues)}")
    if not cues:
        console.print("[yellow]Nothing to translate.[/yellow]")
        raise typer.Exit(1)

    session = DualSubSession(store, cache_store=open_cache_store(config, str(subtitle_file)))
    loaded = session.open_work(work_identity(str(subtitle_file)))
    if loaded:
        console.print(f"[dim]{loaded} lines already cached[/dim]")

    translations = asyncio.run(_translate_file(session, cues))

    missing = len({normalize_key(c.text) for c in cues}) - len(translations)
    if missing:
        console.print(f"[yellow]{missing} lines could not be translated, kept original.[/yellow]")

    sub_path = output if output is not None else subtitle_file.with_suffix(
        f".{target.lower()}{subtitle_file.suffix}"
    )
    save_translated(cues, translations, sub_path, bilingual=bilingual)
    console.print(f"[green]Saved:[/green] {sub_path}")


async def _lookup(session: DualSubSession, word: str, line: str):
    try:
        return await session.lookup_word(word, line)
    finally:
        await session.aclose()


def word(
    text: Annotated[str, typer.Argument(help="Word to look up.")],
    line: Annotated[
        str,
        typer.Option("--line", "-l", help="Subtitle line the word appeared in."),
    ] = "",
    to: Annotated[
        Optional[str],
        typer.Option("--to", "-t", help="Target language code."),
    ] = None,
    source: Annotated[
        Optional[str],
        typer.Option("--from", "-s", help="Source language code."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option(help="Provider for the fallback translation."),
    ] = None,
) -> None:
    """Look a word up on Wiktionary, falling back to the translation provider."""
    store = load_store(**config_overrides(to, source, provider))
    session = DualSubSession(store, cache_store=open_cache_store(store.current, "local"))

    try:
        result = asyncio.run(_lookup(session, text, line))
    except WordLookupError as e:
        console.print(f"[red]{e}[/red]")
        console.print(f"[dim]{e.wiktionary_url}[/dim]")
        raise typer.Exit(1)

    console.print(f"[bold]{result.word}[/bold]: {result.translation}")
    label = "AI translation with context" if result.source == "llm" else result.source
    console.print(f"[dim]({label}) {result.wiktionary_url}[/dim]")
