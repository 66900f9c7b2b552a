"""dualsub play command: play media in mpv with live dual subtitles."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from dualsub.cli.utils import config_overrides, load_store, open_cache_store
from dualsub.core.config import ConfigStore
from dualsub.core.session import DualSubSession
from dualsub.subtitles.cues import load_cues
from dualsub.utils.paths import work_identity

console = Console()


async def run_player(
    store: ConfigStore,
    media: str,
    subs: Path | None,
    pretranslate: bool,
) -> None:
    from dualsub.player.mpv_player import MpvPlayer

    config = store.current
    player = MpvPlayer(config.player)
    session = DualSubSession(
        store,
        cache_store=open_cache_store(config, media),
        player=player,
        renderer=player,
        root=lambda: player.root,
        own_container=player.overlay,
        timeline=player.timeline,
    )

    loop = asyncio.get_running_loop()
    player.attach(
        loop,
        on_content_change=session.handle_content_change,
        on_play=session.on_play,
        on_pause=session.on_pause,
        on_seeked=session.on_seeked,
        on_rate_change=session.on_rate_change,
    )

    loaded = session.open_work(work_identity(media))
    if loaded:
        console.print(f"[dim]{loaded} cached translations ready[/dim]")

    background: asyncio.Task | None = None
    if subs is not None:
        cues = load_cues(subs)
        player.timeline.add_all(cues)
        if pretranslate:
            background = asyncio.create_task(session.translate_all(cues))

    player.play(media, subs)
    try:
        await loop.run_in_executor(None, player.wait_for_shutdown)
    finally:
        if background is not None:
            background.cancel()
        await session.aclose()
        player.terminate()


def play(
    media: Annotated[
        str,
        typer.Argument(help="Path or URL of the media to play."),
    ],
    subs: Annotated[
        Optional[Path],
        typer.Option("--subs", "-s", help="External subtitle file (original language)."),
    ] = None,
    to: Annotated[
        Optional[str],
        typer.Option("--to", "-t", help="Target language code (run 'dualsub languages' to list)."),
    ] = None,
    source: Annotated[
        Optional[str],
        typer.Option("--from", help="Source language code."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option(help="Translation provider: google, deepl, claude, gemini, grok, kimi."),
    ] = None,
    autopause: Annotated[
        bool,
        typer.Option("--autopause/--no-autopause", help="Pause at the end of every subtitle."),
    ] = False,
    pretranslate: Annotated[
        bool,
        typer.Option("--pretranslate", help="Translate the whole subtitle file up front."),
    ] = False,
) -> None:
    """Play media with the original subtitle and its translation on screen."""
    if not media.startswith(("http://", "https://")) and not Path(media).is_file():
        console.print(f"[red]File not found:[/red] {media}")
        raise typer.Exit(1)
    if subs is not None and not subs.is_file():
        console.print(f"[red]Subtitle file not found:[/red] {subs}")
        raise typer.Exit(1)

    overrides = config_overrides(to, source, provider)
    if autopause:
        overrides["autopause.enabled"] = True
    store = load_store(**overrides)

    try:
        asyncio.run(run_player(store, media, subs, pretranslate))
    except (FileNotFoundError, ImportError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
