"""dualsub CLI entry point."""

from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from dualsub import __version__
from dualsub.cli.cache import cache
from dualsub.cli.languages import languages
from dualsub.cli.play import play
from dualsub.cli.translate import translate, word

app = typer.Typer(
    name="dualsub",
    help="dualsub: dual subtitles with cached machine translation and auto-pause.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dualsub {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """dualsub: dual subtitles with cached machine translation and auto-pause."""
    # Provider keys may live in .env (DUALSUB_PROVIDERS__DEEPL_API_KEY, ...).
    # Shell exports take precedence.
    load_dotenv(override=False)


app.command("play")(play)
app.command("translate")(translate)
app.command("word")(word)
app.command("cache")(cache)
app.command("languages")(languages)
