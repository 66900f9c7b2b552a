"""Google Translate adapter using the free web endpoint (no API key)."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx
from rich.console import Console

from dualsub.core.languages import to_google_code
from dualsub.core.models import Success

console = Console()

GOOGLE_TRANSLATE_URL = "https://translate.googleapis.com/translate_a/single"
REQUEST_TIMEOUT = 8.0  # seconds, per request
REQUEST_DELAY = 0.2  # seconds between sequential requests

Sleep = Callable[[float], Awaitable[None]]


def _join_parts(data: object) -> str:
    """Concatenate the translated fragments of a ``translate_a`` payload."""
    if not isinstance(data, list) or not data or not isinstance(data[0], list):
        return ""
    return "".join(part[0] for part in data[0] if isinstance(part, list) and part and part[0])


async def _translate_one(client: httpx.AsyncClient, text: str, google_lang: str) -> str | None:
    params = {"client": "gtx", "sl": "auto", "tl": google_lang, "dt": "t", "q": text}
    try:
        response = await asyncio.wait_for(
            client.get(GOOGLE_TRANSLATE_URL, params=params), REQUEST_TIMEOUT
        )
    except asyncio.TimeoutError:
        console.print(f"[yellow]Google Translate timeout:[/yellow] {text[:30]}")
        return None
    except httpx.HTTPError as e:
        console.print(f"[yellow]Google Translate request failed:[/yellow] {e}")
        return None

    if response.status_code != 200:
        console.print(f"[yellow]Google Translate HTTP {response.status_code}[/yellow]")
        return None

    try:
        translated = _join_parts(response.json())
    except ValueError:
        return None
    return translated or None


async def translate_google(
    client: httpx.AsyncClient,
    texts: list[str],
    target_lang: str,
    sleep: Sleep = asyncio.sleep,
) -> Success:
    """Translate texts one request at a time.

    A failed, timed-out or empty request yields ``None`` at that index;
    the batch as a whole always succeeds.
    """
    google_lang = to_google_code(target_lang)
    translations: list[str | None] = []
    for index, text in enumerate(texts):
        if index > 0:
            await sleep(REQUEST_DELAY)
        translations.append(await _translate_one(client, text, google_lang))
    return Success(translations)
