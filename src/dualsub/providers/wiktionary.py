"""Wiktionary definition lookup for the word popup."""

from __future__ import annotations

import re
from urllib.parse import quote

import httpx

from dualsub.core.errors import ErrorKind, ProviderError
from dualsub.core.languages import language_name, normalize_language_code, wiktionary_language

MAX_DEFINITIONS = 3

_TAG_RE = re.compile(r"<[^>]*>")
_PAREN_RE = re.compile(r"\([^)]*\)")


def wiktionary_page_url(word: str, target_lang: str, source_lang: str | None = None) -> str:
    """Human-facing page URL, anchored at the source language section."""
    url = f"https://{wiktionary_language(target_lang)}.wiktionary.org/wiki/{quote(word.lower())}"
    if source_lang:
        url += f"#{language_name(source_lang.upper())}"
    return url


def _clean_definition(definition: str) -> str:
    return _PAREN_RE.sub("", _TAG_RE.sub("", definition)).strip()


def extract_definitions(data: dict, source_code: str) -> list[str]:
    """Pull up to three cleaned definitions per entry for the source language."""
    definitions: list[str] = []
    for entry in data.get(source_code) or []:
        for item in (entry.get("definitions") or [])[:MAX_DEFINITIONS]:
            cleaned = _clean_definition(item.get("definition", ""))
            if cleaned:
                definitions.append(cleaned)
    return definitions


async def fetch_definition(
    client: httpx.AsyncClient,
    word: str,
    target_lang: str,
    source_lang: str | None = None,
) -> str:
    """Look a word up on the target-language Wiktionary.

    Definitions are read from the source language section (Finnish when
    the source language is unknown) and joined with ``"; "``.

    Raises:
        ProviderError: When the word or a source-language definition is missing.
    """
    wikt_lang = wiktionary_language(target_lang)
    url = f"https://{wikt_lang}.wiktionary.org/api/rest_v1/page/definition/{quote(word)}"
    source_code = normalize_language_code(source_lang) if source_lang else "fi"

    try:
        response = await client.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise ProviderError(ErrorKind.NETWORK, "Failed to fetch from Wiktionary") from e

    if response.status_code == 404:
        raise ProviderError(ErrorKind.UNSUPPORTED, "Word not found in Wiktionary")
    if response.status_code != 200:
        raise ProviderError(ErrorKind.TRANSIENT, f"Wiktionary error: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError(ErrorKind.TRANSIENT, "Failed to fetch from Wiktionary") from e

    definitions = extract_definitions(data if isinstance(data, dict) else {}, source_code)
    if not definitions:
        raise ProviderError(
            ErrorKind.UNSUPPORTED,
            f"No {language_name(source_code.upper())} definition found",
        )
    return "; ".join(definitions)
