"""DeepL adapter: one JSON POST per batch."""

from __future__ import annotations

import httpx

from dualsub.core.config import ProviderConfig
from dualsub.core.errors import ErrorKind
from dualsub.core.models import Failure, Success, TranslationResult

DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"


def deepl_endpoint(api_key: str) -> str:
    """Free-tier keys end in ``:fx``; everything else goes to the pro API."""
    return DEEPL_FREE_URL if api_key.endswith(":fx") else DEEPL_PRO_URL


async def translate_deepl(
    client: httpx.AsyncClient,
    texts: list[str],
    target_lang: str,
    config: ProviderConfig,
) -> TranslationResult:
    if not config.api_key:
        return Failure(
            ErrorKind.AUTH,
            "DeepL API key not configured. Please add your API key in settings.",
        )

    try:
        # source_lang omitted so DeepL auto-detects
        response = await client.post(
            deepl_endpoint(config.api_key),
            json={"text": texts, "target_lang": target_lang},
            headers={"Authorization": f"DeepL-Auth-Key {config.api_key}"},
        )
    except httpx.TimeoutException as e:
        return Failure(ErrorKind.NETWORK, f"DeepL request timed out: {e}")
    except httpx.HTTPError as e:
        return Failure(ErrorKind.NETWORK, f"DeepL network error: {e}")

    status = response.status_code
    if status in (401, 403):
        return Failure(ErrorKind.AUTH, "Invalid DeepL API key")
    if status == 456:
        return Failure(ErrorKind.TRANSIENT, "DeepL quota exceeded")
    if status == 429:
        return Failure(ErrorKind.RATE_LIMITED, "DeepL rate limit exceeded")
    if status >= 300:
        return Failure(ErrorKind.TRANSIENT, f"DeepL error: {status}")

    try:
        data = response.json()
        translations = [item["text"] for item in data["translations"]]
    except (ValueError, KeyError, TypeError) as e:
        return Failure(ErrorKind.TRANSIENT, f"DeepL returned an unexpected payload: {e}")
    # one slot per input text; missing slots are retried later
    translations = (translations + [None] * len(texts))[: len(texts)]
    return Success(translations)
