"""LLM translation adapters (Claude, Gemini, Grok, Kimi)."""

from __future__ import annotations

from dualsub.core.config import ProviderConfig
from dualsub.core.errors import ProviderError
from dualsub.core.languages import language_name
from dualsub.core.models import Failure, Success, TranslationResult
from dualsub.providers.client import complete
from dualsub.providers.prompts import (
    build_batch_prompt,
    build_contextual_prompt,
    build_word_prompt,
    parse_line_response,
)

LLM_PROVIDERS = ("claude", "gemini", "grok", "kimi")

BATCH_MAX_TOKENS = 1024
CONTEXTUAL_MAX_TOKENS = 4096
WORD_MAX_TOKENS = 100


async def translate_llm(
    texts: list[str],
    target_lang: str,
    config: ProviderConfig,
    contextual: bool = False,
) -> TranslationResult:
    """Translate a batch in one completion; the output always has ``len(texts)`` lines."""
    lang_name = language_name(target_lang)
    if contextual:
        prompt = build_contextual_prompt(texts, lang_name)
        max_tokens = CONTEXTUAL_MAX_TOKENS
    else:
        prompt = build_batch_prompt(config.provider_id, texts, lang_name)
        max_tokens = BATCH_MAX_TOKENS

    try:
        reply = await complete(prompt, config, max_tokens=max_tokens)
    except ProviderError as e:
        return Failure(e.kind, e.message)
    return Success(parse_line_response(reply, texts))


def _clean_word_reply(reply: str) -> str:
    lines = [line.strip() for line in reply.splitlines() if line.strip()]
    if not lines:
        return ""
    return lines[0].strip("\"'")


async def translate_word_llm(
    word: str,
    context: str,
    lang_name: str,
    config: ProviderConfig,
) -> TranslationResult:
    prompt = build_word_prompt(word, context, lang_name)
    try:
        reply = await complete(prompt, config, max_tokens=WORD_MAX_TOKENS)
    except ProviderError as e:
        return Failure(e.kind, e.message)
    return Success(_clean_word_reply(reply) or word)
