"""Unified async LLM client via LiteLLM with provider error mapping."""

from __future__ import annotations

import litellm
from litellm import acompletion

from dualsub.core.config import ProviderConfig
from dualsub.core.errors import ErrorKind, ProviderError

REQUEST_TIMEOUT = 30.0

# provider_id -> (LiteLLM model string, display name)
LLM_MODELS: dict[str, tuple[str, str]] = {
    "claude": ("anthropic/claude-haiku-4-5-20251001", "Claude"),
    "gemini": ("gemini/gemini-2.5-flash-lite", "Gemini"),
    "grok": ("xai/grok-4-1-fast-non-reasoning-latest", "Grok"),
    "kimi": ("anthropic/kimi-coding/k2p5", "Kimi"),
}


def display_name(provider_id: str) -> str:
    return LLM_MODELS.get(provider_id, (provider_id, provider_id.capitalize()))[1]


def resolve_model(config: ProviderConfig) -> tuple[str, str | None]:
    """Return the LiteLLM model string and api_base for a provider snapshot.

    Kimi speaks the Anthropic messages protocol on its own base URL.
    """
    if config.provider_id == "kimi":
        return f"anthropic/{config.model}", config.base_url
    if config.provider_id not in LLM_MODELS:
        raise ProviderError(ErrorKind.UNSUPPORTED, f"Unsupported provider: {config.provider_id}")
    return LLM_MODELS[config.provider_id][0], config.base_url


def map_exception(exc: Exception, provider_id: str) -> ProviderError:
    """Translate a LiteLLM exception into the dualsub error taxonomy."""
    name = display_name(provider_id)
    if isinstance(exc, (litellm.AuthenticationError, litellm.PermissionDeniedError)):
        return ProviderError(ErrorKind.AUTH, f"Invalid {name} API key")
    if isinstance(exc, litellm.RateLimitError):
        return ProviderError(ErrorKind.RATE_LIMITED, f"{name} rate limit exceeded")
    if isinstance(exc, (litellm.Timeout, litellm.APIConnectionError)):
        return ProviderError(ErrorKind.NETWORK, f"{name} network error: {exc}")
    if isinstance(exc, litellm.BadRequestError):
        return ProviderError(ErrorKind.UNSUPPORTED, f"{name} rejected the request: {exc}")
    status = getattr(exc, "status_code", None)
    return ProviderError(ErrorKind.TRANSIENT, f"{name} error: {status or exc}")


async def complete(
    prompt: str,
    config: ProviderConfig,
    max_tokens: int,
    temperature: float = 0.1,
) -> str:
    """Send a single-message chat completion and return the reply text.

    Args:
        prompt: User message.
        config: Provider snapshot (key, model, base URL).
        max_tokens: Output token budget.
        temperature: Sampling temperature.

    Raises:
        ProviderError: On missing keys and on any provider failure.
    """
    if not config.api_key:
        raise ProviderError(
            ErrorKind.AUTH,
            f"{display_name(config.provider_id)} API key not configured. "
            "Please add your API key in settings.",
        )

    model, api_base = resolve_model(config)

    try:
        response = await acompletion(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            api_key=config.api_key,
            api_base=api_base,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=REQUEST_TIMEOUT,
        )
    except Exception as e:
        raise map_exception(e, config.provider_id) from e

    return response.choices[0].message.content or ""
