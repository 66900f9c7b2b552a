"""Tests for provider adapters and the router, with mocked HTTP and LLM calls."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import litellm
import pytest

from dualsub.core.config import ProviderConfig
from dualsub.core.errors import ErrorKind, ProviderError
from dualsub.core.models import Failure, Success
from dualsub.providers.client import complete, map_exception, resolve_model
from dualsub.providers.deepl import DEEPL_FREE_URL, DEEPL_PRO_URL, deepl_endpoint
from dualsub.providers.router import ProviderRouter, backoff_delay


def _google_handler(request: httpx.Request) -> httpx.Response:
    text = request.url.params["q"]
    if text == "broken":
        return httpx.Response(500)
    if text == "empty":
        return httpx.Response(200, json=[[], None, "fi"])
    if text == "slow":
        raise httpx.ReadTimeout("timed out", request=request)
    return httpx.Response(200, json=[[[f"EN({text})", text, None, None]], None, "fi"])


def _router(handler, sleep, provider_id="google", api_key="", rng=lambda: 0.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = ProviderConfig(provider_id=provider_id, api_key=api_key)
    return ProviderRouter(config, client, sleep=sleep, rng=rng)


class TestGoogle:
    def test_sequential_with_pacing(self, sleep):
        router = _router(_google_handler, sleep)
        result = asyncio.run(router.translate(["Hei", "Moi", "Terve"], "EN-US"))
        assert result == Success(["EN(Hei)", "EN(Moi)", "EN(Terve)"])
        assert sleep.delays == [0.2, 0.2]

    def test_failed_requests_yield_none(self, sleep):
        router = _router(_google_handler, sleep)
        result = asyncio.run(router.translate(["Hei", "broken", "empty", "slow"], "EN-US"))
        assert isinstance(result, Success)
        assert result.value == ["EN(Hei)", None, None, None]

    def test_target_code_converted(self, sleep):
        seen = []

        def handler(request):
            seen.append(request.url.params["tl"])
            return httpx.Response(200, json=[[["x", "y"]]])

        router = _router(handler, sleep)
        asyncio.run(router.translate(["a"], "ZH-HANT"))
        asyncio.run(router.translate(["a"], "EN-GB"))
        asyncio.run(router.translate(["a"], "DE"))
        assert seen == ["zh-TW", "en", "de"]

    def test_unknown_provider_falls_back_to_google(self, sleep):
        router = _router(_google_handler, sleep, provider_id="babelfish")
        assert asyncio.run(router.translate(["Hei"], "EN-US")) == Success(["EN(Hei)"])


class TestDeepL:
    def test_endpoint_by_key_suffix(self):
        assert deepl_endpoint("abc:fx") == DEEPL_FREE_URL
        assert deepl_endpoint("abc") == DEEPL_PRO_URL

    def test_success(self, sleep):
        def handler(request):
            assert request.url.host == "api-free.deepl.com"
            assert request.headers["Authorization"] == "DeepL-Auth-Key key:fx"
            body = json.loads(request.content)
            assert "source_lang" not in body
            return httpx.Response(
                200, json={"translations": [{"text": f"T-{t}"} for t in body["text"]]}
            )

        router = _router(handler, sleep, provider_id="deepl", api_key="key:fx")
        assert asyncio.run(router.translate(["a", "b"], "DE")) == Success(["T-a", "T-b"])

    @pytest.mark.parametrize(
        "status,kind",
        [
            (403, ErrorKind.AUTH),
            (456, ErrorKind.TRANSIENT),
            (429, ErrorKind.RATE_LIMITED),
            (500, ErrorKind.TRANSIENT),
        ],
    )
    def test_status_mapping(self, sleep, status, kind):
        router = _router(lambda r: httpx.Response(status), sleep, "deepl", "key")
        result = asyncio.run(router.translate(["a"], "DE"))
        assert isinstance(result, Failure)
        assert result.kind == kind

    @pytest.mark.parametrize(
        "returned,expected",
        [
            (["T-a"], ["T-a", None, None]),
            (["T-a", "T-b", "T-c", "T-d"], ["T-a", "T-b", "T-c"]),
        ],
    )
    def test_result_length_matches_input(self, sleep, returned, expected):
        def handler(request):
            return httpx.Response(200, json={"translations": [{"text": t} for t in returned]})

        router = _router(handler, sleep, provider_id="deepl", api_key="key:fx")
        result = asyncio.run(router.translate(["a", "b", "c"], "DE"))
        assert result == Success(expected)

    def test_missing_key(self, sleep):
        router = _router(_google_handler, sleep, provider_id="deepl")
        result = asyncio.run(router.translate(["a"], "DE"))
        assert result.kind == ErrorKind.AUTH
        assert "API key not configured" in result.reason


class TestLLM:
    @patch("dualsub.providers.llm.complete", new_callable=AsyncMock)
    def test_output_length_matches_input(self, mock_complete, sleep):
        mock_complete.return_value = "Hello\n\nWorld"
        router = _router(_google_handler, sleep, provider_id="claude", api_key="k")

        result = asyncio.run(router.translate(["Hei", "Maailma", "Moi"], "EN-US"))

        assert result == Success(["Hello", "World", "Moi"])
        assert mock_complete.call_args.kwargs["max_tokens"] == 1024

    @patch("dualsub.providers.llm.complete", new_callable=AsyncMock)
    def test_contextual_uses_larger_budget(self, mock_complete, sleep):
        mock_complete.return_value = "a\nb"
        router = _router(_google_handler, sleep, provider_id="gemini", api_key="k")

        result = asyncio.run(router.translate_batch_with_context(["x", "y"], "EN-US", True))

        assert result == Success(["a", "b"])
        prompt = mock_complete.call_args.args[0]
        assert "ALWAYS translate" in prompt
        assert mock_complete.call_args.kwargs["max_tokens"] == 4096

    def test_contextual_falls_back_for_google(self, sleep):
        router = _router(_google_handler, sleep)
        result = asyncio.run(router.translate_batch_with_context(["Hei"], "EN-US", True))
        assert result == Success(["EN(Hei)"])

    @patch("dualsub.providers.llm.complete", new_callable=AsyncMock)
    def test_provider_error_becomes_failure(self, mock_complete, sleep):
        mock_complete.side_effect = ProviderError(ErrorKind.AUTH, "Invalid Claude API key")
        router = _router(_google_handler, sleep, provider_id="claude", api_key="k")
        result = asyncio.run(router.translate(["Hei"], "EN-US"))
        assert result == Failure(ErrorKind.AUTH, "Invalid Claude API key")

    @patch("dualsub.providers.llm.complete", new_callable=AsyncMock)
    def test_word_translation(self, mock_complete, sleep):
        mock_complete.return_value = '"cat"\n'
        router = _router(_google_handler, sleep, provider_id="grok", api_key="k")

        result = asyncio.run(router.translate_word("kissa", "ctx", "EN-US", "English"))

        assert result == Success("cat")
        assert mock_complete.call_args.kwargs["max_tokens"] == 100

    def test_word_translation_google_takes_first(self, sleep):
        router = _router(_google_handler, sleep)
        result = asyncio.run(router.translate_word("kissa", "ctx", "EN-US", "English"))
        assert result == Success("EN(kissa)")

    def test_missing_key_raises_auth(self):
        with pytest.raises(ProviderError) as exc:
            asyncio.run(complete("hi", ProviderConfig(provider_id="claude"), max_tokens=10))
        assert exc.value.kind == ErrorKind.AUTH

    def test_kimi_model_uses_base_url(self):
        config = ProviderConfig(
            provider_id="kimi",
            api_key="k",
            base_url="https://api.kimi.com/coding",
            model="kimi-coding/k2p5",
        )
        assert resolve_model(config) == ("anthropic/kimi-coding/k2p5", "https://api.kimi.com/coding")

    def test_litellm_exceptions_mapped(self):
        rate = litellm.RateLimitError(message="slow down", llm_provider="anthropic", model="m")
        auth = litellm.AuthenticationError(message="bad key", llm_provider="anthropic", model="m")
        assert map_exception(rate, "claude").kind == ErrorKind.RATE_LIMITED
        assert map_exception(rate, "claude").message == "Claude rate limit exceeded"
        assert map_exception(auth, "gemini").kind == ErrorKind.AUTH
        assert map_exception(RuntimeError("boom"), "grok").kind == ErrorKind.TRANSIENT


class TestRetry:
    def test_backoff_delay(self):
        assert backoff_delay(0, lambda: 0.0) == 1000
        assert backoff_delay(2, lambda: 0.5) == 4250

    @pytest.mark.parametrize("jitter", [0.0, 0.5, 0.999])
    def test_rate_limit_backoff_bound(self, sleep, jitter):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(429)

        router = _router(handler, sleep, "deepl", "key", rng=lambda: jitter)
        result = asyncio.run(router.translate_with_retry(["a"], "DE"))

        assert result.kind == ErrorKind.RATE_LIMITED
        assert len(attempts) == 3
        assert len(sleep.delays) == 3
        assert 7.0 <= sleep.total <= 8.5

    def test_non_rate_limited_failure_not_retried(self, sleep):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(403)

        router = _router(handler, sleep, "deepl", "key")
        result = asyncio.run(router.translate_with_retry(["a"], "DE"))
        assert result.kind == ErrorKind.AUTH
        assert len(attempts) == 1
        assert sleep.delays == []

    def test_recovers_after_rate_limit(self, sleep):
        responses = [httpx.Response(429), httpx.Response(200, json={"translations": [{"text": "ok"}]})]
        router = _router(lambda r: responses.pop(0), sleep, "deepl", "key")
        assert asyncio.run(router.translate_with_retry(["a"], "DE")) == Success(["ok"])
        assert sleep.delays == [1.0]

    @patch("dualsub.providers.llm.complete", new_callable=AsyncMock)
    def test_unexpected_exception_surfaces_as_transient(self, mock_complete, sleep):
        mock_complete.side_effect = RuntimeError("kaboom")
        router = _router(_google_handler, sleep, provider_id="claude", api_key="k")
        result = asyncio.run(router.translate_with_retry(["a"], "DE"))
        assert result == Failure(ErrorKind.TRANSIENT, "kaboom")
        assert mock_complete.call_count == 3


def test_reload_swaps_snapshot(sleep):
    router = _router(_google_handler, sleep)
    router.reload(ProviderConfig(provider_id="deepl", api_key="x"))
    assert router.config.provider_id == "deepl"
