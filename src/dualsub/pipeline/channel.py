"""Request channel between the subtitle pipeline and the provider router.

Requests are typed dataclasses; responses use the ``(ok, payload)`` wire
shape. The remote end can be torn down and brought back (the player
restarting, a config reload racing a request), so the client retries a
closed channel a fixed number of times before giving up.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Union

from rich.console import Console

from dualsub.core.errors import CHANNEL_CLOSED_MARKERS, ChannelUnavailableError
from dualsub.core.models import to_wire
from dualsub.providers.router import ProviderRouter

console = Console()

CHANNEL_MAX_ATTEMPTS = 3
CHANNEL_RETRY_DELAY = 1.0  # seconds
CHANNEL_GAVE_UP = "Extension context invalidated"

Response = tuple[bool, object]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class TranslateBatchRequest:
    texts: list[str]
    target_lang: str


@dataclass(frozen=True)
class TranslateBatchWithContextRequest:
    texts: list[str]
    target_lang: str
    contextual: bool = True


@dataclass(frozen=True)
class TranslateWordRequest:
    word: str
    context: str
    target_lang: str
    lang_name: str


Request = Union[TranslateBatchRequest, TranslateBatchWithContextRequest, TranslateWordRequest]


class Channel(Protocol):
    async def send(self, request: Request) -> Response | None: ...


async def handle_request(router: ProviderRouter, request: Request) -> Response:
    """Serve one request against the router and encode the result."""
    if isinstance(request, TranslateBatchRequest):
        result = await router.translate_with_retry(request.texts, request.target_lang)
    elif isinstance(request, TranslateBatchWithContextRequest):
        result = await router.translate_batch_with_context(
            request.texts, request.target_lang, request.contextual
        )
    elif isinstance(request, TranslateWordRequest):
        result = await router.translate_word(
            request.word, request.context, request.target_lang, request.lang_name
        )
    else:
        return False, f"Unsupported request: {type(request).__name__}"
    return to_wire(result)


class LocalChannel:
    """In-process channel that serves requests with a router."""

    def __init__(self, router: ProviderRouter) -> None:
        self._router: ProviderRouter | None = router

    @property
    def is_open(self) -> bool:
        return self._router is not None

    def close(self) -> None:
        self._router = None

    def reopen(self, router: ProviderRouter) -> None:
        self._router = router

    async def send(self, request: Request) -> Response:
        if self._router is None:
            raise ChannelUnavailableError("Receiving end does not exist")
        return await handle_request(self._router, request)


def is_channel_closed(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in CHANNEL_CLOSED_MARKERS)


class ChannelClient:
    """Sends requests over a channel, retrying while the remote is unreachable."""

    def __init__(self, channel: Channel, sleep: Sleep = asyncio.sleep) -> None:
        self._channel = channel
        self._sleep = sleep

    async def request(self, request: Request) -> Response:
        for attempt in range(CHANNEL_MAX_ATTEMPTS):
            last = attempt == CHANNEL_MAX_ATTEMPTS - 1
            try:
                response = await self._channel.send(request)
            except ChannelUnavailableError as e:
                message = str(e)
            except Exception as e:
                message = str(e) or type(e).__name__
                if not is_channel_closed(message):
                    return False, message
            else:
                if response is not None:
                    return response
                message = "no response"

            if last:
                break
            console.print(
                f"[yellow]Translation channel unavailable, retrying in {CHANNEL_RETRY_DELAY:g}s "
                f"(attempt {attempt + 1}/{CHANNEL_MAX_ATTEMPTS}):[/yellow] {message}"
            )
            await self._sleep(CHANNEL_RETRY_DELAY)
        return False, CHANNEL_GAVE_UP

    async def translate_batch(self, texts: list[str], target_lang: str) -> Response:
        return await self.request(TranslateBatchRequest(list(texts), target_lang))

    async def translate_batch_with_context(
        self, texts: list[str], target_lang: str, contextual: bool = True
    ) -> Response:
        return await self.request(
            TranslateBatchWithContextRequest(list(texts), target_lang, contextual)
        )

    async def translate_word(
        self, word: str, context: str, target_lang: str, lang_name: str
    ) -> Response:
        return await self.request(TranslateWordRequest(word, context, target_lang, lang_name))
