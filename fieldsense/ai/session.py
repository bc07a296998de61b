"""Generative model session service: interface and Ollama implementation.

Call contract consumed by the field classifier:

    status  = await service.availability({"output_language": "en"})
    session = await service.create(SessionConfig(...))
    text    = await session.prompt(prompt, cancellation_token=token)
    await session.destroy()

Cancellation is explicit: the caller owns a CancellationToken and cancels
it (on timeout, shutdown, ...). `run_cancellable` races a coroutine against
a token so a prompt is abandoned even if the session ignores the token.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, Protocol, TypeVar
import logging

import httpx

from ..errors import ModelError, ModelFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Availability statuses
AVAILABLE = "available"
DOWNLOADABLE = "downloadable"
UNAVAILABLE = "unavailable"

USABLE_STATUSES = (AVAILABLE, DOWNLOADABLE)


class PromptCancelledError(ModelError):
    """The prompt was abandoned because its cancellation token fired."""
    pass


class CancellationToken:
    """Explicit, one-shot cancellation signal shared by caller and callee."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()


async def run_cancellable(aw: Awaitable[T], token: CancellationToken) -> T:
    """Await `aw` unless `token` fires first.

    Raises PromptCancelledError when cancelled; the pending work is
    cancelled too.
    """
    if token.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise PromptCancelledError("cancelled before start")

    work = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()

    if work.done():
        return work.result()

    work.cancel()
    try:
        await work
    except asyncio.CancelledError:
        pass
    raise PromptCancelledError("prompt cancelled")


@dataclass
class SessionConfig:
    """What a new session is created with."""
    system_prompt: str
    temperature: float = 0.1
    output_language: str = "en"


class LanguageModelSession(Protocol):
    async def prompt(self, text: str, cancellation_token: Optional[CancellationToken] = None) -> str:
        ...

    async def destroy(self) -> None:
        ...


class LanguageModelService(Protocol):
    async def availability(self, options: Optional[Dict[str, Any]] = None) -> str:
        ...

    async def create(self, config: SessionConfig) -> LanguageModelSession:
        ...


class OllamaSession:
    """One prompt context on a local Ollama server.

    Each prompt is sent with the session's system prompt only; no chat
    history accumulates between calls.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, model: str, config: SessionConfig):
        self._client = client
        self.url = url
        self.model = model
        self.config = config
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    async def prompt(self, text: str, cancellation_token: Optional[CancellationToken] = None) -> str:
        if self._destroyed:
            raise ModelFailureError("Session already destroyed")

        request = self._client.post(
            f"{self.url}/api/chat",
            json={
                "model": self.model,
                "stream": False,
                "messages": [
                    {"role": "system", "content": self._system_content()},
                    {"role": "user", "content": text},
                ],
                "options": {
                    "temperature": self.config.temperature,
                },
            },
        )

        if cancellation_token is not None:
            response = await run_cancellable(request, cancellation_token)
        else:
            response = await request

        response.raise_for_status()
        result = response.json()
        return result.get("message", {}).get("content", "")

    async def destroy(self):
        self._destroyed = True

    def _system_content(self) -> str:
        return f"{self.config.system_prompt}\nRespond in language: {self.config.output_language}."


class OllamaLanguageModel:
    """Session service backed by a local Ollama server."""

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "phi3:mini",
        client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = 30.0,
    ):
        self.url = url.rstrip("/")
        self.model = model
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=http_timeout)

    async def availability(self, options: Optional[Dict[str, Any]] = None) -> str:
        """Check if Ollama is running and the model is installed."""
        try:
            response = await self._client.get(f"{self.url}/api/tags", timeout=5.0)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"Ollama not available: {e}")
            return UNAVAILABLE

        models = response.json().get("models", [])
        model_names = [m.get("name", "") for m in models]

        # Check for exact match or partial match
        if any(self.model in name or name in self.model for name in model_names if name):
            return AVAILABLE

        logger.warning(f"Model {self.model} not found. Available: {model_names}")
        return UNAVAILABLE

    async def create(self, config: SessionConfig) -> OllamaSession:
        return OllamaSession(self._client, self.url, self.model, config)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
