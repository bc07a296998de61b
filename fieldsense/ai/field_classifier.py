"""Generative model field classifier.

Wraps a LanguageModelService with the policies the fallback path needs:

- Availability: a negative probe is remembered for `cooldown` seconds so a
  missing model does not cost an expensive check on every field.
- Session reuse: one session is shared across calls and created lazily.
- Timeout: each prompt gets a CancellationToken cancelled after `timeout`
  seconds. A timeout is transient and keeps the session.
- Failure: any other error destroys the session; the next call creates a
  fresh one.
- Session creation failure: arms the same cool-down as a negative probe.
"""

import asyncio
import time
from typing import Callable, Iterable, Optional
import logging

from ..errors import ModelError, ModelFailureError, ModelTimeoutError, ModelUnavailableError
from ..types import FIELD_TYPES
from .prompts import (
    FieldClassifierOutput,
    build_classifier_prompt,
    build_system_prompt,
    parse_classifier_response,
)
from .session import (
    CancellationToken,
    LanguageModelService,
    LanguageModelSession,
    PromptCancelledError,
    SessionConfig,
    USABLE_STATUSES,
    run_cancellable,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_COOLDOWN = 60.0


class GenerativeFieldClassifier:
    """Classifies a field by prompting an on-device generative model."""

    def __init__(
        self,
        service: Optional[LanguageModelService],
        valid_types: Iterable[str] = FIELD_TYPES,
        timeout: float = DEFAULT_TIMEOUT,
        cooldown: float = DEFAULT_COOLDOWN,
        temperature: float = 0.1,
        output_language: str = "en",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.valid_types = tuple(valid_types)
        self.timeout = timeout
        self.cooldown = cooldown
        self.temperature = temperature
        self.output_language = output_language
        self._clock = clock

        self._session: Optional[LanguageModelSession] = None
        self._unavailable_until: Optional[float] = None

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def mark_unavailable(self):
        """Skip availability probes until the cool-down elapses."""
        self._unavailable_until = self._clock() + self.cooldown

    async def is_available(self) -> bool:
        """Probe the service, honouring the cool-down after a negative answer."""
        if self.service is None:
            return False

        if self._unavailable_until is not None:
            if self._clock() < self._unavailable_until:
                return False
            self._unavailable_until = None

        try:
            status = await self.service.availability({"output_language": self.output_language})
        except Exception as e:
            logger.error(f"Availability check failed: {e}")
            self.mark_unavailable()
            return False

        logger.debug(f"availability() returned: {status!r}")
        if status not in USABLE_STATUSES:
            logger.warning(f"Generative model not available (status: {status!r})")
            self.mark_unavailable()
            return False
        return True

    async def _get_session(self) -> LanguageModelSession:
        if self._session is not None:
            return self._session

        logger.debug("Creating new model session...")
        config = SessionConfig(
            system_prompt=build_system_prompt(self.valid_types),
            temperature=self.temperature,
            output_language=self.output_language,
        )
        try:
            self._session = await self.service.create(config)
        except Exception as e:
            self.mark_unavailable()
            raise ModelFailureError(f"Session creation failed: {e}") from e
        return self._session

    async def destroy_session(self):
        """Discard the shared session; the next call recreates it."""
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.destroy()
        except Exception as e:
            logger.debug(f"Ignoring error while destroying session: {e}")

    async def classify(
        self,
        signals: str,
        element_html: Optional[str] = None,
        context_html: Optional[str] = None,
    ) -> Optional[FieldClassifierOutput]:
        """
        Ask the model for the field type.

        Returns the parsed answer, or None when the reply carries no usable
        classification.

        Raises:
            ModelUnavailableError: service absent, disabled, or cooling down
            ModelTimeoutError: no reply within `timeout` (session kept)
            ModelFailureError: anything else (session discarded)
        """
        if not await self.is_available():
            raise ModelUnavailableError("Generative model is not available")

        session = await self._get_session()
        prompt = build_classifier_prompt(signals, element_html, context_html)

        token = CancellationToken()
        timer = asyncio.get_running_loop().call_later(self.timeout, token.cancel)
        try:
            raw = await run_cancellable(
                session.prompt(prompt, cancellation_token=token), token
            )
        except PromptCancelledError as e:
            raise ModelTimeoutError(f"No answer within {self.timeout}s") from e
        except Exception as e:
            await self.destroy_session()
            raise ModelFailureError(f"Prompt failed: {e}") from e
        finally:
            timer.cancel()

        logger.debug(f"Model reply for '{signals}': {raw!r}")
        return parse_classifier_response(raw, self.valid_types)

    async def classify_field(
        self,
        signals: str,
        element_html: Optional[str] = None,
        context_html: Optional[str] = None,
    ) -> Optional[FieldClassifierOutput]:
        """Like classify(), but every failure is logged and returns None."""
        try:
            return await self.classify(signals, element_html, context_html)
        except ModelUnavailableError as e:
            logger.debug(str(e))
        except ModelTimeoutError as e:
            logger.warning(f"Model timeout: {e}")
        except ModelError as e:
            logger.warning(f"Model failure: {e}")
        return None

    async def close(self):
        await self.destroy_session()


def get_generative_classifier(config=None) -> GenerativeFieldClassifier:
    """Factory function to build the classifier from configuration."""
    from ..config import get_config
    from .session import OllamaLanguageModel

    if config is None:
        config = get_config().model

    service = None
    if config.provider == "ollama":
        service = OllamaLanguageModel(
            url=config.ollama.url,
            model=config.ollama.model,
        )

    return GenerativeFieldClassifier(
        service,
        timeout=config.timeout,
        cooldown=config.cooldown,
        temperature=config.temperature,
        output_language=config.output_language,
    )
