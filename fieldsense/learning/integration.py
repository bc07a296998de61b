"""Fallback arbiter: prototype classifier first, generative model second.

Wires the prototype classifier, the continuous learning store and the
generative model into one classification call.

Usage:
    from fieldsense.learning.integration import create_arbiter

    arbiter = create_arbiter()
    await arbiter.reload()

    result = await arbiter.classify({"label": "CEP", "name": "zip"})
    result.field_type, result.confidence, result.source

Decision order for one field:
    1. classify_soft is confident        → prototype answer, no model call
    2. the model answers in time         → answer recorded as a learned
                                           entry, returned with confidence 1.0
    3. anything else (unavailable, timeout, failure, unparseable reply)
                                         → hard classify
"""

import logging
from typing import Optional

from ..ai.field_classifier import GenerativeFieldClassifier, get_generative_classifier
from ..config import Config, get_config
from ..engine.classifier import PrototypeClassifier, PrototypeSet, SignalInput, to_signal_text
from ..types import ClassificationResult, EMPTY_RESULT, LearnedSource, ResultSource
from .learning_store import LearningStore
from .storage import SQLiteKeyValueStore

logger = logging.getLogger(__name__)

# Confidence reported for accepted model answers
AI_CONFIDENCE = 1.0


class FallbackArbiter:
    """Classifies fields, escalating to the generative model only when needed.

    The classifier should read learned entries from `learning_store.snapshot`
    so that a rebuild sees mappings recorded here.

    With `invalidate_on_learn` off (the default) a recorded mapping only
    affects classification after the next `invalidate()` or `reload()`.
    """

    def __init__(
        self,
        classifier: PrototypeClassifier,
        learning_store: LearningStore,
        model_classifier: Optional[GenerativeFieldClassifier] = None,
        invalidate_on_learn: bool = False,
    ):
        self.classifier = classifier
        self.learning_store = learning_store
        self.model_classifier = model_classifier
        self.invalidate_on_learn = invalidate_on_learn

    async def classify(
        self,
        signals: SignalInput,
        element_html: Optional[str] = None,
        context_html: Optional[str] = None,
    ) -> ClassificationResult:
        """Classify one field. Never raises for model or storage failures."""
        text = to_signal_text(signals)
        if not text:
            return EMPTY_RESULT

        await self._ensure_loaded()

        soft = self.classifier.classify_soft(text)
        if soft is not None:
            return soft

        if self.model_classifier is not None:
            answer = await self.model_classifier.classify_field(text, element_html, context_html)
            if answer is not None:
                logger.info(f"Model classified '{text}' as {answer.field_type}")
                await self.record_learned_mapping(text, answer.field_type, answer.generator_type)
                return ClassificationResult(answer.field_type, AI_CONFIDENCE, ResultSource.AI)

        return self.classifier.classify(text)

    def classify_soft(self, signals: SignalInput) -> Optional[ClassificationResult]:
        return self.classifier.classify_soft(signals)

    def classify_hard(self, signals: SignalInput) -> ClassificationResult:
        return self.classifier.classify(signals)

    async def record_learned_mapping(
        self,
        signals: SignalInput,
        field_type: str,
        generator_type: Optional[str] = None,
        source: str = LearnedSource.AUTO.value,
    ) -> bool:
        """Persist a confirmed signal → type mapping.

        Returns True when the store accepted the write.
        """
        text = to_signal_text(signals)
        stored = await self.learning_store.store_learned_entry(
            text, field_type, generator_type=generator_type, source=source
        )
        if stored and self.invalidate_on_learn:
            self.classifier.invalidate()
        return stored

    def invalidate(self):
        """Drop cached prototypes; the next call rebuilds them."""
        self.classifier.invalidate()

    async def reload(self) -> PrototypeSet:
        """Re-read learned entries from storage and rebuild prototypes now."""
        await self.learning_store.get_learned_entries()
        return self.classifier.reload()

    async def close(self):
        if self.model_classifier is None:
            return
        await self.model_classifier.close()
        service = self.model_classifier.service
        if service is not None and hasattr(service, "aclose"):
            await service.aclose()

    async def _ensure_loaded(self):
        # First build must see what is already persisted
        if not self.classifier.is_loaded:
            await self.learning_store.get_learned_entries()


def create_arbiter(
    config: Optional[Config] = None,
    invalidate_on_learn: bool = False,
    with_model: bool = True,
) -> FallbackArbiter:
    """Build an arbiter over the SQLite store in the configured data dir.

    With `with_model` off, or provider "none", there is no generative
    fallback and low-confidence fields go straight to hard classify.
    """
    config = config or get_config()

    store = LearningStore(
        SQLiteKeyValueStore(config.db_path),
        key=config.learning.storage_key,
        max_entries=config.learning.max_entries,
    )
    classifier = PrototypeClassifier(
        learned=store.snapshot,
        threshold=config.classifier.hard_accept_threshold,
        ngram_size=config.classifier.ngram_size,
        learned_threshold=config.classifier.learned_match_threshold,
    )

    model_classifier = None
    if with_model and config.model.provider != "none":
        model_classifier = get_generative_classifier(config.model)

    return FallbackArbiter(
        classifier,
        store,
        model_classifier,
        invalidate_on_learn=invalidate_on_learn,
    )
