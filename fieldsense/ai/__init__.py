"""On-device generative model fallback for field classification."""

from .session import (
    AVAILABLE,
    DOWNLOADABLE,
    UNAVAILABLE,
    CancellationToken,
    LanguageModelService,
    LanguageModelSession,
    OllamaLanguageModel,
    OllamaSession,
    PromptCancelledError,
    SessionConfig,
    run_cancellable,
)
from .prompts import (
    CLASSIFIER_MIN_CONFIDENCE,
    FieldClassifierOutput,
    build_classifier_prompt,
    build_system_prompt,
    parse_classifier_response,
)
from .field_classifier import (
    GenerativeFieldClassifier,
    get_generative_classifier,
)

__all__ = [
    "AVAILABLE",
    "DOWNLOADABLE",
    "UNAVAILABLE",
    "CancellationToken",
    "LanguageModelService",
    "LanguageModelSession",
    "OllamaLanguageModel",
    "OllamaSession",
    "PromptCancelledError",
    "SessionConfig",
    "run_cancellable",
    "CLASSIFIER_MIN_CONFIDENCE",
    "FieldClassifierOutput",
    "build_classifier_prompt",
    "build_system_prompt",
    "parse_classifier_response",
    "GenerativeFieldClassifier",
    "get_generative_classifier",
]
