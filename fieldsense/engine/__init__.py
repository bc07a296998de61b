"""Text features, corpus building and the prototype classifier."""

from .ngram import (
    NGRAM_SIZE,
    build_vocabulary,
    char_ngrams,
    dot_product,
    normalize,
    vectorize,
)
from .corpus import (
    CorpusEntry,
    build_corpus,
    build_signals_from_rule,
    flatten_signals,
)
from .classifier import (
    HARD_ACCEPT_THRESHOLD,
    PrototypeClassifier,
    PrototypeSet,
    build_prototypes,
    to_signal_text,
)

__all__ = [
    "NGRAM_SIZE",
    "build_vocabulary",
    "char_ngrams",
    "dot_product",
    "normalize",
    "vectorize",
    "CorpusEntry",
    "build_corpus",
    "build_signals_from_rule",
    "flatten_signals",
    "HARD_ACCEPT_THRESHOLD",
    "PrototypeClassifier",
    "PrototypeSet",
    "build_prototypes",
    "to_signal_text",
]
