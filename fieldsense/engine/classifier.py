"""
Prototype (nearest-centroid) field classifier.

Stack:
- Corpus: bundled samples + rule-derived signals + learned entries
- Features: character trigram TF vectors, L2-normalised
- Model: one centroid per field type (mean of member vectors, re-normalised)
- Learned vectors: every learned entry also kept as its own vector and
  matched first, so a confirmed mapping wins over a centroid it is diluted in

Scoring is a dot product against every centroid, so classification cost
grows with the number of field types, not the corpus size.

The prototype set is built lazily on first use and cached until
`invalidate()` or `reload()` is called. Writes to the learning store do
not invalidate it; callers that need a new mapping to take effect
immediately must invalidate explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

import numpy as np

from ..types import (
    ClassificationResult,
    EMPTY_RESULT,
    FieldRule,
    LearnedEntry,
    ResultSource,
    StructuredSignals,
    TrainingSample,
)
from .corpus import ORIGIN_LEARNED, build_corpus, flatten_signals
from .ngram import NGRAM_SIZE, Vocabulary, build_vocabulary, dot_product, l2_normalize, normalize, vectorize

logger = logging.getLogger(__name__)


# Similarity a best match needs for classify_soft to accept it
HARD_ACCEPT_THRESHOLD = 0.35

# Similarity to a single learned entry that resolves a field directly
LEARNED_MATCH_THRESHOLD = 0.6

# Field attributes that make up the signal text of a live field, in order
FIELD_SIGNAL_KEYS = ("label", "name", "id", "placeholder", "autocomplete")

SignalInput = Union[str, StructuredSignals, Mapping[str, Optional[str]]]


def to_signal_text(signals: SignalInput) -> str:
    """Build normalized signal text from any supported input shape.

    Accepts flat text, StructuredSignals, or a mapping of field attributes
    (label, name, id, placeholder, autocomplete).
    """
    if signals is None:
        return ""
    if isinstance(signals, str):
        return normalize(signals)
    if isinstance(signals, StructuredSignals):
        return flatten_signals(signals)
    parts = [signals.get(key) or "" for key in FIELD_SIGNAL_KEYS]
    return normalize(" ".join(p for p in parts if p))


@dataclass
class PrototypeSet:
    """Centroid per field type plus the vocabulary they were built against."""
    vocabulary: Vocabulary
    centroids: Dict[str, np.ndarray]  # insertion order = first-seen corpus order
    corpus_size: int
    learned_vectors: List[Tuple[str, np.ndarray]] = field(default_factory=list)
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def field_types(self) -> List[str]:
        return list(self.centroids.keys())


def build_prototypes(
    corpus_texts: Sequence[Tuple[str, str]],
    ngram_size: int = NGRAM_SIZE,
    learned_texts: Sequence[Tuple[str, str]] = (),
) -> PrototypeSet:
    """Compute normalised centroids from (text, field_type) pairs.

    `learned_texts` are vectorized individually against the same vocabulary;
    they should also be part of `corpus_texts` so the centroids include them.
    """
    vocab = build_vocabulary((text for text, _ in corpus_texts), ngram_size)

    sums: Dict[str, np.ndarray] = {}
    counts: Dict[str, int] = {}
    for text, field_type in corpus_texts:
        v = vectorize(text, vocab, ngram_size)
        if field_type not in sums:
            sums[field_type] = np.zeros(len(vocab), dtype=np.float32)
            counts[field_type] = 0
        sums[field_type] += v
        counts[field_type] += 1

    centroids = {
        field_type: l2_normalize(total / counts[field_type])
        for field_type, total in sums.items()
    }

    return PrototypeSet(
        vocabulary=vocab,
        centroids=centroids,
        corpus_size=len(corpus_texts),
        learned_vectors=[
            (field_type, vectorize(text, vocab, ngram_size)) for text, field_type in learned_texts
        ],
    )


class PrototypeClassifier:
    """
    Nearest-prototype classifier with hard and soft modes.

    Corpus sources are zero-argument callables so the classifier always
    rebuilds from current data after an invalidation.

    Tie-break: when several prototypes share the maximum similarity, the
    type that first appeared in the corpus wins.
    """

    def __init__(
        self,
        samples: Optional[Callable[[], Iterable[TrainingSample]]] = None,
        rules: Optional[Callable[[], Iterable[FieldRule]]] = None,
        learned: Optional[Callable[[], Iterable[LearnedEntry]]] = None,
        threshold: float = HARD_ACCEPT_THRESHOLD,
        ngram_size: int = NGRAM_SIZE,
        learned_threshold: float = LEARNED_MATCH_THRESHOLD,
    ):
        if samples is None:
            from ..dataset import load_training_samples
            samples = load_training_samples

        self._samples = samples
        self._rules = rules or (lambda: [])
        self._learned = learned or (lambda: [])
        self.threshold = threshold
        self.ngram_size = ngram_size
        self.learned_threshold = learned_threshold

        self._prototypes: Optional[PrototypeSet] = None

    # Cache lifecycle

    @property
    def is_loaded(self) -> bool:
        return self._prototypes is not None

    @property
    def prototypes(self) -> PrototypeSet:
        """The cached prototype set, building it on first access."""
        if self._prototypes is None:
            self.load()
        return self._prototypes

    @property
    def field_types(self) -> List[str]:
        return self.prototypes.field_types

    def load(self) -> PrototypeSet:
        """Build prototypes from the current corpus sources."""
        corpus = build_corpus(self._samples(), self._rules(), self._learned())
        self._prototypes = build_prototypes(
            [(entry.text, entry.field_type) for entry in corpus],
            self.ngram_size,
            learned_texts=[
                (entry.text, entry.field_type) for entry in corpus if entry.origin == ORIGIN_LEARNED
            ],
        )
        logger.info(
            f"Built {len(self._prototypes.centroids)} prototypes from "
            f"{len(corpus)} corpus entries (vocab {len(self._prototypes.vocabulary)} n-grams)"
        )
        return self._prototypes

    def invalidate(self):
        """Drop cached prototypes; the next classification rebuilds them."""
        if self._prototypes is not None:
            logger.debug(f"Dropped {len(self._prototypes.centroids)} cached prototypes")
        self._prototypes = None

    def reload(self) -> PrototypeSet:
        """Rebuild prototypes now."""
        self._prototypes = None
        return self.load()

    # Scoring

    def score(self, signals: SignalInput) -> List[Tuple[str, float]]:
        """Similarity against every prototype, best first.

        Equal scores keep corpus order, so the first entry is always the
        tie-break winner.
        """
        text = to_signal_text(signals)
        if not text:
            return []
        return sorted(self._score_text(text), key=lambda pair: -pair[1])

    def _score_text(self, text: str) -> List[Tuple[str, float]]:
        prototypes = self.prototypes
        v = vectorize(text, prototypes.vocabulary, self.ngram_size)
        return [
            (field_type, dot_product(v, centroid))
            for field_type, centroid in prototypes.centroids.items()
        ]

    def _learned_match(self, text: str) -> Optional[Tuple[str, float]]:
        """Closest learned entry, if it clears `learned_threshold`."""
        prototypes = self.prototypes
        if not prototypes.learned_vectors:
            return None

        v = vectorize(text, prototypes.vocabulary, self.ngram_size)
        best_type: Optional[str] = None
        best_score = -1.0
        for field_type, vector in prototypes.learned_vectors:
            similarity = dot_product(v, vector)
            if similarity > best_score:
                best_type, best_score = field_type, similarity

        if best_score < self.learned_threshold:
            return None
        logger.debug(f"Learned match: '{text}' → {best_type} (cosine={best_score:.3f})")
        return best_type, best_score

    def _best(self, text: str) -> Optional[Tuple[str, float]]:
        best_type: Optional[str] = None
        best_score = -1.0
        for field_type, similarity in self._score_text(text):
            if similarity > best_score:
                best_type, best_score = field_type, similarity
        if best_type is None:
            return None
        return best_type, best_score

    def classify(self, signals: SignalInput) -> ClassificationResult:
        """Hard mode: a close learned entry, else the best-scoring type.

        Returns an empty result only when the input normalizes to nothing or
        no prototypes exist.
        """
        text = to_signal_text(signals)
        if not text:
            return EMPTY_RESULT

        learned = self._learned_match(text)
        if learned is not None:
            return ClassificationResult(learned[0], learned[1], ResultSource.PROTOTYPE)

        best = self._best(text)
        if best is None:
            logger.warning("No prototypes available - classifier corpus is empty")
            return EMPTY_RESULT

        field_type, similarity = best
        logger.debug(f"classify: '{text}' → {field_type} (cosine={similarity:.3f})")
        return ClassificationResult(field_type, similarity, ResultSource.PROTOTYPE)

    def classify_soft(self, signals: SignalInput) -> Optional[ClassificationResult]:
        """Soft mode: a close learned entry, else the best-scoring type or None
        below the accept threshold."""
        text = to_signal_text(signals)
        if not text:
            return None

        learned = self._learned_match(text)
        if learned is not None:
            return ClassificationResult(learned[0], learned[1], ResultSource.PROTOTYPE)

        best = self._best(text)
        if best is None:
            return None

        field_type, similarity = best
        if similarity < self.threshold:
            logger.debug(
                f"classify_soft: low score ({similarity:.3f} < {self.threshold}) "
                f"for '{text}' - best guess {field_type}"
            )
            return None

        return ClassificationResult(field_type, similarity, ResultSource.PROTOTYPE)
