"""Training corpus builder.

Merges the three sources the prototype classifier learns from:

1. Bundled training samples (structured signals flattened, no weighting)
2. Signals synthesized from user field-mapping rules
3. Learned entries captured at runtime

Each source contributes independently; conflicting labels for the same
text are resolved by centroid averaging in the classifier, not here.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List

from ..types import FieldRule, LearnedEntry, StructuredSignals, TrainingSample
from .ngram import normalize

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")

ORIGIN_DATASET = "dataset"
ORIGIN_RULE = "rule"
ORIGIN_LEARNED = "learned"


@dataclass(frozen=True)
class CorpusEntry:
    """One labelled training text."""
    text: str
    field_type: str
    origin: str


def flatten_signals(signals: StructuredSignals) -> str:
    """Concatenate primary, secondary and structural groups into signal text."""
    return normalize(" ".join(t for t in signals.all_tokens() if t))


def build_signals_from_rule(rule: FieldRule) -> str:
    """Synthesize signal text from a rule's type, name and selector.

    Selector punctuation, quotes, brackets and combinators become spaces:
        ".form-group__input[name='cpf']" → "form group input name cpf"
    """
    parts = [
        rule.field_type or "",
        rule.field_name or "",
        rule.field_selector or "",
    ]
    words = _NON_ALNUM.sub(" ", normalize(" ".join(parts)))
    return _WHITESPACE.sub(" ", words).strip()


def build_corpus(
    samples: Iterable[TrainingSample],
    rules: Iterable[FieldRule],
    learned: Iterable[LearnedEntry],
) -> List[CorpusEntry]:
    """Build the flat (text, field_type) corpus.

    Order is fixed: dataset samples, then rules, then learned entries, each
    in input order. Entries whose text normalizes to empty are skipped.
    """
    corpus: List[CorpusEntry] = []

    for sample in samples:
        text = flatten_signals(sample.signals)
        if text:
            corpus.append(CorpusEntry(text, sample.field_type, ORIGIN_DATASET))

    for rule in rules:
        text = build_signals_from_rule(rule)
        if text:
            corpus.append(CorpusEntry(text, rule.field_type, ORIGIN_RULE))

    for entry in learned:
        text = normalize(entry.normalized_signals)
        if text:
            corpus.append(CorpusEntry(text, entry.field_type, ORIGIN_LEARNED))

    return corpus
