"""
Character n-gram features for short field-signal text.

Pipeline:
    text → normalize → pad with "_" → trigrams → TF over a fixed
    vocabulary → L2 normalisation

Vectors are unit length (or all-zero when nothing in the vocabulary
matches), so cosine similarity between two vectors built against the same
vocabulary is a plain dot product.
"""

import re
import unicodedata
from typing import Dict, Iterable, List

import numpy as np

NGRAM_SIZE = 3
BOUNDARY = "_"

_SEPARATORS = re.compile(r"[_\-/.]+")
_WHITESPACE = re.compile(r"\s+")

Vocabulary = Dict[str, int]


def strip_diacritics(text: str) -> str:
    """Canonical decomposition with combining marks removed."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str) -> str:
    """Lowercase, strip diacritics, turn separators into spaces, collapse."""
    if not text:
        return ""
    result = strip_diacritics(text.lower())
    result = _SEPARATORS.sub(" ", result)
    return _WHITESPACE.sub(" ", result).strip()


def char_ngrams(text: str, n: int = NGRAM_SIZE) -> List[str]:
    """
    Extract padded character n-grams.

    Example (n=3):
        "Email" → "_email_" → ["_em", "ema", "mai", "ail", "il_"]

    Empty input pads to "__", which is shorter than a trigram, so no
    windows are produced.
    """
    padded = f"{BOUNDARY}{normalize(text)}{BOUNDARY}"
    return [padded[i:i + n] for i in range(len(padded) - n + 1)]


def build_vocabulary(texts: Iterable[str], n: int = NGRAM_SIZE) -> Vocabulary:
    """Index every n-gram seen in `texts`, in first-seen order."""
    vocab: Vocabulary = {}
    for text in texts:
        for ng in char_ngrams(text, n):
            if ng not in vocab:
                vocab[ng] = len(vocab)
    return vocab


def vectorize(text: str, vocab: Vocabulary, n: int = NGRAM_SIZE) -> np.ndarray:
    """
    Dense TF vector over `vocab`, L2-normalised.

    Unknown n-grams are dropped. When nothing matches the zero vector is
    returned as-is (no division).
    """
    v = np.zeros(len(vocab), dtype=np.float32)
    for ng in char_ngrams(text, n):
        idx = vocab.get(ng)
        if idx is not None:
            v[idx] += 1.0

    norm = float(np.linalg.norm(v))
    if norm > 0:
        v /= norm
    return v


def l2_normalize(v: np.ndarray) -> np.ndarray:
    """Return `v` scaled to unit length; zero vectors are returned unchanged."""
    norm = float(np.linalg.norm(v))
    if norm > 0:
        return (v / norm).astype(np.float32)
    return v


def dot_product(a: np.ndarray, b: np.ndarray) -> float:
    """
    Sum of pairwise products over the shorter of the two vectors.

    Only a cosine similarity when both vectors were built against the same
    vocabulary; the length mismatch is tolerated, not checked.
    """
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    return float(np.dot(a[:n], b[:n]))
