"""Bundled training dataset loader."""

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from ..types import Difficulty, TrainingSample

logger = logging.getLogger(__name__)

# Bundled data location (relative to this module)
BUNDLED_DATA_DIR = Path(__file__).parent / "data"

# Load order is part of the classifier's tie-break contract: prototypes keep
# the order in which their field type first appears in the corpus.
DATASET_CATEGORIES: Tuple[str, ...] = (
    "address",
    "authentication",
    "company",
    "contact",
    "ecommerce",
    "financial",
    "generic",
    "personal",
    "professional",
    "system",
)

_cache: Dict[Tuple[str, ...], Tuple[TrainingSample, ...]] = {}


def get_bundled_path(category: str) -> Path:
    """Get path to a bundled dataset file."""
    return BUNDLED_DATA_DIR / f"{category}.yaml"


def load_dataset_file(path: Path) -> List[TrainingSample]:
    """
    Load one YAML dataset file.

    Malformed samples are skipped with a warning rather than failing the
    whole file.
    """
    if not path.exists():
        logger.warning(f"Dataset file not found: {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    samples = []
    for i, raw in enumerate(data.get("samples", [])):
        try:
            samples.append(TrainingSample.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed sample #{i} in {path.name}: {e}")

    logger.debug(f"Loaded {len(samples)} samples from {path.name}")
    return samples


def load_training_samples(categories: Optional[Sequence[str]] = None) -> List[TrainingSample]:
    """Load bundled samples for `categories` (all by default), in fixed order."""
    key = tuple(categories) if categories else DATASET_CATEGORIES

    if key not in _cache:
        samples: List[TrainingSample] = []
        for category in key:
            samples.extend(load_dataset_file(get_bundled_path(category)))
        _cache[key] = tuple(samples)
        logger.info(f"Loaded {len(samples)} training samples from {len(key)} categories")

    return list(_cache[key])


def clear_dataset_cache():
    """Forget loaded samples (for testing)."""
    _cache.clear()


def get_samples_by_type(field_type: str) -> List[TrainingSample]:
    """Filter bundled samples by field type."""
    return [s for s in load_training_samples() if s.field_type == field_type]


def get_samples_by_difficulty(difficulty: Difficulty) -> List[TrainingSample]:
    """Filter bundled samples by difficulty."""
    difficulty = Difficulty(difficulty)
    return [s for s in load_training_samples() if s.difficulty == difficulty]


def get_training_distribution(by: str = "type") -> Dict[str, int]:
    """Count bundled samples grouped by "type", "category" or "difficulty"."""
    samples = load_training_samples()
    if by == "type":
        counts = Counter(s.field_type for s in samples)
    elif by == "category":
        counts = Counter(s.category for s in samples)
    elif by == "difficulty":
        counts = Counter(s.difficulty.value for s in samples)
    else:
        raise ValueError(f"Unknown grouping: {by}")
    return dict(counts)
