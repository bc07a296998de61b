"""Bundled training samples grouped by domain category."""

from .loader import (
    BUNDLED_DATA_DIR,
    DATASET_CATEGORIES,
    clear_dataset_cache,
    get_bundled_path,
    get_samples_by_difficulty,
    get_samples_by_type,
    get_training_distribution,
    load_dataset_file,
    load_training_samples,
)

__all__ = [
    "BUNDLED_DATA_DIR",
    "DATASET_CATEGORIES",
    "clear_dataset_cache",
    "get_bundled_path",
    "get_samples_by_difficulty",
    "get_samples_by_type",
    "get_training_distribution",
    "load_dataset_file",
    "load_training_samples",
]
