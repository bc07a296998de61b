"""Tests for the bundled dataset loader."""

import pytest

from fieldsense.dataset import (
    DATASET_CATEGORIES,
    get_bundled_path,
    get_samples_by_difficulty,
    get_samples_by_type,
    get_training_distribution,
    load_dataset_file,
    load_training_samples,
)
from fieldsense.types import FIELD_TYPES, Difficulty


def test_every_category_file_is_bundled():
    for category in DATASET_CATEGORIES:
        assert get_bundled_path(category).exists(), category


def test_samples_load_in_category_order():
    samples = load_training_samples()

    assert len(samples) > 600
    assert samples[0].field_type == "cep"


def test_only_catalogued_types():
    types = {s.field_type for s in load_training_samples()}
    assert types <= set(FIELD_TYPES)
    assert {"zip-code", "cep", "email", "cpf", "city"} <= types


def test_every_sample_has_signals():
    for sample in load_training_samples():
        assert sample.signals.all_tokens(), sample


def test_cached_copy_is_independent():
    first = load_training_samples()
    first.clear()
    assert load_training_samples()


def test_subset_of_categories():
    samples = load_training_samples(["authentication"])
    assert samples
    assert all(s.category == "authentication" for s in samples)


def test_by_type_and_difficulty():
    assert all(s.field_type == "email" for s in get_samples_by_type("email"))
    hard = get_samples_by_difficulty(Difficulty.HARD)
    assert hard
    assert all(s.difficulty == Difficulty.HARD for s in hard)


def test_distribution_totals():
    total = len(load_training_samples())
    for by in ("type", "category", "difficulty"):
        assert sum(get_training_distribution(by).values()) == total
    assert set(get_training_distribution("difficulty")) == {"easy", "medium", "hard"}


def test_unknown_grouping():
    with pytest.raises(ValueError):
        get_training_distribution("colour")


def test_malformed_samples_skipped(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text(
        "samples:\n"
        "  - field_type: email\n"
        "    signals: {primary: [E-mail]}\n"
        "  - signals: {primary: [no type]}\n"
        "  - field_type: phone\n"
        "    signals: {primary: [Telefone]}\n"
        "    difficulty: impossible\n"
    )

    samples = load_dataset_file(path)

    assert [s.field_type for s in samples] == ["email"]
    assert samples[0].category == "contact"


def test_missing_file(tmp_path):
    assert load_dataset_file(tmp_path / "nope.yaml") == []
