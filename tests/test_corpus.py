"""Tests for the training corpus builder."""

from fieldsense.engine.corpus import (
    ORIGIN_DATASET,
    ORIGIN_LEARNED,
    ORIGIN_RULE,
    build_corpus,
    build_signals_from_rule,
    flatten_signals,
)
from fieldsense.types import FieldRule, LearnedEntry, StructuredSignals, TrainingSample


def _sample(text, field_type, category="generic"):
    return TrainingSample(
        signals=StructuredSignals.from_flat(text),
        field_type=field_type,
        category=category,
    )


def test_flatten_signals_joins_groups_in_order():
    signals = StructuredSignals(
        primary=("Zip Code",),
        secondary=("zip_code",),
        structural=("Shipping Address",),
    )
    assert flatten_signals(signals) == "zip code zip code shipping address"


def test_flatten_signals_skips_empty_tokens():
    signals = StructuredSignals(primary=("CPF", ""), structural=())
    assert flatten_signals(signals) == "cpf"


class TestBuildSignalsFromRule:
    def test_selector_punctuation_removed(self):
        rule = FieldRule(id="r1", field_selector=".form-group__input[name='cpf']", field_type="cpf")
        assert build_signals_from_rule(rule) == "cpf form group input name cpf"

    def test_includes_field_name(self):
        rule = FieldRule(id="r2", field_selector="#dtNasc", field_type="birth-date",
                         field_name="Data de Nascimento")
        assert build_signals_from_rule(rule) == "birth date data de nascimento dtnasc"

    def test_no_selector_characters_survive(self):
        rule = FieldRule(
            id="r3",
            field_selector="form#checkout > div.row input[data-field=\"email\"]:nth-child(2)",
            field_type="email",
        )
        signals = build_signals_from_rule(rule)
        for ch in ".#[]'\">:()=":
            assert ch not in signals
        assert "  " not in signals

    def test_empty_rule(self):
        rule = FieldRule(id="r4", field_selector="", field_type="")
        assert build_signals_from_rule(rule) == ""


class TestBuildCorpus:
    def test_order_dataset_rules_learned(self):
        samples = [_sample("E-mail", "email"), _sample("Telefone", "phone")]
        rules = [FieldRule(id="r1", field_selector="#cpf", field_type="cpf")]
        learned = [LearnedEntry("cod cliente", "number", 1.0)]

        corpus = build_corpus(samples, rules, learned)

        assert [e.origin for e in corpus] == [
            ORIGIN_DATASET, ORIGIN_DATASET, ORIGIN_RULE, ORIGIN_LEARNED,
        ]
        assert [(e.text, e.field_type) for e in corpus] == [
            ("e mail", "email"),
            ("telefone", "phone"),
            ("cpf cpf", "cpf"),
            ("cod cliente", "number"),
        ]

    def test_skips_empty_texts(self):
        samples = [_sample("", "email"), _sample("Email", "email")]
        rules = [FieldRule(id="r1", field_selector="", field_type="")]
        learned = [LearnedEntry("", "number", 1.0)]

        corpus = build_corpus(samples, rules, learned)

        assert len(corpus) == 1
        assert corpus[0].text == "email"

    def test_pure(self):
        samples = [_sample("E-mail", "email")]
        rules = [FieldRule(id="r1", field_selector="#cpf", field_type="cpf")]
        learned = [LearnedEntry("cod cliente", "number", 1.0)]

        first = build_corpus(samples, rules, learned)
        second = build_corpus(samples, rules, learned)

        assert first == second
        assert learned[0].normalized_signals == "cod cliente"

    def test_all_sources_empty(self):
        assert build_corpus([], [], []) == []
