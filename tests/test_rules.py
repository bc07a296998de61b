"""Tests for loading rule exports."""

import json

import pytest

from fieldsense.errors import InputError
from fieldsense.rules import load_rules


def test_camel_case_export(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"rules": [
        {"id": "r1", "urlPattern": "*.example.com/*", "fieldSelector": "#cpf", "fieldType": "cpf"},
        {"id": 2, "fieldSelector": "input[name=cel]", "fieldType": "mobile", "fieldName": "Celular"},
    ]}))

    rules = load_rules(path)

    assert [r.id for r in rules] == ["r1", "2"]
    assert rules[0].url_pattern == "*.example.com/*"
    assert rules[1].field_name == "Celular"
    assert rules[1].field_type == "mobile"


def test_list_format_snake_case(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"id": "r1", "field_selector": "#email", "field_type": "email"},
    ]))

    rules = load_rules(path)

    assert rules[0].field_selector == "#email"
    assert rules[0].url_pattern == "*"


def test_incomplete_rules_skipped(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"id": "r1", "fieldSelector": "#x"},
        "not a rule",
        {"id": "r2", "fieldSelector": "#cpf", "fieldType": "cpf"},
    ]))

    assert [r.id for r in load_rules(path)] == ["r2"]


def test_missing_file(tmp_path):
    with pytest.raises(InputError):
        load_rules(tmp_path / "absent.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{broken")
    with pytest.raises(InputError):
        load_rules(path)


def test_wrong_shape(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"something": []}))
    with pytest.raises(InputError):
        load_rules(path)
