"""Load field-mapping rules from JSON exports."""

from pathlib import Path
from typing import Any, Dict, List
import json
import logging

from .errors import InputError
from .types import FieldRule

logger = logging.getLogger(__name__)

# Export files use camelCase keys
_CAMEL_KEYS = {
    "fieldSelector": "field_selector",
    "fieldType": "field_type",
    "urlPattern": "url_pattern",
    "fieldName": "field_name",
    "fixedValue": "fixed_value",
}


def _snake_case(item: Dict[str, Any]) -> Dict[str, Any]:
    return {_CAMEL_KEYS.get(k, k): v for k, v in item.items()}


def load_rules(path: Path) -> List[FieldRule]:
    """
    Read rules from a JSON file.

    Expected format:
    {
        "rules": [
            {"id": "r1", "fieldSelector": "#cpf", "fieldType": "cpf"},
            ...
        ]
    }

    Or array format:
    [
        {"id": "r1", "field_selector": "#cpf", "field_type": "cpf"},
        ...
    ]

    Entries without an id or field type are skipped.
    """
    path = Path(path)
    if not path.exists():
        raise InputError(f"File does not exist: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("rules"), list):
        items = data["rules"]
    else:
        raise InputError('Invalid format. Expected list or {"rules": [...]}')

    rules = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            rules.append(FieldRule.from_dict(_snake_case(item)))
        except KeyError as e:
            logger.warning(f"Skipping rule without {e}: {item}")

    logger.debug(f"Loaded {len(rules)} rules from {path}")
    return rules
