"""Field classifier prompt and response parsing."""

import json
import re
from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from ..types import FIELD_TYPES, UNKNOWN_FIELD_TYPE

logger = logging.getLogger(__name__)

# Answers below this are discarded
CLASSIFIER_MIN_CONFIDENCE = 0.6

MAX_ELEMENT_HTML_CHARS = 1000
MAX_CONTEXT_HTML_CHARS = 1000


SYSTEM_PROMPT = """You are a form field type classifier for web forms (Brazilian and international).

Given the text signals of an input element (label, name, id, placeholder, autocomplete) and optionally its raw HTML, determine the semantic type of the field and which data generator should fill it.

Rules:
- Return ONLY the JSON object, nothing else. No introductory text, no markdown.
- confidence is a float between 0.0 and 1.0. Only return >= {min_confidence} when reasonably sure.
- Use "unknown" when the field purpose is unclear.
- generatorType should be the most specific generator for the field (e.g. birth-date instead of date).
- Valid types: {valid_types}

Output schema:
{{"fieldType": "<semantic field type>", "confidence": <0.0-1.0>, "generatorType": "<most specific generator type>"}}

Examples:
Input: <input type="email" name="user_email" placeholder="seu@email.com">
Output: {{"fieldType": "email", "confidence": 0.98, "generatorType": "email"}}

Input: <input type="text" name="cpf" id="cpf" maxlength="14" placeholder="000.000.000-00">
Output: {{"fieldType": "cpf", "confidence": 0.95, "generatorType": "cpf"}}

Input: <input type="text" name="dt_nascimento" placeholder="DD/MM/AAAA">
Output: {{"fieldType": "birth-date", "confidence": 0.90, "generatorType": "birth-date"}}"""


_JSON_OBJECT = re.compile(r"\{[^{}]+\}")


@dataclass(frozen=True)
class FieldClassifierOutput:
    """Parsed model answer."""
    field_type: str
    confidence: float
    generator_type: str


def build_system_prompt(valid_types: Iterable[str] = FIELD_TYPES) -> str:
    return SYSTEM_PROMPT.format(
        min_confidence=CLASSIFIER_MIN_CONFIDENCE,
        valid_types=", ".join(valid_types),
    )


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def build_classifier_prompt(
    signals: str,
    element_html: Optional[str] = None,
    context_html: Optional[str] = None,
) -> str:
    """User prompt for one field."""
    sections = []
    if element_html:
        sections.append(f"=== Element HTML ===\n{_truncate(element_html, MAX_ELEMENT_HTML_CHARS)}")
    if context_html:
        sections.append(f"=== Surrounding HTML ===\n{_truncate(context_html, MAX_CONTEXT_HTML_CHARS)}")
    if signals and signals.strip():
        sections.append(f"=== Field Signals ===\n{signals}")

    body = "\n\n".join(sections)
    return f"Classify this form field:\n\n{body}"


def parse_classifier_response(
    raw: str,
    valid_types: Iterable[str] = FIELD_TYPES,
) -> Optional[FieldClassifierOutput]:
    """
    Extract the first JSON object from a model reply.

    Returns None when there is no object, the type is not a known one, the
    type is "unknown", or confidence is below CLASSIFIER_MIN_CONFIDENCE.
    generatorType falls back to fieldType when missing or invalid.
    """
    if not raw:
        return None

    match = _JSON_OBJECT.search(raw)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.debug(f"Unparseable model reply: {raw[:80]}")
        return None

    valid = set(valid_types)
    field_type = parsed.get("fieldType")
    confidence = parsed.get("confidence")

    if not isinstance(field_type, str) or field_type not in valid:
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None

    confidence = max(0.0, min(1.0, float(confidence)))
    if field_type == UNKNOWN_FIELD_TYPE or confidence < CLASSIFIER_MIN_CONFIDENCE:
        return None

    generator_type = parsed.get("generatorType")
    if not isinstance(generator_type, str) or generator_type not in valid:
        generator_type = field_type

    return FieldClassifierOutput(field_type, confidence, generator_type)
