"""Field signal extraction from HTML forms.

Turns markup into one FieldSignals per fillable control (input, select,
textarea) so saved pages, fixtures or scraped forms can be classified
offline.

Label discovery runs LABEL_STRATEGIES in order, most specific first, and
keeps the first non-empty text:

     1. label[for]          explicit <label for="id">
     2. parent-label        control wrapped inside <label>
     3. aria-label          WAI-ARIA attribute
     4. aria-labelledby     WAI-ARIA reference(s)
     5. prev-label          preceding sibling is a <label>
     6. title               title attribute
     7. fieldset-legend     nearest <fieldset>'s <legend>
     8. form-group-label    label inside the nearest form-group wrapper
     9. prev-sibling-text   short text in a preceding span/div/p/strong/em
    10. placeholder         last resort

Each strategy is a pure function element → text or None; add new ones by
appending to the tuple.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
import logging

from lxml import etree
from lxml import html as lxml_html

from .errors import InputError

logger = logging.getLogger(__name__)

# <input> types that never carry user data
SKIPPED_INPUT_TYPES = frozenset({"hidden", "submit", "button", "reset", "image"})

FORM_GROUP_CLASSES = (
    "form-group",
    "form-item",
    "form-field",
    "field-wrapper",
    "input-wrapper",
    "ant-form-item",
    "MuiFormControl-root",
)

GROUP_LABEL_CLASSES = (
    "form-label",
    "control-label",
    "MuiInputLabel-root",
    "MuiFormLabel-root",
)

LABEL_LIKE_TAGS = frozenset({"span", "div", "p", "strong", "em"})
MAX_SIBLING_TEXT = 80

LabelStrategy = Callable[[lxml_html.HtmlElement], Optional[str]]


def _has_class(name: str) -> str:
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"


_FORM_GROUP_XPATH = (
    "ancestor::*["
    + " or ".join([_has_class(c) for c in FORM_GROUP_CLASSES] + ["contains(@class, 'form-control')"])
    + "][1]"
)
_GROUP_LABEL_XPATH = ".//label | " + " | ".join(f".//*[{_has_class(c)}]" for c in GROUP_LABEL_CLASSES)


def _text(el) -> str:
    return " ".join(el.text_content().split())


def _first_text(elements) -> Optional[str]:
    for el in elements:
        text = _text(el)
        if text:
            return text
    return None


def _attr(el, name: str) -> Optional[str]:
    value = " ".join((el.get(name) or "").split())
    return value or None


# Strategies

def label_for(el) -> Optional[str]:
    el_id = el.get("id")
    if not el_id:
        return None
    return _first_text(el.getroottree().xpath("//label[@for=$id]", id=el_id))


def parent_label(el) -> Optional[str]:
    return _first_text(el.xpath("ancestor::label[1]"))


def aria_label(el) -> Optional[str]:
    return _attr(el, "aria-label")


def aria_labelledby(el) -> Optional[str]:
    ids = (el.get("aria-labelledby") or "").split()
    tree = el.getroottree()
    parts = [_first_text(tree.xpath("//*[@id=$id]", id=ref)) for ref in ids]
    text = " ".join(p for p in parts if p)
    return text or None


def prev_label(el) -> Optional[str]:
    prev = el.getprevious()
    if prev is None or prev.tag != "label":
        return None
    return _text(prev) or None


def title(el) -> Optional[str]:
    return _attr(el, "title")


def fieldset_legend(el) -> Optional[str]:
    for fieldset in el.xpath("ancestor::fieldset[1]"):
        return _first_text(fieldset.xpath(".//legend"))
    return None


def form_group_label(el) -> Optional[str]:
    for group in el.xpath(_FORM_GROUP_XPATH):
        return _first_text(group.xpath(_GROUP_LABEL_XPATH))
    return None


def prev_sibling_text(el) -> Optional[str]:
    sibling = el.getprevious()
    while sibling is not None:
        if sibling.tag in LABEL_LIKE_TAGS:
            text = _text(sibling)
            if 0 < len(text) < MAX_SIBLING_TEXT:
                return text
        sibling = sibling.getprevious()
    return None


def placeholder(el) -> Optional[str]:
    return _attr(el, "placeholder")


LABEL_STRATEGIES: Tuple[Tuple[str, LabelStrategy], ...] = (
    ("label[for]", label_for),
    ("parent-label", parent_label),
    ("aria-label", aria_label),
    ("aria-labelledby", aria_labelledby),
    ("prev-label", prev_label),
    ("title", title),
    ("fieldset-legend", fieldset_legend),
    ("form-group-label", form_group_label),
    ("prev-sibling-text", prev_sibling_text),
    ("placeholder", placeholder),
)


def find_label(el, strategies=LABEL_STRATEGIES) -> Tuple[Optional[str], Optional[str]]:
    """Return (label text, strategy name) from the first strategy that matches."""
    for name, strategy in strategies:
        text = strategy(el)
        if text:
            return text, name
    return None, None


def unique_selector(el) -> str:
    """CSS selector for `el`: its id, or a tag/nth-of-type path up to an id or <body>."""
    if el.get("id"):
        return f"#{el.get('id')}"

    parts = []
    current = el
    while current is not None and current.tag not in ("body", "html"):
        if current.get("id"):
            parts.insert(0, f"#{current.get('id')}")
            break

        selector = current.tag
        parent = current.getparent()
        if parent is not None:
            same_tag = [c for c in parent if c.tag == current.tag]
            if len(same_tag) > 1:
                selector += f":nth-of-type({same_tag.index(current) + 1})"

        parts.insert(0, selector)
        current = parent

    return " > ".join(parts)


@dataclass
class FieldSignals:
    """Signals of one form control, ready for classification."""
    selector: str
    tag: str
    input_type: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None
    placeholder: Optional[str] = None
    autocomplete: Optional[str] = None
    label: Optional[str] = None
    label_strategy: Optional[str] = None
    element_html: str = ""
    context_html: str = ""

    def as_mapping(self) -> Dict[str, Optional[str]]:
        """Attribute mapping accepted by the classifiers."""
        return {
            "label": self.label,
            "name": self.name,
            "id": self.id,
            "placeholder": self.placeholder,
            "autocomplete": self.autocomplete,
        }


def _outer_html(el) -> str:
    return etree.tostring(el, encoding="unicode", method="html", with_tail=False)


def _is_fillable(el) -> bool:
    if el.tag != "input":
        return True
    return (el.get("type") or "text").lower() not in SKIPPED_INPUT_TYPES


def extract_fields(markup: str) -> List[FieldSignals]:
    """Parse `markup` and return signals for every fillable control, in document order.

    Raises:
        InputError: markup is empty or cannot be parsed
    """
    if not markup or not markup.strip():
        raise InputError("No HTML to extract fields from")

    try:
        root = lxml_html.document_fromstring(markup)
    except (etree.ParserError, ValueError) as e:
        raise InputError(f"Could not parse HTML: {e}") from e

    fields = []
    for el in root.xpath("//input | //select | //textarea"):
        if not _is_fillable(el):
            continue

        label, strategy = find_label(el)
        container = next(iter(el.xpath("ancestor::form[1]")), el.getparent())

        fields.append(FieldSignals(
            selector=unique_selector(el),
            tag=el.tag,
            input_type=(el.get("type") or "text").lower() if el.tag == "input" else None,
            name=el.get("name"),
            id=el.get("id"),
            placeholder=_attr(el, "placeholder"),
            autocomplete=el.get("autocomplete"),
            label=label,
            label_strategy=strategy,
            element_html=_outer_html(el),
            context_html=_outer_html(container) if container is not None else "",
        ))

    logger.debug(f"Extracted {len(fields)} fields")
    return fields
