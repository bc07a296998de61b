"""Core types for field-signal classification."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple


class FieldCategory(str, Enum):
    """Domain categories the bundled dataset is grouped by."""
    ADDRESS = "address"
    AUTHENTICATION = "authentication"
    CONTACT = "contact"
    DOCUMENT = "document"
    ECOMMERCE = "ecommerce"
    FINANCIAL = "financial"
    GENERIC = "generic"
    PERSONAL = "personal"
    PROFESSIONAL = "professional"
    SYSTEM = "system"
    COMPANY = "company"
    UNKNOWN = "unknown"


class SampleSource(str, Enum):
    """How a training sample was authored."""
    SYNTHETIC = "synthetic"
    AUGMENTED = "augmented"
    MANUAL = "manual"
    RULE = "rule"


class Difficulty(str, Enum):
    """Sample difficulty. HARD samples are adversarial near-misses."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class LearnedSource(str, Enum):
    """Where a learned entry came from."""
    AUTO = "auto"    # Accepted AI answer or confirmed mapping at runtime
    RULE = "rule"    # Derived from a user field-mapping rule


class ResultSource(str, Enum):
    """Which path produced a classification."""
    PROTOTYPE = "prototype"
    AI = "ai"


# Field types known to the system, grouped by category.
FIELD_TYPES_BY_CATEGORY: Dict[str, Tuple[str, ...]] = {
    "document": (
        "cpf", "cnpj", "cpf-cnpj", "rg", "passport", "cnh", "pis",
        "national-id", "tax-id", "document-issuer",
    ),
    "personal": ("name", "first-name", "last-name", "full-name", "birth-date"),
    "contact": ("email", "phone", "mobile", "whatsapp", "website", "url"),
    "address": (
        "address", "street", "house-number", "complement", "neighborhood",
        "city", "state", "country", "cep", "zip-code",
    ),
    "financial": (
        "money", "price", "amount", "discount", "tax", "credit-card-number",
        "credit-card-expiration", "credit-card-cvv", "pix-key", "number",
    ),
    "authentication": (
        "username", "password", "confirm-password", "otp", "verification-code",
    ),
    "professional": ("job-title", "department", "employee-count"),
    "ecommerce": (
        "company", "supplier", "product", "product-name", "sku", "quantity",
        "coupon",
    ),
    "generic": (
        "text", "description", "notes", "date", "start-date", "end-date",
        "due-date",
    ),
    "system": ("search", "select", "checkbox", "radio", "file", "unknown"),
}

FIELD_TYPES: Tuple[str, ...] = tuple(
    t for types in FIELD_TYPES_BY_CATEGORY.values() for t in types
)

UNKNOWN_FIELD_TYPE = "unknown"


def category_for_type(field_type: str) -> str:
    """Look up the category of a field type ("unknown" when not catalogued)."""
    for category, types in FIELD_TYPES_BY_CATEGORY.items():
        if field_type in types:
            return category
    return FieldCategory.UNKNOWN.value


@dataclass(frozen=True)
class StructuredSignals:
    """Field signals grouped by how strongly they describe the field."""
    primary: Tuple[str, ...] = ()
    secondary: Tuple[str, ...] = ()
    structural: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from YAML/JSON but keep the instance hashable
        for name in ("primary", "secondary", "structural"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value or ()))

    @classmethod
    def from_flat(cls, text: str) -> "StructuredSignals":
        return cls(primary=(text,) if text else ())

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StructuredSignals":
        return cls(
            primary=d.get("primary") or (),
            secondary=d.get("secondary") or (),
            structural=d.get("structural") or (),
        )

    def all_tokens(self) -> List[str]:
        return [*self.primary, *self.secondary, *self.structural]


@dataclass(frozen=True)
class DomFeatures:
    """Optional DOM hints authored alongside a sample."""
    input_type: Optional[str] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None


@dataclass(frozen=True)
class TrainingSample:
    """A curated, immutable training sample from the bundled dataset."""
    signals: StructuredSignals
    field_type: str
    category: str
    source: SampleSource = SampleSource.SYNTHETIC
    difficulty: Difficulty = Difficulty.EASY
    language: str = "en"
    dom_features: Optional[DomFeatures] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrainingSample":
        dom = d.get("dom_features")
        return cls(
            signals=StructuredSignals.from_dict(d["signals"]),
            field_type=d["field_type"],
            category=d.get("category") or category_for_type(d["field_type"]),
            source=SampleSource(d.get("source", "synthetic")),
            difficulty=Difficulty(d.get("difficulty", "easy")),
            language=d.get("language", "en"),
            dom_features=DomFeatures(**dom) if dom else None,
        )


@dataclass
class LearnedEntry:
    """A confirmed signal -> field type mapping captured at runtime."""
    normalized_signals: str
    field_type: str
    timestamp: float
    source: str = LearnedSource.AUTO.value
    generator_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LearnedEntry":
        return cls(
            normalized_signals=d["normalized_signals"],
            field_type=d["field_type"],
            timestamp=float(d.get("timestamp", 0)),
            source=d.get("source") or LearnedSource.AUTO.value,
            generator_type=d.get("generator_type"),
        )


@dataclass
class FieldRule:
    """A user-defined field-mapping rule (read-only here)."""
    id: str
    field_selector: str
    field_type: str
    url_pattern: str = "*"
    field_name: Optional[str] = None
    fixed_value: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FieldRule":
        return cls(
            id=str(d["id"]),
            field_selector=d.get("field_selector", ""),
            field_type=d["field_type"],
            url_pattern=d.get("url_pattern", "*"),
            field_name=d.get("field_name"),
            fixed_value=d.get("fixed_value"),
        )


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one field."""
    field_type: Optional[str]
    confidence: float
    source: ResultSource = ResultSource.PROTOTYPE

    @property
    def is_empty(self) -> bool:
        return self.field_type is None


EMPTY_RESULT = ClassificationResult(field_type=None, confidence=0.0)


@dataclass
class RetrainDetail:
    """Per-rule outcome of a retrain-from-rules pass."""
    rule_id: str
    field_type: str
    signals: str
    status: str  # "imported" | "skipped"


@dataclass
class RetrainResult:
    """Summary of reconciling the learning store against the rule set."""
    imported: int
    skipped: int
    total_rules: int
    duration_ms: float
    details: List[RetrainDetail] = field(default_factory=list)
