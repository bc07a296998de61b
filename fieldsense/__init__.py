"""fieldsense - Form field classification from text signals.

Classifies a form field (label, name, id, placeholder, autocomplete) into a
semantic field type with a character n-gram prototype classifier, escalating
to a local generative model when the prototypes are not confident, and
learning from every accepted answer.

Quick Start:
    import fieldsense

    # Prototype only
    result = fieldsense.classify_soft("Zip Code Address")

    # Full fallback chain
    result = await fieldsense.classify({"label": "CPF", "name": "doc"})

    # Teach it a mapping
    await fieldsense.record_learned_mapping("cod cliente", "number")
    await fieldsense.reload()
"""

__version__ = "0.1.0"

# Convenience API
from .sdk import (
    classify,
    classify_soft,
    record_learned_mapping,
    invalidate,
    reload,
    sync_classify,
    configure,
    get_arbiter,
    clear_arbiter,
)

# Core types
from .types import (
    ClassificationResult,
    FieldRule,
    LearnedEntry,
    ResultSource,
    RetrainResult,
    StructuredSignals,
    TrainingSample,
)

# Components
from .engine import PrototypeClassifier
from .learning import FallbackArbiter, LearningStore, create_arbiter

# Exceptions
from .errors import (
    FieldSenseError,
    ConfigurationError,
    InputError,
    ModelError,
    ModelUnavailableError,
    ModelTimeoutError,
    ModelFailureError,
    PersistenceError,
)

# Configuration
from .config import Config, get_config, set_config

__all__ = [
    # Version
    "__version__",

    # API
    "classify",
    "classify_soft",
    "record_learned_mapping",
    "invalidate",
    "reload",
    "sync_classify",
    "configure",
    "get_arbiter",
    "clear_arbiter",

    # Types
    "ClassificationResult",
    "FieldRule",
    "LearnedEntry",
    "ResultSource",
    "RetrainResult",
    "StructuredSignals",
    "TrainingSample",

    # Components
    "PrototypeClassifier",
    "FallbackArbiter",
    "LearningStore",
    "create_arbiter",

    # Errors
    "FieldSenseError",
    "ConfigurationError",
    "InputError",
    "ModelError",
    "ModelUnavailableError",
    "ModelTimeoutError",
    "ModelFailureError",
    "PersistenceError",

    # Config
    "Config",
    "get_config",
    "set_config",
]
