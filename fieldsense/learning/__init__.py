"""Continuous learning for the prototype classifier.

Provides:
- LearningStore: bounded, deduplicated store of confirmed signal → type mappings
- KeyValueStore backends: in-memory and SQLite
- FallbackArbiter: prototype first, generative model second, recording
  every accepted model answer

Architecture:
    Field signals → classify_soft (confident?) → prototype answer
                          ↓ no
                    Generative model → answer → LearningStore
                          ↓ none                     ↓
                    hard classify           next prototype rebuild

Usage:
    from fieldsense.learning import create_arbiter

    arbiter = create_arbiter()
    result = await arbiter.classify("Zip Code Address")

    # Reconcile with the user's rule set after bulk edits
    summary = await arbiter.learning_store.retrain_learned_from_rules(rules)
    await arbiter.reload()
"""

from .storage import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
)
from .learning_store import (
    LEARNED_STORAGE_KEY,
    MAX_LEARNED_ENTRIES,
    LearningStore,
)
from .integration import (
    FallbackArbiter,
    create_arbiter,
)

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "LEARNED_STORAGE_KEY",
    "MAX_LEARNED_ENTRIES",
    "LearningStore",
    "FallbackArbiter",
    "create_arbiter",
]
