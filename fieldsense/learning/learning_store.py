"""Continuous learning store.

Every confirmed signal → field type mapping (an accepted AI answer, a saved
rule) is persisted here. On the next prototype rebuild these entries join
the training corpus, so centroids drift toward real-world signals.

Storage layout (one logical key):
    fieldsense_learned_classifications : list of LearnedEntry dicts, oldest first

Invariants:
- at most one entry per normalized signal string (last write wins)
- at most `max_entries` entries; the oldest are evicted first

Each mutation is a read-modify-write over that single key with no locking.
Two concurrent writers can each read the pre-update list and one update is
lost; serialize above this class if that matters.
"""

import time
from typing import Iterable, List, Optional
import logging

from ..engine.corpus import build_signals_from_rule
from ..engine.ngram import normalize
from ..errors import PersistenceError
from ..types import FieldRule, LearnedEntry, LearnedSource, RetrainDetail, RetrainResult
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

LEARNED_STORAGE_KEY = "fieldsense_learned_classifications"

# Older entries are discarded first once this is exceeded
MAX_LEARNED_ENTRIES = 500


class LearningStore:
    """Capacity-bounded, deduplicated store of learned entries."""

    def __init__(
        self,
        storage: KeyValueStore,
        key: str = LEARNED_STORAGE_KEY,
        max_entries: int = MAX_LEARNED_ENTRIES,
    ):
        self.storage = storage
        self.key = key
        self.max_entries = max_entries

        # Last list read from or written to storage
        self._snapshot: List[LearnedEntry] = []

    def snapshot(self) -> List[LearnedEntry]:
        """Entries as of the last read or write, without touching storage.

        This is what the classifier's corpus builder reads during a rebuild.
        Call `get_learned_entries()` first to prime it from storage.
        """
        return list(self._snapshot)

    async def get_learned_entries(self) -> List[LearnedEntry]:
        """All stored entries, oldest first. Empty on any storage failure."""
        try:
            raw = await self.storage.get(self.key)
        except PersistenceError as e:
            logger.error(f"Could not read learned entries: {e}")
            return []

        entries = self._parse(raw)
        self._snapshot = entries
        return list(entries)

    async def get_learned_count(self) -> int:
        return len(await self.get_learned_entries())

    async def store_learned_entry(
        self,
        signals: str,
        field_type: str,
        generator_type: Optional[str] = None,
        source: str = LearnedSource.AUTO.value,
    ) -> bool:
        """
        Upsert a signal → type mapping.

        The signal string is normalized first; empty signals are ignored. Any
        entry with the same normalized signals is replaced, the new entry is
        appended, and the list is truncated to the most recent entries.

        Returns True when the entry was persisted.
        """
        normalized = normalize(signals)
        if not normalized:
            return False

        existing = await self.get_learned_entries()
        filtered = [e for e in existing if e.normalized_signals != normalized]
        filtered.append(LearnedEntry(
            normalized_signals=normalized,
            field_type=field_type,
            timestamp=time.time(),
            source=LearnedSource(source).value,
            generator_type=generator_type or field_type,
        ))
        trimmed = filtered[-self.max_entries:]

        evicted = len(filtered) - len(trimmed)
        if evicted:
            logger.debug(f"Evicted {evicted} oldest learned entries (cap {self.max_entries})")

        return await self._write(trimmed)

    async def remove_learned_entry_by_signals(self, signals: str) -> bool:
        """Drop the entry for `signals`. Returns True when one was removed."""
        normalized = normalize(signals)
        if not normalized:
            return False

        existing = await self.get_learned_entries()
        filtered = [e for e in existing if e.normalized_signals != normalized]
        if len(filtered) == len(existing):
            return False

        return await self._write(filtered)

    async def clear_rule_derived_entries(self) -> int:
        """Drop entries that came from rules, keeping runtime-learned ones."""
        existing = await self.get_learned_entries()
        kept = [e for e in existing if e.source != LearnedSource.RULE.value]
        removed = len(existing) - len(kept)
        if removed:
            await self._write(kept)
        return removed

    async def clear_learned_entries(self):
        """Remove all learned entries."""
        try:
            await self.storage.remove(self.key)
            self._snapshot = []
            logger.info("Cleared learned entries")
        except PersistenceError as e:
            logger.error(f"Could not clear learned entries: {e}")

    async def retrain_learned_from_rules(self, rules: Iterable[FieldRule]) -> RetrainResult:
        """
        Rebuild the store from the current rule set.

        Clears everything, then stores one rule-sourced entry per rule whose
        derived signal string is non-empty. Run this after bulk rule edits.
        """
        started = time.perf_counter()
        rules = list(rules)

        await self.clear_learned_entries()

        details: List[RetrainDetail] = []
        imported = 0
        for rule in rules:
            signals = build_signals_from_rule(rule)
            if not signals:
                details.append(RetrainDetail(rule.id, rule.field_type, "", "skipped"))
                continue

            stored = await self.store_learned_entry(
                signals, rule.field_type, source=LearnedSource.RULE.value
            )
            if stored:
                imported += 1
                details.append(RetrainDetail(rule.id, rule.field_type, signals, "imported"))
            else:
                details.append(RetrainDetail(rule.id, rule.field_type, signals, "skipped"))

        result = RetrainResult(
            imported=imported,
            skipped=len(rules) - imported,
            total_rules=len(rules),
            duration_ms=(time.perf_counter() - started) * 1000,
            details=details,
        )
        logger.info(
            f"Retrain from rules complete: imported={result.imported}, "
            f"skipped={result.skipped}, totalRules={result.total_rules}, "
            f"durationMs={result.duration_ms:.1f}"
        )
        return result

    # Internals

    async def _write(self, entries: List[LearnedEntry]) -> bool:
        try:
            await self.storage.set(self.key, [e.to_dict() for e in entries])
        except PersistenceError as e:
            logger.error(f"Could not persist learned entries: {e}")
            return False
        self._snapshot = list(entries)
        return True

    def _parse(self, raw) -> List[LearnedEntry]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning(f"Ignoring malformed learned entries under '{self.key}'")
            return []

        entries = []
        for item in raw:
            try:
                entries.append(LearnedEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed learned entry: {e}")
        return entries
