"""Convenience API over a process-wide arbiter.

    import fieldsense

    result = await fieldsense.classify({"label": "E-mail", "name": "user_email"})
    guess = fieldsense.classify_soft("Zip Code Address")
    await fieldsense.record_learned_mapping("cod cliente", "number")
    await fieldsense.reload()

The arbiter is created on first use from `get_config()`. Call
`configure()` or `clear_arbiter()` to rebuild it.
"""

import asyncio
from pathlib import Path
from typing import Optional
import logging

from .config import Config, get_config, set_config
from .engine.classifier import SignalInput
from .learning.integration import FallbackArbiter, create_arbiter
from .types import ClassificationResult

logger = logging.getLogger(__name__)


_arbiter: Optional[FallbackArbiter] = None


def get_arbiter() -> FallbackArbiter:
    """Get or create the process-wide arbiter."""
    global _arbiter
    if _arbiter is None:
        _arbiter = create_arbiter(get_config())
    return _arbiter


def clear_arbiter():
    """Clear cached arbiter (for testing)."""
    global _arbiter
    _arbiter = None


async def classify(
    signals: SignalInput,
    element_html: Optional[str] = None,
    context_html: Optional[str] = None,
) -> ClassificationResult:
    """Classify a field, falling back to the generative model when unsure."""
    return await get_arbiter().classify(signals, element_html, context_html)


def classify_soft(signals: SignalInput) -> Optional[ClassificationResult]:
    """Prototype-only classification; None when not confident.

    Learned entries are only included once the arbiter has loaded them via
    `classify()` or `reload()`.
    """
    return get_arbiter().classify_soft(signals)


async def record_learned_mapping(signals: SignalInput, field_type: str) -> bool:
    return await get_arbiter().record_learned_mapping(signals, field_type)


def invalidate():
    get_arbiter().invalidate()


async def reload():
    await get_arbiter().reload()


def sync_classify(signals: SignalInput, **kwargs) -> ClassificationResult:
    """Sync version of classify()."""
    return asyncio.run(classify(signals, **kwargs))


def configure(**kwargs) -> Config:
    """Configure fieldsense globally.

    Args:
        hard_accept_threshold: classify_soft acceptance score
        data_dir: Path to data directory
        provider: "ollama" or "none"

    Returns:
        Updated Config
    """
    config = get_config()

    if "hard_accept_threshold" in kwargs:
        config.classifier.hard_accept_threshold = kwargs["hard_accept_threshold"]
    if "data_dir" in kwargs:
        config.data_dir = Path(kwargs["data_dir"])
        config.data_dir.mkdir(parents=True, exist_ok=True)
        config.db_path = config.data_dir / "fieldsense.db"
    if "provider" in kwargs:
        config.model.provider = kwargs["provider"]

    set_config(config)
    clear_arbiter()  # Reset arbiter to pick up new config
    return config
