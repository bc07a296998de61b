"""Shared fixtures: isolated config, in-memory stores, fake model service."""

import asyncio

import pytest

from fieldsense import sdk
from fieldsense.config import Config, set_config
from fieldsense.engine.classifier import PrototypeClassifier
from fieldsense.learning.learning_store import LearningStore
from fieldsense.learning.storage import MemoryKeyValueStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the global config at a temp data dir with no model provider."""
    monkeypatch.delenv("FIELDSENSE_OLLAMA_URL", raising=False)
    config = Config(data_dir=tmp_path / "data")
    config.model.provider = "none"
    set_config(config)
    sdk.clear_arbiter()
    yield config
    sdk.clear_arbiter()


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def learning_store(kv_store):
    return LearningStore(kv_store)


@pytest.fixture
def classifier(learning_store):
    """Prototype classifier over the bundled dataset plus learned entries."""
    return PrototypeClassifier(learned=learning_store.snapshot)


class FakeSession:
    """Scripted model session."""

    def __init__(self, replies=None, delay=0.0, error=None):
        self.replies = list(replies or [])
        self.delay = delay
        self.error = error
        self.prompts = []
        self.destroyed = False

    async def prompt(self, text, cancellation_token=None):
        self.prompts.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""

    async def destroy(self):
        self.destroyed = True


class FakeModelService:
    """Scripted session service; every created session shares the script."""

    def __init__(self, status="available", replies=None, delay=0.0, error=None):
        self.status = status
        self.replies = list(replies or [])
        self.delay = delay
        self.error = error
        self.availability_calls = 0
        self.configs = []
        self.sessions = []

    async def availability(self, options=None):
        self.availability_calls += 1
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    async def create(self, config):
        self.configs.append(config)
        session = FakeSession(self.replies, self.delay, self.error)
        self.sessions.append(session)
        return session


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


def model_reply(field_type, confidence=0.9, generator_type=None):
    generator = generator_type or field_type
    return (
        f'{{"fieldType": "{field_type}", "confidence": {confidence}, '
        f'"generatorType": "{generator}"}}'
    )
