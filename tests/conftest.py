"""Test configuration and fixtures."""

import json
from types import SimpleNamespace
from typing import Any, Optional

import pytest

from paperclassifier.config import LLMSettings, Settings
from paperclassifier.services.classification_service import PaperClassifier


class FakeResponses:
    """Stand-in for ``AsyncOpenAI().responses`` recording every request."""

    def __init__(self, reply: Any = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        text = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return SimpleNamespace(output_text=text)


class FakeClient:
    def __init__(self, reply: Any = None, error: Optional[Exception] = None):
        self.responses = FakeResponses(reply, error)
        self.closed = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.closed += 1


@pytest.fixture(autouse=True)
def reset_settings():
    """Each test starts without a cached Settings singleton."""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings rooted in a temporary project directory."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return Settings.load(tmp_path)


@pytest.fixture
def llm():
    return LLMSettings(model="gpt-4o-mini", api_key="sk-test")


@pytest.fixture
def make_classifier():
    """Build a classifier whose client returns *reply* or raises *error*."""

    def _make(reply: Any = None, error: Optional[Exception] = None, examples=None):
        client = FakeClient(reply, error)
        classifier = PaperClassifier(
            manual="Code the paper.",
            examples=examples or [],
            client_factory=lambda settings: client,
        )
        return classifier, client

    return _make
