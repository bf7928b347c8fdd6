"""Shared fixtures for estimator tests."""

import pytest

from estimator.config import settings
from estimator.providers.base import BaseProvider, EstimatePrompt, StreamChunk


class FakeProvider(BaseProvider):
    """Provider that replays canned output instead of calling a model."""

    name = "fake"

    def __init__(self, chunks=None, output="", error=None):
        super().__init__(api_key="test-key", model="fake-model")
        self.chunks = chunks or []
        self.output = output
        self.error = error
        self.prompts = []

    async def stream_text(self, request: EstimatePrompt):
        self.prompts.append(request)
        for chunk in self.chunks:
            yield StreamChunk(provider=self.name, content=chunk)
        if self.error:
            yield StreamChunk(provider=self.name, content="", is_done=True, error=self.error)
            return
        yield StreamChunk(provider=self.name, content="", is_done=True)

    async def complete(self, request: EstimatePrompt) -> str:
        self.prompts.append(request)
        return self.output


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def configured_settings(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "supabase_url", "https://project.example.co")
    monkeypatch.setattr(settings, "supabase_anon_key", "anon-key")
    return settings


RESULT_LINE = (
    'data: {"calories":100,"protein":5,"carbs":10,"fat":2,'
    '"source":"unknown","notes":"ok"}'
)


@pytest.fixture
def scenario_lines():
    return [
        "event: status",
        'data: {"stage":"uploading"}',
        "",
        "event: delta",
        'data: {"delta":"Estimating"}',
        "",
        "event: result",
        RESULT_LINE,
        "",
    ]
