"""Shared fixtures: in-memory storage, fake backends and a mock chat endpoint."""

from __future__ import annotations

import json

import httpx
import pytest

from promptopt.dispatcher import Dispatcher
from promptopt.history import HistoryStore
from promptopt.llm.base import OptimizerBackend
from promptopt.session import OptimizerSession
from promptopt.settings import OpenAICompatibleSettings, SettingsStore
from promptopt.storage import MemoryStorage
from promptopt.templates import reset_registry


class FakeBackend(OptimizerBackend):
    """Records calls and returns a canned reply (or raises a canned error)."""

    reply = "MOCKED RESPONSE"

    def __init__(self, config=None, reply=None, error=None):
        super().__init__(config)
        if reply is not None:
            self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, prompt, instruction, settings):
        self.calls.append({"prompt": prompt, "instruction": instruction, "settings": settings})
        if self.error is not None:
            raise self.error
        return self.reply


class ChatServer:
    """Stand-in for an OpenAI-compatible /chat/completions endpoint."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = {"choices": [{"message": {"content": "  OPTIMIZED PROMPT  "}}]}
        self.client = httpx.Client(transport=httpx.MockTransport(self.handle))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """No ambient credentials and a throwaway storage home for every test."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.setenv("PROMPTOPT_HOME", str(tmp_path / "home"))
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def fake_backend_class():
    return FakeBackend


@pytest.fixture
def fake_backend():
    return FakeBackend(reply="Résumez: Hello world.")


@pytest.fixture
def session(storage, fake_backend):
    dispatcher = Dispatcher(backends={"gemini": fake_backend, "openai": fake_backend})
    return OptimizerSession(HistoryStore(storage), SettingsStore(storage), dispatcher=dispatcher)


@pytest.fixture
def chat_server():
    server = ChatServer()
    yield server
    server.client.close()


@pytest.fixture
def openai_settings():
    return OpenAICompatibleSettings(
        api_key="sk-test-1234567890",
        base_url="https://llm.example.com/v1",
        model="gpt-4o-mini",
        temperature=0.3,
    )
