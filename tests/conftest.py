"""
Core pytest configuration and fixtures for chatrelay testing.

This module provides shared test fixtures, fake providers and utilities used
by the unit and integration suites. Nothing here touches the network.
"""

import json
from contextlib import contextmanager
from typing import Iterator, List, Optional
from unittest.mock import MagicMock

import pytest
from chatrelay.config import Settings
from chatrelay.history import ConversationHistory
from chatrelay.llm import LLM
from chatrelay.models import ASSISTANT_ROLE, SYSTEM_ROLE, USER_ROLE, ChatMessage
from chatrelay.relay import FragmentRelay
from chatrelay.session import Session

# ===== TEST DATA FIXTURES =====


def delta_line(text: str) -> str:
    """One provider stream line carrying `text`."""
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})


def stream_body(*texts: str, done: bool = True) -> bytes:
    """A complete provider event stream for the given fragments."""
    lines = [delta_line(text) + "\n\n" for text in texts]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


@pytest.fixture
def sample_messages() -> List[ChatMessage]:
    """Sample chat messages for testing."""
    return [
        ChatMessage(role=SYSTEM_ROLE, content="You are a friendly llama."),
        ChatMessage(role=USER_ROLE, content="Hello, how are you?"),
        ChatMessage(
            role=ASSISTANT_ROLE,
            content="I'm doing well, thank you! How can I help you today?",
        ),
    ]


# ===== FAKE PROVIDERS =====


class ScriptedLLM(LLM):
    """Replays fixed body chunks and records every request it receives."""

    def __init__(self, chunks: Optional[List[bytes]] = None, error: Exception = None):
        self.model = "scripted-v1"
        self.chunks = chunks if chunks is not None else [stream_body("Hi", " there")]
        self.error = error
        self.requests = []
        self.closed = 0

    @contextmanager
    def open_stream(self, request) -> Iterator[Iterator[bytes]]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        try:
            yield iter(list(self.chunks))
        finally:
            self.closed += 1


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def make_scripted_llm():
    """Factory for providers replaying custom bodies or raising errors."""
    return ScriptedLLM


# ===== CORE FIXTURES =====


@pytest.fixture
def settings() -> Settings:
    return Settings(keepalive=0.05)


@pytest.fixture
def relay() -> FragmentRelay:
    relay = FragmentRelay(capacity=10)
    yield relay
    relay.close()


@pytest.fixture
def history() -> ConversationHistory:
    return ConversationHistory(system_message="S")


@pytest.fixture
def session(scripted_llm, settings) -> Session:
    session = Session(llm=scripted_llm, settings=settings)
    yield session
    session.close()


@pytest.fixture
def mock_llm():
    """Mock LLM provider for testing."""
    mock = MagicMock(spec=LLM)
    mock.model = "mock-model"
    return mock


def drain(relay: FragmentRelay) -> list:
    """Takes every item currently queued on `relay` without blocking."""
    items = []
    while len(relay):
        items.append(relay.take_next())
    return items


# ===== APP FIXTURES =====


@pytest.fixture
def test_app(settings):
    """
    Provides a ChatRelay app instance with simple, predictable pillars.

    This fixture is ideal for integration tests where we need a running app
    but want to avoid external dependencies like actual LLM APIs.
    """
    from chatrelay import ChatRelay
    from chatrelay.layout import Minimal
    from chatrelay.llm import Echo

    app = ChatRelay(llm=Echo(), layout=Minimal(), settings=settings)
    yield app
    app.shutdown()


@pytest.fixture
def client(test_app):
    return test_app.server.test_client()


# ===== CONFIGURATION =====


def pytest_configure(config):
    """Pytest configuration."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow-running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
