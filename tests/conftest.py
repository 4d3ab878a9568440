"""Pytest configuration and fixtures for tokentalk tests."""

import pytest

from tokentalk.chat.diagnostics import RecordingDiagnosticSink
from tokentalk.chat.state_machine import TokenConversationEngine
from tokentalk.config.settings import reset_settings_cache
from tokentalk.data.history import InteractionHistory
from tokentalk.data.pending import PendingStore
from tokentalk.data.tokens import InMemoryTokenStore, Token


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and data files out of the real home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("TOKENTALK_STORAGE__DATA_DIR", str(home / ".tokentalk"))
    reset_settings_cache()
    yield home
    reset_settings_cache()


@pytest.fixture
def store():
    """Empty in-memory token store."""
    return InMemoryTokenStore()


@pytest.fixture
def seeded_store():
    """Token store with two tokens."""
    return InMemoryTokenStore([Token(1, "a"), Token(2, "b")])


@pytest.fixture
def diagnostics():
    """Diagnostic sink that remembers what it was told."""
    return RecordingDiagnosticSink()


@pytest.fixture
def pending():
    """In-memory pending id store."""
    return PendingStore(ttl=60)


@pytest.fixture
def history():
    """In-memory interaction history."""
    return InteractionHistory()


@pytest.fixture
def engine(store, pending, diagnostics, history):
    """Conversation engine over an empty store."""
    return TokenConversationEngine(
        store=store, pending=pending, diagnostics=diagnostics, history=history
    )
