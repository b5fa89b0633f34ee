"""Shared fixtures for the LLM Stream Relay test suite."""

import pytest

import src.providers.registry as registry_mod
from src.config.settings import get_settings
from src.relay.models import Service
from tests.fakes import FakeProvider, make_stream_chunks


@pytest.fixture(autouse=True)
def reset_registry(monkeypatch):
    """Each test gets a fresh provider registry."""
    monkeypatch.setattr(registry_mod, "_providers", {})
    yield
    monkeypatch.setattr(registry_mod, "_providers", {})


@pytest.fixture
def relay_body() -> dict:
    """Standard relay request body."""
    return {
        "systemPrompt": "You are helpful.",
        "queryPrompt": "Hi",
    }


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(AZURE_ENDPOINT="https://x.openai.azure.com", STREAM_IDLE_TIMEOUT="5")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


@pytest.fixture
def install_provider(monkeypatch):
    """Factory fixture: register a FakeProvider for a service and return it."""
    def _install(service=Service.AZURE, deltas=(), error=None, done=True):
        chunks = make_stream_chunks(deltas, done=done)
        provider = FakeProvider(service, chunks, error)
        registry_mod._providers[service] = provider
        return provider

    return _install
