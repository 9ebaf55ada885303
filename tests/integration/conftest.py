"""Integration-test fixtures for deterministic CLI runs against loopback providers."""

from __future__ import annotations

import pytest

from fasttts.keyring_store import ApiKeyStore
from fasttts.models.datatypes import Provider


GOOGLE_BASE_URL = "http://127.0.0.1:9/google"
GEMINI_BASE_URL = "http://127.0.0.1:9/gemini"


class DictApiKeyStore(ApiKeyStore):
    """API-key store double so CLI runs never reach the OS keyring."""

    def __init__(self) -> None:
        self.keys: dict[Provider, str] = {}

    def is_available(self) -> bool:
        return True

    def get_api_key(self, provider: Provider) -> str | None:
        return self.keys.get(provider)

    def set_api_key(self, provider: Provider, api_key: str) -> None:
        self.keys[provider] = api_key

    def clear_api_key(self, provider: Provider) -> bool:
        return self.keys.pop(provider, None) is not None


@pytest.fixture(autouse=True)
def cli_key_store(monkeypatch: pytest.MonkeyPatch) -> DictApiKeyStore:
    """Route every `create_api_key_store()` call in the CLI to one shared double."""

    store = DictApiKeyStore()
    monkeypatch.setattr("fasttts.cli.create_api_key_store", lambda: store)
    return store


@pytest.fixture
def loopback_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point Google and Gemini at loopback doubles and bypass OAuth."""

    monkeypatch.setenv("FAST_TTS_TOKEN", "integration-token")
    monkeypatch.setenv("FAST_TTS_BASE_URL", GOOGLE_BASE_URL)
    monkeypatch.setenv("FAST_TTS_GEMINI_BASE_URL", GEMINI_BASE_URL)
