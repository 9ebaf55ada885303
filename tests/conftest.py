"""Shared pytest fixtures for the full fast-tts test suite."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from fasttts.keyring_store import ApiKeyStore
from fasttts.models.datatypes import AudioEncoding, Provider, SynthesisRequest
from fasttts.settings import RuntimeSettings


_FAST_TTS_ENV_KEYS = (
    "FAST_TTS_TOKEN",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "FAST_TTS_ADC_PATH",
    "FAST_TTS_OAUTH_TOKEN_URL",
    "FAST_TTS_BASE_URL",
    "FAST_TTS_GEMINI_BASE_URL",
    "FAST_TTS_OPENAI_BASE_URL",
    "FAST_TTS_AZURE_BASE_URL",
    "FAST_TTS_ELEVENLABS_BASE_URL",
    "FAST_TTS_DEEPGRAM_BASE_URL",
    "GEMINI_API_KEY",
    "GEMINI_TTS_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_TTS_MODEL",
    "AZURE_SPEECH_KEY",
    "AZURE_SPEECH_REGION",
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_MODEL_ID",
    "DEEPGRAM_API_KEY",
    "DEEPGRAM_TTS_MODEL",
)


class InMemoryApiKeyStore(ApiKeyStore):
    """Dictionary-backed API-key store that never touches the OS keyring."""

    def __init__(self, keys: dict[Provider, str] | None = None) -> None:
        """Initialize the store with optional preloaded keys."""

        self.keys: dict[Provider, str] = dict(keys or {})

    def is_available(self) -> bool:
        return True

    def get_api_key(self, provider: Provider) -> str | None:
        return self.keys.get(provider)

    def set_api_key(self, provider: Provider, api_key: str) -> None:
        self.keys[provider] = api_key.strip()

    def clear_api_key(self, provider: Provider) -> bool:
        return self.keys.pop(provider, None) is not None


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Clear credential/base-URL variables and point ADC at a missing file."""

    for key in _FAST_TTS_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("FAST_TTS_ADC_PATH", str(tmp_path / "missing-adc.json"))


@pytest.fixture
def api_key_store() -> InMemoryApiKeyStore:
    """Provide an empty in-memory API-key store."""

    return InMemoryApiKeyStore()


@pytest.fixture
def settings(tmp_path: Path) -> RuntimeSettings:
    """Provide settings with no credential sources and loopback base URLs."""

    return RuntimeSettings(
        adc_path=tmp_path / "missing-adc.json",
        oauth_token_url="http://127.0.0.1:9/token",
        base_urls={
            Provider.GOOGLE: "http://127.0.0.1:9/google",
            Provider.GEMINI: "http://127.0.0.1:9/gemini",
            Provider.OPENAI: "http://127.0.0.1:9/openai",
            Provider.AZURE: "http://127.0.0.1:9/azure",
            Provider.ELEVENLABS: "http://127.0.0.1:9/elevenlabs",
            Provider.DEEPGRAM: "http://127.0.0.1:9/deepgram",
        },
    )


@pytest.fixture
def make_request(tmp_path: Path):  # type: ignore[no-untyped-def]
    """Build fully-resolved synthesis requests with test-friendly defaults."""

    base = SynthesisRequest(
        provider=Provider.GOOGLE,
        text="Hello world",
        is_ssml=False,
        language="en-US",
        voice=None,
        gender=None,
        rate=1.0,
        pitch=0.0,
        sample_rate=24000,
        encoding=AudioEncoding.LINEAR16,
        volume_db=0.0,
        effects_profile=(),
        output_path=tmp_path / "out.wav",
    )

    def _make(**changes: object) -> SynthesisRequest:
        return replace(base, **changes)

    return _make


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    """Generate one RSA private key per session for service-account tests."""

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
