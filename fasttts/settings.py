"""Environment-driven runtime settings.

Responsibilities:
- Read credential sources, base-URL overrides, API keys, and model overrides
  from environment variables in one place.
- Keep provider adapters and the credential store free of `os.environ` access.

Key types:
- `RuntimeSettings`: immutable snapshot of the environment for one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping
from urllib.parse import urlsplit

from .errors import ConfigurationError
from .models.datatypes import Provider
from .parsing import normalize_optional_string


GOOGLE_TTS_BASE_URL = "https://texttospeech.googleapis.com"
GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"

_DEFAULT_BASE_URLS = {
    Provider.GOOGLE: GOOGLE_TTS_BASE_URL,
    Provider.GEMINI: "https://generativelanguage.googleapis.com",
    Provider.OPENAI: "https://api.openai.com",
    Provider.ELEVENLABS: "https://api.elevenlabs.io",
    Provider.DEEPGRAM: "https://api.deepgram.com",
}

_BASE_URL_ENV_KEYS = {
    Provider.GOOGLE: "FAST_TTS_BASE_URL",
    Provider.GEMINI: "FAST_TTS_GEMINI_BASE_URL",
    Provider.OPENAI: "FAST_TTS_OPENAI_BASE_URL",
    Provider.AZURE: "FAST_TTS_AZURE_BASE_URL",
    Provider.ELEVENLABS: "FAST_TTS_ELEVENLABS_BASE_URL",
    Provider.DEEPGRAM: "FAST_TTS_DEEPGRAM_BASE_URL",
}

API_KEY_ENV_KEYS = {
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.AZURE: "AZURE_SPEECH_KEY",
    Provider.ELEVENLABS: "ELEVENLABS_API_KEY",
    Provider.DEEPGRAM: "DEEPGRAM_API_KEY",
}

_MODEL_ENV_KEYS = {
    Provider.GEMINI: "GEMINI_TTS_MODEL",
    Provider.OPENAI: "OPENAI_TTS_MODEL",
    Provider.ELEVENLABS: "ELEVENLABS_MODEL_ID",
    Provider.DEEPGRAM: "DEEPGRAM_TTS_MODEL",
}

_LOOPBACK_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})


def default_adc_path() -> Path:
    """Return the gcloud application-default credentials location."""

    return Path.home() / ".config" / "gcloud" / "application_default_credentials.json"


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Snapshot of environment-provided settings for one run.

    Attributes:
        test_token: Token that bypasses authentication entirely.
        service_account_path: Service-account JSON key path.
        adc_path: Application-default credentials file path.
        oauth_token_url: OAuth endpoint used for refresh-token exchanges.
        base_urls: Per-provider base-URL overrides.
        api_keys: Per-provider API keys from the environment.
        models: Per-provider model overrides.
        azure_region: Azure Speech region.
    """

    test_token: str | None = None
    service_account_path: Path | None = None
    adc_path: Path | None = None
    oauth_token_url: str = GOOGLE_OAUTH_TOKEN_URL
    base_urls: Mapping[Provider, str] = field(default_factory=dict)
    api_keys: Mapping[Provider, str] = field(default_factory=dict)
    models: Mapping[Provider, str] = field(default_factory=dict)
    azure_region: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> RuntimeSettings:
        """Build settings from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env

        def read(key: str) -> str | None:
            return normalize_optional_string(env_map.get(key))

        service_account = read("GOOGLE_APPLICATION_CREDENTIALS")
        adc_override = read("FAST_TTS_ADC_PATH")
        base_urls = {
            provider: value.rstrip("/")
            for provider, key in _BASE_URL_ENV_KEYS.items()
            if (value := read(key)) is not None
        }
        api_keys = {
            provider: value
            for provider, key in API_KEY_ENV_KEYS.items()
            if (value := read(key)) is not None
        }
        models = {
            provider: value
            for provider, key in _MODEL_ENV_KEYS.items()
            if (value := read(key)) is not None
        }
        return cls(
            test_token=read("FAST_TTS_TOKEN"),
            service_account_path=Path(service_account) if service_account else None,
            adc_path=Path(adc_override) if adc_override else default_adc_path(),
            oauth_token_url=read("FAST_TTS_OAUTH_TOKEN_URL") or GOOGLE_OAUTH_TOKEN_URL,
            base_urls=base_urls,
            api_keys=api_keys,
            models=models,
            azure_region=read("AZURE_SPEECH_REGION"),
        )

    def base_url(self, provider: Provider) -> str:
        """Return the effective base URL for a provider."""

        override = self.base_urls.get(provider)
        if override is not None:
            return override
        if provider is Provider.AZURE:
            if self.azure_region is None:
                raise ConfigurationError(
                    "AZURE_SPEECH_REGION is required for provider azure.",
                    field="AZURE_SPEECH_REGION",
                    hint="Export AZURE_SPEECH_REGION, e.g. `westeurope`.",
                )
            return f"https://{self.azure_region}.tts.speech.microsoft.com"
        return _DEFAULT_BASE_URLS[provider]

    def model(self, provider: Provider, default: str) -> str:
        """Return the configured model override for a provider or `default`."""

        return self.models.get(provider, default)

    def uses_loopback(self) -> bool:
        """Return whether any base-URL override targets a local test double."""

        urls = list(self.base_urls.values()) + [self.oauth_token_url]
        return any(urlsplit(url).hostname in _LOOPBACK_HOSTS for url in urls)
