"""Provider factory helpers for synthesis adapters.

Responsibilities:
- Resolve provider identifiers to concrete adapter implementations.
- Keep orchestration independent from concrete adapter construction.

Notes:
- The provider set is closed; mappings are intentionally explicit.
"""

from __future__ import annotations

from .errors import ConfigurationError
from .models.datatypes import Provider
from .providers.azure import AzureAdapter
from .providers.base import ProviderAdapter
from .providers.deepgram import DeepgramAdapter
from .providers.elevenlabs import ElevenLabsAdapter
from .providers.gemini import GeminiAdapter
from .providers.google import GoogleCloudAdapter
from .providers.openai import OpenAIAdapter
from .providers.polly import PollyAdapter
from .settings import RuntimeSettings


_ADAPTER_TYPES: dict[Provider, type[ProviderAdapter]] = {
    Provider.GOOGLE: GoogleCloudAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.OPENAI: OpenAIAdapter,
    Provider.AZURE: AzureAdapter,
    Provider.ELEVENLABS: ElevenLabsAdapter,
    Provider.DEEPGRAM: DeepgramAdapter,
    Provider.POLLY: PollyAdapter,
}


def parse_provider(value: str) -> Provider:
    """Parse a provider identifier, case-insensitively."""

    try:
        return Provider(value.strip().lower())
    except ValueError as exc:
        supported = ", ".join(provider.value for provider in Provider)
        raise ConfigurationError(
            f"Unsupported provider `{value}`; use one of {supported}.",
            field="provider",
        ) from exc


class ProviderFactory:
    """Factory for provider adapters, caching one instance per provider per run."""

    def __init__(self, settings: RuntimeSettings) -> None:
        self._settings = settings
        self._adapters: dict[Provider, ProviderAdapter] = {}

    def register(self, adapter: ProviderAdapter) -> None:
        """Use a pre-built adapter for its provider (e.g. a Polly client double)."""

        self._adapters[adapter.provider] = adapter

    def adapter_for(self, provider: Provider) -> ProviderAdapter:
        """Return the adapter for a provider discriminant."""

        adapter = self._adapters.get(provider)
        if adapter is None:
            adapter = _ADAPTER_TYPES[provider](self._settings)
            self._adapters[provider] = adapter
        return adapter
