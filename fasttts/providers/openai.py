"""OpenAI `/v1/audio/speech` adapter.

The response body is the audio itself. `wav` output already carries a RIFF
header; the speaking rate maps to `speed`, clamped to OpenAI's range.
"""

from __future__ import annotations

from ..http_client import ProviderCall, ProviderResponse
from ..models.datatypes import (
    AudioEncoding,
    Credential,
    Provider,
    SynthesisRequest,
    SynthesisResult,
)
from .base import ProviderAdapter, with_headers


DEFAULT_OPENAI_MODEL = "gpt-4o-mini-tts"
DEFAULT_OPENAI_VOICE = "alloy"

_RESPONSE_FORMATS = {
    AudioEncoding.LINEAR16: "wav",
    AudioEncoding.MP3: "mp3",
    AudioEncoding.OGG_OPUS: "opus",
}


class OpenAIAdapter(ProviderAdapter):
    """OpenAI speech adapter authenticated with a bearer API key."""

    provider = Provider.OPENAI
    label = "OpenAI"
    encodings = frozenset(_RESPONSE_FORMATS)

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/v1/audio/speech",
            headers={"Content-Type": "application/json"},
            json_body={
                "model": self.settings.model(self.provider, DEFAULT_OPENAI_MODEL),
                "voice": request.voice or DEFAULT_OPENAI_VOICE,
                "input": request.text,
                "response_format": _RESPONSE_FORMATS[request.encoding],
                "speed": max(0.25, min(4.0, request.rate)),
            },
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Send the API key as a bearer header."""

        return with_headers(call, {"Authorization": f"Bearer {credential.token}"})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Return the binary body as audio."""

        return self.raw_audio_result(response, request)
