"""Deepgram Aura `/v1/speak` adapter.

The voice is the Aura model name. PCM, mu-law, and A-law requests ask for a
WAV container so the file on disk is self-describing.
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


DEFAULT_DEEPGRAM_MODEL = "aura-asteria-en"

_ENCODING_PARAMS = {
    AudioEncoding.LINEAR16: {"encoding": "linear16", "container": "wav"},
    AudioEncoding.MULAW: {"encoding": "mulaw", "container": "wav"},
    AudioEncoding.ALAW: {"encoding": "alaw", "container": "wav"},
    AudioEncoding.MP3: {"encoding": "mp3"},
    AudioEncoding.OGG_OPUS: {"encoding": "opus", "container": "ogg"},
}
_RATE_ENCODINGS = frozenset({AudioEncoding.LINEAR16, AudioEncoding.MULAW, AudioEncoding.ALAW})


class DeepgramAdapter(ProviderAdapter):
    """Deepgram adapter authenticated with a `Token` authorization header."""

    provider = Provider.DEEPGRAM
    label = "Deepgram"
    encodings = frozenset(_ENCODING_PARAMS)

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        """Build the `/v1/speak` call; the voice selects the Deepgram model."""

        params = {
            "model": request.voice or self.settings.model(self.provider, DEFAULT_DEEPGRAM_MODEL),
            **_ENCODING_PARAMS[request.encoding],
        }
        if request.encoding in _RATE_ENCODINGS:
            params["sample_rate"] = str(request.sample_rate)
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/v1/speak",
            headers={"Content-Type": "application/json"},
            params=params,
            json_body={"text": request.text},
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Send the API key with the `Token` scheme."""

        return with_headers(call, {"Authorization": f"Token {credential.token}"})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Return the binary body at the requested sample rate."""

        result = self.raw_audio_result(response, request)
        return SynthesisResult(
            audio_bytes=result.audio_bytes,
            encoding=result.encoding,
            has_container=result.has_container,
            sample_rate=request.sample_rate,
        )
