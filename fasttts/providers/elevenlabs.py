"""ElevenLabs text-to-speech adapter.

The voice is part of the URL; the output format is a query parameter. PCM
output is headerless and is wrapped into WAV by the audio writer.
"""

from __future__ import annotations

from ..errors import ProviderError
from ..http_client import ProviderCall, ProviderResponse
from ..models.datatypes import (
    AudioEncoding,
    Credential,
    Provider,
    SynthesisRequest,
    SynthesisResult,
    VoiceDescriptor,
)
from .base import ProviderAdapter, with_headers


DEFAULT_ELEVENLABS_MODEL = "eleven_multilingual_v2"
# "Rachel"
DEFAULT_ELEVENLABS_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"

_PCM_RATES = (16000, 22050, 24000, 44100)


def _closest_pcm_rate(sample_rate: int) -> int:
    """Return the nearest PCM rate ElevenLabs can produce, preferring the lower on ties."""

    return min(_PCM_RATES, key=lambda rate: (abs(rate - sample_rate), rate))


class ElevenLabsAdapter(ProviderAdapter):
    """ElevenLabs adapter authenticated with the `xi-api-key` header."""

    provider = Provider.ELEVENLABS
    label = "ElevenLabs"
    encodings = frozenset({AudioEncoding.LINEAR16, AudioEncoding.MP3})
    supports_voice_listing = True

    def _output_format(self, request: SynthesisRequest) -> str:
        """Pick the `output_format` query value for the requested encoding and rate."""

        if request.encoding is AudioEncoding.MP3:
            return "mp3_22050_32" if request.sample_rate <= 22050 else "mp3_44100_128"
        return f"pcm_{_closest_pcm_rate(request.sample_rate)}"

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        voice_id = request.voice or DEFAULT_ELEVENLABS_VOICE_ID
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/v1/text-to-speech/{voice_id}",
            headers={"Content-Type": "application/json"},
            params={"output_format": self._output_format(request)},
            json_body={
                "text": request.text,
                "model_id": self.settings.model(self.provider, DEFAULT_ELEVENLABS_MODEL),
                "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
            },
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Send the API key in the `xi-api-key` header."""

        return with_headers(call, {"xi-api-key": credential.token})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Report raw PCM at the snapped rate requested from the provider."""

        result = self.raw_audio_result(response, request)
        if request.encoding is AudioEncoding.LINEAR16 and not result.has_container:
            return SynthesisResult(
                audio_bytes=result.audio_bytes,
                encoding=result.encoding,
                has_container=False,
                sample_rate=_closest_pcm_rate(request.sample_rate),
            )
        return result

    def build_voices_call(self, language: str | None) -> ProviderCall:
        """Build the voice listing call; ElevenLabs has no server-side language filter."""

        return ProviderCall(method="GET", url=f"{self.settings.base_url(self.provider)}/v1/voices")

    def parse_voices(self, response: ProviderResponse) -> list[VoiceDescriptor]:
        """Map voices, preferring verified locales over the language label."""

        payload = response.json()
        voices = payload.get("voices") if isinstance(payload, dict) else None
        if not isinstance(voices, list):
            raise ProviderError(
                f"{self.label} voice listing is missing the `voices` list.",
                failure_kind="malformed_response",
            )
        descriptors: list[VoiceDescriptor] = []
        for voice in voices:
            if not isinstance(voice, dict):
                continue
            labels = voice.get("labels") if isinstance(voice.get("labels"), dict) else {}
            locales = tuple(
                str(entry.get("locale") or entry.get("language"))
                for entry in voice.get("verified_languages") or ()
                if isinstance(entry, dict) and (entry.get("locale") or entry.get("language"))
            )
            if not locales and labels.get("language"):
                locales = (str(labels["language"]),)
            descriptors.append(
                VoiceDescriptor(
                    name=str(voice.get("voice_id", "")),
                    language=locales[0] if locales else "",
                    gender=str(labels.get("gender", "")).upper(),
                    sample_rate_hertz=None,
                    language_codes=locales,
                )
            )
        return descriptors
