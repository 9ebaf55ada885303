"""Google Cloud Text-to-Speech adapter.

Builds `text:synthesize` payloads, lists voices via `/v1/voices`, and decodes
the base64 `audioContent` field. Authentication is an OAuth bearer token from
the credential store.
"""

from __future__ import annotations

from typing import Any

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
from .base import ProviderAdapter, decode_base64_audio, has_riff_header, with_headers


class GoogleCloudAdapter(ProviderAdapter):
    """Google Cloud TTS REST adapter."""

    provider = Provider.GOOGLE
    label = "Google Cloud TTS"
    encodings = frozenset(AudioEncoding)
    supports_voice_listing = True

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        """Build the `text:synthesize` body, omitting unset voice fields."""

        voice: dict[str, Any] = {"languageCode": request.language}
        if request.voice is not None:
            voice["name"] = request.voice
        if request.gender is not None:
            voice["ssmlGender"] = request.gender.value

        audio_config: dict[str, Any] = {
            "audioEncoding": request.encoding.value,
            "speakingRate": request.rate,
            "pitch": request.pitch,
            "volumeGainDb": request.volume_db,
            "sampleRateHertz": request.sample_rate,
            "enableLegacyWavHeader": False,
        }
        if request.effects_profile:
            audio_config["effectsProfileId"] = list(request.effects_profile)

        synthesis_input = {"ssml": request.text} if request.is_ssml else {"text": request.text}
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/v1/text:synthesize",
            headers={"Content-Type": "application/json"},
            json_body={"input": synthesis_input, "voice": voice, "audioConfig": audio_config},
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Send the OAuth access token as a bearer header."""

        return with_headers(call, {"Authorization": f"Bearer {credential.token}"})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Decode the base64 `audioContent` field."""

        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError(
                f"{self.label} response must be a JSON object.",
                failure_kind="malformed_response",
            )
        audio_field = payload.get("audioContent", payload.get("audio_content"))
        audio = decode_base64_audio(audio_field, self.label)
        return SynthesisResult(
            audio_bytes=audio,
            encoding=request.encoding,
            has_container=has_riff_header(audio),
            sample_rate=request.sample_rate,
        )

    def build_voices_call(self, language: str | None) -> ProviderCall:
        """Build the voice listing call with an optional `languageCode` filter."""

        params = {"languageCode": language} if language else {}
        return ProviderCall(
            method="GET",
            url=f"{self.settings.base_url(self.provider)}/v1/voices",
            params=params,
        )

    def parse_voices(self, response: ProviderResponse) -> list[VoiceDescriptor]:
        """Map the `voices` list, keeping every advertised language code."""

        payload = response.json()
        voices = payload.get("voices", []) if isinstance(payload, dict) else None
        if not isinstance(voices, list):
            raise ProviderError(
                f"{self.label} voice listing is missing the `voices` list.",
                failure_kind="malformed_response",
            )
        descriptors: list[VoiceDescriptor] = []
        for voice in voices:
            if not isinstance(voice, dict):
                continue
            codes = tuple(str(code) for code in voice.get("languageCodes") or ())
            descriptors.append(
                VoiceDescriptor(
                    name=str(voice.get("name", "")),
                    language=codes[0] if codes else "",
                    gender=str(voice.get("ssmlGender", "")),
                    sample_rate_hertz=voice.get("naturalSampleRateHertz"),
                    language_codes=codes,
                )
            )
        return descriptors
