"""Gemini (Google AI) speech generation adapter.

Uses `generateContent` with an audio response modality. Audio comes back as
base64 inline data; raw `audio/L16` PCM carries its sample rate in the MIME
type and is wrapped into WAV by the audio writer.
"""

from __future__ import annotations

import re
from typing import Any

from ..errors import ProviderError
from ..http_client import ProviderCall, ProviderResponse
from ..models.datatypes import (
    AudioEncoding,
    Credential,
    Provider,
    SynthesisRequest,
    SynthesisResult,
)
from .base import ProviderAdapter, decode_base64_audio, has_riff_header, with_params


DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_GEMINI_VOICE = "Kore"

_PCM_MIME_PATTERN = re.compile(r"audio/(l16|pcm)", re.IGNORECASE)
_RATE_PATTERN = re.compile(r"rate=(\d+)")


class GeminiAdapter(ProviderAdapter):
    """Gemini API adapter authenticated with an API key query parameter."""

    provider = Provider.GEMINI
    label = "Gemini"
    encodings = frozenset({AudioEncoding.LINEAR16, AudioEncoding.MP3, AudioEncoding.OGG_OPUS})

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        model = self.settings.model(self.provider, DEFAULT_GEMINI_MODEL)
        body = {
            "contents": [{"role": "user", "parts": [{"text": request.text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {
                            "voiceName": request.voice or DEFAULT_GEMINI_VOICE,
                        }
                    }
                },
            },
        }
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/v1beta/models/{model}:generateContent",
            headers={"Content-Type": "application/json"},
            json_body=body,
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Pass the API key as the `key` query parameter."""

        return with_params(call, {"key": credential.token})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Decode inline audio; raw PCM keeps the rate named in its MIME type."""

        payload = response.json()
        inline = _first_audio_part(payload)
        if inline is None:
            raise ProviderError(
                f"{self.label} response did not include audio data.",
                failure_kind="malformed_response",
            )
        audio = decode_base64_audio(inline.get("data"), self.label)
        mime_type = str(inline.get("mimeType") or inline.get("mime_type") or "")

        if _PCM_MIME_PATTERN.search(mime_type):
            if request.encoding is not AudioEncoding.LINEAR16:
                raise ProviderError(
                    f"{self.label} returned raw PCM audio but {request.encoding.value} "
                    "was requested.",
                    failure_kind="encoding_mismatch",
                    hint="Request LINEAR16 output for this model.",
                )
            rate_match = _RATE_PATTERN.search(mime_type)
            return SynthesisResult(
                audio_bytes=audio,
                encoding=AudioEncoding.LINEAR16,
                has_container=False,
                sample_rate=int(rate_match.group(1)) if rate_match else None,
            )

        return SynthesisResult(
            audio_bytes=audio,
            encoding=request.encoding,
            has_container=has_riff_header(audio),
        )


def _first_audio_part(payload: Any) -> dict[str, Any] | None:
    """Return the first inline audio part across all candidates."""

    if not isinstance(payload, dict):
        return None
    for candidate in payload.get("candidates") or ():
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict):
            continue
        for part in content.get("parts") or ():
            if not isinstance(part, dict):
                continue
            for key in ("inlineData", "inline_data", "audio"):
                inline = part.get(key)
                if isinstance(inline, dict) and inline.get("data"):
                    return inline
    return None
