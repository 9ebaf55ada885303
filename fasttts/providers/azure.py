"""Azure Speech REST adapter.

Plain text is wrapped into an SSML document; the output format header is
chosen from the encoding and the closest supported sample rate.
"""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

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


_LOCALE_DEFAULT_VOICES = (
    ("en-US", "en-US-JennyNeural"),
    ("en-GB", "en-GB-LibbyNeural"),
)
_FALLBACK_VOICE = "en-US-JennyNeural"

_OUTPUT_FORMATS: dict[AudioEncoding, dict[int, str]] = {
    AudioEncoding.LINEAR16: {
        8000: "riff-8khz-16bit-mono-pcm",
        16000: "riff-16khz-16bit-mono-pcm",
        22050: "riff-22050hz-16bit-mono-pcm",
        24000: "riff-24khz-16bit-mono-pcm",
        44100: "riff-44100hz-16bit-mono-pcm",
        48000: "riff-48khz-16bit-mono-pcm",
    },
    AudioEncoding.MP3: {
        16000: "audio-16khz-128kbitrate-mono-mp3",
        24000: "audio-24khz-160kbitrate-mono-mp3",
        48000: "audio-48khz-192kbitrate-mono-mp3",
    },
    AudioEncoding.OGG_OPUS: {
        16000: "ogg-16khz-16bit-mono-opus",
        24000: "ogg-24khz-16bit-mono-opus",
        48000: "ogg-48khz-16bit-mono-opus",
    },
    AudioEncoding.MULAW: {8000: "riff-8khz-8bit-mono-mulaw"},
    AudioEncoding.ALAW: {8000: "riff-8khz-8bit-mono-alaw"},
}


def output_format(encoding: AudioEncoding, sample_rate: int) -> str:
    """Return the Azure output format closest to the requested sample rate."""

    formats = _OUTPUT_FORMATS[encoding]
    closest = min(formats, key=lambda rate: (abs(rate - sample_rate), rate))
    return formats[closest]


def default_voice(language: str) -> str:
    """Return a sensible default neural voice for a locale."""

    for prefix, voice in _LOCALE_DEFAULT_VOICES:
        if language.startswith(prefix):
            return voice
    return _FALLBACK_VOICE


def build_ssml(request: SynthesisRequest) -> str:
    """Wrap plain text into an Azure SSML document with optional prosody."""

    voice = request.voice or default_voice(request.language)
    body = escape(request.text)
    prosody: list[str] = []
    if request.rate != 1.0:
        prosody.append(f"rate={quoteattr(f'{(request.rate - 1.0) * 100:+.0f}%')}")
    if request.pitch != 0.0:
        prosody.append(f"pitch={quoteattr(f'{request.pitch:+.1f}st')}")
    if prosody:
        body = f"<prosody {' '.join(prosody)}>{body}</prosody>"
    lang = quoteattr(request.language)
    return (
        f"<speak version=\"1.0\" xml:lang={lang}>"
        f"<voice xml:lang={lang} name={quoteattr(voice)}>{body}</voice></speak>"
    )


class AzureAdapter(ProviderAdapter):
    """Azure Speech adapter authenticated with a subscription key header."""

    provider = Provider.AZURE
    label = "Azure Speech"
    encodings = frozenset(_OUTPUT_FORMATS)
    supports_voice_listing = True

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        """Post SSML, wrapping plain text with voice and prosody."""

        ssml = request.text if request.is_ssml else build_ssml(request)
        return ProviderCall(
            method="POST",
            url=f"{self.settings.base_url(self.provider)}/cognitiveservices/v1",
            headers={
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": output_format(request.encoding, request.sample_rate),
                "User-Agent": "fast-tts-cli",
            },
            content=ssml.encode("utf-8"),
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Send the subscription key header."""

        return with_headers(call, {"Ocp-Apim-Subscription-Key": credential.token})

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Return the binary body as audio."""

        return self.raw_audio_result(response, request)

    def build_voices_call(self, language: str | None) -> ProviderCall:
        """Build the voice listing call; filtering happens after listing."""

        return ProviderCall(
            method="GET",
            url=f"{self.settings.base_url(self.provider)}/cognitiveservices/voices/list",
        )

    def parse_voices(self, response: ProviderResponse) -> list[VoiceDescriptor]:
        """Map the voice list, one descriptor per `ShortName`."""

        payload = response.json()
        if not isinstance(payload, list):
            raise ProviderError(
                f"{self.label} voice listing must be a JSON list.",
                failure_kind="malformed_response",
            )
        descriptors: list[VoiceDescriptor] = []
        for voice in payload:
            if not isinstance(voice, dict):
                continue
            locale = str(voice.get("Locale", ""))
            rate = voice.get("SampleRateHertz")
            descriptors.append(
                VoiceDescriptor(
                    name=str(voice.get("ShortName", voice.get("Name", ""))),
                    language=locale,
                    gender=str(voice.get("Gender", "")).upper(),
                    sample_rate_hertz=int(rate) if str(rate).isdigit() else None,
                    language_codes=(locale,) if locale else (),
                )
            )
        return descriptors
