"""Amazon Polly adapter.

Polly is reached through `boto3`, which resolves AWS credentials from its own
default chain; the blocking SDK call runs in a worker thread. Install the
`polly` extra to enable this provider.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from ..errors import ConfigurationError, ProviderError
from ..http_client import HttpTransport, ProviderCall, ProviderResponse
from ..models.datatypes import (
    AudioEncoding,
    Credential,
    Provider,
    SynthesisRequest,
    SynthesisResult,
    VoiceDescriptor,
)
from ..settings import RuntimeSettings
from .base import ProviderAdapter


DEFAULT_POLLY_VOICE = "Joanna"

_OUTPUT_FORMATS = {
    AudioEncoding.LINEAR16: ("pcm", (8000, 16000)),
    AudioEncoding.MP3: ("mp3", (8000, 16000, 22050, 24000)),
    AudioEncoding.OGG_OPUS: ("ogg_vorbis", (8000, 16000, 22050, 24000)),
}

# Codes accepted by `describe_voices`; other filters are applied after listing.
_POLLY_LANGUAGE_CODES = {
    code.lower(): code
    for code in (
        "arb", "ar-AE", "ca-ES", "cmn-CN", "cs-CZ", "cy-GB", "da-DK", "de-AT",
        "de-CH", "de-DE", "en-AU", "en-GB", "en-GB-WLS", "en-IE", "en-IN",
        "en-NZ", "en-SG", "en-US", "en-ZA", "es-ES", "es-MX", "es-US", "fi-FI",
        "fr-BE", "fr-CA", "fr-FR", "hi-IN", "is-IS", "it-IT", "ja-JP", "ko-KR",
        "nb-NO", "nl-BE", "nl-NL", "pl-PL", "pt-BR", "pt-PT", "ro-RO", "ru-RU",
        "sv-SE", "tr-TR", "yue-CN",
    )
}


def _closest_rate(rates: tuple[int, ...], sample_rate: int) -> int:
    """Pick the supported rate nearest the request, preferring the lower on ties."""

    return min(rates, key=lambda rate: (abs(rate - sample_rate), rate))


class PollyAdapter(ProviderAdapter):
    """Amazon Polly adapter backed by the AWS SDK."""

    provider = Provider.POLLY
    label = "Amazon Polly"
    encodings = frozenset(_OUTPUT_FORMATS)
    supports_voice_listing = True

    def __init__(
        self,
        settings: RuntimeSettings,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        super().__init__(settings)
        self._client_factory = client_factory
        self._client: Any = None

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        output_format, rates = _OUTPUT_FORMATS[request.encoding]
        sample_rate = _closest_rate(rates, request.sample_rate)
        return ProviderCall(
            method="SDK",
            url="polly:synthesize_speech",
            extra={
                "operation": "synthesize_speech",
                "kwargs": {
                    "Text": request.text,
                    "TextType": "ssml" if request.is_ssml else "text",
                    "VoiceId": request.voice or DEFAULT_POLLY_VOICE,
                    "OutputFormat": output_format,
                    "SampleRate": str(sample_rate),
                    "Engine": "neural",
                },
            },
        )

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Return the call unchanged; the SDK signs requests itself."""

        return call

    def _polly_client(self) -> Any:
        """Create the SDK client on first use."""

        if self._client is not None:
            return self._client
        if self._client_factory is not None:
            self._client = self._client_factory()
            return self._client
        try:
            import boto3
        except ImportError as exc:
            raise ConfigurationError(
                "Amazon Polly support requires the `boto3` package.",
                field="provider",
                hint="Install with `pip install fast-tts[polly]`.",
            ) from exc
        self._client = boto3.client("polly")
        return self._client

    def _invoke(self, operation: str, kwargs: dict[str, Any]) -> ProviderResponse:
        """Run one blocking SDK operation and adapt its result to a `ProviderResponse`."""

        client = self._polly_client()
        try:
            response = getattr(client, operation)(**kwargs)
        except Exception as exc:
            error_response = getattr(exc, "response", None)
            status_code = None
            if isinstance(error_response, dict):
                status_code = error_response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise ProviderError(
                f"{self.label} request failed: {exc}",
                failure_kind="http_error" if status_code else "transport",
                status_code=status_code,
            ) from exc

        if operation == "synthesize_speech":
            stream = response.get("AudioStream")
            content = stream.read() if stream is not None else b""
            headers = {"Content-Type": str(response.get("ContentType", ""))}
            return ProviderResponse(status_code=200, headers=headers, content=content)
        return ProviderResponse(status_code=200, headers={}, content=b"", extra_payload=response)

    async def send(self, call: ProviderCall, transport: HttpTransport) -> ProviderResponse:
        """Run the SDK call in a worker thread; the HTTP transport is unused."""

        return await asyncio.to_thread(
            self._invoke, call.extra["operation"], dict(call.extra["kwargs"])
        )

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Report PCM at the snapped rate Polly actually produced."""

        result = self.raw_audio_result(response, request)
        if request.encoding is AudioEncoding.LINEAR16:
            _, rates = _OUTPUT_FORMATS[request.encoding]
            return SynthesisResult(
                audio_bytes=result.audio_bytes,
                encoding=result.encoding,
                has_container=False,
                sample_rate=_closest_rate(rates, request.sample_rate),
            )
        return result

    def build_voices_call(self, language: str | None) -> ProviderCall:
        """Build a `describe_voices` call, filtering server-side only on known codes."""

        kwargs: dict[str, Any] = {}
        code = _POLLY_LANGUAGE_CODES.get((language or "").strip().lower())
        if code is not None:
            kwargs["LanguageCode"] = code
        return ProviderCall(
            method="SDK",
            url="polly:describe_voices",
            extra={"operation": "describe_voices", "kwargs": kwargs},
        )

    def parse_voices(self, response: ProviderResponse) -> list[VoiceDescriptor]:
        """Map `describe_voices` entries, keeping additional language codes."""

        payload = response.extra_payload or {}
        descriptors: list[VoiceDescriptor] = []
        for voice in payload.get("Voices") or ():
            codes = (str(voice.get("LanguageCode", "")),) + tuple(
                str(code) for code in voice.get("AdditionalLanguageCodes") or ()
            )
            descriptors.append(
                VoiceDescriptor(
                    name=str(voice.get("Id", "")),
                    language=codes[0],
                    gender=str(voice.get("Gender", "")).upper(),
                    sample_rate_hertz=None,
                    language_codes=codes,
                )
            )
        return descriptors
