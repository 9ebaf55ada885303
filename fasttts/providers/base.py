"""Provider adapter interface and shared helpers.

Responsibilities:
- Define the capability set every synthesis backend implements.
- Enforce encoding compatibility before any network call.
- Provide shared response helpers (base64 decoding, RIFF detection).

Key types:
- `ProviderAdapter`: base class for one provider variant.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import replace

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


class ProviderAdapter:
    """Base class for provider variants.

    Subclasses set `provider`, `label`, and `encodings`, and implement
    `_build_call`, `authorize`, and `parse_response`. Voice-capable variants
    also implement `build_voices_call` and `parse_voices`.
    """

    provider: Provider
    label: str
    encodings: frozenset[AudioEncoding] = frozenset()
    supports_voice_listing = False

    def __init__(self, settings: RuntimeSettings) -> None:
        self.settings = settings

    def supported_encodings(self) -> frozenset[AudioEncoding]:
        """Return the encodings this provider can produce."""

        return self.encodings

    def build_payload(self, request: SynthesisRequest) -> ProviderCall:
        """Validate the request and build the provider call without credentials.

        Raises:
            ConfigurationError: If the encoding is unsupported by this provider.
        """

        if request.encoding not in self.supported_encodings():
            supported = ", ".join(sorted(encoding.value for encoding in self.supported_encodings()))
            raise ConfigurationError(
                f"{self.label} does not support {request.encoding.value} encoding; "
                f"use one of {supported}.",
                field="encoding",
            )
        return self._build_call(request)

    def _build_call(self, request: SynthesisRequest) -> ProviderCall:
        """Build the unauthenticated provider call for a validated request."""

        raise NotImplementedError

    def authorize(self, call: ProviderCall, credential: Credential) -> ProviderCall:
        """Return `call` with the provider's authentication convention applied."""

        raise NotImplementedError

    async def send(self, call: ProviderCall, transport: HttpTransport) -> ProviderResponse:
        """Execute a prepared call; HTTP by default."""

        return await transport.send(call, label=self.label)

    def parse_response(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Extract audio from a provider response."""

        raise NotImplementedError

    def build_voices_call(self, language: str | None) -> ProviderCall:
        """Build the voice-listing call for this provider."""

        raise ConfigurationError(
            f"{self.label} does not support voice listing.",
            field="provider",
            hint="Use --provider google, azure, elevenlabs, or polly.",
        )

    def parse_voices(self, response: ProviderResponse) -> list[VoiceDescriptor]:
        """Parse a voice-listing response into descriptors in provider order."""

        raise NotImplementedError

    def raw_audio_result(
        self, response: ProviderResponse, request: SynthesisRequest
    ) -> SynthesisResult:
        """Wrap a raw audio body, failing when the provider returned nothing."""

        if not response.content:
            raise ProviderError(
                f"{self.label} response did not include audio data.",
                failure_kind="malformed_response",
            )
        return SynthesisResult(
            audio_bytes=response.content,
            encoding=request.encoding,
            has_container=has_riff_header(response.content),
        )


def decode_base64_audio(value: object, label: str) -> bytes:
    """Decode a base64 audio field, failing on absent, empty, or invalid data."""

    if not isinstance(value, str) or not value.strip():
        raise ProviderError(
            f"{label} response did not include audio data.",
            failure_kind="malformed_response",
        )
    try:
        audio = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ProviderError(
            f"Failed decoding audio data from {label} response.",
            failure_kind="malformed_response",
        ) from exc
    if not audio:
        raise ProviderError(
            f"{label} response contained empty audio data.",
            failure_kind="malformed_response",
        )
    return audio


def has_riff_header(audio: bytes) -> bool:
    """Return whether bytes start with a RIFF/WAVE container header."""

    return len(audio) >= 12 and audio[:4] == b"RIFF" and audio[8:12] == b"WAVE"


def with_headers(call: ProviderCall, headers: dict[str, str]) -> ProviderCall:
    """Return a copy of `call` with extra headers merged in."""

    return replace(call, headers={**call.headers, **headers})


def with_params(call: ProviderCall, params: dict[str, str]) -> ProviderCall:
    """Return a copy of `call` with extra query parameters merged in."""

    return replace(call, params={**call.params, **params})
