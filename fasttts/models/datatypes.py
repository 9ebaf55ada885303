"""Core datatypes shared across fast-tts modules.

Responsibilities:
- Represent immutable records exchanged between resolver, orchestrator,
  provider adapters, and the audio writer.
- Provide explicit enums for the closed provider and encoding sets.

Key types:
- `Provider`, `AudioEncoding`, `Gender`, `CredentialKind`.
- `Credential`, `SynthesisRequest`, `PartialRequest`, `BulkConfig`,
  `VoiceDescriptor`, `SynthesisResult`, `PlannedItem`, `ItemOutcome`,
  and `BulkSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..errors import ConfigurationError


class Provider(str, Enum):
    """Closed set of supported synthesis backends."""

    GOOGLE = "google"
    GEMINI = "gemini"
    OPENAI = "openai"
    AZURE = "azure"
    ELEVENLABS = "elevenlabs"
    DEEPGRAM = "deepgram"
    POLLY = "polly"


class AudioEncoding(str, Enum):
    """Audio encodings using Google Cloud TTS identifiers."""

    LINEAR16 = "LINEAR16"
    MP3 = "MP3"
    OGG_OPUS = "OGG_OPUS"
    MULAW = "MULAW"
    ALAW = "ALAW"

    @property
    def file_extension(self) -> str:
        """Return the output file extension expected for this encoding."""

        return _ENCODING_EXTENSIONS[self]


_ENCODING_EXTENSIONS = {
    AudioEncoding.LINEAR16: "wav",
    AudioEncoding.MP3: "mp3",
    AudioEncoding.OGG_OPUS: "ogg",
    AudioEncoding.MULAW: "wav",
    AudioEncoding.ALAW: "wav",
}


class Gender(str, Enum):
    """Preferred voice gender."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    NEUTRAL = "NEUTRAL"


class CredentialKind(str, Enum):
    """Origin of a credential issued by the credential store."""

    SERVICE_ACCOUNT = "service_account"
    APPLICATION_DEFAULT = "application_default"
    TEST_TOKEN = "test_token"
    API_KEY = "api_key"
    AWS_DEFAULT_CHAIN = "aws_default_chain"


@dataclass(frozen=True, slots=True)
class Credential:
    """Authentication material for one provider.

    Attributes:
        kind: Source that produced the credential.
        token: Bearer token or API key; empty for the AWS default chain.
        expires_at: Monotonic-clock expiry instant, or `None` when the
            credential does not expire within the run.
    """

    kind: CredentialKind
    token: str
    expires_at: float | None = None

    def is_fresh(self, now: float, safety_margin_seconds: float) -> bool:
        """Return whether the credential is usable at `now` with the given margin."""

        if self.expires_at is None:
            return True
        return now < self.expires_at - safety_margin_seconds


@dataclass(frozen=True, slots=True)
class SynthesisRequest:
    """One fully-resolved synthesis job.

    `voice` and `gender` may be `None`, meaning the provider picks its default.
    """

    provider: Provider
    text: str
    is_ssml: bool
    language: str
    voice: str | None
    gender: Gender | None
    rate: float
    pitch: float
    sample_rate: int
    encoding: AudioEncoding
    volume_db: float
    effects_profile: tuple[str, ...]
    output_path: Path


@dataclass(frozen=True, slots=True)
class PartialRequest:
    """Sparse synthesis settings from a bulk document block or CLI overrides."""

    provider: str | None = None
    text: str | None = None
    is_ssml: bool | None = None
    language: str | None = None
    voice: str | None = None
    gender: str | None = None
    rate: float | None = None
    pitch: float | None = None
    sample_rate: int | None = None
    encoding: str | None = None
    volume_db: float | None = None
    effects_profile: tuple[str, ...] | None = None
    output: str | None = None
    output_dir: str | None = None


@dataclass(frozen=True, slots=True)
class BulkConfig:
    """Parsed bulk configuration document.

    An item whose fields could not be parsed is kept as its
    `ConfigurationError`, so sibling items still run.
    """

    defaults: PartialRequest
    items: tuple[PartialRequest | ConfigurationError, ...]


@dataclass(frozen=True, slots=True)
class VoiceDescriptor:
    """One voice reported by a provider voice-listing endpoint."""

    name: str
    language: str
    gender: str
    sample_rate_hertz: int | None
    language_codes: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, object]:
        """Serialize the descriptor for JSON output."""

        return {
            "name": self.name,
            "language": self.language,
            "languageCodes": list(self.language_codes or (self.language,)),
            "gender": self.gender,
            "sampleRateHertz": self.sample_rate_hertz,
        }


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    """Decoded audio returned by a provider.

    Attributes:
        audio_bytes: Audio payload, decoded from base64 where applicable.
        encoding: Encoding of `audio_bytes`.
        has_container: Whether the payload already starts with a RIFF/WAV header.
        sample_rate: Sample rate reported by the provider for raw PCM, if any.
    """

    audio_bytes: bytes
    encoding: AudioEncoding
    has_container: bool = False
    sample_rate: int | None = None


@dataclass(frozen=True, slots=True)
class PlannedItem:
    """A bulk item after resolution: either a request or the resolution error."""

    index: int
    request: SynthesisRequest | None = None
    error: ConfigurationError | None = None


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """Outcome of one bulk item.

    Attributes:
        index: 1-based item index in the source document.
        status: `succeeded`, `failed`, or `skipped`.
        output_path: Written file for successful items.
        category: Error category for failed items.
        detail: Error detail for failed items.
    """

    index: int
    status: str
    output_path: Path | None = None
    category: str | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class BulkSummary:
    """Aggregated outcomes of a bulk run, ordered by item index."""

    outcomes: tuple[ItemOutcome, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> int:
        """Return the number of items written successfully."""

        return sum(1 for outcome in self.outcomes if outcome.status == "succeeded")

    @property
    def failed(self) -> int:
        """Return the number of items that failed."""

        return sum(1 for outcome in self.outcomes if outcome.status == "failed")

    @property
    def skipped(self) -> int:
        """Return the number of items never admitted because of cancellation."""

        return sum(1 for outcome in self.outcomes if outcome.status == "skipped")

    @property
    def failures(self) -> tuple[ItemOutcome, ...]:
        """Return failed outcomes in item order."""

        return tuple(outcome for outcome in self.outcomes if outcome.status == "failed")

    @property
    def ok(self) -> bool:
        """Return whether every item succeeded."""

        return all(outcome.status == "succeeded" for outcome in self.outcomes)
