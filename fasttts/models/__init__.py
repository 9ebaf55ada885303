"""Typed records shared across fast-tts components."""

from .datatypes import (
    AudioEncoding,
    BulkConfig,
    BulkSummary,
    Credential,
    CredentialKind,
    Gender,
    ItemOutcome,
    PartialRequest,
    PlannedItem,
    Provider,
    SynthesisRequest,
    SynthesisResult,
    VoiceDescriptor,
)

__all__ = [
    "AudioEncoding",
    "BulkConfig",
    "BulkSummary",
    "Credential",
    "CredentialKind",
    "Gender",
    "ItemOutcome",
    "PartialRequest",
    "PlannedItem",
    "Provider",
    "SynthesisRequest",
    "SynthesisResult",
    "VoiceDescriptor",
]
