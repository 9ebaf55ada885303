"""Voice catalog queries and rendering.

Responsibilities:
- Query a provider's voice-listing endpoint through its adapter.
- Filter descriptors by language while preserving provider order.
- Render descriptors as a text table or a JSON document.
"""

from __future__ import annotations

import json

from .models.datatypes import Provider, VoiceDescriptor
from .runtime import RunContext


def language_matches(candidate: str, language: str) -> bool:
    """Return whether a voice language matches a filter.

    Matching is case-insensitive; a bare primary subtag such as `en` also
    matches regional codes such as `en-US`.
    """

    wanted = language.strip().lower()
    actual = candidate.strip().lower()
    if actual == wanted:
        return True
    return "-" not in wanted and actual.split("-", 1)[0] == wanted


def filter_voices(
    descriptors: list[VoiceDescriptor], language: str | None
) -> list[VoiceDescriptor]:
    """Keep descriptors whose `language` matches, in their original order."""

    if not language or not language.strip():
        return list(descriptors)
    return [voice for voice in descriptors if language_matches(voice.language, language)]


class VoiceCatalog:
    """List voices for one provider using the run's shared collaborators."""

    def __init__(self, context: RunContext) -> None:
        self._context = context

    async def list_voices(
        self, provider: Provider, language: str | None = None
    ) -> list[VoiceDescriptor]:
        """Return provider voices, optionally filtered by language."""

        context = self._context
        adapter = context.factory.adapter_for(provider)
        call = adapter.build_voices_call(language)
        credential = await context.credential_store.acquire(provider)
        response = await adapter.send(adapter.authorize(call, credential), context.transport)
        return filter_voices(adapter.parse_voices(response), language)


def render_voice_table(descriptors: list[VoiceDescriptor]) -> list[str]:
    """Render one `name gender rate Hz [langs]` row per descriptor."""

    rows: list[str] = []
    for voice in descriptors:
        languages = ",".join(voice.language_codes or (voice.language,)) or "-"
        rate = str(voice.sample_rate_hertz) if voice.sample_rate_hertz else "-"
        rows.append(f"{voice.name:<28} {voice.gender or '-':<7} {rate:>6} Hz  [{languages}]")
    return rows


def render_voice_json(descriptors: list[VoiceDescriptor]) -> str:
    """Render descriptors as a pretty-printed `{"voices": [...]}` document."""

    return json.dumps({"voices": [voice.as_dict() for voice in descriptors]}, indent=2)
