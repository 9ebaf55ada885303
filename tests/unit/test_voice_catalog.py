"""Unit tests for voice filtering, rendering, and catalog queries."""

from __future__ import annotations

import json
from dataclasses import replace

import httpx
import pytest
import respx

from fasttts.errors import ConfigurationError
from fasttts.models.datatypes import Provider, VoiceDescriptor
from fasttts.runtime import open_run_context
from fasttts.voices import (
    VoiceCatalog,
    filter_voices,
    language_matches,
    render_voice_json,
    render_voice_table,
)


VOICES = [
    VoiceDescriptor("en-US-Neural2-A", "en-US", "MALE", 24000, ("en-US",)),
    VoiceDescriptor("fr-FR-Wavenet-B", "fr-FR", "FEMALE", 24000, ("fr-FR",)),
    VoiceDescriptor("en-GB-Standard-C", "en-GB", "FEMALE", 22050, ("en-GB",)),
]


@pytest.mark.parametrize(
    ("candidate", "language", "expected"),
    [
        ("en-US", "en-US", True),
        ("en-US", "EN-us", True),
        ("en-US", "en", True),
        ("en-GB", "en-US", False),
        ("fr-FR", "en", False),
        ("eng-US", "en", False),
    ],
)
def test_language_matches(candidate: str, language: str, expected: bool) -> None:
    assert language_matches(candidate, language) is expected


def test_filter_preserves_provider_order() -> None:
    assert [voice.name for voice in filter_voices(VOICES, "en")] == [
        "en-US-Neural2-A",
        "en-GB-Standard-C",
    ]
    assert filter_voices(VOICES, None) == VOICES
    assert filter_voices(VOICES, "  ") == VOICES
    assert filter_voices(VOICES, "de-DE") == []


def test_render_voice_table_rows() -> None:
    rows = render_voice_table(
        [VOICES[0], VoiceDescriptor("Joanna", "en-US", "", None)]
    )

    assert rows[0] == f"{'en-US-Neural2-A':<28} {'MALE':<7} {'24000':>6} Hz  [en-US]"
    assert rows[1] == f"{'Joanna':<28} {'-':<7} {'-':>6} Hz  [en-US]"


def test_render_voice_json_document() -> None:
    payload = json.loads(render_voice_json(VOICES[:1]))

    assert payload == {
        "voices": [
            {
                "name": "en-US-Neural2-A",
                "language": "en-US",
                "languageCodes": ["en-US"],
                "gender": "MALE",
                "sampleRateHertz": 24000,
            }
        ]
    }


@pytest.mark.asyncio
async def test_catalog_lists_google_voices_with_bearer_token(settings) -> None:
    """The catalog authorizes, parses in provider order, and filters locally."""

    voices_payload = {
        "voices": [
            {
                "name": "en-US-Neural2-A",
                "languageCodes": ["en-US"],
                "ssmlGender": "MALE",
                "naturalSampleRateHertz": 24000,
            },
            {
                "name": "en-AU-Neural2-B",
                "languageCodes": ["en-AU"],
                "ssmlGender": "MALE",
                "naturalSampleRateHertz": 24000,
            },
            {
                "name": "cs-CZ-Standard-A",
                "languageCodes": ["cs-CZ"],
                "ssmlGender": "FEMALE",
                "naturalSampleRateHertz": 24000,
            },
        ]
    }

    async with respx.mock() as router:
        route = router.get("http://127.0.0.1:9/google/v1/voices").mock(
            return_value=httpx.Response(200, json=voices_payload)
        )
        async with open_run_context(replace(settings, test_token="tok")) as context:
            voices = await VoiceCatalog(context).list_voices(Provider.GOOGLE, "en")

    assert [voice.name for voice in voices] == ["en-US-Neural2-A", "en-AU-Neural2-B"]
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.url.params["languageCode"] == "en"


@pytest.mark.asyncio
async def test_catalog_rejects_providers_without_voice_listing(settings) -> None:
    async with open_run_context(replace(settings, test_token="tok")) as context:
        with pytest.raises(ConfigurationError, match="does not support voice listing"):
            await VoiceCatalog(context).list_voices(Provider.OPENAI)
