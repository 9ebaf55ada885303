"""Unit tests for the Amazon Polly adapter with an in-memory SDK client."""

from __future__ import annotations

import io

import pytest

from fasttts.errors import ConfigurationError, ProviderError
from fasttts.models.datatypes import AudioEncoding, Credential, CredentialKind, Provider
from fasttts.providers.polly import PollyAdapter
from fasttts.voices import filter_voices


class FakePollyClient:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []
        self.error = error

    def synthesize_speech(self, **kwargs: object) -> dict[str, object]:
        self.calls.append(("synthesize_speech", kwargs))
        if self.error is not None:
            raise self.error
        return {"AudioStream": io.BytesIO(b"\x01\x00" * 8), "ContentType": "audio/pcm"}

    def describe_voices(self, **kwargs: object) -> dict[str, object]:
        self.calls.append(("describe_voices", kwargs))
        return {
            "Voices": [
                {"Id": "Joanna", "Gender": "Female", "LanguageCode": "en-US"},
                {
                    "Id": "Aditi",
                    "Gender": "Female",
                    "LanguageCode": "en-IN",
                    "AdditionalLanguageCodes": ["hi-IN"],
                },
            ]
        }


class SdkError(Exception):
    def __init__(self) -> None:
        super().__init__("ThrottlingException")
        self.response = {"ResponseMetadata": {"HTTPStatusCode": 400}}


AWS_CHAIN = Credential(kind=CredentialKind.AWS_DEFAULT_CHAIN, token="")


@pytest.mark.asyncio
async def test_pcm_synthesis_snaps_rate_and_defaults_voice(settings, make_request) -> None:
    client = FakePollyClient()
    adapter = PollyAdapter(settings, client_factory=lambda: client)
    request = make_request(provider=Provider.POLLY, sample_rate=24000)

    call = adapter.authorize(adapter.build_payload(request), AWS_CHAIN)
    response = await adapter.send(call, transport=None)  # type: ignore[arg-type]
    result = adapter.parse_response(response, request)

    operation, kwargs = client.calls[0]
    assert operation == "synthesize_speech"
    assert kwargs == {
        "Text": "Hello world",
        "TextType": "text",
        "VoiceId": "Joanna",
        "OutputFormat": "pcm",
        "SampleRate": "16000",
        "Engine": "neural",
    }
    assert result.sample_rate == 16000
    assert result.has_container is False
    assert result.audio_bytes == b"\x01\x00" * 8


def test_ssml_and_explicit_voice_are_forwarded(settings, make_request) -> None:
    adapter = PollyAdapter(settings, client_factory=FakePollyClient)
    request = make_request(
        provider=Provider.POLLY,
        is_ssml=True,
        text="<speak>Hi</speak>",
        voice="Matthew",
        encoding=AudioEncoding.OGG_OPUS,
        output_path=make_request().output_path.with_suffix(".ogg"),
    )

    kwargs = adapter.build_payload(request).extra["kwargs"]

    assert kwargs["TextType"] == "ssml"
    assert kwargs["VoiceId"] == "Matthew"
    assert kwargs["OutputFormat"] == "ogg_vorbis"
    assert kwargs["SampleRate"] == "24000"


@pytest.mark.asyncio
async def test_sdk_errors_become_provider_errors(settings, make_request) -> None:
    adapter = PollyAdapter(settings, client_factory=lambda: FakePollyClient(error=SdkError()))
    request = make_request(provider=Provider.POLLY)

    with pytest.raises(ProviderError, match="ThrottlingException") as exc_info:
        await adapter.send(adapter.build_payload(request), transport=None)  # type: ignore[arg-type]

    assert exc_info.value.status_code == 400
    assert exc_info.value.failure_kind == "http_error"


@pytest.mark.asyncio
async def test_voice_listing_uses_describe_voices(settings) -> None:
    client = FakePollyClient()
    adapter = PollyAdapter(settings, client_factory=lambda: client)

    call = adapter.build_voices_call("en-US")
    response = await adapter.send(call, transport=None)  # type: ignore[arg-type]
    voices = adapter.parse_voices(response)

    assert client.calls == [("describe_voices", {"LanguageCode": "en-US"})]
    assert [(voice.name, voice.gender, voice.language_codes) for voice in voices] == [
        ("Joanna", "FEMALE", ("en-US",)),
        ("Aditi", "FEMALE", ("en-IN", "hi-IN")),
    ]


def test_unsupported_encoding_is_rejected_before_client_creation(settings, make_request) -> None:
    created: list[object] = []
    adapter = PollyAdapter(settings, client_factory=lambda: created.append(1))

    with pytest.raises(ConfigurationError, match="does not support MULAW"):
        adapter.build_payload(make_request(provider=Provider.POLLY, encoding=AudioEncoding.MULAW))

    assert created == []


@pytest.mark.parametrize(
    ("language", "expected_kwargs"),
    [
        ("en", {}),
        ("EN", {}),
        ("en-us", {"LanguageCode": "en-US"}),
        ("cmn-cn", {"LanguageCode": "cmn-CN"}),
        (None, {}),
    ],
)
def test_voice_listing_sends_only_codes_polly_accepts(
    settings, language: str | None, expected_kwargs: dict[str, str]
) -> None:
    adapter = PollyAdapter(settings, client_factory=FakePollyClient)

    assert adapter.build_voices_call(language).extra["kwargs"] == expected_kwargs


@pytest.mark.asyncio
async def test_bare_language_subtag_is_filtered_after_listing(settings) -> None:
    client = FakePollyClient()
    adapter = PollyAdapter(settings, client_factory=lambda: client)

    response = await adapter.send(adapter.build_voices_call("en"), transport=None)  # type: ignore[arg-type]
    voices = filter_voices(adapter.parse_voices(response), "en")

    assert client.calls == [("describe_voices", {})]
    assert [voice.name for voice in voices] == ["Joanna", "Aditi"]
