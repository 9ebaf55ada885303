"""End-to-end `speak` command tests against a loopback Google double."""

from __future__ import annotations

import base64
import json
import wave
from pathlib import Path

import httpx
import pytest
import respx
from typer.testing import CliRunner

from fasttts.cli import app


SYNTHESIZE_URL = "http://127.0.0.1:9/google/v1/text:synthesize"
PCM = b"\x10\x00\x20\x00" * 1200


def _audio_response(audio: bytes = PCM) -> httpx.Response:
    return httpx.Response(200, json={"audioContent": base64.b64encode(audio).decode("ascii")})


@pytest.mark.usefixtures("loopback_env")
def test_speak_writes_wav_with_requested_settings(tmp_path: Path) -> None:
    """A LINEAR16 request should produce a playable mono WAV and report its path."""

    output = tmp_path / "speech" / "hello.wav"

    with respx.mock() as router:
        route = router.post(SYNTHESIZE_URL).mock(return_value=_audio_response())
        result = CliRunner().invoke(
            app,
            [
                "speak",
                "Hello from the loopback",
                str(output),
                "--language",
                "en-GB",
                "--voice",
                "en-GB-Neural2-A",
                "--rate",
                "1.25",
                "--sample-rate",
                "22050",
            ],
        )

    assert result.exit_code == 0, result.output
    assert f"Wrote {output}" in result.output
    body = json.loads(route.calls.last.request.content)
    assert body["input"] == {"text": "Hello from the loopback"}
    assert body["voice"] == {"languageCode": "en-GB", "name": "en-GB-Neural2-A"}
    assert body["audioConfig"]["audioEncoding"] == "LINEAR16"
    assert body["audioConfig"]["speakingRate"] == 1.25
    assert body["audioConfig"]["sampleRateHertz"] == 22050
    assert route.calls.last.request.headers["Authorization"] == "Bearer integration-token"
    with wave.open(str(output), "rb") as wav_file:
        assert wav_file.getframerate() == 22050
        assert wav_file.getnchannels() == 1
        assert wav_file.readframes(wav_file.getnframes()) == PCM


@pytest.mark.usefixtures("loopback_env")
def test_speak_ssml_mp3_is_written_verbatim(tmp_path: Path) -> None:
    output = tmp_path / "hello.mp3"

    with respx.mock() as router:
        route = router.post(SYNTHESIZE_URL).mock(return_value=_audio_response(b"ID3mp3-data"))
        result = CliRunner().invoke(
            app,
            ["speak", "<speak>Hi</speak>", str(output), "--ssml", "--encoding", "mp3"],
        )

    assert result.exit_code == 0, result.output
    assert json.loads(route.calls.last.request.content)["input"] == {"ssml": "<speak>Hi</speak>"}
    assert output.read_bytes() == b"ID3mp3-data"


@pytest.mark.usefixtures("loopback_env")
def test_extension_mismatch_fails_without_network(tmp_path: Path) -> None:
    with respx.mock(assert_all_called=False) as router:
        catch_all = router.route().mock(return_value=_audio_response())
        result = CliRunner().invoke(app, ["speak", "hi", str(tmp_path / "out.mp3")])

    assert result.exit_code == 1
    assert "speak failed [configuration]" in result.output
    assert "does not match encoding LINEAR16" in result.output
    assert catch_all.call_count == 0


@pytest.mark.usefixtures("loopback_env")
def test_unsupported_provider_encoding_fails_without_network(tmp_path: Path) -> None:
    """Gemini cannot produce MULAW; nothing should be sent or written."""

    output = tmp_path / "out.wav"

    with respx.mock(assert_all_called=False) as router:
        catch_all = router.route().mock(return_value=_audio_response())
        result = CliRunner().invoke(
            app,
            ["speak", "hi", str(output), "--provider", "gemini", "--encoding", "MULAW"],
        )

    assert result.exit_code == 1
    assert "speak failed [configuration]" in result.output
    assert "does not support MULAW" in result.output
    assert catch_all.call_count == 0
    assert not output.exists()


def test_missing_credentials_are_reported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FAST_TTS_BASE_URL", "http://127.0.0.1:9/google")

    with respx.mock(assert_all_called=False) as router:
        catch_all = router.route().mock(return_value=_audio_response())
        result = CliRunner().invoke(app, ["speak", "hi", str(tmp_path / "out.wav")])

    assert result.exit_code == 1
    assert "speak failed [authentication]" in result.output
    assert "Hint: Set GOOGLE_APPLICATION_CREDENTIALS" in result.output
    assert catch_all.call_count == 0


@pytest.mark.usefixtures("loopback_env")
def test_provider_rejection_reports_status_and_hint(tmp_path: Path) -> None:
    with respx.mock() as router:
        router.post(SYNTHESIZE_URL).mock(
            return_value=httpx.Response(
                403, json={"error": {"code": 403, "message": "Permission denied on project."}}
            )
        )
        result = CliRunner().invoke(app, ["speak", "hi", str(tmp_path / "out.wav")])

    assert result.exit_code == 1
    assert "speak failed [provider]" in result.output
    assert "(HTTP 403): Permission denied on project." in result.output
    assert "Hint: Check the provider credentials" in result.output
    assert not (tmp_path / "out.wav").exists()


@pytest.mark.usefixtures("loopback_env")
def test_invalid_option_value_is_a_configuration_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app, ["speak", "hi", str(tmp_path / "out.wav"), "--rate", "9"]
    )

    assert result.exit_code == 1
    assert "speak failed [configuration]" in result.output
    assert "rate" in result.output
