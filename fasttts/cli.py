"""Command-line interface for fast-tts.

Responsibilities:
- Expose `speak`, `bulk`, `voices`, and `credentials` commands.
- Convert CLI options into resolver overrides and run the async engine.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import echo_bulk_summary, echo_voices, exit_with_command_error
from .config import ConfigLoader, ConfigResolver
from .errors import ConfigurationError
from .keyring_store import create_api_key_store
from .models.datatypes import (
    BulkSummary,
    PartialRequest,
    PlannedItem,
    Provider,
    SynthesisRequest,
    VoiceDescriptor,
)
from .orchestrator import SynthesisOrchestrator
from .parsing import normalize_optional_string
from .provider_factory import parse_provider
from .runtime import DEFAULT_RETRIES, DEFAULT_TIMEOUT_SECONDS, open_run_context
from .settings import API_KEY_ENV_KEYS, RuntimeSettings
from .telemetry.logger import RunLogger
from .voices import VoiceCatalog

app = typer.Typer(
    name="fast-tts",
    no_args_is_help=True,
    help="Fast multi-provider text-to-speech CLI.",
)

ProviderOption = Annotated[
    str | None,
    typer.Option(
        "--provider",
        help="google, gemini, openai, azure, elevenlabs, deepgram, or polly (default: google).",
    ),
]
LanguageOption = Annotated[
    str | None, typer.Option("--language", help="Language code, e.g. en-US (default: en-US).")
]
VoiceOption = Annotated[
    str | None, typer.Option("--voice", help="Provider voice name; omit for the provider default.")
]
GenderOption = Annotated[
    str | None, typer.Option("--gender", help="Preferred voice gender: MALE, FEMALE, or NEUTRAL.")
]
RateOption = Annotated[
    float | None, typer.Option("--rate", help="Speaking rate 0.25-4.0 (default: 1.0).")
]
PitchOption = Annotated[
    float | None, typer.Option("--pitch", help="Pitch in semitones -20-20 (default: 0).")
]
SampleRateOption = Annotated[
    int | None, typer.Option("--sample-rate", help="Output sample rate in Hz (default: 24000).")
]
EncodingOption = Annotated[
    str | None,
    typer.Option(
        "--encoding",
        help="LINEAR16, MP3, OGG_OPUS, MULAW, or ALAW (default: LINEAR16).",
    ),
]
VolumeOption = Annotated[
    float | None, typer.Option("--volume", help="Volume gain in dB -96-16 (default: 0).")
]
EffectsProfileOption = Annotated[
    list[str] | None,
    typer.Option("--effects-profile", help="Effects profile id; repeat for several."),
]
SsmlOption = Annotated[bool, typer.Option("--ssml", help="Treat input text as SSML.")]
TimeoutOption = Annotated[
    float, typer.Option("--timeout", help="Per-request timeout in seconds.", min=0.1)
]
RetriesOption = Annotated[
    int, typer.Option("--retries", help="Retries for transient provider failures.", min=0)
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Emit phase logs on stderr.")
]


def _overrides(
    *,
    provider: str | None,
    language: str | None,
    voice: str | None,
    gender: str | None,
    rate: float | None,
    pitch: float | None,
    sample_rate: int | None,
    encoding: str | None,
    volume: float | None,
    effects_profile: list[str] | None,
    ssml: bool,
    output_dir: Path | None = None,
) -> PartialRequest:
    """Build CLI-level resolver overrides; unset options stay `None`."""

    return PartialRequest(
        provider=normalize_optional_string(provider),
        is_ssml=True if ssml else None,
        language=normalize_optional_string(language),
        voice=normalize_optional_string(voice),
        gender=normalize_optional_string(gender),
        rate=rate,
        pitch=pitch,
        sample_rate=sample_rate,
        encoding=normalize_optional_string(encoding),
        volume_db=volume,
        effects_profile=tuple(effects_profile) if effects_profile else None,
        output_dir=str(output_dir) if output_dir is not None else None,
    )


def _run_logger(verbose: bool) -> RunLogger:
    """Build the stderr phase logger for a command."""

    return RunLogger(level="INFO" if verbose else "WARNING")


async def _speak(
    request: SynthesisRequest,
    settings: RuntimeSettings,
    *,
    timeout: float,
    retries: int,
    run_logger: RunLogger,
) -> Path:
    """Synthesize one request inside a fresh run context."""

    async with open_run_context(
        settings,
        timeout_seconds=timeout,
        retries=retries,
        run_logger=run_logger,
        api_key_store=create_api_key_store(),
    ) as context:
        return await SynthesisOrchestrator(context).synthesize(request)


async def _bulk(
    planned: list[PlannedItem],
    settings: RuntimeSettings,
    *,
    timeout: float,
    retries: int,
    run_logger: RunLogger,
) -> BulkSummary:
    """Run a bulk plan with SIGINT wired to stop admission."""

    async with open_run_context(
        settings,
        timeout_seconds=timeout,
        retries=retries,
        run_logger=run_logger,
        api_key_store=create_api_key_store(),
    ) as context:
        orchestrator = SynthesisOrchestrator(context)
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.stop_admission)
            handler_installed = True
        except (NotImplementedError, RuntimeError):
            # Windows event loops and non-main threads cannot install handlers.
            handler_installed = False
        try:
            return await orchestrator.run_bulk(planned)
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)


async def _voices(
    provider: Provider,
    language: str | None,
    settings: RuntimeSettings,
    *,
    timeout: float,
    retries: int,
    run_logger: RunLogger,
) -> list[VoiceDescriptor]:
    """List provider voices inside one run context."""

    async with open_run_context(
        settings,
        timeout_seconds=timeout,
        retries=retries,
        run_logger=run_logger,
        api_key_store=create_api_key_store(),
    ) as context:
        return await VoiceCatalog(context).list_voices(provider, language)


@app.command("speak")
def speak_command(
    text: Annotated[str, typer.Argument(help="Text (or SSML with --ssml) to synthesize.")],
    output: Annotated[
        Path, typer.Argument(help="Output file; its extension must match the encoding.")
    ],
    provider: ProviderOption = None,
    language: LanguageOption = None,
    voice: VoiceOption = None,
    gender: GenderOption = None,
    rate: RateOption = None,
    pitch: PitchOption = None,
    sample_rate: SampleRateOption = None,
    encoding: EncodingOption = None,
    volume: VolumeOption = None,
    effects_profile: EffectsProfileOption = None,
    ssml: SsmlOption = False,
    timeout: TimeoutOption = DEFAULT_TIMEOUT_SECONDS,
    retries: RetriesOption = DEFAULT_RETRIES,
    verbose: VerboseOption = False,
) -> None:
    """Synthesize one text into an audio file."""

    try:
        overrides = _overrides(
            provider=provider,
            language=language,
            voice=voice,
            gender=gender,
            rate=rate,
            pitch=pitch,
            sample_rate=sample_rate,
            encoding=encoding,
            volume=volume,
            effects_profile=effects_profile,
            ssml=ssml,
        )
        request = ConfigResolver(overrides).resolve_single(text, str(output))
        written = asyncio.run(
            _speak(
                request,
                RuntimeSettings.from_env(),
                timeout=timeout,
                retries=retries,
                run_logger=_run_logger(verbose),
            )
        )
    except Exception as exc:
        exit_with_command_error("speak", exc)

    typer.echo(f"Wrote {written}")


@app.command("bulk")
def bulk_command(
    config_file: Annotated[
        Path, typer.Argument(help="Bulk config document (JSON or YAML).")
    ],
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", help="Override the document's `outputDir`."),
    ] = None,
    provider: ProviderOption = None,
    language: LanguageOption = None,
    voice: VoiceOption = None,
    gender: GenderOption = None,
    rate: RateOption = None,
    pitch: PitchOption = None,
    sample_rate: SampleRateOption = None,
    encoding: EncodingOption = None,
    volume: VolumeOption = None,
    effects_profile: EffectsProfileOption = None,
    ssml: SsmlOption = False,
    timeout: TimeoutOption = DEFAULT_TIMEOUT_SECONDS,
    retries: RetriesOption = DEFAULT_RETRIES,
    verbose: VerboseOption = False,
) -> None:
    """Synthesize every item of a bulk config document; CLI options override it."""

    try:
        overrides = _overrides(
            provider=provider,
            language=language,
            voice=voice,
            gender=gender,
            rate=rate,
            pitch=pitch,
            sample_rate=sample_rate,
            encoding=encoding,
            volume=volume,
            effects_profile=effects_profile,
            ssml=ssml,
            output_dir=output_dir,
        )
        planned = ConfigResolver(overrides).plan_bulk(ConfigLoader.from_path(config_file))
        summary = asyncio.run(
            _bulk(
                planned,
                RuntimeSettings.from_env(),
                timeout=timeout,
                retries=retries,
                run_logger=_run_logger(verbose),
            )
        )
    except Exception as exc:
        exit_with_command_error("bulk", exc)

    echo_bulk_summary(summary)
    if not summary.ok:
        raise typer.Exit(code=1)


@app.command("voices")
def voices_command(
    provider: ProviderOption = None,
    language: Annotated[
        str | None,
        typer.Option("--language", help="Only list voices for this language, e.g. en or en-US."),
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the voice list as JSON.")
    ] = False,
    timeout: TimeoutOption = DEFAULT_TIMEOUT_SECONDS,
    retries: RetriesOption = DEFAULT_RETRIES,
    verbose: VerboseOption = False,
) -> None:
    """List voices offered by a provider."""

    try:
        provider_id = parse_provider(provider) if provider else Provider.GOOGLE
        descriptors = asyncio.run(
            _voices(
                provider_id,
                normalize_optional_string(language),
                RuntimeSettings.from_env(),
                timeout=timeout,
                retries=retries,
                run_logger=_run_logger(verbose),
            )
        )
    except Exception as exc:
        exit_with_command_error("voices", exc)

    echo_voices(descriptors, as_json=json_output)


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str, typer.Argument(help="API-key provider: gemini, openai, azure, elevenlabs, or deepgram.")
    ],
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored provider API keys."""

    try:
        provider_id = parse_provider(provider)
        if provider_id not in API_KEY_ENV_KEYS:
            raise ConfigurationError(
                f"Provider {provider_id.value} does not use an API key.",
                field="provider",
                hint=(
                    "Google uses GOOGLE_APPLICATION_CREDENTIALS or gcloud ADC; "
                    "Polly uses the AWS credential chain."
                ),
            )
        if set_api_key and clear_api_key:
            raise ConfigurationError(
                "`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            )
    except ConfigurationError as exc:
        exit_with_command_error("credentials", exc)

    api_key_store = create_api_key_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider_id.value} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                ConfigurationError(
                    "No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            api_key_store.set_api_key(provider_id, prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                ConfigurationError(
                    f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if api_key_store.clear_api_key(provider_id):
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if api_key_store.is_available() else "unavailable"
    status = "present" if api_key_store.get_api_key(provider_id) is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored {provider_id.value} API key: {status}")
    typer.echo(f"Environment variable: {API_KEY_ENV_KEYS[provider_id]}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
