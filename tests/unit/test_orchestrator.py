"""Unit tests for single and bulk synthesis orchestration."""

from __future__ import annotations

import asyncio
import base64
import json
from contextlib import asynccontextmanager
from dataclasses import replace
from pathlib import Path
from typing import AsyncIterator, Callable

import httpx
import pytest
import respx

from fasttts.credentials import CredentialStore
from fasttts.errors import ConfigurationError, ProviderError
from fasttts.http_client import HttpTransport, ProviderCall, ProviderResponse
from fasttts.models.datatypes import AudioEncoding, PlannedItem, Provider
from fasttts.orchestrator import MAX_IN_FLIGHT, SynthesisOrchestrator
from fasttts.provider_factory import ProviderFactory
from fasttts.providers.google import GoogleCloudAdapter
from fasttts.rate_limiter import RequestPacer
from fasttts.runtime import RunContext
from fasttts.settings import RuntimeSettings


class ScriptedGoogleAdapter(GoogleCloudAdapter):
    """Google adapter double that answers without HTTP and tracks concurrency."""

    def __init__(
        self,
        settings: RuntimeSettings,
        *,
        on_send: Callable[[int], None] | None = None,
    ) -> None:
        super().__init__(settings)
        self.on_send = on_send
        self.in_flight = 0
        self.peak_in_flight = 0
        self.sent_texts: list[str] = []

    async def send(self, call: ProviderCall, transport: HttpTransport) -> ProviderResponse:
        text = call.json_body["input"]["text"]
        self.sent_texts.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        if self.on_send is not None:
            self.on_send(len(self.sent_texts))
        try:
            await asyncio.sleep(0.02)
        finally:
            self.in_flight -= 1
        if text.startswith("unauthorized"):
            raise ProviderError("token expired", failure_kind="unauthorized", status_code=401)
        if text.startswith("fail"):
            raise ProviderError("backend exploded", failure_kind="server_error", status_code=500)
        audio = base64.b64encode(text.encode("utf-8")).decode("ascii")
        return ProviderResponse(200, {}, json.dumps({"audioContent": audio}).encode("utf-8"))


class InvalidationTrackingStore(CredentialStore):
    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.invalidated: list[Provider] = []

    def invalidate(self, provider: Provider) -> None:
        self.invalidated.append(provider)
        super().invalidate(provider)


@asynccontextmanager
async def scripted_context(
    settings: RuntimeSettings, adapter: ScriptedGoogleAdapter
) -> AsyncIterator[RunContext]:
    run_settings = replace(settings, test_token="tok")
    factory = ProviderFactory(run_settings)
    factory.register(adapter)
    async with httpx.AsyncClient() as client:
        transport = HttpTransport(client)
        yield RunContext(
            settings=run_settings,
            credential_store=InvalidationTrackingStore(run_settings, transport),
            transport=transport,
            factory=factory,
            pacer=RequestPacer(min_interval_seconds=0.0),
        )


def _plan(make_request, tmp_path: Path, texts: list[str]) -> list[PlannedItem]:
    return [
        PlannedItem(
            index=index,
            request=make_request(
                text=text,
                encoding=AudioEncoding.MP3,
                output_path=tmp_path / f"item_{index}.mp3",
            ),
        )
        for index, text in enumerate(texts, start=1)
    ]


@pytest.mark.asyncio
async def test_bulk_run_bounds_concurrency_and_orders_outcomes(
    settings, make_request, tmp_path: Path
) -> None:
    adapter = ScriptedGoogleAdapter(settings)
    planned = _plan(make_request, tmp_path, [f"text {n}" for n in range(1, 11)])

    async with scripted_context(settings, adapter) as context:
        summary = await SynthesisOrchestrator(context).run_bulk(planned)

    assert adapter.peak_in_flight == MAX_IN_FLIGHT
    assert [outcome.index for outcome in summary.outcomes] == list(range(1, 11))
    assert summary.succeeded == 10
    assert summary.ok
    assert (tmp_path / "item_7.mp3").read_bytes() == b"text 7"


@pytest.mark.asyncio
async def test_failures_are_isolated_per_item(settings, make_request, tmp_path: Path) -> None:
    """Planning errors and provider failures do not stop sibling items."""

    adapter = ScriptedGoogleAdapter(settings)
    planned = _plan(make_request, tmp_path, ["one", "fail two", "three"])
    planned.insert(
        1,
        PlannedItem(
            index=99,
            error=ConfigurationError("`rate` must be a number.", field="rate", item_index=99),
        ),
    )

    async with scripted_context(settings, adapter) as context:
        summary = await SynthesisOrchestrator(context).run_bulk(planned)

    assert [(outcome.index, outcome.status) for outcome in summary.outcomes] == [
        (1, "succeeded"),
        (99, "failed"),
        (2, "failed"),
        (3, "succeeded"),
    ]
    config_failure, provider_failure = summary.failures
    assert config_failure.category == "configuration"
    assert config_failure.detail == "`rate` must be a number."
    assert provider_failure.category == "provider"
    assert provider_failure.detail == "backend exploded"
    assert not (tmp_path / "item_2.mp3").exists()
    assert (tmp_path / "item_3.mp3").exists()
    assert adapter.sent_texts.count("fail two") == 1
    assert not summary.ok


@pytest.mark.asyncio
async def test_stop_admission_skips_waiting_items_and_finishes_in_flight(
    settings, make_request, tmp_path: Path
) -> None:
    orchestrator_ref: list[SynthesisOrchestrator] = []

    def stop_after_gate_fills(sent: int) -> None:
        if sent == MAX_IN_FLIGHT:
            orchestrator_ref[0].stop_admission()

    adapter = ScriptedGoogleAdapter(settings, on_send=stop_after_gate_fills)
    planned = _plan(make_request, tmp_path, [f"text {n}" for n in range(1, 11)])

    async with scripted_context(settings, adapter) as context:
        orchestrator = SynthesisOrchestrator(context)
        orchestrator_ref.append(orchestrator)
        summary = await orchestrator.run_bulk(planned)

    assert [outcome.status for outcome in summary.outcomes] == (
        ["succeeded"] * MAX_IN_FLIGHT + ["skipped"] * (10 - MAX_IN_FLIGHT)
    )
    assert summary.skipped == 10 - MAX_IN_FLIGHT
    assert len(adapter.sent_texts) == MAX_IN_FLIGHT


@pytest.mark.asyncio
async def test_unauthorized_provider_failure_invalidates_credential(
    settings, make_request, tmp_path: Path
) -> None:
    adapter = ScriptedGoogleAdapter(settings)
    request = make_request(
        text="unauthorized call", encoding=AudioEncoding.MP3, output_path=tmp_path / "a.mp3"
    )

    async with scripted_context(settings, adapter) as context:
        with pytest.raises(ProviderError, match="token expired"):
            await SynthesisOrchestrator(context).synthesize(request)
        invalidated = context.credential_store.invalidated  # type: ignore[attr-defined]

    assert invalidated == [Provider.GOOGLE]


@pytest.mark.asyncio
async def test_single_synthesis_writes_wav(settings, make_request) -> None:
    adapter = ScriptedGoogleAdapter(settings)
    request = make_request(text="pcm!")

    async with scripted_context(settings, adapter) as context:
        written = await SynthesisOrchestrator(context).synthesize(request)

    assert written == request.output_path
    assert written.read_bytes()[:4] == b"RIFF"


@pytest.mark.asyncio
async def test_unsupported_encoding_fails_before_any_network_call(
    settings, make_request, tmp_path: Path
) -> None:
    """Encoding checks run before credential acquisition and the provider call."""

    request = make_request(
        provider=Provider.GEMINI,
        encoding=AudioEncoding.MULAW,
        output_path=tmp_path / "out.wav",
    )

    async with respx.mock(assert_all_called=False) as router:
        catch_all = router.route().mock(return_value=httpx.Response(500))
        async with httpx.AsyncClient() as client:
            transport = HttpTransport(client)
            context = RunContext(
                settings=settings,
                credential_store=CredentialStore(settings, transport),
                transport=transport,
                factory=ProviderFactory(settings),
                pacer=RequestPacer(),
            )
            with pytest.raises(ConfigurationError, match="MULAW") as exc_info:
                await SynthesisOrchestrator(context).synthesize(request)

    assert exc_info.value.field == "encoding"
    assert catch_all.call_count == 0
    assert not request.output_path.exists()


@pytest.mark.asyncio
async def test_item_without_request_or_error_fails_as_configuration(
    settings, make_request, tmp_path: Path
) -> None:
    adapter = ScriptedGoogleAdapter(settings)
    planned = _plan(make_request, tmp_path, ["one"]) + [PlannedItem(index=2)]

    async with scripted_context(settings, adapter) as context:
        summary = await SynthesisOrchestrator(context).run_bulk(planned)

    assert [(outcome.index, outcome.status) for outcome in summary.outcomes] == [
        (1, "succeeded"),
        (2, "failed"),
    ]
    (failure,) = summary.failures
    assert failure.category == "configuration"
    assert failure.detail == "Bulk item has no resolved request."
    assert adapter.sent_texts == ["one"]
