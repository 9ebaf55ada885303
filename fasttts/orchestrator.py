"""Synthesis orchestration for single and bulk runs.

Responsibilities:
- Drive one request through payload validation, credential acquisition,
  the provider call, response parsing, and the audio writer.
- Run bulk items concurrently behind a fixed admission gate, isolating
  per-item failures into a `BulkSummary`.
- Stop admitting new bulk items on request (SIGINT) while letting in-flight
  items finish.

Key types:
- `SynthesisOrchestrator`: run coordinator built on a `RunContext`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from .audio.writer import AudioWriter
from .errors import ConfigurationError, ProviderError, error_category
from .models.datatypes import BulkSummary, ItemOutcome, PlannedItem, SynthesisRequest
from .runtime import RunContext


MAX_IN_FLIGHT = 4


class SynthesisOrchestrator:
    """Coordinate synthesis requests against the run's shared collaborators."""

    def __init__(self, context: RunContext, writer: AudioWriter | None = None) -> None:
        self._context = context
        self._writer = writer if writer is not None else AudioWriter()
        self._admitting = True

    def stop_admission(self) -> None:
        """Stop admitting new bulk items; in-flight items are unaffected."""

        if self._admitting and self._context.run_logger is not None:
            self._context.run_logger.log_stage_start("cancel", reason="interrupt")
        self._admitting = False

    async def synthesize(self, request: SynthesisRequest) -> Path:
        """Synthesize one request and return the written output path.

        The payload is built (and the encoding checked) before a credential is
        acquired, so incompatible requests never reach the network.
        """

        context = self._context
        provider = request.provider
        adapter = context.factory.adapter_for(provider)
        call = adapter.build_payload(request)

        credential = await context.credential_store.acquire(provider)
        call = adapter.authorize(call, credential)

        await context.pacer.acquire(provider.value)
        try:
            response = await adapter.send(call, context.transport)
        except ProviderError as exc:
            if exc.failure_kind == "unauthorized":
                context.credential_store.invalidate(provider)
            raise

        result = adapter.parse_response(response, request)
        return await asyncio.to_thread(self._writer.write, result, request)

    async def run_bulk(self, planned: list[PlannedItem]) -> BulkSummary:
        """Run planned bulk items with at most `MAX_IN_FLIGHT` in flight.

        Outcomes are ordered by item index regardless of completion order.
        """

        gate = asyncio.Semaphore(MAX_IN_FLIGHT)
        outcomes: list[ItemOutcome | None] = [None] * len(planned)

        async def run_item(slot: int, item: PlannedItem) -> None:
            if item.error is not None:
                outcomes[slot] = self._failed(item.index, item.error)
                return
            request = item.request
            if request is None:
                outcomes[slot] = self._failed(
                    item.index,
                    ConfigurationError("Bulk item has no resolved request.", item_index=item.index),
                )
                return
            async with gate:
                if not self._admitting:
                    outcomes[slot] = ItemOutcome(index=item.index, status="skipped")
                    return
                outcomes[slot] = await self._run_admitted(item.index, request)

        await asyncio.gather(*(run_item(slot, item) for slot, item in enumerate(planned)))
        return BulkSummary(outcomes=tuple(outcome for outcome in outcomes if outcome is not None))

    async def _run_admitted(self, index: int, request: SynthesisRequest) -> ItemOutcome:
        """Run one admitted item, converting its failure into an outcome."""

        run_logger = self._context.run_logger
        if run_logger is not None:
            run_logger.log_stage_start("synthesize", item=index, provider=request.provider.value)
        try:
            output_path = await self.synthesize(request)
        except Exception as exc:
            return self._failed(index, exc)
        if run_logger is not None:
            run_logger.log_stage_complete("synthesize", item=index, output=output_path)
        return ItemOutcome(index=index, status="succeeded", output_path=output_path)

    def _failed(self, index: int, exc: BaseException) -> ItemOutcome:
        """Record a failed item by category, logging only the exception type."""

        category = error_category(exc)
        if self._context.run_logger is not None:
            self._context.run_logger.log_stage_failure(
                "synthesize", type(exc).__name__, item=index, category=category
            )
        detail = getattr(exc, "detail", None) or str(exc) or type(exc).__name__
        return ItemOutcome(
            index=index,
            status="failed",
            category=category,
            detail=detail.removeprefix(f"item {index}: "),
        )
