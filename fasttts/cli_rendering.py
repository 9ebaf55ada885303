"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
bulk run summaries, and voice listings.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import FastTTSError, ProviderError, error_category
from .models.datatypes import BulkSummary, VoiceDescriptor
from .voices import render_voice_json, render_voice_table


_PROVIDER_FAILURE_HINTS = {
    "unauthorized": "Check the provider credentials; see `fast-tts credentials --help`.",
    "rate_limited": "The provider is throttling requests; wait and retry, or raise `--retries`.",
    "timeout": "Retry with a larger `--timeout`.",
    "transport": "Check network connectivity and any base-URL overrides.",
}


def _hint_for(exc: Exception) -> str | None:
    """Return the error's own hint, else a default for known provider failures."""

    if isinstance(exc, FastTTSError) and exc.hint:
        return exc.hint
    if isinstance(exc, ProviderError):
        return _PROVIDER_FAILURE_HINTS.get(exc.failure_kind)
    return None


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    detail = exc.detail if isinstance(exc, FastTTSError) else (str(exc) or type(exc).__name__)
    typer.secho(
        f"{command_name} failed [{error_category(exc)}]: {detail}",
        fg=typer.colors.RED,
        err=True,
    )
    hint = _hint_for(exc)
    if hint:
        typer.secho(f"Hint: {hint}", fg=typer.colors.YELLOW, err=True)
    raise typer.Exit(code=1) from exc


def echo_bulk_summary(summary: BulkSummary) -> None:
    """Print written paths, summary counts, and one line per failed item."""

    for outcome in summary.outcomes:
        if outcome.status == "succeeded":
            typer.echo(f"Wrote {outcome.output_path}")
    typer.echo(
        f"Bulk summary: {summary.succeeded} succeeded, "
        f"{summary.failed} failed, {summary.skipped} skipped"
    )
    for outcome in summary.failures:
        typer.secho(
            f"  item {outcome.index} [{outcome.category}]: {outcome.detail}",
            fg=typer.colors.RED,
            err=True,
        )


def echo_voices(descriptors: list[VoiceDescriptor], *, as_json: bool) -> None:
    """Print voices as JSON or as a compact text table."""

    if as_json:
        typer.echo(render_voice_json(descriptors))
        return
    for row in render_voice_table(descriptors):
        typer.echo(row)
