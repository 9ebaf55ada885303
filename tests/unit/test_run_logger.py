"""Unit tests for deterministic phase logging."""

from __future__ import annotations

import io

from fasttts.telemetry.logger import RunLogger


def test_phase_lines_are_sorted_and_sanitized() -> None:
    sink = io.StringIO()
    run_logger = RunLogger(sink=sink, level="INFO")

    run_logger.log_stage_start("synthesize", provider="google", item=3)
    run_logger.log_token_exchange("google", "service_account")
    run_logger.log_retry("Google Cloud TTS", 1, "server_error")
    run_logger.log_stage_failure("synthesize", "ProviderError", item=3, category="provider")

    assert sink.getvalue().splitlines() == [
        "[phase] level=INFO stage=synthesize event=start item=3 provider=google",
        "[phase] level=INFO stage=credentials event=exchange kind=service_account provider=google",
        "[phase] level=WARNING stage=transport event=retry attempt=1 kind=server_error "
        "target=Google_Cloud_TTS",
        "[phase] level=ERROR stage=synthesize event=failure category=provider "
        "error_type=ProviderError item=3",
    ]


def test_default_level_suppresses_info_events() -> None:
    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)

    run_logger.log_stage_complete("synthesize", output="")
    run_logger.log_retry("OAuth token exchange", 2, "timeout")

    assert sink.getvalue().splitlines() == [
        "[phase] level=WARNING stage=transport event=retry attempt=2 kind=timeout "
        "target=OAuth_token_exchange",
    ]
