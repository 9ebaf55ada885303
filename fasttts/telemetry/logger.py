"""Phase logging for synthesis runs.

Responsibilities:
- Emit one `loguru` line per observable phase event (item start/finish,
  credential exchange, transport retry, admission stop).
- Keep secrets and payloads out of log lines; only identifiers and kinds.
"""

from __future__ import annotations

import re
import sys
from typing import TextIO

from loguru import logger as _loguru_logger


_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_.:/-]")


def _token(value: object) -> str:
    """Render a context value as a single shell-safe token."""

    text = str(value).strip()
    return _UNSAFE_CHARACTERS.sub("_", text) if text else "none"


def _render_context(context: dict[str, object]) -> str:
    """Render context as sorted ` key=value` tokens."""

    return "".join(f" {key}={_token(context[key])}" for key in sorted(context))


class RunLogger:
    """Deterministic `[phase]` logger bound to one sink.

    The sink defaults to stderr so stdout carries only command output such as
    `Wrote <path>` lines and `--json` voice listings.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "WARNING") -> None:
        """Route `loguru` output to `sink` at `level`, replacing existing handlers."""

        self._sink = sink or sys.stderr
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Write one `[phase]` line at the given level."""

        _loguru_logger.log(
            level, f"[phase] level={level} stage={stage} event={event}{_render_context(context)}"
        )

    def log_stage_start(self, stage: str, **context: object) -> None:
        """Log the start of a stage."""

        self._emit("INFO", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        """Log the successful end of a stage."""

        self._emit("INFO", "complete", stage, **context)

    def log_stage_failure(self, stage: str, error_type: str, **context: object) -> None:
        """Log a failure by exception type and category only, never its message."""

        self._emit("ERROR", "failure", stage, error_type=error_type, **context)

    def log_token_exchange(self, provider: str, kind: str) -> None:
        """Log a completed credential exchange (cold acquisition or refresh)."""

        self._emit("INFO", "exchange", "credentials", provider=provider, kind=kind)

    def log_retry(self, label: str, attempt: int, failure_kind: str) -> None:
        """Log a transient failure that will be retried."""

        self._emit("WARNING", "retry", "transport", target=label, attempt=attempt, kind=failure_kind)
