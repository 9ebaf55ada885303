"""Async HTTP transport shared by provider adapters and the credential store.

Responsibilities:
- Send provider requests through one `httpx.AsyncClient` per run.
- Map HTTP and transport failures to `ProviderError` with stable failure kinds.
- Retry transient failures with bounded exponential backoff.
- Redact secrets from provider error content before it reaches diagnostics.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

import httpx

from .errors import ProviderError
from .telemetry.logger import RunLogger


_MAX_PROVIDER_MESSAGE_CHARS = 180
_RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True, slots=True)
class ProviderCall:
    """Transport-neutral description of one outbound provider request."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    json_body: Any = None
    form_body: Mapping[str, str] | None = None
    content: bytes | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    """Successful provider response payload."""

    status_code: int
    headers: Mapping[str, str]
    content: bytes
    extra_payload: Any = None

    def json(self) -> Any:
        """Decode the body as JSON or raise a provider error."""

        try:
            return json.loads(self.content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProviderError(
                "Provider returned an invalid JSON payload.",
                failure_kind="malformed_response",
            ) from exc


def redact_sensitive_tokens(text: str) -> str:
    """Redact API-key and bearer-token-like values from provider content."""

    redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
    redacted = re.sub(
        r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
        "Bearer [redacted-token]",
        redacted,
    )
    redacted = re.sub(r"(?i)([?&]key=)[^&\s\"']+", r"\1[redacted-key]", redacted)
    return redacted


def short_message(text: str) -> str:
    """Normalize and cap user-facing provider message length."""

    compact = " ".join(text.split())
    if len(compact) <= _MAX_PROVIDER_MESSAGE_CHARS:
        return compact
    return f"{compact[: _MAX_PROVIDER_MESSAGE_CHARS - 3]}..."


def extract_provider_message(body: str) -> tuple[str, str | None]:
    """Extract a concise provider-facing message and optional provider error code."""

    if not body:
        return "", None

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return short_message(redact_sensitive_tokens(body)), None

    provider_code: str | None = None
    message: str | None = None
    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code") or error_payload.get("status")
            if isinstance(code_value, (str, int)) and str(code_value).strip():
                provider_code = str(code_value).strip()
            message_value = error_payload.get("message")
            if isinstance(message_value, str) and message_value.strip():
                message = message_value.strip()
        elif isinstance(error_payload, str) and error_payload.strip():
            message = error_payload.strip()
        detail_value = payload.get("detail") or payload.get("error_description")
        if message is None and isinstance(detail_value, str) and detail_value.strip():
            message = detail_value.strip()

    if message is None:
        message = body

    return short_message(redact_sensitive_tokens(message)), provider_code


def classify_http_failure(status_code: int, provider_message: str) -> str:
    """Classify HTTP errors into deterministic diagnostic kinds."""

    message_lower = provider_message.lower()
    if status_code in {401, 403}:
        return "unauthorized"
    if status_code == 429:
        return "rate_limited"
    if status_code in {408, 504} or "timed out" in message_lower:
        return "timeout"
    if status_code >= 500:
        return "server_error"
    return "http_error"


class HttpTransport:
    """Thin async wrapper around `httpx.AsyncClient` with retries and error mapping."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        retries: int = 2,
        backoff_seconds: float = 0.5,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize transport settings around an open `httpx.AsyncClient`."""

        self._client = client
        self._retries = max(0, retries)
        self._backoff_seconds = backoff_seconds
        self._sleeper = sleeper
        self._run_logger = run_logger
        self.retry_attempt_count = 0

    @classmethod
    def create_client(cls, *, timeout_seconds: float, trust_env: bool = True) -> httpx.AsyncClient:
        """Create the run-scoped `httpx.AsyncClient`."""

        return httpx.AsyncClient(timeout=timeout_seconds, trust_env=trust_env)

    async def send(self, call: ProviderCall, *, label: str) -> ProviderResponse:
        """Send one call, retrying transient failures, and return the response."""

        attempt = 0
        while True:
            try:
                return await self._send_once(call, label=label)
            except ProviderError as exc:
                if not exc.retryable or attempt >= self._retries:
                    raise
                attempt += 1
                self.retry_attempt_count += 1
                delay = self._backoff_seconds * (2 ** (attempt - 1))
                if self._run_logger is not None:
                    self._run_logger.log_retry(label, attempt, exc.failure_kind)
                await self._sleeper(delay)

    async def _send_once(self, call: ProviderCall, *, label: str) -> ProviderResponse:
        """Execute one HTTP request and map failures consistently."""

        try:
            response = await self._client.request(
                call.method,
                call.url,
                headers=dict(call.headers),
                params=dict(call.params) or None,
                json=call.json_body,
                data=dict(call.form_body) if call.form_body is not None else None,
                content=call.content,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"{label} request timed out.",
                failure_kind="timeout",
                retryable=True,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderError(
                f"{label} request transport error: {short_message(redact_sensitive_tokens(str(exc)))}",
                failure_kind="transport",
                retryable=True,
            ) from exc

        if response.status_code >= 400:
            raise self._http_error_to_provider_error(response, label)

        return ProviderResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            content=bytes(response.content),
        )

    @staticmethod
    def _http_error_to_provider_error(response: httpx.Response, label: str) -> ProviderError:
        """Convert an HTTP error response into a normalized provider exception."""

        status_code = response.status_code
        body = response.content.decode("utf-8", errors="replace").strip()
        provider_message, provider_code = extract_provider_message(body)
        failure_kind = classify_http_failure(status_code, provider_message)

        headline = {
            "unauthorized": f"{label} authentication failed",
            "rate_limited": f"{label} rate limit exceeded",
            "timeout": f"{label} request timed out",
        }.get(failure_kind, f"{label} request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return ProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
            retryable=status_code in _RETRYABLE_STATUS_CODES,
        )
