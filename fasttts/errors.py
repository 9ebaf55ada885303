"""Domain exceptions for synthesis and CLI diagnostics.

Every error carries a stable `category` so bulk summaries and CLI output can
report the failure class without inspecting exception types.
"""

from __future__ import annotations


class FastTTSError(RuntimeError):
    """Base error for all categorized fast-tts failures."""

    category = "error"

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize a categorized error with optional remediation hint."""

        super().__init__(detail)
        self.detail = detail
        self.hint = hint


class AuthenticationError(FastTTSError):
    """Raised when no credential source exists or a token exchange is rejected."""

    category = "authentication"

    def __init__(
        self,
        detail: str,
        *,
        reason: str,
        status_code: int | None = None,
        body: str | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize an authentication error.

        Args:
            detail: Human-readable failure description.
            reason: `missing` when no source is configured, `rejected` when the
                server refused the exchange.
            status_code: HTTP status of a rejected exchange.
            body: Redacted response body of a rejected exchange.
            hint: Optional remediation hint.
        """

        super().__init__(detail, hint=hint)
        self.reason = reason
        self.status_code = status_code
        self.body = body


class ConfigurationError(FastTTSError):
    """Raised for malformed documents, invalid fields, or incompatible settings."""

    category = "configuration"

    def __init__(
        self,
        detail: str,
        *,
        field: str | None = None,
        item_index: int | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a configuration error scoped to a field and bulk item."""

        if item_index is not None:
            detail = f"item {item_index}: {detail}"
        super().__init__(detail, hint=hint)
        self.field = field
        self.item_index = item_index


class ProviderError(FastTTSError):
    """Raised when a provider call fails or returns an unusable response."""

    category = "provider"

    def __init__(
        self,
        detail: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
        retryable: bool = False,
        hint: str | None = None,
    ) -> None:
        """Initialize provider error metadata for diagnostics and retry policy."""

        super().__init__(detail, hint=hint)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code
        self.retryable = retryable


class AudioWriteError(FastTTSError):
    """Raised when an output directory or audio file cannot be written."""

    category = "io"

    def __init__(self, detail: str, *, path: str, hint: str | None = None) -> None:
        """Initialize an I/O error for the offending output path."""

        super().__init__(detail, hint=hint)
        self.path = path


def error_category(exc: BaseException) -> str:
    """Return the reporting category for any exception."""

    if isinstance(exc, FastTTSError):
        return exc.category
    return "unexpected"
