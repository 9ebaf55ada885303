"""Credential acquisition and caching for provider authentication.

Responsibilities:
- Produce a usable credential per provider without redundant token exchanges.
- Implement the Google OAuth flows: service-account JWT assertion and
  application-default refresh token.
- Resolve API keys for key-authenticated providers from the environment or
  the secure keyring store.
- Serialize exchanges per provider so concurrent callers share one in-flight
  exchange and its outcome.

Key types:
- `CredentialStore`: run-scoped store passed to every task that needs tokens.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Callable

import jwt

from .errors import AuthenticationError, ProviderError
from .http_client import HttpTransport, ProviderCall, redact_sensitive_tokens, short_message
from .keyring_store import ApiKeyStore
from .models.datatypes import Credential, CredentialKind, Provider
from .settings import API_KEY_ENV_KEYS, GOOGLE_OAUTH_TOKEN_URL, RuntimeSettings
from .telemetry.logger import RunLogger


CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600.0
TOKEN_SAFETY_MARGIN_SECONDS = 60.0

_OAUTH_PROVIDERS = frozenset({Provider.GOOGLE})


class CredentialStore:
    """Run-scoped credential store with per-provider caching.

    Cached credentials are reused while `now < expires_at - safety_margin`.
    At most one exchange per provider is in flight; concurrent callers await
    the same pending exchange, so a rejected exchange fails all of them.
    """

    def __init__(
        self,
        settings: RuntimeSettings,
        transport: HttpTransport,
        *,
        api_key_store: ApiKeyStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        safety_margin_seconds: float = TOKEN_SAFETY_MARGIN_SECONDS,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._api_key_store = api_key_store
        self._clock = clock
        self._wall_clock = wall_clock
        self._safety_margin_seconds = safety_margin_seconds
        self._run_logger = run_logger
        self._cache: dict[Provider, Credential] = {}
        self._pending: dict[Provider, asyncio.Future[Credential]] = {}
        self.exchange_count = 0

    async def acquire(self, provider: Provider) -> Credential:
        """Return a valid credential for `provider`, exchanging only when needed."""

        if self._settings.test_token is not None and provider is not Provider.POLLY:
            return Credential(kind=CredentialKind.TEST_TOKEN, token=self._settings.test_token)

        if provider is Provider.POLLY:
            return Credential(kind=CredentialKind.AWS_DEFAULT_CHAIN, token="")

        if provider not in _OAUTH_PROVIDERS:
            return await self._resolve_api_key(provider)

        cached = self._cache.get(provider)
        if cached is not None and cached.is_fresh(self._clock(), self._safety_margin_seconds):
            return cached

        pending = self._pending.get(provider)
        if pending is None:
            pending = asyncio.ensure_future(self._exchange(provider))
            self._pending[provider] = pending
            pending.add_done_callback(lambda _: self._pending.pop(provider, None))
        return await asyncio.shield(pending)

    def invalidate(self, provider: Provider) -> None:
        """Drop a cached credential so the next acquisition re-runs the exchange."""

        self._cache.pop(provider, None)

    async def _resolve_api_key(self, provider: Provider) -> Credential:
        """Resolve an API key from the environment, then the secure keyring store."""

        api_key = self._settings.api_keys.get(provider)
        if api_key is None and self._api_key_store is not None:
            api_key = await asyncio.to_thread(self._api_key_store.get_api_key, provider)
        if api_key is None:
            env_key = API_KEY_ENV_KEYS[provider]
            raise AuthenticationError(
                f"{env_key} is required for provider {provider.value}.",
                reason="missing",
                hint=(
                    f"Export {env_key} or store a key with "
                    f"`fast-tts credentials {provider.value} --set-api-key`."
                ),
            )
        return Credential(kind=CredentialKind.API_KEY, token=api_key)

    async def _exchange(self, provider: Provider) -> Credential:
        """Run the OAuth exchange chain for a provider and cache the result."""

        service_account_path = self._settings.service_account_path
        adc_path = self._settings.adc_path
        if service_account_path is not None:
            credential = await self._exchange_service_account(service_account_path)
        elif adc_path is not None and adc_path.is_file():
            credential = await self._exchange_application_default(adc_path)
        else:
            raise AuthenticationError(
                "No Google credentials found: FAST_TTS_TOKEN and "
                "GOOGLE_APPLICATION_CREDENTIALS are unset and no application-default "
                f"credentials exist at `{adc_path}`.",
                reason="missing",
                hint=(
                    "Set GOOGLE_APPLICATION_CREDENTIALS or run "
                    "`gcloud auth application-default login`."
                ),
            )

        self._cache[provider] = credential
        self.exchange_count += 1
        if self._run_logger is not None:
            self._run_logger.log_token_exchange(provider.value, credential.kind.value)
        return credential

    async def _exchange_service_account(self, path: Path) -> Credential:
        """Sign a JWT assertion with the service-account key and exchange it."""

        key = _read_json_file(path, "service account key")
        client_email = _required_key(key, "client_email", path)
        private_key = _required_key(key, "private_key", path)
        token_uri = key.get("token_uri") or GOOGLE_OAUTH_TOKEN_URL

        issued_at = int(self._wall_clock())
        claims = {
            "iss": client_email,
            "scope": CLOUD_PLATFORM_SCOPE,
            "aud": token_uri,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            assertion = jwt.encode(
                claims,
                private_key,
                algorithm="RS256",
                headers={"typ": "JWT"},
            )
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise AuthenticationError(
                f"Invalid RSA private key in service account `{path}`.",
                reason="invalid",
            ) from exc

        return await self._request_token(
            ProviderCall(
                method="POST",
                url=token_uri,
                form_body={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
            ),
            kind=CredentialKind.SERVICE_ACCOUNT,
        )

    async def _exchange_application_default(self, path: Path) -> Credential:
        """Exchange the gcloud ADC refresh token for an access token."""

        adc = _read_json_file(path, "application-default credentials")
        if adc.get("type") == "service_account":
            return await self._exchange_service_account(path)

        return await self._request_token(
            ProviderCall(
                method="POST",
                url=self._settings.oauth_token_url,
                form_body={
                    "grant_type": "refresh_token",
                    "client_id": _required_key(adc, "client_id", path),
                    "client_secret": _required_key(adc, "client_secret", path),
                    "refresh_token": _required_key(adc, "refresh_token", path),
                },
            ),
            kind=CredentialKind.APPLICATION_DEFAULT,
        )

    async def _request_token(self, call: ProviderCall, *, kind: CredentialKind) -> Credential:
        """POST a token request and build a credential from the response."""

        try:
            response = await self._transport.send(call, label="OAuth token exchange")
        except ProviderError as exc:
            if exc.status_code is None:
                raise
            raise AuthenticationError(
                f"Credential exchange rejected by `{call.url}` (HTTP {exc.status_code}): "
                f"{exc.detail}",
                reason="rejected",
                status_code=exc.status_code,
                body=exc.detail,
                hint="Verify the service account or re-run `gcloud auth application-default login`.",
            ) from exc

        payload = response.json()
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token.strip():
            body = short_message(redact_sensitive_tokens(response.content.decode("utf-8", "replace")))
            raise AuthenticationError(
                "Credential exchange response is missing `access_token`.",
                reason="rejected",
                status_code=response.status_code,
                body=body,
            )

        expires_in = payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)
        try:
            lifetime = float(expires_in)
        except (TypeError, ValueError):
            lifetime = DEFAULT_TOKEN_LIFETIME_SECONDS
        return Credential(kind=kind, token=access_token, expires_at=self._clock() + lifetime)


def _read_json_file(path: Path, label: str) -> dict[str, Any]:
    """Read a JSON credential file into a mapping."""

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AuthenticationError(
            f"Failed to read {label} `{path}`: {exc.strerror or exc}",
            reason="missing",
        ) from exc
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise AuthenticationError(
            f"Invalid JSON in {label} `{path}`: {exc.msg}",
            reason="invalid",
        ) from exc
    if not isinstance(payload, dict):
        raise AuthenticationError(f"{label} `{path}` must contain a JSON object.", reason="invalid")
    return payload


def _required_key(payload: dict[str, Any], key: str, path: Path) -> str:
    """Return a non-blank string field from a credential file."""

    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise AuthenticationError(
            f"Credential file `{path}` is missing required key `{key}`.",
            reason="invalid",
        )
    return value
