"""Run-scoped collaborators shared by synthesis and voice listing.

Responsibilities:
- Open one `httpx.AsyncClient` per run and close it when the run ends.
- Construct the run's `CredentialStore`, `HttpTransport`, and `ProviderFactory`.

Key types:
- `RunContext`: the collaborators handed to the orchestrator and voice catalog.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from .credentials import CredentialStore
from .http_client import HttpTransport
from .keyring_store import ApiKeyStore
from .provider_factory import ProviderFactory
from .rate_limiter import RequestPacer
from .settings import RuntimeSettings
from .telemetry.logger import RunLogger


DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 2


@dataclass(frozen=True, slots=True)
class RunContext:
    """Collaborators constructed once per run."""

    settings: RuntimeSettings
    credential_store: CredentialStore
    transport: HttpTransport
    factory: ProviderFactory
    pacer: RequestPacer
    run_logger: RunLogger | None = None


@asynccontextmanager
async def open_run_context(
    settings: RuntimeSettings,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
    run_logger: RunLogger | None = None,
    api_key_store: ApiKeyStore | None = None,
    factory: ProviderFactory | None = None,
) -> AsyncIterator[RunContext]:
    """Yield a `RunContext` whose HTTP client is closed on exit.

    Proxy environment variables are ignored when any endpoint is a loopback
    test double.
    """

    client = HttpTransport.create_client(
        timeout_seconds=timeout_seconds,
        trust_env=not settings.uses_loopback(),
    )
    async with client:
        transport = HttpTransport(client, retries=retries, run_logger=run_logger)
        yield RunContext(
            settings=settings,
            credential_store=CredentialStore(
                settings,
                transport,
                api_key_store=api_key_store,
                run_logger=run_logger,
            ),
            transport=transport,
            factory=factory if factory is not None else ProviderFactory(settings),
            pacer=RequestPacer(),
            run_logger=run_logger,
        )
