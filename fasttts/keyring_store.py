"""Secure API-key storage for key-authenticated providers.

Responsibilities:
- Keep provider API keys in the OS credential vault via `keyring`.
- Key entries by provider so each backend has at most one stored key.
- Never echo key material in errors or logs.

Key types:
- `ApiKeyStore`: storage interface consumed by `CredentialStore` and the CLI.
- `KeyringApiKeyStore`: `keyring`-backed implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType

from .models.datatypes import Provider
from .parsing import normalize_optional_string


KEYRING_SERVICE_NAME = "fast-tts"


class ApiKeyStore:
    """Storage interface for per-provider API keys."""

    def is_available(self) -> bool:
        """Return whether a usable secure backend exists."""

        raise NotImplementedError

    def get_api_key(self, provider: Provider) -> str | None:
        """Return the stored key for `provider`, or `None`."""

        raise NotImplementedError

    def set_api_key(self, provider: Provider, api_key: str) -> None:
        """Store `api_key` for `provider`, replacing any previous key."""

        raise NotImplementedError

    def clear_api_key(self, provider: Provider) -> bool:
        """Delete the key for `provider`; report whether one was stored."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringApiKeyStore(ApiKeyStore):
    """API-key store backed by the platform keyring.

    Entries live under service `fast-tts` with account `<provider>_api_key`.
    Backend read failures are reported as a missing key so synthesis can still
    fall through to the "missing credential" diagnostic.
    """

    service_name: str = KEYRING_SERVICE_NAME

    def _load_keyring_module(self) -> ModuleType | None:
        """Import `keyring` lazily so the CLI still runs without a backend."""

        try:
            import keyring
        except ImportError:
            return None
        return keyring

    def _require_backend(self) -> ModuleType:
        """Return the keyring module or raise when storage is unavailable."""

        backend = self._load_keyring_module()
        if backend is None:
            raise RuntimeError(
                "Secure credential storage is unavailable: the `keyring` backend "
                "could not be loaded."
            )
        return backend

    @staticmethod
    def _account(provider: Provider) -> str:
        """Return the keyring account name for a provider."""

        return f"{provider.value}_api_key"

    def is_available(self) -> bool:
        """Return whether the `keyring` package can be imported."""

        return self._load_keyring_module() is not None

    def get_api_key(self, provider: Provider) -> str | None:
        """Return the stored key, treating backend read errors as a missing key."""

        backend = self._load_keyring_module()
        if backend is None:
            return None
        try:
            stored = backend.get_password(self.service_name, self._account(provider))
        except backend.errors.KeyringError:
            return None
        return normalize_optional_string(stored)

    def set_api_key(self, provider: Provider, api_key: str) -> None:
        """Store a trimmed key.

        Raises:
            RuntimeError: If no keyring backend can be loaded.
            ValueError: If the key is blank.
        """

        backend = self._require_backend()
        cleaned = normalize_optional_string(api_key)
        if cleaned is None:
            raise ValueError("API key must be a non-empty string.")
        backend.set_password(self.service_name, self._account(provider), cleaned)

    def clear_api_key(self, provider: Provider) -> bool:
        """Delete a stored key; return `False` when none existed."""

        if self.get_api_key(provider) is None:
            return False
        backend = self._require_backend()
        backend.delete_password(self.service_name, self._account(provider))
        return True


def create_api_key_store() -> ApiKeyStore:
    """Return the default API-key store for CLI runs."""

    return KeyringApiKeyStore()
