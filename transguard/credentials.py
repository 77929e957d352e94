"""Keyring storage for the upstream API key.

The CLI falls back to this store when neither the environment nor the config
file supplies `OLLAMA_API_KEY`. Secret values never reach log output.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

_DEFAULT_SERVICE_NAME = "transguard"
_DEFAULT_ACCOUNT_NAME = "ollama_api_key"


def _normalize_api_key(value: str | None) -> str | None:
    """Strip a stored key, mapping blank values to `None`."""

    if value is None:
        return None
    return value.strip() or None


@dataclass(slots=True)
class KeyringCredentialStore:
    """API key slot in the OS keyring, addressed by service and account name."""

    service_name: str = _DEFAULT_SERVICE_NAME
    account_name: str = _DEFAULT_ACCOUNT_NAME

    def get_api_key(self) -> str | None:
        """Return the stored key, or `None` when missing, blank, or unreadable."""

        try:
            return _normalize_api_key(keyring.get_password(self.service_name, self.account_name))
        except KeyringError:
            return None

    def set_api_key(self, api_key: str) -> None:
        """Store a non-empty key.

        Raises:
            ValueError: When the key is blank.
            keyring.errors.KeyringError: When the backend refuses the write.
        """

        normalized = _normalize_api_key(api_key)
        if normalized is None:
            raise ValueError("API key must be a non-empty string.")
        keyring.set_password(self.service_name, self.account_name, normalized)

    def clear_api_key(self) -> bool:
        """Delete the stored key and report whether one was removed."""

        if self.get_api_key() is None:
            return False
        try:
            keyring.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> KeyringCredentialStore:
    """Return the credential store the CLI reads and writes."""

    return KeyringCredentialStore()
