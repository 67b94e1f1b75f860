"""Provider API key resolution.

Checks run in order and stop at the first failure: deployment tier,
encryption configured, provider settings enabled with a stored key, and
decryption. Every failure becomes ``Unavailable``; nothing secret is logged.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sermon_helper.core.errors import ConfigurationBlocked
from sermon_helper.crypto.secrets import AesGcmSecretCipher, SecretDecryptionError
from sermon_helper.guards.environment import (
    assert_environment_allows_ai,
    is_ai_allowed_in_environment,
)
from sermon_helper.storage.base import ProviderSettingsStore

logger = logging.getLogger("shg.credentials")


class UnavailableReason(Enum):
    ENVIRONMENT_BLOCKED = "environment_blocked"
    ENCRYPTION_NOT_CONFIGURED = "encryption_not_configured"
    SETTINGS_MISSING = "settings_missing"
    DISABLED = "disabled"
    NO_STORED_KEY = "no_stored_key"
    SETTINGS_LOOKUP_FAILED = "settings_lookup_failed"
    DECRYPTION_FAILED = "decryption_failed"


@dataclass(frozen=True)
class Unavailable:
    reason: UnavailableReason


class CredentialResolver:
    def __init__(
        self,
        deploy_env: str,
        cipher: AesGcmSecretCipher | None,
        settings_store: ProviderSettingsStore,
    ):
        self._deploy_env = deploy_env
        self._cipher = cipher
        self._settings_store = settings_store

    async def resolve(self) -> str | Unavailable:
        if not is_ai_allowed_in_environment(self._deploy_env):
            return Unavailable(UnavailableReason.ENVIRONMENT_BLOCKED)
        if self._cipher is None:
            logger.warning("encryption_not_configured")
            return Unavailable(UnavailableReason.ENCRYPTION_NOT_CONFIGURED)

        try:
            record = await self._settings_store.load_provider_settings()
        except Exception as exc:
            logger.error("provider_settings_lookup_failed", extra={"error": type(exc).__name__})
            return Unavailable(UnavailableReason.SETTINGS_LOOKUP_FAILED)

        if record is None:
            return Unavailable(UnavailableReason.SETTINGS_MISSING)
        if not record.enabled:
            return Unavailable(UnavailableReason.DISABLED)
        if not record.api_key_encrypted:
            return Unavailable(UnavailableReason.NO_STORED_KEY)

        try:
            api_key = self._cipher.decrypt(record.api_key_encrypted)
        except SecretDecryptionError:
            logger.error("provider_key_decryption_failed")
            return Unavailable(UnavailableReason.DECRYPTION_FAILED)
        if not api_key:
            return Unavailable(UnavailableReason.NO_STORED_KEY)
        return api_key

    async def require(self) -> str:
        """Return the API key or raise ``ConfigurationBlocked``.

        The tier is checked before any storage access.
        """
        assert_environment_allows_ai(self._deploy_env)
        resolved = await self.resolve()
        if isinstance(resolved, Unavailable):
            raise ConfigurationBlocked()
        return resolved
