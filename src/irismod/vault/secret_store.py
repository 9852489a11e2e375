"""
Encrypted per-user secret storage.

Write paths encrypt before anything reaches the ``secrets`` table. The read
path decrypts vault tokens, migrates legacy plaintext rows to tokens on first
read, and purges rows whose token no longer decrypts so the owner is asked to
provide the secret again instead of failing on every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from irismod.database.db_connection import ConnectionManager
from irismod.repositories.secrets_repo import SecretsRepository
from irismod.util.logger import get_logger
from irismod.vault.encryption import DecryptionError, SecretCipher, VaultError
from irismod.vault.providers import (
    DEFAULT_ENDPOINT,
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    ProviderProfile,
    detect_provider,
    mask_key,
)

logger = get_logger("secret_store")


class SecretCorruptedError(DecryptionError):
    """The stored secret could not be decrypted and has been deleted; ask the owner to re-enter it."""


class InvalidSecretFormat(VaultError):
    """The supplied API key does not match the format of its detected provider."""

    def __init__(self, profile: ProviderProfile) -> None:
        super().__init__(f"The key does not look like a valid {profile.label} API key")
        self.profile = profile


@dataclass(frozen=True, slots=True)
class SecretSettings:
    """Provider settings attached to a user's secret."""
    has_secret: bool
    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT


class SecretStore:
    """Vault-backed store for users' provider API keys."""

    def __init__(self, connection: ConnectionManager, cipher: SecretCipher) -> None:
        self._db = connection
        self._cipher = cipher

    async def set_secret(self, owner_id: int, secret: str) -> None:
        """Encrypt and store ``secret``, replacing any previous one for the owner."""
        token = self._cipher.encrypt(secret)
        async with self._db.transaction() as conn:
            await SecretsRepository.upsert_token(conn, owner_id, token)
        logger.info("[SECRETS] Stored encrypted secret for owner %s", owner_id)

    async def store_api_key(self, owner_id: int, api_key: str) -> ProviderProfile:
        """
        Validate, encrypt and store an API key, pointing the owner's settings at its provider.

        Raises:
            InvalidSecretFormat: If the key fails its provider's format check.
        """
        api_key = api_key.strip()
        profile = detect_provider(api_key)
        if not profile.valid_format:
            raise InvalidSecretFormat(profile)

        token = self._cipher.encrypt(api_key)
        async with self._db.transaction() as conn:
            await SecretsRepository.upsert_token(conn, owner_id, token)
            await SecretsRepository.set_provider(conn, owner_id, profile.provider_id, profile.endpoint)
        logger.info("[SECRETS] Stored %s key %s for owner %s", profile.label, mask_key(api_key), owner_id)
        return profile

    async def get_secret(self, owner_id: int) -> Optional[str]:
        """
        Return the owner's plaintext secret, or None if none is stored.

        Legacy plaintext rows are re-encrypted in place on this read.

        Raises:
            SecretCorruptedError: If the stored token fails to decrypt. The row
                has already been removed when this is raised.
        """
        async with self._db.read() as conn:
            row = await SecretsRepository.get(conn, owner_id)
        if row is None:
            return None

        if not self._cipher.is_encrypted(row.token):
            return await self._migrate_legacy(owner_id, row.token)

        try:
            return self._cipher.decrypt(row.token)
        except DecryptionError as exc:
            async with self._db.transaction() as conn:
                purged = await SecretsRepository.delete_if_token(conn, owner_id, row.token)
            if not purged:
                logger.debug("[SECRETS] Secret for owner %s was replaced while being read; reading again", owner_id)
                return await self.get_secret(owner_id)
            logger.error(
                "[SECRETS] Secret for owner %s could not be decrypted (%s); removed so it can be re-entered",
                owner_id,
                exc,
            )
            raise SecretCorruptedError(
                "Your stored API key could not be decrypted and was removed. Please set it again."
            ) from exc

    async def _migrate_legacy(self, owner_id: int, plaintext: str) -> str:
        token = self._cipher.encrypt(plaintext)
        async with self._db.transaction() as conn:
            migrated = await SecretsRepository.replace_token(conn, owner_id, plaintext, token)
        if migrated:
            logger.info("[SECRETS] Migrated legacy plaintext secret for owner %s", owner_id)
        else:
            logger.debug("[SECRETS] Legacy secret for owner %s changed during migration; left as is", owner_id)
        return plaintext

    async def remove_secret(self, owner_id: int) -> bool:
        async with self._db.transaction() as conn:
            removed = await SecretsRepository.delete(conn, owner_id)
        if removed:
            logger.info("[SECRETS] Removed secret for owner %s", owner_id)
        return removed

    async def set_provider(self, owner_id: int, provider: str, endpoint: str) -> bool:
        """Point an existing secret at another provider. Returns False if the owner has no secret."""
        async with self._db.transaction() as conn:
            return await SecretsRepository.set_provider(conn, owner_id, provider, endpoint)

    async def set_model(self, owner_id: int, model: str) -> bool:
        """Change the model for an existing secret. Returns False if the owner has no secret."""
        async with self._db.transaction() as conn:
            return await SecretsRepository.set_model(conn, owner_id, model)

    async def get_settings(self, owner_id: int) -> SecretSettings:
        async with self._db.read() as conn:
            row = await SecretsRepository.get(conn, owner_id)
        if row is None:
            return SecretSettings(has_secret=False)
        return SecretSettings(has_secret=True, provider=row.provider, model=row.model, endpoint=row.endpoint)
