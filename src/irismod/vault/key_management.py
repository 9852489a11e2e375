"""
Provisioning of the vault master key.

The key is a 64-character hex string stored under ``APIKEY_ENCRYPT_KEY`` in the
project's ``.env`` file. It is generated once when missing or malformed and
then reused for the lifetime of the process. Replacing it makes every
previously stored token undecryptable.
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path

from dotenv import dotenv_values, set_key

from irismod.util.logger import get_logger
from irismod.vault.encryption import KEY_LENGTH

logger = get_logger("vault_keys")

DEFAULT_KEY_VARIABLE = "APIKEY_ENCRYPT_KEY"


def decode_key(value: str | None) -> bytes | None:
    """Return the raw key for a 64-char hex string, or None if it is not one."""
    if not value:
        return None
    stripped = value.strip()
    if len(stripped) != KEY_LENGTH * 2:
        return None
    try:
        return bytes.fromhex(stripped)
    except ValueError:
        return None


def load_or_create_master_key(env_path: Path, variable: str = DEFAULT_KEY_VARIABLE) -> bytes:
    """
    Load the vault master key, generating and persisting one if needed.

    Resolution order: the process environment, then ``env_path``. When neither
    holds a valid key a new one is generated and written to ``env_path``. If
    the file cannot be written the new key is still returned, but secrets
    stored with it will not survive a restart.

    Args:
        env_path: ``.env`` file holding the key.
        variable: Name of the key variable.

    Returns:
        bytes: The 32-byte master key.
    """
    key = decode_key(os.environ.get(variable))
    if key is not None:
        logger.debug("[VAULT] Using encryption key from environment")
        return key

    if env_path.exists():
        key = decode_key(dotenv_values(env_path).get(variable))
        if key is not None:
            logger.info("[VAULT] Using existing encryption key from %s", env_path)
            return key

    logger.info("[VAULT] Generating new encryption key")
    key = secrets.token_bytes(KEY_LENGTH)
    try:
        env_path.parent.mkdir(parents=True, exist_ok=True)
        env_path.touch(exist_ok=True)
        set_key(str(env_path), variable, key.hex(), quote_mode="never")
        logger.info("[VAULT] New encryption key saved to %s", env_path)
    except OSError as exc:
        logger.warning(
            "[VAULT] Could not persist encryption key to %s (%s); "
            "stored secrets will not survive a restart",
            env_path,
            exc,
        )
    return key
