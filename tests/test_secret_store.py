import asyncio
import os

import pytest

from irismod.repositories.secrets_repo import SecretsRepository
from irismod.vault.encryption import DecryptionError, SecretCipher
from irismod.vault.providers import DEFAULT_MODEL, DEFAULT_PROVIDER, detect_provider, mask_key
from irismod.vault.secret_store import InvalidSecretFormat, SecretCorruptedError, SecretStore

OWNER = 111111111111111111
GEMINI_KEY = "AIza" + "A" * 35
GROQ_KEY = "gsk_" + "b" * 52


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(os.urandom(32))


@pytest.fixture
def store(connection, cipher) -> SecretStore:
    return SecretStore(connection, cipher)


async def _raw_token(connection, owner_id: int = OWNER) -> str | None:
    async with connection.read() as conn:
        row = await SecretsRepository.get(conn, owner_id)
    return row.token if row else None


@pytest.mark.asyncio
async def test_set_and_get_secret_round_trip(store, connection, cipher) -> None:
    await store.set_secret(OWNER, "my-secret-value")

    token = await _raw_token(connection)
    assert token != "my-secret-value"
    assert cipher.is_encrypted(token)
    assert await store.get_secret(OWNER) == "my-secret-value"


@pytest.mark.asyncio
async def test_missing_secret_returns_none(store) -> None:
    assert await store.get_secret(OWNER) is None
    settings = await store.get_settings(OWNER)
    assert settings.has_secret is False
    assert settings.provider == DEFAULT_PROVIDER


@pytest.mark.asyncio
async def test_legacy_plaintext_is_migrated_on_first_read(store, connection, cipher) -> None:
    async with connection.transaction() as conn:
        await SecretsRepository.upsert_token(conn, OWNER, GEMINI_KEY)

    assert await store.get_secret(OWNER) == GEMINI_KEY

    token = await _raw_token(connection)
    assert token != GEMINI_KEY
    assert cipher.decrypt(token) == GEMINI_KEY
    assert await store.get_secret(OWNER) == GEMINI_KEY


@pytest.mark.asyncio
async def test_undecryptable_secret_is_purged(store, connection) -> None:
    other_key_store = SecretStore(connection, SecretCipher(os.urandom(32)))
    await other_key_store.set_secret(OWNER, "from-a-rotated-key")

    with pytest.raises(SecretCorruptedError) as excinfo:
        await store.get_secret(OWNER)

    assert isinstance(excinfo.value, DecryptionError)
    assert await _raw_token(connection) is None
    assert await store.get_secret(OWNER) is None


@pytest.mark.asyncio
async def test_purge_spares_a_secret_written_meanwhile(store, connection) -> None:
    other_key_store = SecretStore(connection, SecretCipher(os.urandom(32)))
    await other_key_store.set_secret(OWNER, "from-a-rotated-key")

    # Hold the lock so the read and the new write queue up in that order
    async with connection.transaction():
        reader = asyncio.create_task(store.get_secret(OWNER))
        await asyncio.sleep(0)
        writer = asyncio.create_task(store.set_secret(OWNER, "fresh-secret"))
        await asyncio.sleep(0)

    await writer
    assert await reader == "fresh-secret"
    assert await store.get_secret(OWNER) == "fresh-secret"


@pytest.mark.asyncio
async def test_store_api_key_sets_provider(store) -> None:
    profile = await store.store_api_key(OWNER, f"  {GROQ_KEY}  ")

    assert profile.provider_id == "groq"
    settings = await store.get_settings(OWNER)
    assert settings.has_secret is True
    assert settings.provider == "groq"
    assert settings.endpoint == "https://api.groq.com/openai/v1"
    assert settings.model == DEFAULT_MODEL
    assert await store.get_secret(OWNER) == GROQ_KEY


@pytest.mark.asyncio
async def test_store_api_key_rejects_bad_format(store) -> None:
    with pytest.raises(InvalidSecretFormat):
        await store.store_api_key(OWNER, "AIza-too-short")

    assert await store.get_secret(OWNER) is None


@pytest.mark.asyncio
async def test_provider_and_model_updates_require_a_secret(store) -> None:
    assert await store.set_model(OWNER, "llama") is False
    assert await store.set_provider(OWNER, "openai", "https://api.openai.com/v1") is False

    await store.set_secret(OWNER, "value")

    assert await store.set_model(OWNER, "llama") is True
    assert await store.set_provider(OWNER, "openai", "https://api.openai.com/v1") is True
    settings = await store.get_settings(OWNER)
    assert (settings.provider, settings.model) == ("openai", "llama")


@pytest.mark.asyncio
async def test_remove_secret(store) -> None:
    await store.set_secret(OWNER, "value")

    assert await store.remove_secret(OWNER) is True
    assert await store.remove_secret(OWNER) is False
    assert await store.get_secret(OWNER) is None


def test_detect_provider() -> None:
    assert detect_provider(GEMINI_KEY).provider_id == "gemini"
    assert detect_provider(GEMINI_KEY).valid_format is True
    assert detect_provider("sk-" + "c" * 48).label == "OpenAI"
    assert detect_provider("sk-short").valid_format is False
    custom = detect_provider("x" * 25)
    assert (custom.provider_id, custom.valid_format) == ("custom", True)
    assert detect_provider("x" * 10).valid_format is False


def test_mask_key() -> None:
    assert mask_key(GEMINI_KEY) == f"{GEMINI_KEY[:8]}...{GEMINI_KEY[-4:]}"
    assert mask_key("short") == "*****"
