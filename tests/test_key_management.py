from pathlib import Path
from unittest.mock import patch

import pytest
from dotenv import dotenv_values

from irismod.vault.key_management import decode_key, load_or_create_master_key

VARIABLE = "IRISMOD_TEST_VAULT_KEY"


@pytest.fixture(autouse=True)
def clear_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(VARIABLE, raising=False)


def test_decode_key() -> None:
    assert decode_key("ab" * 32) == bytes.fromhex("ab" * 32)
    assert decode_key("ab" * 31) is None
    assert decode_key("zz" * 32) is None
    assert decode_key(None) is None


def test_generates_and_persists_key_once(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"

    first = load_or_create_master_key(env_path, VARIABLE)
    second = load_or_create_master_key(env_path, VARIABLE)

    assert len(first) == 32
    assert first == second
    assert dotenv_values(env_path)[VARIABLE] == first.hex()


def test_malformed_key_is_replaced(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(f"OTHER=1\n{VARIABLE}=not-hex\n", encoding="utf-8")

    key = load_or_create_master_key(env_path, VARIABLE)

    values = dotenv_values(env_path)
    assert values[VARIABLE] == key.hex()
    assert values["OTHER"] == "1"


def test_environment_takes_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(VARIABLE, "cd" * 32)

    key = load_or_create_master_key(tmp_path / ".env", VARIABLE)

    assert key == bytes.fromhex("cd" * 32)
    assert not (tmp_path / ".env").exists()


def test_unwritable_env_file_still_yields_a_key(tmp_path: Path) -> None:
    with patch("irismod.vault.key_management.set_key", side_effect=PermissionError("read-only")):
        key = load_or_create_master_key(tmp_path / ".env", VARIABLE)

    assert len(key) == 32
