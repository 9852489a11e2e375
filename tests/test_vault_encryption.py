import base64
import os

import pytest

from irismod.vault.encryption import (
    NONCE_LENGTH,
    TAG_LENGTH,
    DecryptionError,
    EncryptionError,
    SecretCipher,
)


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(os.urandom(32))


def _flip_bit(segment: str, index: int = 0) -> str:
    raw = bytearray(base64.b64decode(segment))
    raw[index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode("ascii")


def test_round_trip(cipher: SecretCipher) -> None:
    token = cipher.encrypt("AIzaSy-secret-value")

    assert cipher.decrypt(token) == "AIzaSy-secret-value"
    assert "AIzaSy" not in token


def test_token_layout(cipher: SecretCipher) -> None:
    nonce, ciphertext, tag = cipher.encrypt("secret").split(":")

    assert len(base64.b64decode(nonce)) == NONCE_LENGTH
    assert len(base64.b64decode(tag)) == TAG_LENGTH
    assert len(base64.b64decode(ciphertext)) == len("secret")


def test_unicode_round_trip(cipher: SecretCipher) -> None:
    assert cipher.decrypt(cipher.encrypt("clé-🔑")) == "clé-🔑"


def test_nonces_are_unique_across_many_encryptions(cipher: SecretCipher) -> None:
    nonces = {cipher.encrypt("same plaintext").split(":")[0] for _ in range(10_000)}

    assert len(nonces) == 10_000


@pytest.mark.parametrize("part", [1, 2])
def test_single_bit_tamper_is_detected(cipher: SecretCipher, part: int) -> None:
    parts = cipher.encrypt("tamper me").split(":")
    parts[part] = _flip_bit(parts[part])

    with pytest.raises(DecryptionError):
        cipher.decrypt(":".join(parts))


def test_wrong_key_fails(cipher: SecretCipher) -> None:
    token = cipher.encrypt("secret")

    with pytest.raises(DecryptionError):
        SecretCipher(os.urandom(32)).decrypt(token)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "onlyonepart",
        "a:b",
        "a:b:c:d",
        "!!!:abc=:abc=",
    ],
)
def test_malformed_tokens_are_rejected(cipher: SecretCipher, token: str) -> None:
    with pytest.raises(DecryptionError):
        cipher.decrypt(token)


def test_bad_nonce_and_tag_lengths_are_rejected_before_decryption(cipher: SecretCipher) -> None:
    nonce, ciphertext, tag = cipher.encrypt("secret").split(":")
    short_nonce = base64.b64encode(os.urandom(NONCE_LENGTH - 1)).decode()
    short_tag = base64.b64encode(os.urandom(TAG_LENGTH - 1)).decode()

    with pytest.raises(DecryptionError, match="nonce"):
        cipher.decrypt(f"{short_nonce}:{ciphertext}:{tag}")
    with pytest.raises(DecryptionError, match="tag"):
        cipher.decrypt(f"{nonce}:{ciphertext}:{short_tag}")


@pytest.mark.parametrize("value", ["", None, 42])
def test_encrypt_rejects_empty_or_non_string(cipher: SecretCipher, value) -> None:
    with pytest.raises(EncryptionError):
        cipher.encrypt(value)


def test_is_encrypted(cipher: SecretCipher) -> None:
    assert SecretCipher.is_encrypted(cipher.encrypt("x"))
    assert not SecretCipher.is_encrypted("AIzaSyPlainTextKey")
    assert not SecretCipher.is_encrypted("a::c")
    assert not SecretCipher.is_encrypted("a:b-c:d")
    assert not SecretCipher.is_encrypted(None)


def test_key_length_is_enforced() -> None:
    with pytest.raises(ValueError):
        SecretCipher(b"short")
