"""Tests for bot token encryption at rest."""

import pytest

from update_panel.errors import InvalidInput
from update_panel.token_crypto import TokenCipher, derive_key, mask_token


def test_encrypt_decrypt():
    cipher = TokenCipher("secret")
    sealed = cipher.encrypt("MTIz.abc.def")

    assert sealed != "MTIz.abc.def"
    assert cipher.decrypt(sealed) == "MTIz.abc.def"


def test_fresh_nonce_per_record():
    cipher = TokenCipher("secret")
    assert cipher.encrypt("same-token") != cipher.encrypt("same-token")


def test_wrong_key_rejected():
    sealed = TokenCipher("secret").encrypt("token")
    with pytest.raises(InvalidInput):
        TokenCipher("other-secret").decrypt(sealed)


def test_tampered_ciphertext_rejected():
    cipher = TokenCipher("secret")
    sealed = cipher.encrypt("token")
    tampered = sealed[:-4] + ("AAAA" if sealed[-4:] != "AAAA" else "BBBB")
    with pytest.raises(InvalidInput):
        cipher.decrypt(tampered)


def test_key_derivation_is_stable():
    assert derive_key("secret") == derive_key("secret")
    assert derive_key("secret") != derive_key("secret2")


def test_empty_secret():
    with pytest.raises(ValueError):
        TokenCipher("")


def test_mask_token():
    assert mask_token("abcdefghijklmnop") == "abcd…mnop"
    assert mask_token("short") == "•••••"
