"""
Encryption of bot tokens at rest.

Tokens are sealed with Fernet (AES-CBC + HMAC, fresh random IV per token)
using a key derived from ``TOKEN_ENCRYPTION_SECRET`` with HKDF.
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from update_panel.errors import InvalidInput

logger = logging.getLogger(__name__)

_HKDF_SALT = b"update-panel-token-salt"
_HKDF_INFO = b"update-panel-bot-token"


def derive_key(secret: str) -> bytes:
    """Derive a urlsafe-base64 Fernet key from a configured secret."""
    if not secret:
        raise ValueError("Encryption secret cannot be empty.")
    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_HKDF_SALT,
        info=_HKDF_INFO,
    )
    input_key_material = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(kdf.derive(input_key_material))


class TokenCipher:
    def __init__(self, secret: str):
        self._fernet = Fernet(derive_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            logger.warning(f"Token decryption failed: {type(e).__name__}")
            raise InvalidInput("Stored token could not be decrypted") from e


def mask_token(token: str) -> str:
    """Show only the ends of a secret, e.g. ``abcd…wxyz``."""
    if len(token) <= 8:
        return "•" * len(token)
    return f"{token[:4]}…{token[-4:]}"
