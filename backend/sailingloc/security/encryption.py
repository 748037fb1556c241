"""At-rest encryption for personal columns (phone numbers, street addresses).

Ciphertexts are deterministic: the AES-GCM nonce is an HMAC of the
plaintext, so equal values encrypt to equal tokens and stay comparable in
SQL. Stored values look like ``enc:<urlsafe base64(nonce || sealed)>``.
"""

from __future__ import annotations

import base64
import binascii
import logging
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from sqlalchemy.types import String, TypeDecorator

from sailingloc.core.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "enc:"
_NONCE_BYTES = 12
_MIN_KEY_BYTES = 32


class EncryptionKeyError(RuntimeError):
    """APP_ENCRYPTION_KEY is missing or unusable."""


def _decode_key(material: str) -> bytes:
    if not material:
        raise EncryptionKeyError("APP_ENCRYPTION_KEY must be configured")
    try:
        # Accept both the standard and the URL-safe alphabet.
        normalized = material.strip().replace("+", "-").replace("/", "_")
        key = base64.urlsafe_b64decode(normalized.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise EncryptionKeyError("APP_ENCRYPTION_KEY is not valid base64") from exc
    if len(key) < _MIN_KEY_BYTES:
        raise EncryptionKeyError(
            f"APP_ENCRYPTION_KEY must decode to at least {_MIN_KEY_BYTES} bytes"
        )
    return key


class PIICipher:
    def __init__(self, master_key: bytes) -> None:
        derived = HKDF(
            algorithm=hashes.SHA256(),
            length=64,
            salt=b"sailingloc-pii-hkdf",
            info=b"pii",
        ).derive(master_key)
        self._aead = AESGCM(derived[:32])
        self._nonce_key = derived[32:]

    def _nonce(self, data: bytes) -> bytes:
        mac = hmac.HMAC(self._nonce_key, hashes.SHA256())
        mac.update(data)
        return mac.finalize()[:_NONCE_BYTES]

    def seal(self, plain: str) -> str:
        data = plain.encode("utf-8")
        nonce = self._nonce(data)
        blob = nonce + self._aead.encrypt(nonce, data, None)
        return TOKEN_PREFIX + base64.urlsafe_b64encode(blob).decode("ascii")

    def open(self, token: str) -> str | None:
        """Plaintext for ``token``; ``None`` when it cannot be authenticated."""
        try:
            blob = base64.urlsafe_b64decode(token.removeprefix(TOKEN_PREFIX))
        except (binascii.Error, ValueError):
            logger.warning("Stored PII value is not valid base64")
            return None
        nonce, sealed = blob[:_NONCE_BYTES], blob[_NONCE_BYTES:]
        if not sealed:
            return None
        try:
            return self._aead.decrypt(nonce, sealed, None).decode("utf-8")
        except InvalidTag:
            logger.warning("Stored PII value failed authentication; key rotated?")
            return None


@lru_cache
def get_cipher() -> PIICipher:
    return PIICipher(_decode_key(get_settings().app_encryption_key))


def encrypt_str(value: str | None) -> str | None:
    if not value or value.startswith(TOKEN_PREFIX):
        return value
    return get_cipher().seal(value)


def decrypt_str(value: str | None) -> str | None:
    """Legacy plaintext rows (no prefix) are returned unchanged."""
    if not value or not value.startswith(TOKEN_PREFIX):
        return value
    return get_cipher().open(value)


class EncryptedStr(TypeDecorator):
    """String column stored through :class:`PIICipher`."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return encrypt_str(value)

    def process_result_value(self, value, dialect):
        return decrypt_str(value)
