"""Reversible encryption for stored AI provider API keys.

AES-256-CBC with a key and IV fixed by configuration (ENCRYPTION_KEY,
ENCRYPTION_IV, both hex). Plaintext is UTF-8 with PKCS7 padding; ciphertext
is stored as lowercase hex.

The IV is shared by every record, so equal plaintexts encrypt to equal
ciphertexts. Stored values depend on this exact scheme; changing it needs a
data migration.
"""
from __future__ import annotations

import binascii
import logging
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigurationError
from .settings.config import Settings

logger = logging.getLogger(__name__)

KEY_BYTES = 32
IV_BYTES = 16


def _decode_hex(name: str, value: Optional[str], size: int) -> bytes:
    if not value:
        raise ConfigurationError(f"{name} is not configured")
    try:
        raw = bytes.fromhex(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be hex-encoded") from e
    if len(raw) != size:
        raise ConfigurationError(f"{name} must decode to {size} bytes, got {len(raw)}")
    return raw


class KeyCipher:
    def __init__(self, key_hex: Optional[str], iv_hex: Optional[str]):
        self._key_hex = key_hex
        self._iv_hex = iv_hex

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyCipher":
        return cls(settings.ENCRYPTION_KEY, settings.ENCRYPTION_IV)

    @property
    def configured(self) -> bool:
        try:
            self._cipher()
        except ConfigurationError:
            return False
        return True

    def warn_if_unconfigured(self) -> None:
        """Log at startup; encryption calls will fail until the secrets are set."""
        try:
            self._cipher()
        except ConfigurationError as e:
            logger.warning("API key encryption unavailable: %s", e.message)

    def _cipher(self) -> Cipher:
        key = _decode_hex("ENCRYPTION_KEY", self._key_hex, KEY_BYTES)
        iv = _decode_hex("ENCRYPTION_IV", self._iv_hex, IV_BYTES)
        return Cipher(algorithms.AES(key), modes.CBC(iv))

    def encrypt(self, text: str) -> str:
        if not text:
            return ""
        cipher = self._cipher()
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(text.encode("utf-8")) + padder.finalize()
        encryptor = cipher.encryptor()
        return (encryptor.update(padded) + encryptor.finalize()).hex()

    def decrypt(self, ciphertext: str) -> str:
        """Raises ValueError on malformed ciphertext, ConfigurationError without secrets."""
        if not ciphertext:
            return ""
        cipher = self._cipher()
        try:
            raw = bytes.fromhex(ciphertext)
        except (ValueError, binascii.Error) as e:
            raise ValueError("ciphertext is not hex") from e
        decryptor = cipher.decryptor()
        padded = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        data = unpadder.update(padded) + unpadder.finalize()
        return data.decode("utf-8")
