"""Symmetric encryption of third-party credentials at rest.

Envelope format: ``hex(iv) + ":" + hex(ciphertext)`` using AES-256-CBC with
PKCS7 padding and a SHA-256 digest of the configured secret as the key.
Rows already stored in the database use this exact format, so it must not
change.
"""

import hashlib
import json
import os
from typing import Any

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ops_hub.config.settings import Settings

logger = structlog.get_logger(__name__)

DEFAULT_ENCRYPTION_KEY = "ops-hub-default-encryption-key-change-in-prod"
IV_LENGTH = 16


class VaultError(Exception):
    """An envelope could not be decrypted."""


class InsecureKeyError(VaultError):
    """The fallback key would be used in production."""


class CredentialVault:
    """Encrypts and decrypts credential envelopes with one derived key."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption secret must not be empty")
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialVault":
        """Build the vault from configuration.

        Raises:
            InsecureKeyError: No key (or the fallback key) in production.
        """
        secret = settings.encryption_key.get_secret_value() if settings.encryption_key else ""
        if not secret or secret == DEFAULT_ENCRYPTION_KEY:
            if settings.is_production:
                raise InsecureKeyError(
                    "Default encryption key detected in production. "
                    "Set ENCRYPTION_KEY to a strong, unique key before deploying."
                )
            logger.warning(
                "default_encryption_key_in_use",
                environment=settings.environment,
                hint="Set ENCRYPTION_KEY for production",
            )
            secret = DEFAULT_ENCRYPTION_KEY
        return cls(secret)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        iv_hex, sep, body_hex = envelope.partition(":")
        if not sep:
            raise VaultError("Malformed envelope: missing separator")

        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(body_hex)
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as e:
            raise VaultError(f"Malformed envelope: {type(e).__name__}") from e

    def encrypt_credentials(self, credentials: dict[str, Any]) -> str:
        return self.encrypt(json.dumps(credentials))

    def decrypt_credentials(self, envelope: str) -> dict[str, Any]:
        """Decrypt a credential map, degrading to ``{}`` on any failure."""
        try:
            data = json.loads(self.decrypt(envelope))
        except (VaultError, ValueError) as e:
            logger.error("credential_decrypt_failed", error_type=type(e).__name__)
            return {}
        if not isinstance(data, dict):
            logger.error("credential_decrypt_failed", error_type="NotAnObject")
            return {}
        return data
