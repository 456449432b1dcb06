"""
Backup Encryption

Passphrase-based authenticated encryption for backup files.

- Key derivation: PBKDF2-HMAC-SHA256, >= 250,000 iterations, 16-byte random salt
- Cipher: AES-256-GCM with a 12-byte random IV (ciphertext + tag in one step)

SECURITY:
- The passphrase is never stored or logged
- Every decryption failure raises the SAME CryptoError message, whether the
  passphrase was wrong, the data was tampered with, or the envelope was
  malformed. Callers cannot tell which.

Key derivation is CPU-bound, so the async entry points run it in a worker
thread. Concurrent calls are independent and each draws its own salt and IV.
"""

import asyncio
import base64
import binascii
import os
from collections.abc import Mapping
from typing import Any, Optional, Union

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from budget_ledger.config import get_settings
from budget_ledger.errors import CryptoError
from budget_ledger.models.backup import EncryptedBackup, EncryptionMetadata
from budget_ledger.validation.normalizer import clamp_number, utc_timestamp


logger = structlog.get_logger(__name__)

DECRYPT_ERROR_MESSAGE = "Failed to decrypt backup. Check the passphrase."

SALT_BYTES = 16
IV_BYTES = 12
KEY_BYTES = 32
MIN_SALT_BYTES = 8
DEFAULT_ITERATIONS = 250_000
MIN_DECRYPT_ITERATIONS = 100_000
MAX_ITERATIONS = 2_000_000


def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
    """Derive a 256-bit AES key from ``passphrase``."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(text: Any) -> bytes:
    return base64.b64decode(str(text or ""), validate=True)


def is_encrypted_backup(data: Any) -> bool:
    """True for the encrypted wrapper shape (``encryptedBackup: true``)."""
    return isinstance(data, Mapping) and data.get("encryptedBackup") is True


def encrypt_backup_sync(
    plaintext: str,
    passphrase: str,
    iterations: Optional[int] = None,
    app_tag: Optional[str] = None,
) -> EncryptedBackup:
    """
    Encrypt ``plaintext`` under a key derived from ``passphrase``.

    Raises:
        CryptoError: If the passphrase is empty
    """
    if not passphrase:
        raise CryptoError("Passphrase is required", field="passphrase")

    settings = get_settings().backup
    iterations = iterations or settings.kdf_iterations
    salt = os.urandom(SALT_BYTES)
    iv = os.urandom(IV_BYTES)

    key = derive_key(passphrase, salt, iterations)
    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8", "surrogatepass"), None)

    return EncryptedBackup(
        app=f"{app_tag or settings.app_tag}-backup",
        exported_at=utc_timestamp(),
        encryption=EncryptionMetadata(
            iv=_b64encode(iv),
            iterations=iterations,
            salt=_b64encode(salt),
        ),
        payload=_b64encode(ciphertext),
    )


def decrypt_backup_sync(
    envelope: Union[EncryptedBackup, Mapping[str, Any]],
    passphrase: str,
) -> str:
    """
    Authenticate and decrypt an encrypted wrapper back to the exact plaintext.

    Raises:
        CryptoError: With one generic message for every failure
    """
    if isinstance(envelope, EncryptedBackup):
        envelope = envelope.to_storage()

    try:
        if not is_encrypted_backup(envelope) or not passphrase:
            raise ValueError("not decryptable")

        encryption = envelope.get("encryption")
        if not isinstance(encryption, Mapping):
            raise ValueError("missing encryption metadata")

        iterations = int(clamp_number(
            encryption.get("iterations"),
            fallback=DEFAULT_ITERATIONS,
            min_value=MIN_DECRYPT_ITERATIONS,
            max_value=MAX_ITERATIONS,
        ))
        salt = _b64decode(encryption.get("salt"))
        iv = _b64decode(encryption.get("iv"))
        payload = _b64decode(envelope.get("payload"))
        if len(salt) < MIN_SALT_BYTES or len(iv) != IV_BYTES or not payload:
            raise ValueError("malformed envelope")

        key = derive_key(passphrase, salt, iterations)
        return AESGCM(key).decrypt(iv, payload, None).decode("utf-8", "surrogatepass")
    except (InvalidTag, ValueError, TypeError, binascii.Error, UnicodeDecodeError):
        logger.info("backup_decrypt_failed")
        raise CryptoError(DECRYPT_ERROR_MESSAGE) from None


async def encrypt_backup(
    plaintext: str,
    passphrase: str,
    iterations: Optional[int] = None,
    app_tag: Optional[str] = None,
) -> EncryptedBackup:
    """Async wrapper; key derivation runs off the event loop."""
    return await asyncio.to_thread(
        encrypt_backup_sync, plaintext, passphrase, iterations, app_tag
    )


async def decrypt_backup(
    envelope: Union[EncryptedBackup, Mapping[str, Any]],
    passphrase: str,
) -> str:
    """Async wrapper; key derivation runs off the event loop."""
    return await asyncio.to_thread(decrypt_backup_sync, envelope, passphrase)
