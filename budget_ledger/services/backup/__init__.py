"""
Backup Services Package

JSON export/import of the full dataset, with optional passphrase
encryption (PBKDF2-HMAC-SHA256 + AES-GCM).
"""

from budget_ledger.services.backup.codec import BackupCodec, backup_filename
from budget_ledger.services.backup.crypto import (
    DECRYPT_ERROR_MESSAGE,
    decrypt_backup,
    decrypt_backup_sync,
    derive_key,
    encrypt_backup,
    encrypt_backup_sync,
    is_encrypted_backup,
)

__all__ = [
    "DECRYPT_ERROR_MESSAGE",
    "BackupCodec",
    "backup_filename",
    "decrypt_backup",
    "decrypt_backup_sync",
    "derive_key",
    "encrypt_backup",
    "encrypt_backup_sync",
    "is_encrypted_backup",
]
