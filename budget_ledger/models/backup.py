"""
Backup Envelope Models

Two shapes exist on disk:

1. BackupEnvelope   - the plaintext snapshot of every store
2. EncryptedBackup  - a wrapper around an AES-GCM encrypted envelope,
                      distinguished by ``encryptedBackup: true``

The encrypted wrapper carries everything needed to re-derive the key
from a passphrase (salt, iterations, hash) but never the passphrase.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from budget_ledger.models.base import RecordModel
from budget_ledger.models.budget import STORAGE_VERSION


ENCRYPTION_VERSION = 1


class BackupEnvelope(RecordModel):
    """Plaintext export of the full dataset."""

    schema_version: int = STORAGE_VERSION
    app: str
    exported_at: str
    transactions: list[dict[str, Any]] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)
    categories: list[dict[str, Any]] = Field(default_factory=list)
    budgets: dict[str, Any] = Field(default_factory=dict)


class EncryptionMetadata(RecordModel):
    """Non-secret parameters required to decrypt a backup."""

    algorithm: str = "AES-GCM"
    iv: str = Field(..., description="Base64 12-byte nonce")
    kdf: str = "PBKDF2"
    hash: str = "SHA-256"
    iterations: int
    salt: str = Field(..., description="Base64 16-byte salt")


class EncryptedBackup(RecordModel):
    """Encrypted wrapper written instead of the plaintext envelope."""

    app: str
    encrypted_backup: bool = True
    encryption_version: int = ENCRYPTION_VERSION
    exported_at: str
    encryption: EncryptionMetadata
    payload: str = Field(..., description="Base64 ciphertext with GCM tag")


class ImportReport(BaseModel):
    """
    What an import actually committed.

    Each top-level section is committed on its own, so a malformed
    section is skipped without blocking the valid ones.
    """

    imported_sections: list[str] = Field(default_factory=list)
    skipped_sections: list[str] = Field(default_factory=list)
    transactions_imported: int = 0
    periods_imported: int = 0
    legacy_budget: bool = False
    message: str = "Data imported successfully"
    source_schema_version: Optional[int] = None

    @property
    def success(self) -> bool:
        return bool(self.imported_sections)
