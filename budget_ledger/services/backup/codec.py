"""
Backup Codec

Exports the full dataset as a JSON envelope (plain or encrypted) and
imports either shape back into the stores.

IMPORT RULES:
- Files above the size ceiling are rejected before parsing
- Both the current shape (``budgets``) and the legacy single-budget
  shape (``budget``) are accepted
- Unknown top-level fields are ignored; missing sections are skipped
- Each section (transactions, categories, preferences, budgets) is fully
  parsed and normalized, then committed on its own. A section that
  fails to commit does not block the others.
"""

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import Optional, Union

import structlog

from budget_ledger.audit import AuditLogger
from budget_ledger.config import get_settings
from budget_ledger.errors import BudgetError, ValidationError
from budget_ledger.models.backup import BackupEnvelope, EncryptedBackup, ImportReport
from budget_ledger.models.budget import STORAGE_VERSION, PeriodKey
from budget_ledger.services.backup.crypto import (
    decrypt_backup,
    encrypt_backup,
    is_encrypted_backup,
)
from budget_ledger.services.budgets import BudgetPeriodStore
from budget_ledger.services.categories import TransactionCategoryStore
from budget_ledger.services.ledger import TransactionLedger
from budget_ledger.services.preferences import PreferenceStore
from budget_ledger.services.storage import StorageError
from budget_ledger.validation.normalizer import utc_timestamp


logger = structlog.get_logger(__name__)


def backup_filename(encrypted: bool = False, today: Optional[date] = None) -> str:
    """``budget-backup-YYYY-MM-DD.json`` or ``budget-backup-YYYY-MM-DD.encrypted.json``."""
    stamp = (today or date.today()).isoformat()
    marker = ".encrypted" if encrypted else ""
    return f"budget-backup-{stamp}{marker}.json"


class BackupCodec:
    """Builds export envelopes from the stores and imports them back."""

    def __init__(
        self,
        preferences: PreferenceStore,
        budgets: BudgetPeriodStore,
        ledger: TransactionLedger,
        categories: TransactionCategoryStore,
        audit: Optional[AuditLogger] = None,
    ):
        self._preferences = preferences
        self._budgets = budgets
        self._ledger = ledger
        self._categories = categories
        self._audit = audit or AuditLogger()
        self._settings = get_settings().backup

    # =========================================================================
    # EXPORT
    # =========================================================================

    def build_envelope(self) -> BackupEnvelope:
        """A normalized snapshot of every store."""
        return BackupEnvelope(
            schema_version=STORAGE_VERSION,
            app=self._settings.app_tag,
            exported_at=utc_timestamp(),
            transactions=[t.to_storage() for t in self._ledger.get_all()],
            preferences=self._preferences.get().to_storage(),
            categories=[c.to_storage() for c in self._categories.get_all()],
            budgets=self._budgets.snapshot().to_storage(),
        )

    def export_plain(self) -> str:
        """Serialize the envelope to JSON. Deterministic apart from ``exportedAt``."""
        envelope = self.build_envelope()
        self._audit.log_backup_exported(
            False, len(envelope.transactions), len(envelope.budgets.get("periods", {}))
        )
        return json.dumps(envelope.to_storage(), indent=2, ensure_ascii=False)

    async def encrypt(self, plaintext: str, passphrase: str) -> EncryptedBackup:
        return await encrypt_backup(
            plaintext,
            passphrase,
            iterations=self._settings.kdf_iterations,
            app_tag=self._settings.app_tag,
        )

    async def decrypt(self, envelope: Union[EncryptedBackup, dict], passphrase: str) -> str:
        try:
            return await decrypt_backup(envelope, passphrase)
        except BudgetError:
            self._audit.log_decrypt_failed()
            raise

    async def export_encrypted(self, passphrase: str) -> str:
        """
        Export and encrypt in one step.

        Raises:
            CryptoError: If the passphrase is empty
        """
        envelope = self.build_envelope()
        plaintext = json.dumps(envelope.to_storage(), indent=2, ensure_ascii=False)
        wrapper = await self.encrypt(plaintext, passphrase)
        self._audit.log_backup_exported(
            True, len(envelope.transactions), len(envelope.budgets.get("periods", {}))
        )
        return json.dumps(wrapper.to_storage(), indent=2)

    # =========================================================================
    # IMPORT
    # =========================================================================

    def _check_size(self, text: Union[str, bytes]) -> str:
        raw = text.encode("utf-8") if isinstance(text, str) else text
        if len(raw) > self._settings.max_import_size_bytes:
            raise self._reject(
                f"Backup file is larger than {self._settings.max_import_size_mb} MB",
                "file_too_large",
            )
        if isinstance(text, bytes):
            try:
                return text.decode("utf-8")
            except UnicodeDecodeError:
                raise self._reject("Backup file is not valid UTF-8 text", "invalid_json")
        return text

    def _reject(self, message: str, code: str) -> ValidationError:
        self._audit.log_backup_import_failed(code, message)
        return ValidationError(message, code=code)

    def _parse(self, text: Union[str, bytes]) -> dict:
        text = self._check_size(text)
        try:
            parsed = json.loads(text)
        except ValueError:
            raise self._reject("Invalid JSON file", "invalid_json")
        if not isinstance(parsed, dict):
            raise self._reject("Invalid backup format", "invalid_backup")
        return parsed

    def import_json(
        self,
        text: Union[str, bytes],
        legacy_period: Optional[PeriodKey] = None,
    ) -> ImportReport:
        """
        Import a plaintext backup.

        ``legacy_period`` is where a legacy single-budget export lands;
        it defaults to the selected period after preferences are imported.

        Raises:
            ValidationError: If the file is too large, not JSON, not an
                object, or an encrypted wrapper
        """
        parsed = self._parse(text)
        if is_encrypted_backup(parsed):
            raise self._reject("Backup is encrypted; a passphrase is required", "passphrase_required")
        return self._import_sections(parsed, legacy_period)

    def _import_sections(self, parsed: dict, legacy_period: Optional[PeriodKey]) -> ImportReport:
        report = ImportReport()
        schema_version = parsed.get("schemaVersion")
        if isinstance(schema_version, int) and not isinstance(schema_version, bool):
            report.source_schema_version = schema_version

        def commit(section: str, action) -> None:
            try:
                action()
            except StorageError as e:
                logger.warning("backup_section_failed", section=section, error=str(e))
                report.skipped_sections.append(section)
            else:
                report.imported_sections.append(section)

        transactions = parsed.get("transactions")
        if isinstance(transactions, list):
            def import_transactions():
                report.transactions_imported = len(self._ledger.replace_all(transactions))
            commit("transactions", import_transactions)
        elif "transactions" in parsed:
            report.skipped_sections.append("transactions")

        categories = parsed.get("categories")
        if isinstance(categories, list):
            commit("categories", lambda: self._categories.replace_all(categories))
        elif "categories" in parsed:
            report.skipped_sections.append("categories")

        preferences = parsed.get("preferences")
        if isinstance(preferences, dict):
            commit("preferences", lambda: self._preferences.set(preferences))
        elif "preferences" in parsed:
            report.skipped_sections.append("preferences")

        budgets = parsed.get("budgets")
        legacy_budget = parsed.get("budget")
        if isinstance(budgets, dict):
            def import_budgets():
                report.periods_imported = len(self._budgets.replace_store(budgets).periods)
            commit("budgets", import_budgets)
        elif isinstance(legacy_budget, dict):
            def import_legacy():
                key = legacy_period or self._preferences.selected_period()
                report.periods_imported = len(
                    self._budgets.import_legacy_budget(legacy_budget, key).periods
                )
                report.legacy_budget = True
            commit("budgets", import_legacy)
        elif "budgets" in parsed or "budget" in parsed:
            report.skipped_sections.append("budgets")

        if not report.imported_sections:
            report.message = "Nothing to import"
        elif report.skipped_sections:
            report.message = "Data imported with some sections skipped"

        self._audit.log_backup_imported(report.imported_sections, report.skipped_sections)
        return report

    async def import_backup(
        self,
        text: Union[str, bytes],
        passphrase: Optional[str] = None,
        legacy_period: Optional[PeriodKey] = None,
    ) -> ImportReport:
        """
        Import either shape. Encrypted wrappers are decrypted first.

        Nothing is written unless the whole payload decrypts and parses.

        Raises:
            ValidationError: For size, format, or a missing passphrase
            CryptoError: If decryption fails
        """
        parsed = self._parse(text)
        if is_encrypted_backup(parsed):
            if not passphrase:
                raise self._reject(
                    "Backup is encrypted; a passphrase is required", "passphrase_required"
                )
            plaintext = await self.decrypt(parsed, passphrase)
            parsed = self._parse(plaintext)
        return self._import_sections(parsed, legacy_period)

    async def import_file(
        self,
        path: Union[str, Path],
        passphrase: Optional[str] = None,
        legacy_period: Optional[PeriodKey] = None,
    ) -> ImportReport:
        """Read a backup file (size-checked before reading) and import it."""
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise self._reject(f"Cannot read backup file: {e}", "unreadable_file")
        if size > self._settings.max_import_size_bytes:
            raise self._reject(
                f"Backup file is larger than {self._settings.max_import_size_mb} MB",
                "file_too_large",
            )

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise self._reject(f"Cannot read backup file: {e}", "unreadable_file")
        return await self.import_backup(data, passphrase, legacy_period)
