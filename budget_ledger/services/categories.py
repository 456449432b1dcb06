"""
Legacy Transaction Categories

The flat income/expense category list older ledger entries were tagged
against by name. It is kept for backward compatibility and for backups;
budget categories proper live in the period store.
"""

from typing import Any, Optional

from budget_ledger.audit import AuditLogger
from budget_ledger.errors import NotFoundError, ValidationError
from budget_ledger.models.audit import AuditEventType
from budget_ledger.models.ledger import TransactionCategory
from budget_ledger.services.storage import KeyValueStorageInterface, StorageError, StorageKeys
from budget_ledger.validation.normalizer import generate_id, sanitize_text
from budget_ledger.validation.records import (
    normalize_transaction_categories,
    normalize_transaction_category,
    normalize_transaction_type,
    normalize_transactions,
)


class TransactionCategoryStore:
    """Read-modify-write store for the flat category list."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit or AuditLogger()

    def get_all(self) -> list[TransactionCategory]:
        """Stored categories, or the defaults when nothing valid is stored."""
        return normalize_transaction_categories(self._storage.get(StorageKeys.CATEGORIES))

    def _save(self, categories: list[TransactionCategory]) -> None:
        try:
            self._storage.set(
                StorageKeys.CATEGORIES,
                [c.to_storage() for c in categories],
            )
        except StorageError as e:
            self._audit.log_storage_write_failed(StorageKeys.CATEGORIES, str(e))
            raise

    def replace_all(self, raw: Any) -> list[TransactionCategory]:
        """Normalize and overwrite (used by import). A non-list stores the defaults."""
        categories = normalize_transaction_categories(raw)
        self._save(categories)
        return categories

    def add(self, raw: Any) -> TransactionCategory:
        categories = self.get_all()
        category = normalize_transaction_category(raw, len(categories))
        existing_ids = {c.id for c in categories}
        while category.id in existing_ids:
            category = category.model_copy(update={"id": generate_id()})

        self._save([*categories, category])
        self._audit.log_category(
            AuditEventType.CATEGORY_ADDED, "ledger", category.id, name=category.name
        )
        return category

    def delete(self, category_id: str) -> TransactionCategory:
        """
        Remove a category no transaction is tagged with.

        Raises:
            NotFoundError: If no category has that id
            ValidationError: code ``category_in_use`` if any transaction
                carries the category's name (case-insensitive)
        """
        categories = self.get_all()
        removed = next((c for c in categories if c.id == category_id), None)
        if removed is None:
            raise NotFoundError(f"Category '{category_id}' not found", field="id")
        if self.is_in_use(removed):
            raise ValidationError(
                "Cannot delete category in use by transactions",
                code="category_in_use",
                field="id",
            )

        remaining = [c for c in categories if c.id != category_id]
        self._save(remaining)
        self._audit.log_category(AuditEventType.CATEGORY_DELETED, "ledger", category_id)
        return removed

    def by_type(self, category_type: Any) -> list[TransactionCategory]:
        safe_type = normalize_transaction_type(category_type)
        return [c for c in self.get_all() if c.type == safe_type]

    def get_by_name(self, name: Any) -> Optional[TransactionCategory]:
        """Case-insensitive lookup."""
        needle = sanitize_text(name, max_length=40).lower()
        if not needle:
            return None
        for category in self.get_all():
            if category.name.lower() == needle:
                return category
        return None

    def is_in_use(self, category: TransactionCategory) -> bool:
        """True if a stored transaction's display category matches the name."""
        name = category.name.lower()
        transactions = normalize_transactions(self._storage.get(StorageKeys.TRANSACTIONS))
        return any(t.category.lower() == name for t in transactions)
