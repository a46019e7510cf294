"""Services package."""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    ExpenseStorageInterface,
    InMemoryKeyValueStore,
    InvalidInputError,
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalAuditStorage,
    LocalBudgetStorage,
    LocalCategoryStorage,
    LocalExpenseStorage,
    LocalWalletStorage,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "CategoryStorageInterface",
    "ExpenseStorageInterface",
    "InMemoryKeyValueStore",
    "InvalidInputError",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalAuditStorage",
    "LocalBudgetStorage",
    "LocalCategoryStorage",
    "LocalExpenseStorage",
    "LocalWalletStorage",
    "NotFoundError",
    "StorageError",
    "WalletStorageInterface",
]
