"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Everything is persisted as JSON in an injected key-value store, either in
memory or in a local JSON file.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    ExpenseStorageInterface,
    InvalidInputError,
    KeyValueStore,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)
from finance_tracker.services.storage.kv import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from finance_tracker.services.storage.local import (
    DEFAULT_WALLET_ID,
    LocalAuditStorage,
    LocalBudgetStorage,
    LocalCategoryStorage,
    LocalExpenseStorage,
    LocalWalletStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "CategoryStorageInterface",
    "ExpenseStorageInterface",
    "KeyValueStore",
    "WalletStorageInterface",
    # Exceptions
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    # Key-value backends
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Local implementation
    "DEFAULT_WALLET_ID",
    "LocalAuditStorage",
    "LocalBudgetStorage",
    "LocalCategoryStorage",
    "LocalExpenseStorage",
    "LocalWalletStorage",
]
