"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Keep the on-device key-value store an implementation detail
2. Use in-memory storage for testing
3. Keep the orchestrator and analytics decoupled from persistence

Two layers are defined here:
- KeyValueStore: the injected, synchronous string store the app persists to
- *StorageInterface: async, domain-level stores scoped by wallet

The interfaces are intentionally simple - just the operations the
application layer needs.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.expense import CustomCategory, Expense, Wallet, WalletKind


class KeyValueStore(ABC):
    """
    Minimal string key-value store.

    Values are opaque strings (JSON in practice). Implementations only need
    single-writer semantics.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Expenses are always scoped by wallet.
    """

    @abstractmethod
    async def list_expenses(
        self,
        wallet_id: str,
        month: Optional[date] = None,
    ) -> list[Expense]:
        """
        List the expenses of a wallet.

        Args:
            wallet_id: Wallet to read from
            month: If given, only expenses in the same calendar month

        Returns:
            Expenses in insertion order
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID, wallet_id: str) -> Optional[Expense]:
        """Retrieve one expense, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def upsert_expense(self, expense: Expense, wallet_id: str) -> None:
        """
        Insert an expense, or replace the one with the same id.
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID, wallet_id: str) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if an expense was deleted
        """
        pass

    @abstractmethod
    async def replace_expenses(self, wallet_id: str, expenses: Iterable[Expense]) -> None:
        """Replace every expense of a wallet (import, reset, bulk edits)."""
        pass


class BudgetStorageInterface(ABC):
    """
    Abstract interface for monthly budgets.

    Budgets are a mapping of "MM-YYYY" keys to non-negative amounts.
    """

    @abstractmethod
    async def fetch_budgets(self, wallet_id: str) -> dict[str, float]:
        """All budgets of a wallet, keyed by month key."""
        pass

    @abstractmethod
    async def set_budget(self, month_key: str, amount: float, wallet_id: str) -> None:
        """
        Set (or overwrite) the budget of one month.

        Raises:
            InvalidInputError: If amount is negative or month_key is malformed
        """
        pass

    @abstractmethod
    async def reset_budgets(self, wallet_id: str) -> None:
        """Remove every budget of a wallet."""
        pass


class CategoryStorageInterface(ABC):
    """Abstract interface for user-defined categories (shared by all wallets)."""

    @abstractmethod
    async def list_categories(self) -> list[CustomCategory]:
        pass

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[CustomCategory]:
        pass

    @abstractmethod
    async def save_category(self, category: CustomCategory) -> None:
        """Insert or replace a custom category."""
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        """
        Delete a custom category.

        Returns:
            True if a category was deleted
        """
        pass


class WalletStorageInterface(ABC):
    """
    Abstract interface for local wallets.

    Rules every implementation enforces:
    - a default wallet exists after the first fetch
    - wallet names are non-empty
    - the wallet count is capped
    - the last wallet can't be deleted
    """

    @abstractmethod
    async def fetch_wallets(self) -> list[Wallet]:
        """All wallets, creating the default one if none exist yet."""
        pass

    @abstractmethod
    async def create_wallet(
        self,
        name: str,
        kind: WalletKind,
        currency_code: str,
    ) -> Wallet:
        """
        Create a wallet.

        Raises:
            InvalidInputError: If the name is empty or the limit is reached
        """
        pass

    @abstractmethod
    async def update_wallet(self, wallet: Wallet) -> None:
        """
        Raises:
            NotFoundError: If the wallet doesn't exist
        """
        pass

    @abstractmethod
    async def delete_wallet(self, wallet_id: str) -> None:
        """
        Raises:
            NotFoundError: If the wallet doesn't exist
            InvalidInputError: If it is the last wallet
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """All events for one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class InvalidInputError(StorageError):
    """Input rejected at the storage boundary (negative budget, empty name, ...)."""
    pass
