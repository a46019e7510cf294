"""
Local Storage Implementation

Concrete stores persisting JSON documents in an injected KeyValueStore.

Key layout:
    expenses:<wallet_id>   list of expense records
    budgets:<wallet_id>    {"MM-YYYY": amount}
    custom_categories      list of custom categories
    wallets                list of wallets
    audit_log              list of audit events (append-only, newest kept)

DESIGN DECISION: A payload that can't be decoded is treated as empty on read.
The failure is logged, but it never propagates into analytics - a
corrupt budget document must not stop the expense list from rendering.
Writes that start from the stored document refuse to run on an
undecodable one and raise StorageError, so the unreadable data
stays in place instead of being replaced by the single new record.
"""

import json
import math
from datetime import date
from typing import Any, Callable, Iterable, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_tracker.analytics.periods import parse_budget_key
from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.currency import DEFAULT_CURRENCY_CODE
from finance_tracker.models.expense import CustomCategory, Expense, Wallet, WalletKind
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


logger = structlog.get_logger(__name__)

T = TypeVar("T")

CATEGORIES_KEY = "custom_categories"
WALLETS_KEY = "wallets"
AUDIT_KEY = "audit_log"
DEFAULT_WALLET_ID = "default"
DEFAULT_WALLET_NAME = "Personal Wallet"


def expenses_key(wallet_id: str) -> str:
    return f"expenses:{wallet_id}"


def budgets_key(wallet_id: str) -> str:
    return f"budgets:{wallet_id}"


class _JsonDocumentStore:
    """Shared JSON encode/decode over a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def _read(
        self,
        key: str,
        decode: Callable[[Any], T],
        default: Callable[[], T],
        for_update: bool = False,
    ) -> T:
        """
        Decode the document stored under key.

        A missing key gives default(). An undecodable document also gives
        default(), unless for_update is set: then StorageError is raised so
        the caller never writes a modified empty document over it.
        """
        raw = self._kv.get(key)
        if raw is None:
            return default()
        try:
            return decode(json.loads(raw))
        except (ValueError, TypeError, KeyError, ValidationError) as e:
            logger.warning(
                "storage_decode_failed",
                key=key,
                error=str(e),
                for_update=for_update,
            )
            if for_update:
                raise StorageError(
                    f"Stored data under '{key}' can't be decoded; refusing to overwrite it"
                ) from e
            return default()

    def _write(self, key: str, value: Any) -> None:
        self._kv.set(key, json.dumps(value, ensure_ascii=False))


# =============================================================================
# EXPENSES
# =============================================================================

class LocalExpenseStorage(_JsonDocumentStore, ExpenseStorageInterface):
    """Expenses stored as one JSON list per wallet."""

    @staticmethod
    def _decode(payload: Any) -> list[Expense]:
        if not isinstance(payload, list):
            raise TypeError("expected a list of expense records")
        return [Expense.from_record(record) for record in payload]

    def _load(self, wallet_id: str, for_update: bool = False) -> list[Expense]:
        return self._read(expenses_key(wallet_id), self._decode, list, for_update)

    def _save(self, wallet_id: str, expenses: Iterable[Expense]) -> None:
        self._write(expenses_key(wallet_id), [expense.to_record() for expense in expenses])

    async def list_expenses(
        self,
        wallet_id: str,
        month: Optional[date] = None,
    ) -> list[Expense]:
        expenses = self._load(wallet_id)
        if month is None:
            return expenses
        return [
            expense for expense in expenses
            if expense.occurred_at.year == month.year
            and expense.occurred_at.month == month.month
        ]

    async def get_expense(self, expense_id: UUID, wallet_id: str) -> Optional[Expense]:
        for expense in self._load(wallet_id):
            if expense.id == expense_id:
                return expense
        return None

    async def upsert_expense(self, expense: Expense, wallet_id: str) -> None:
        expenses = self._load(wallet_id, for_update=True)
        for index, existing in enumerate(expenses):
            if existing.id == expense.id:
                expenses[index] = expense
                break
        else:
            expenses.append(expense)
        self._save(wallet_id, expenses)

    async def delete_expense(self, expense_id: UUID, wallet_id: str) -> bool:
        expenses = self._load(wallet_id, for_update=True)
        remaining = [expense for expense in expenses if expense.id != expense_id]
        if len(remaining) == len(expenses):
            return False
        self._save(wallet_id, remaining)
        return True

    async def replace_expenses(self, wallet_id: str, expenses: Iterable[Expense]) -> None:
        self._save(wallet_id, list(expenses))


# =============================================================================
# BUDGETS
# =============================================================================

class LocalBudgetStorage(_JsonDocumentStore, BudgetStorageInterface):
    """Budgets stored as one JSON object per wallet."""

    @staticmethod
    def _decode(payload: Any) -> dict[str, float]:
        if not isinstance(payload, dict):
            raise TypeError("expected an object of month budgets")
        return {str(key): float(amount) for key, amount in payload.items()}

    async def fetch_budgets(self, wallet_id: str) -> dict[str, float]:
        return self._read(budgets_key(wallet_id), self._decode, dict)

    async def set_budget(self, month_key: str, amount: float, wallet_id: str) -> None:
        if not isinstance(amount, (int, float)) or math.isnan(amount) or math.isinf(amount):
            raise InvalidInputError("Budget must be a finite number.")
        if amount < 0:
            raise InvalidInputError("Budget cannot be negative.")
        try:
            parse_budget_key(month_key)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        budgets = self._read(budgets_key(wallet_id), self._decode, dict, for_update=True)
        budgets[month_key] = float(amount)
        self._write(budgets_key(wallet_id), budgets)

    async def reset_budgets(self, wallet_id: str) -> None:
        self._write(budgets_key(wallet_id), {})


# =============================================================================
# CUSTOM CATEGORIES
# =============================================================================

class LocalCategoryStorage(_JsonDocumentStore, CategoryStorageInterface):
    """Custom categories, shared by every wallet."""

    @staticmethod
    def _decode(payload: Any) -> list[CustomCategory]:
        if not isinstance(payload, list):
            raise TypeError("expected a list of categories")
        return [CustomCategory.model_validate(item) for item in payload]

    def _load(self, for_update: bool = False) -> list[CustomCategory]:
        return self._read(CATEGORIES_KEY, self._decode, list, for_update)

    def _save(self, categories: list[CustomCategory]) -> None:
        self._write(CATEGORIES_KEY, [category.model_dump(mode="json") for category in categories])

    async def list_categories(self) -> list[CustomCategory]:
        return self._load()

    async def get_category(self, category_id: str) -> Optional[CustomCategory]:
        for category in self._load():
            if category.id == category_id:
                return category
        return None

    async def save_category(self, category: CustomCategory) -> None:
        categories = self._load(for_update=True)
        for index, existing in enumerate(categories):
            if existing.id == category.id:
                categories[index] = category
                break
        else:
            categories.append(category)
        self._save(categories)

    async def delete_category(self, category_id: str) -> bool:
        categories = self._load(for_update=True)
        remaining = [category for category in categories if category.id != category_id]
        if len(remaining) == len(categories):
            return False
        self._save(remaining)
        return True


# =============================================================================
# WALLETS
# =============================================================================

class LocalWalletStorage(_JsonDocumentStore, WalletStorageInterface):
    """Local wallets with the default wallet created on first access."""

    def __init__(
        self,
        kv: KeyValueStore,
        max_wallet_count: int = 6,
        default_currency: str = DEFAULT_CURRENCY_CODE,
    ):
        super().__init__(kv)
        self._max_wallet_count = max_wallet_count
        self._default_currency = default_currency

    @staticmethod
    def _decode(payload: Any) -> list[Wallet]:
        if not isinstance(payload, list):
            raise TypeError("expected a list of wallets")
        return [Wallet.model_validate(item) for item in payload]

    def _load(self, for_update: bool = False) -> list[Wallet]:
        return self._read(WALLETS_KEY, self._decode, list, for_update)

    def _save(self, wallets: list[Wallet]) -> None:
        self._write(WALLETS_KEY, [wallet.model_dump(mode="json") for wallet in wallets])

    def _default_wallet(self) -> Wallet:
        return Wallet(
            id=DEFAULT_WALLET_ID,
            name=DEFAULT_WALLET_NAME,
            kind=WalletKind.PERSONAL,
            currency_code=self._default_currency,
        )

    async def fetch_wallets(self) -> list[Wallet]:
        try:
            wallets = self._load(for_update=True)
        except StorageError:
            # Serve the default wallet without persisting it over the unreadable list
            return [self._default_wallet()]
        if wallets:
            return wallets

        default_wallet = self._default_wallet()
        self._save([default_wallet])
        logger.info("default_wallet_created", wallet_id=default_wallet.id)
        return [default_wallet]

    async def create_wallet(
        self,
        name: str,
        kind: WalletKind,
        currency_code: str,
    ) -> Wallet:
        trimmed = name.strip()
        if not trimmed:
            raise InvalidInputError("Wallet name is required.")

        await self.fetch_wallets()
        wallets = self._load(for_update=True)
        if len(wallets) >= self._max_wallet_count:
            raise InvalidInputError(
                f"You can create up to {self._max_wallet_count} wallets."
            )

        try:
            wallet = Wallet(name=trimmed, kind=kind, currency_code=currency_code.upper())
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        wallets.append(wallet)
        self._save(wallets)
        return wallet

    async def update_wallet(self, wallet: Wallet) -> None:
        if not wallet.name.strip():
            raise InvalidInputError("Wallet name is required.")

        wallets = self._load(for_update=True)
        for index, existing in enumerate(wallets):
            if existing.id == wallet.id:
                wallets[index] = wallet
                self._save(wallets)
                return
        raise NotFoundError(f"Wallet {wallet.id} not found")

    async def delete_wallet(self, wallet_id: str) -> None:
        wallets = self._load(for_update=True)
        if not any(wallet.id == wallet_id for wallet in wallets):
            raise NotFoundError(f"Wallet {wallet_id} not found")
        if len(wallets) <= 1:
            raise InvalidInputError("At least one wallet is required.")

        self._save([wallet for wallet in wallets if wallet.id != wallet_id])
        self._kv.delete(expenses_key(wallet_id))
        self._kv.delete(budgets_key(wallet_id))


# =============================================================================
# AUDIT LOG
# =============================================================================

DEFAULT_AUDIT_RETENTION = 1000


class LocalAuditStorage(_JsonDocumentStore, AuditStorageInterface):
    """
    Audit log kept in a single JSON list.

    Only the newest max_events entries are retained, which bounds the
    size of the document rewritten on every append.
    """

    def __init__(self, kv: KeyValueStore, max_events: int = DEFAULT_AUDIT_RETENTION):
        super().__init__(kv)
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._max_events = max_events

    @staticmethod
    def _decode(payload: Any) -> list[AuditEvent]:
        if not isinstance(payload, list):
            raise TypeError("expected a list of audit events")
        return [AuditEvent.model_validate(item) for item in payload]

    def _load(self, for_update: bool = False) -> list[AuditEvent]:
        return self._read(AUDIT_KEY, self._decode, list, for_update)

    async def append_event(self, event: AuditEvent) -> bool:
        events = self._load(for_update=True)
        events.append(event)
        events = events[-self._max_events:]
        self._write(AUDIT_KEY, [item.model_dump(mode="json") for item in events])
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            event for event in self._load()
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._load()))[:limit]
