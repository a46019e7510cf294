"""
Main Orchestrator for Finance Tracker

This module ties together the stores, the analytics engine and the audit
trail, and defines the application flows:
1. Expense entry (validate -> save -> recompute)
2. Budgets, custom categories and wallets
3. Export / import / reset of local data

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation ends with an explicit refresh() that reads ONE consistent
  snapshot of expenses and budgets and recomputes the analytics
- The engine never touches storage, settings or the clock itself
- Every step is audited

There is no change notification or debouncing: a caller that mutates
data gets the new snapshot back from the same call.
"""

import json
import math
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_tracker.analytics import budget_key, compute_analytics, shift_month
from finance_tracker.audit import AuditLogger, configure_logging
from finance_tracker.config import Settings, get_settings
from finance_tracker.models.analytics import AnalyticsSnapshot
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.expense import (
    FALLBACK_CATEGORY,
    CustomCategory,
    Expense,
    SystemCategory,
    SystemCategoryRef,
    Wallet,
    WalletKind,
    system_category,
)
from finance_tracker.presentation import CurrencyFormatter
from finance_tracker.services.storage import (
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


logger = structlog.get_logger(__name__)

CategoryArg = Union[SystemCategoryRef, CustomCategory]

EXPORT_FORMAT_VERSION = 1


def parse_amount(value: Union[float, int, str]) -> float:
    """
    Parse a user-entered amount.

    Strings may use a decimal comma ("12,50").

    Raises:
        InvalidInputError: If the value is empty or not a finite number
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidInputError("Please enter the expense amount.")
        try:
            amount = float(text.replace(",", "."))
        except ValueError as e:
            raise InvalidInputError("Please enter a valid amount.") from e
    else:
        amount = float(value)

    if not math.isfinite(amount):
        raise InvalidInputError("Please enter a valid amount.")
    return amount


class FinanceTracker:
    """
    Application service for one device's local data.

    Holds the UI state the engine needs (active wallet, selected month)
    and the latest AnalyticsSnapshot.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        budget_storage: BudgetStorageInterface,
        category_storage: CategoryStorageInterface,
        wallet_storage: WalletStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_category: SystemCategory = SystemCategory.FOOD,
        clock: Callable[[], date] = date.today,
    ):
        self._expense_storage = expense_storage
        self._budget_storage = budget_storage
        self._category_storage = category_storage
        self._wallet_storage = wallet_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._default_category = system_category(default_category)
        self._clock = clock

        today = clock()
        self._selected_month = today.month
        self._selected_year = today.year
        self._active_wallet: Optional[Wallet] = None
        self._snapshot: Optional[AnalyticsSnapshot] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        kv: Optional[KeyValueStore] = None,
        clock: Callable[[], date] = date.today,
    ) -> "FinanceTracker":
        """
        Build a tracker wired to the configured key-value backend.

        Args:
            settings: Settings to use; defaults to get_settings()
            kv: Pre-built key-value store, overriding the configured backend
            clock: Source of "today"
        """
        settings = settings or get_settings()
        storage_settings = settings.storage
        display_settings = settings.display
        app_settings = settings.app

        configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)

        if kv is None:
            if storage_settings.backend == "memory":
                kv = InMemoryKeyValueStore()
            else:
                kv = JsonFileKeyValueStore(
                    storage_settings.data_path,
                    write_attempts=storage_settings.write_attempts,
                )

        logger.info(
            "tracker_created",
            environment=app_settings.app_environment,
            backend=type(kv).__name__,
            currency=display_settings.currency_code,
        )

        return cls(
            expense_storage=LocalExpenseStorage(kv),
            budget_storage=LocalBudgetStorage(kv),
            category_storage=LocalCategoryStorage(kv),
            wallet_storage=LocalWalletStorage(
                kv,
                max_wallet_count=app_settings.max_wallet_count,
                default_currency=display_settings.currency_code,
            ),
            audit_logger=AuditLogger(
                LocalAuditStorage(kv, max_events=app_settings.audit_max_events)
            ),
            default_category=display_settings.default_category,
            clock=clock,
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def snapshot(self) -> Optional[AnalyticsSnapshot]:
        """The analytics computed by the last refresh(), if any."""
        return self._snapshot

    @property
    def selected_period(self) -> tuple[int, int]:
        return self._selected_month, self._selected_year

    @property
    def default_category(self) -> SystemCategoryRef:
        return self._default_category

    async def active_wallet(self) -> Wallet:
        """The wallet every expense and budget call is scoped to."""
        if self._active_wallet is None:
            wallets = await self._wallet_storage.fetch_wallets()
            self._active_wallet = wallets[0]
        return self._active_wallet

    async def bootstrap(self) -> AnalyticsSnapshot:
        """Load the wallets, select the first one and compute the analytics."""
        self._active_wallet = None
        await self.active_wallet()
        return await self.refresh()

    async def refresh(self) -> AnalyticsSnapshot:
        """
        Recompute the analytics from one consistent read of the stores.

        Amounts inside insight texts are formatted in the active wallet's currency.
        """
        wallet = await self.active_wallet()
        expenses = await self._expense_storage.list_expenses(wallet.id)
        budgets = await self._budget_storage.fetch_budgets(wallet.id)

        self._snapshot = compute_analytics(
            expenses,
            budgets,
            selected_month=self._selected_month,
            selected_year=self._selected_year,
            now=self._clock(),
            formatter=CurrencyFormatter(wallet.currency_code),
        )
        return self._snapshot

    async def change_month(self, month: int, year: int) -> AnalyticsSnapshot:
        """
        Select the month the analytics describe.

        Raises:
            ValueError: If month is outside 1-12
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")
        self._selected_month = month
        self._selected_year = year
        return await self.refresh()

    async def previous_month(self) -> AnalyticsSnapshot:
        month, year = shift_month(self._selected_month, self._selected_year, -1)
        return await self.change_month(month, year)

    async def next_month(self) -> AnalyticsSnapshot:
        month, year = shift_month(self._selected_month, self._selected_year, 1)
        return await self.change_month(month, year)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def list_expenses(self, selected_month_only: bool = True) -> list[Expense]:
        """Expenses of the active wallet, newest first."""
        wallet = await self.active_wallet()
        month = (
            date(self._selected_year, self._selected_month, 1)
            if selected_month_only else None
        )
        expenses = await self._expense_storage.list_expenses(wallet.id, month)
        return sorted(expenses, key=lambda expense: expense.occurred_at, reverse=True)

    async def add_expense(
        self,
        title: str,
        amount: Union[float, int, str],
        occurred_at: Optional[Union[date, datetime]] = None,
        category: Optional[CategoryArg] = None,
        notes: Optional[str] = None,
    ) -> Expense:
        """
        Record a new expense in the active wallet.

        Raises:
            InvalidInputError: If the title is empty or the amount can't be parsed
        """
        if not title or not title.strip():
            raise InvalidInputError("Please enter a title for your expense.")

        try:
            expense = Expense(
                title=title,
                amount=parse_amount(amount),
                occurred_at=occurred_at or self._clock(),
                category=category or self._default_category,
                notes=notes,
            )
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        wallet = await self.active_wallet()
        await self._expense_storage.upsert_expense(expense, wallet.id)
        await self._audit_logger.log_expense_added(
            expense_id=expense.id,
            wallet_id=wallet.id,
            title=expense.title,
            amount=expense.amount,
        )

        await self.refresh()
        return expense

    async def update_expense(self, expense: Expense) -> Expense:
        """
        Replace a stored expense with an edited copy.

        Raises:
            NotFoundError: If the expense isn't in the active wallet
        """
        wallet = await self.active_wallet()
        existing = await self._expense_storage.get_expense(expense.id, wallet.id)
        if existing is None:
            raise NotFoundError(f"Expense {expense.id} not found")

        await self._expense_storage.upsert_expense(expense, wallet.id)
        await self._audit_logger.log_expense_updated(
            expense_id=expense.id,
            wallet_id=wallet.id,
            amount=expense.amount,
        )

        await self.refresh()
        return expense

    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense from the active wallet. Returns False if it didn't exist."""
        wallet = await self.active_wallet()
        deleted = await self._expense_storage.delete_expense(expense_id, wallet.id)
        if deleted:
            await self._audit_logger.log_expense_deleted(expense_id, wallet.id)
            await self.refresh()
        return deleted

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def budgets(self) -> dict[str, float]:
        wallet = await self.active_wallet()
        return await self._budget_storage.fetch_budgets(wallet.id)

    async def set_budget(
        self,
        amount: float,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> AnalyticsSnapshot:
        """
        Set the budget of a month (the selected month by default).

        Raises:
            InvalidInputError: If the budget store rejects the amount
        """
        month = self._selected_month if month is None else month
        year = self._selected_year if year is None else year
        wallet = await self.active_wallet()

        try:
            month_key = budget_key(month, year)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        try:
            await self._budget_storage.set_budget(month_key, amount, wallet.id)
        except InvalidInputError as e:
            await self._audit_logger.log_budget_rejected(
                month_key=month_key,
                amount=amount,
                wallet_id=wallet.id,
                reason=str(e),
            )
            raise

        await self._audit_logger.log_budget_set(month_key, amount, wallet.id)
        return await self.refresh()

    async def reset_budgets(self) -> AnalyticsSnapshot:
        wallet = await self.active_wallet()
        await self._budget_storage.reset_budgets(wallet.id)
        await self._audit_logger.log_budgets_reset(wallet.id)
        return await self.refresh()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def available_categories(self) -> list[CategoryArg]:
        """System categories in declaration order, then custom ones."""
        categories: list[CategoryArg] = [system_category(value) for value in SystemCategory]
        categories.extend(await self._category_storage.list_categories())
        return categories

    async def create_category(self, name: str, emoji: str = "") -> CustomCategory:
        """
        Create a custom category shared by every wallet.

        Raises:
            InvalidInputError: If the name is empty or too long
        """
        try:
            category = CustomCategory(name=name, emoji=emoji)
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        await self._category_storage.save_category(category)
        await self._audit_logger.log_category_change(
            AuditEventType.CATEGORY_CREATED, category.id, category.name,
        )

        await self.refresh()
        return category

    async def rename_category(
        self,
        category_id: str,
        name: str,
        emoji: Optional[str] = None,
    ) -> CustomCategory:
        """
        Rename a custom category (and optionally change its emoji).

        Expenses keep a copy of the name and emoji, so those copies are
        updated in every wallet.

        Raises:
            NotFoundError: If the category doesn't exist
            InvalidInputError: If the new name is empty or too long
        """
        existing = await self._category_storage.get_category(category_id)
        if existing is None:
            raise NotFoundError(f"Category {category_id} not found")

        try:
            updated = CustomCategory(
                id=existing.id,
                name=name,
                emoji=existing.emoji if emoji is None else emoji,
            )
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        await self._category_storage.save_category(updated)
        await self._replace_category_on_expenses(category_id, updated)
        await self._audit_logger.log_category_change(
            AuditEventType.CATEGORY_UPDATED, updated.id, updated.name,
        )

        await self.refresh()
        return updated

    async def delete_category(self, category_id: str) -> int:
        """
        Delete a custom category, moving its expenses to "Others".

        Returns:
            Number of expenses reassigned across all wallets

        Raises:
            NotFoundError: If the category doesn't exist
        """
        existing = await self._category_storage.get_category(category_id)
        if existing is None:
            raise NotFoundError(f"Category {category_id} not found")

        reassigned = await self._replace_category_on_expenses(category_id, FALLBACK_CATEGORY)
        await self._category_storage.delete_category(category_id)
        await self._audit_logger.log_category_change(
            AuditEventType.CATEGORY_DELETED, existing.id, existing.name,
        )

        await self.refresh()
        return reassigned

    async def _replace_category_on_expenses(
        self,
        category_id: str,
        replacement: CategoryArg,
    ) -> int:
        total = 0
        for wallet in await self._wallet_storage.fetch_wallets():
            expenses = await self._expense_storage.list_expenses(wallet.id)
            changed = 0
            updated = []
            for expense in expenses:
                if (
                    isinstance(expense.category, CustomCategory)
                    and expense.category.id == category_id
                ):
                    expense = expense.model_copy(update={"category": replacement})
                    changed += 1
                updated.append(expense)

            if changed:
                await self._expense_storage.replace_expenses(wallet.id, updated)
                if replacement == FALLBACK_CATEGORY:
                    await self._audit_logger.log_expenses_reassigned(
                        category_id, wallet.id, changed,
                    )
            total += changed
        return total

    # =========================================================================
    # WALLETS
    # =========================================================================

    async def wallets(self) -> list[Wallet]:
        return await self._wallet_storage.fetch_wallets()

    async def select_wallet(self, wallet_id: str) -> AnalyticsSnapshot:
        """
        Make a wallet the active one.

        Raises:
            NotFoundError: If the wallet doesn't exist
        """
        for wallet in await self._wallet_storage.fetch_wallets():
            if wallet.id == wallet_id:
                self._active_wallet = wallet
                await self._audit_logger.log_wallet_change(
                    AuditEventType.WALLET_SELECTED, wallet.id, wallet.name,
                )
                return await self.refresh()
        raise NotFoundError(f"Wallet {wallet_id} not found")

    async def create_wallet(
        self,
        name: str,
        kind: WalletKind = WalletKind.PERSONAL,
        currency_code: Optional[str] = None,
    ) -> Wallet:
        """
        Create a wallet. The active wallet doesn't change.

        Raises:
            InvalidInputError: If the name is empty or the wallet limit is reached
        """
        if currency_code is None:
            currency_code = (await self.active_wallet()).currency_code
        wallet = await self._wallet_storage.create_wallet(name, kind, currency_code)
        await self._audit_logger.log_wallet_change(
            AuditEventType.WALLET_CREATED, wallet.id, wallet.name,
        )

        await self.refresh()
        return wallet

    async def update_wallet(
        self,
        wallet_id: str,
        name: Optional[str] = None,
        currency_code: Optional[str] = None,
    ) -> Wallet:
        """
        Rename a wallet or change its currency.

        Raises:
            NotFoundError: If the wallet doesn't exist
            InvalidInputError: If the new name is empty
        """
        current = next(
            (wallet for wallet in await self._wallet_storage.fetch_wallets() if wallet.id == wallet_id),
            None,
        )
        if current is None:
            raise NotFoundError(f"Wallet {wallet_id} not found")

        changes: dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise InvalidInputError("Wallet name is required.")
            changes["name"] = name.strip()
        if currency_code is not None:
            changes["currency_code"] = currency_code.strip().upper()

        try:
            updated = Wallet.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidInputError(str(e)) from e

        await self._wallet_storage.update_wallet(updated)
        await self._audit_logger.log_wallet_change(
            AuditEventType.WALLET_UPDATED, updated.id, updated.name,
        )

        if self._active_wallet is not None and self._active_wallet.id == updated.id:
            self._active_wallet = updated
        await self.refresh()
        return updated

    async def delete_wallet(self, wallet_id: str) -> None:
        """
        Delete a wallet with its expenses and budgets.

        If it was the active wallet, the first remaining one becomes active.

        Raises:
            NotFoundError: If the wallet doesn't exist
            InvalidInputError: If it is the last wallet
        """
        wallets = await self._wallet_storage.fetch_wallets()
        name = next((wallet.name for wallet in wallets if wallet.id == wallet_id), wallet_id)

        await self._wallet_storage.delete_wallet(wallet_id)
        await self._audit_logger.log_wallet_change(
            AuditEventType.WALLET_DELETED, wallet_id, name,
        )

        if self._active_wallet is not None and self._active_wallet.id == wallet_id:
            self._active_wallet = None
        await self.refresh()

    # =========================================================================
    # EXPORT / IMPORT / RESET
    # =========================================================================

    async def export_expenses(self, path: Union[str, Path]) -> int:
        """
        Write the active wallet's expenses and budgets to a JSON file.

        Returns:
            Number of expenses exported

        Raises:
            StorageError: If the file can't be written
        """
        wallet = await self.active_wallet()
        expenses = await self._expense_storage.list_expenses(wallet.id)
        budgets = await self._budget_storage.fetch_budgets(wallet.id)

        document = {
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "wallet": wallet.model_dump(mode="json"),
            "expenses": [expense.to_record() for expense in expenses],
            "budgets": budgets,
        }

        target = Path(path).expanduser()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            await self._audit_logger.log_error("export_failed", str(e), wallet_id=wallet.id)
            raise StorageError(f"Failed to export to {target}: {e}") from e

        await self._audit_logger.log_data_transfer(
            AuditEventType.DATA_EXPORTED, wallet.id, len(expenses), str(target),
        )
        return len(expenses)

    async def import_expenses(self, path: Union[str, Path]) -> int:
        """
        Replace the active wallet's expenses with those of an export file.

        Accepts the export document or a bare list of expense records.
        Budgets in the document are merged into the wallet's budgets, and
        custom categories the file references are recreated if missing.

        Returns:
            Number of expenses imported

        Raises:
            StorageError: If the file can't be read
            InvalidInputError: If the file isn't a valid export
        """
        source = Path(path).expanduser()
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Failed to read {source}: {e}") from e
        except ValueError as e:
            raise InvalidInputError(f"{source} is not valid JSON: {e}") from e

        if isinstance(payload, list):
            records, budgets = payload, {}
        elif isinstance(payload, dict) and isinstance(payload.get("expenses"), list):
            records, budgets = payload["expenses"], payload.get("budgets") or {}
        else:
            raise InvalidInputError(f"{source} doesn't contain an expense list")

        if not isinstance(budgets, dict):
            raise InvalidInputError(f"{source} has malformed budgets")

        try:
            expenses = [Expense.from_record(record) for record in records]
        except (ValidationError, KeyError, TypeError, AttributeError) as e:
            raise InvalidInputError(f"{source} has a malformed expense: {e}") from e

        wallet = await self.active_wallet()

        known = {category.id for category in await self._category_storage.list_categories()}
        for expense in expenses:
            category = expense.category
            if isinstance(category, CustomCategory) and category.id not in known:
                await self._category_storage.save_category(category)
                known.add(category.id)

        await self._expense_storage.replace_expenses(wallet.id, expenses)
        for month_key, amount in budgets.items():
            try:
                await self._budget_storage.set_budget(str(month_key), float(amount), wallet.id)
            except (InvalidInputError, TypeError, ValueError) as e:
                logger.warning("import_budget_skipped", month_key=month_key, error=str(e))

        await self._audit_logger.log_data_transfer(
            AuditEventType.DATA_IMPORTED, wallet.id, len(expenses), str(source),
        )

        await self.refresh()
        return len(expenses)

    async def reset_all_data(self) -> AnalyticsSnapshot:
        """
        Remove every expense, budget and custom category.

        Wallets themselves are kept.
        """
        for wallet in await self._wallet_storage.fetch_wallets():
            await self._expense_storage.replace_expenses(wallet.id, [])
            await self._budget_storage.reset_budgets(wallet.id)
            await self._audit_logger.log_data_reset(wallet.id)

        for category in await self._category_storage.list_categories():
            await self._category_storage.delete_category(category.id)

        return await self.refresh()
