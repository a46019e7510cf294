"""
Tests for the FinanceTracker flows.

Every flow runs against the in-memory key-value backend, with "today"
pinned to 15 June 2025.
"""

import asyncio
import json
import pytest
from datetime import date
from uuid import uuid4

from finance_tracker.audit import AuditLogger
from finance_tracker.config import Settings, get_settings
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.expense import (
    FALLBACK_CATEGORY,
    CustomCategory,
    SystemCategory,
    system_category,
)
from finance_tracker.orchestrator import FinanceTracker, parse_amount
from finance_tracker.services.storage import (
    DEFAULT_WALLET_ID,
    AuditStorageInterface,
    InMemoryKeyValueStore,
    InvalidInputError,
    LocalAuditStorage,
    LocalBudgetStorage,
    LocalCategoryStorage,
    LocalExpenseStorage,
    LocalWalletStorage,
    NotFoundError,
)


TODAY = date(2025, 6, 15)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def tracker(kv):
    tracker = FinanceTracker(
        expense_storage=LocalExpenseStorage(kv),
        budget_storage=LocalBudgetStorage(kv),
        category_storage=LocalCategoryStorage(kv),
        wallet_storage=LocalWalletStorage(kv),
        audit_logger=AuditLogger(LocalAuditStorage(kv)),
        clock=lambda: TODAY,
    )
    run(tracker.bootstrap())
    return tracker


def audit_types(kv):
    events = run(LocalAuditStorage(kv).get_recent_events())
    return [event.event_type for event in reversed(events)]


class TestParseAmount:
    """Tests for user-entered amounts."""

    def test_decimal_comma(self):
        assert parse_amount("12,50") == 12.5

    def test_numbers_pass_through(self):
        assert parse_amount(7) == 7.0

    @pytest.mark.parametrize("value", ["", "  ", "abc", "nan", "inf"])
    def test_invalid_amounts(self, value):
        with pytest.raises(InvalidInputError):
            parse_amount(value)


class TestBootstrap:
    """Tests for the initial state."""

    def test_default_wallet_and_current_month(self, tracker):
        assert run(tracker.active_wallet()).id == DEFAULT_WALLET_ID
        assert tracker.selected_period == (6, 2025)
        assert tracker.snapshot.total_spent == 0
        assert len(tracker.snapshot.daily_spending) == 30


class TestExpenseFlow:
    """Tests for adding, editing and deleting expenses."""

    def test_add_expense_recomputes(self, tracker, kv):
        expense = run(tracker.add_expense("Groceries", "12,50", date(2025, 6, 3)))
        assert expense.amount == 12.5
        assert expense.category == system_category(SystemCategory.FOOD)
        assert tracker.snapshot.total_spent == 12.5
        assert audit_types(kv)[-1] == AuditEventType.EXPENSE_ADDED

    def test_add_expense_defaults_to_today(self, tracker):
        expense = run(tracker.add_expense("Coffee", 3))
        assert expense.occurred_at == TODAY

    def test_add_expense_requires_title(self, tracker):
        with pytest.raises(InvalidInputError, match="title"):
            run(tracker.add_expense("  ", 10))
        assert tracker.snapshot.total_spent == 0

    def test_update_expense(self, tracker):
        expense = run(tracker.add_expense("Taxi", 20, category=system_category("transportation")))
        run(tracker.update_expense(expense.model_copy(update={"amount": 35.0})))
        assert tracker.snapshot.total_spent == 35

    def test_update_missing_expense(self, tracker):
        expense = run(tracker.add_expense("Taxi", 20))
        run(tracker.delete_expense(expense.id))
        with pytest.raises(NotFoundError):
            run(tracker.update_expense(expense))

    def test_delete_expense(self, tracker):
        expense = run(tracker.add_expense("Taxi", 20))
        assert run(tracker.delete_expense(expense.id)) is True
        assert run(tracker.delete_expense(expense.id)) is False
        assert tracker.snapshot.total_spent == 0

    def test_list_expenses_newest_first(self, tracker):
        run(tracker.add_expense("Old", 1, date(2025, 6, 1)))
        run(tracker.add_expense("New", 2, date(2025, 6, 10)))
        run(tracker.add_expense("Last month", 3, date(2025, 5, 10)))

        assert [e.title for e in run(tracker.list_expenses())] == ["New", "Old"]
        assert len(run(tracker.list_expenses(selected_month_only=False))) == 3


class TestBudgetFlow:
    """Tests for monthly budgets."""

    def test_set_budget_for_selected_month(self, tracker, kv):
        snapshot = run(tracker.set_budget(300))
        assert snapshot.current_budget == 300
        assert snapshot.days_remaining_in_month == 15
        assert snapshot.budget_remaining_per_day == 20
        assert run(tracker.budgets()) == {"06-2025": 300}
        assert audit_types(kv)[-1] == AuditEventType.BUDGET_SET

    def test_negative_budget_rejected_and_audited(self, tracker, kv):
        with pytest.raises(InvalidInputError):
            run(tracker.set_budget(-50))
        assert run(tracker.budgets()) == {}
        assert audit_types(kv)[-1] == AuditEventType.BUDGET_REJECTED

    def test_invalid_month_rejected(self, tracker):
        with pytest.raises(InvalidInputError):
            run(tracker.set_budget(100, month=13, year=2025))

    def test_reset_budgets(self, tracker):
        run(tracker.set_budget(300))
        snapshot = run(tracker.reset_budgets())
        assert snapshot.current_budget == 0


class TestMonthNavigation:
    """Tests for changing the selected month."""

    def test_change_month(self, tracker):
        run(tracker.add_expense("March", 40, date(2025, 3, 3)))
        snapshot = run(tracker.change_month(3, 2025))
        assert snapshot.total_spent == 40
        assert snapshot.days_remaining_in_month == 0

    def test_previous_month_crosses_year(self, tracker):
        run(tracker.change_month(1, 2025))
        snapshot = run(tracker.previous_month())
        assert (snapshot.selected_month, snapshot.selected_year) == (12, 2024)

    def test_next_month(self, tracker):
        snapshot = run(tracker.next_month())
        assert (snapshot.selected_month, snapshot.selected_year) == (7, 2025)

    def test_invalid_month(self, tracker):
        with pytest.raises(ValueError):
            run(tracker.change_month(0, 2025))


class TestCategoryFlow:
    """Tests for custom categories."""

    def test_create_category_listed_after_system_ones(self, tracker):
        gifts = run(tracker.create_category("Gifts", "🎁"))
        categories = run(tracker.available_categories())
        assert len(categories) == len(SystemCategory) + 1
        assert categories[-1] == gifts

    def test_create_category_requires_name(self, tracker):
        with pytest.raises(InvalidInputError):
            run(tracker.create_category("  "))

    def test_rename_updates_expense_copies(self, tracker):
        pets = run(tracker.create_category("Pets", "🐶"))
        run(tracker.add_expense("Food bowl", 15, category=pets))

        run(tracker.rename_category(pets.id, "Animals"))

        stored = run(tracker.list_expenses())[0]
        assert stored.category.name == "Animals"
        assert stored.category.emoji == "🐶"
        assert tracker.snapshot.spending_by_category[0].category.name == "Animals"

    def test_rename_missing_category(self, tracker):
        with pytest.raises(NotFoundError):
            run(tracker.rename_category("ghost", "Name"))

    def test_delete_reassigns_to_others_in_every_wallet(self, tracker, kv):
        pets = run(tracker.create_category("Pets", "🐶"))
        run(tracker.add_expense("Vet", 80, category=pets))
        trip = run(tracker.create_wallet("Trip"))
        run(tracker.select_wallet(trip.id))
        run(tracker.add_expense("Pet hotel", 40, category=pets))

        reassigned = run(tracker.delete_category(pets.id))

        assert reassigned == 2
        assert tracker.snapshot.spending_by_category[0].category == FALLBACK_CATEGORY
        run(tracker.select_wallet(DEFAULT_WALLET_ID))
        assert run(tracker.list_expenses())[0].category == FALLBACK_CATEGORY
        assert run(LocalCategoryStorage(kv).list_categories()) == []
        assert AuditEventType.EXPENSES_REASSIGNED in audit_types(kv)


class TestWalletFlow:
    """Tests for wallet management."""

    def test_wallets_isolate_expenses(self, tracker):
        run(tracker.add_expense("Home", 10))
        trip = run(tracker.create_wallet("Trip"))
        snapshot = run(tracker.select_wallet(trip.id))
        assert snapshot.total_spent == 0

    def test_select_missing_wallet(self, tracker):
        with pytest.raises(NotFoundError):
            run(tracker.select_wallet("ghost"))

    def test_wallet_currency_used_for_insights(self, tracker):
        trip = run(tracker.create_wallet("Trip", currency_code="USD"))
        run(tracker.select_wallet(trip.id))
        run(tracker.set_budget(100))
        run(tracker.add_expense("Hotel", 50))
        snapshot = tracker.snapshot

        projection = [i for i in snapshot.insights if i.title == "Projected Overspending"][0]
        assert projection.description.endswith("$1,400.00.")

    def test_update_active_wallet(self, tracker):
        updated = run(tracker.update_wallet(DEFAULT_WALLET_ID, name="Home", currency_code="gbp"))
        assert updated.name == "Home"
        assert run(tracker.active_wallet()).currency_code == "GBP"

    def test_update_wallet_empty_name(self, tracker):
        with pytest.raises(InvalidInputError):
            run(tracker.update_wallet(DEFAULT_WALLET_ID, name=" "))

    def test_delete_active_wallet_falls_back(self, tracker):
        trip = run(tracker.create_wallet("Trip"))
        run(tracker.select_wallet(trip.id))
        run(tracker.delete_wallet(trip.id))
        assert run(tracker.active_wallet()).id == DEFAULT_WALLET_ID

    def test_last_wallet_kept(self, tracker):
        with pytest.raises(InvalidInputError):
            run(tracker.delete_wallet(DEFAULT_WALLET_ID))


class TestDataTransfer:
    """Tests for export, import and reset."""

    def test_export_reset_import(self, tracker, tmp_path):
        run(tracker.add_expense("Rent", 900, date(2025, 6, 1), system_category("rent")))
        run(tracker.add_expense("Bread", 3, date(2025, 6, 2)))
        run(tracker.set_budget(1500))
        path = tmp_path / "export.json"

        assert run(tracker.export_expenses(path)) == 2
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["budgets"] == {"06-2025": 1500}

        snapshot = run(tracker.reset_all_data())
        assert snapshot.total_spent == 0
        assert snapshot.current_budget == 0

        assert run(tracker.import_expenses(path)) == 2
        assert tracker.snapshot.total_spent == 903
        assert tracker.snapshot.current_budget == 1500

    def test_import_bare_list_recreates_custom_category(self, tracker, tmp_path):
        path = tmp_path / "expenses.json"
        path.write_text(json.dumps([{
            "id": str(uuid4()),
            "title": "Flowers",
            "amount": 25,
            "occurred_at": "2025-06-02",
            "category": "custom:gifts",
            "category_name": "Gifts",
            "category_emoji": "🎁",
        }]), encoding="utf-8")

        assert run(tracker.import_expenses(path)) == 1
        categories = run(tracker.available_categories())
        assert CustomCategory(id="gifts", name="Gifts") in categories

    @pytest.mark.parametrize("content", ["{oops", '{"expenses": 3}', '[{"title": "no amount"}]'])
    def test_malformed_import_rejected(self, tracker, tmp_path, content):
        run(tracker.add_expense("Keep me", 5))
        path = tmp_path / "bad.json"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(InvalidInputError):
            run(tracker.import_expenses(path))
        assert tracker.snapshot.total_spent == 5

    def test_reset_removes_custom_categories(self, tracker, kv):
        run(tracker.create_category("Pets"))
        run(tracker.reset_all_data())
        assert run(LocalCategoryStorage(kv).list_categories()) == []
        assert AuditEventType.DATA_RESET in audit_types(kv)


class TestFromSettings:
    """Tests for building the tracker from configuration."""

    @pytest.fixture(autouse=True)
    def clear_settings_cache(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("FINANCE_DISPLAY_CURRENCY_CODE", "USD")
        monkeypatch.setenv("FINANCE_DISPLAY_DEFAULT_CATEGORY", "rent")

        tracker = FinanceTracker.from_settings(Settings(), clock=lambda: TODAY)
        run(tracker.bootstrap())

        assert run(tracker.active_wallet()).currency_code == "USD"
        assert run(tracker.add_expense("Flat", 700)).category == system_category("rent")

    def test_file_backend_persists(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "file")
        monkeypatch.setenv("FINANCE_STORAGE_DATA_PATH", str(tmp_path / "data.json"))

        first = FinanceTracker.from_settings(Settings(), clock=lambda: TODAY)
        run(first.bootstrap())
        run(first.add_expense("Lunch", 12))

        second = FinanceTracker.from_settings(Settings(), clock=lambda: TODAY)
        assert run(second.bootstrap()).total_spent == 12

    def test_audit_retention_from_env(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("AUDIT_MAX_EVENTS", "2")
        kv = InMemoryKeyValueStore()

        tracker = FinanceTracker.from_settings(Settings(), kv=kv, clock=lambda: TODAY)
        run(tracker.bootstrap())
        for title in ("Lunch", "Dinner", "Coffee"):
            run(tracker.add_expense(title, 5))

        assert len(json.loads(kv.get("audit_log"))) == 2


class BrokenAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise OSError("read-only file system")

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(BrokenAuditStorage())
        assert run(logger.log(AuditEventBuilder.budgets_reset("w1"))) is False

    def test_local_only_logging(self):
        assert run(AuditLogger().log(AuditEventBuilder.budgets_reset("w1"))) is True

    def test_tracker_survives_broken_audit_storage(self, kv):
        tracker = FinanceTracker(
            expense_storage=LocalExpenseStorage(kv),
            budget_storage=LocalBudgetStorage(kv),
            category_storage=LocalCategoryStorage(kv),
            wallet_storage=LocalWalletStorage(kv),
            audit_logger=AuditLogger(BrokenAuditStorage()),
            clock=lambda: TODAY,
        )
        run(tracker.add_expense("Still saved", 9))
        assert tracker.snapshot.total_spent == 9
