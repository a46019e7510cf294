"""
Audit Logger

DESIGN DECISION: Every store mutation is logged.
This provides:
1. A history of changes per wallet
2. Debugging capability when analytics look off
3. A local structured log alongside the persisted trail

The audit logger:
- Is async, like the stores it sits next to
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at the given level.

    structlog renders the JSON; stdlib only decides the level and the stream.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_added(
        self,
        expense_id: UUID,
        wallet_id: str,
        title: str,
        amount: float,
    ) -> None:
        """Log a new expense."""
        await self.log(AuditEventBuilder.expense_added(expense_id, wallet_id, title, amount))

    async def log_expense_updated(
        self,
        expense_id: UUID,
        wallet_id: str,
        amount: float,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(expense_id, wallet_id, amount))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        wallet_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(expense_id, wallet_id))

    async def log_expenses_reassigned(
        self,
        category_id: str,
        wallet_id: str,
        count: int,
    ) -> None:
        """Log expenses moved to the fallback category."""
        await self.log(AuditEventBuilder.expenses_reassigned(category_id, wallet_id, count))

    async def log_budget_set(
        self,
        month_key: str,
        amount: float,
        wallet_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.budget_set(month_key, amount, wallet_id))

    async def log_budget_rejected(
        self,
        month_key: str,
        amount: float,
        wallet_id: str,
        reason: str,
    ) -> None:
        """Log a budget refused by the budget store."""
        await self.log(AuditEventBuilder.budget_rejected(month_key, amount, wallet_id, reason))

    async def log_budgets_reset(self, wallet_id: str) -> None:
        await self.log(AuditEventBuilder.budgets_reset(wallet_id))

    async def log_category_change(
        self,
        event_type: AuditEventType,
        category_id: str,
        name: str,
    ) -> None:
        """Log creation, rename or deletion of a custom category."""
        await self.log(AuditEventBuilder.category_changed(event_type, category_id, name))

    async def log_wallet_change(
        self,
        event_type: AuditEventType,
        wallet_id: str,
        name: str,
    ) -> None:
        """Log creation, update, deletion or selection of a wallet."""
        await self.log(AuditEventBuilder.wallet_changed(event_type, wallet_id, name))

    async def log_data_transfer(
        self,
        event_type: AuditEventType,
        wallet_id: str,
        count: int,
        path: str,
    ) -> None:
        """Log an export or import of expenses."""
        await self.log(AuditEventBuilder.data_transferred(event_type, wallet_id, count, path))

    async def log_data_reset(self, wallet_id: str) -> None:
        await self.log(AuditEventBuilder.data_reset(wallet_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        wallet_id: Optional[str] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            wallet_id=wallet_id,
        ))
