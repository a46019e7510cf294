"""
Audit Models for Finance Tracker

Every mutation of the local stores is recorded as an audit event.
This provides:
1. A history of what changed in each wallet
2. Debugging information when analytics look wrong
3. Ability to reconstruct why a budget or category changed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them,
not even on a full data reset.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every store mutation has its own event type.
    """
    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSES_REASSIGNED = "expenses_reassigned"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_REJECTED = "budget_rejected"
    BUDGETS_RESET = "budgets_reset"

    # Custom categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Wallets
    WALLET_CREATED = "wallet_created"
    WALLET_UPDATED = "wallet_updated"
    WALLET_DELETED = "wallet_deleted"
    WALLET_SELECTED = "wallet_selected"

    # Bulk data operations
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    DATA_RESET = "data_reset"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every store mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'wallet')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    wallet_id: Optional[str] = Field(
        default=None,
        description="Wallet the change happened in, if wallet-scoped"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=True,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "wallet_id": self.wallet_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, wallet_id, title, amount)
        event = AuditEventBuilder.budget_set(month_key, amount, wallet_id)
    """

    @staticmethod
    def expense_added(
        expense_id: UUID,
        wallet_id: str,
        title: str,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=str(expense_id),
            wallet_id=wallet_id,
            description=f"Expense added: {title or 'untitled'} ({amount:.2f})",
            details={"title": title, "amount": amount},
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        wallet_id: str,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=str(expense_id),
            wallet_id=wallet_id,
            description="Expense updated",
            details={"amount": amount},
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        wallet_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=str(expense_id),
            wallet_id=wallet_id,
            description="Expense deleted",
        )

    @staticmethod
    def expenses_reassigned(
        category_id: str,
        wallet_id: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_REASSIGNED,
            entity_type="category",
            entity_id=category_id,
            wallet_id=wallet_id,
            description=f"{count} expenses moved to Others after category deletion",
            details={"count": count},
            is_user_action=False,
        )

    @staticmethod
    def budget_set(
        month_key: str,
        amount: float,
        wallet_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=month_key,
            wallet_id=wallet_id,
            description=f"Budget for {month_key} set to {amount:.2f}",
            details={"amount": amount},
        )

    @staticmethod
    def budget_rejected(
        month_key: str,
        amount: float,
        wallet_id: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            entity_id=month_key,
            wallet_id=wallet_id,
            description=f"Budget for {month_key} rejected",
            details={"amount": amount},
            error_message=reason,
        )

    @staticmethod
    def budgets_reset(wallet_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_RESET,
            entity_type="budget",
            wallet_id=wallet_id,
            description="All budgets cleared",
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        category_id: str,
        name: str,
    ) -> AuditEvent:
        verb = {
            AuditEventType.CATEGORY_CREATED: "created",
            AuditEventType.CATEGORY_UPDATED: "updated",
            AuditEventType.CATEGORY_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            description=f"Custom category {verb}: {name}",
            details={"name": name},
        )

    @staticmethod
    def wallet_changed(
        event_type: AuditEventType,
        wallet_id: str,
        name: str,
    ) -> AuditEvent:
        verb = {
            AuditEventType.WALLET_CREATED: "created",
            AuditEventType.WALLET_UPDATED: "updated",
            AuditEventType.WALLET_DELETED: "deleted",
            AuditEventType.WALLET_SELECTED: "selected",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            entity_type="wallet",
            entity_id=wallet_id,
            wallet_id=wallet_id,
            description=f"Wallet {verb}: {name}",
            details={"name": name},
        )

    @staticmethod
    def data_transferred(
        event_type: AuditEventType,
        wallet_id: str,
        count: int,
        path: str,
    ) -> AuditEvent:
        direction = "exported to" if event_type == AuditEventType.DATA_EXPORTED else "imported from"
        return AuditEvent(
            event_type=event_type,
            entity_type="expense",
            wallet_id=wallet_id,
            description=f"{count} expenses {direction} {path}",
            details={"count": count, "path": path},
        )

    @staticmethod
    def data_reset(wallet_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            severity=AuditSeverity.WARNING,
            wallet_id=wallet_id,
            description="All expenses, budgets and custom categories cleared",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        wallet_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            wallet_id=wallet_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            is_user_action=False,
        )
