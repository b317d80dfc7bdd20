"""
Audit Models for HomeSplit

Every write to the shared ledger or shopping list is logged for audit
purposes. With several people editing the same household data, the audit
trail answers "who added this?" and "where did that expense go?".

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_DELETED = "expense_deleted"

    # Shopping list
    SHOPPING_ITEM_ADDED = "shopping_item_added"
    SHOPPING_ITEM_UPDATED = "shopping_item_updated"
    SHOPPING_ITEM_DELETED = "shopping_item_deleted"

    # Balances
    BALANCES_RECOMPUTED = "balances_recomputed"
    RECOMPUTE_FAILED = "recompute_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
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
        description="Type of entity (e.g., 'expense', 'shopping_item')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who did it
    actor: Optional[str] = Field(
        default=None,
        description="Household member who triggered the event"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

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

    is_user_action: bool = Field(
        default=False,
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
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "actor": self.actor,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         actor, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.actor or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_recorded(expense_id, "sachin", "300", "equal")
        event = AuditEventBuilder.shopping_item_deleted(item_id, "Milk", "sunny")
    """

    @staticmethod
    def expense_recorded(
        expense_id: UUID,
        paid_by: str,
        amount: str,
        split_type: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            actor=paid_by,
            correlation_id=correlation_id,
            description=f"Expense recorded: {amount} paid by {paid_by} ({split_type})",
            details={
                "amount": amount,
                "split_type": split_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        expense_id: UUID,
        paid_by: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            actor=paid_by,
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            actor=actor,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def shopping_item_added(
        item_id: UUID,
        name: str,
        actor: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHOPPING_ITEM_ADDED,
            entity_type="shopping_item",
            entity_id=item_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Shopping item added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def shopping_item_updated(
        item_id: UUID,
        name: str,
        changes: dict[str, Any],
        actor: Optional[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHOPPING_ITEM_UPDATED,
            entity_type="shopping_item",
            entity_id=item_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Shopping item updated: {name}",
            details={"name": name, "changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def shopping_item_deleted(
        item_id: UUID,
        name: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHOPPING_ITEM_DELETED,
            entity_type="shopping_item",
            entity_id=item_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Shopping item deleted: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def balances_recomputed(
        expense_count: int,
        net_balances: dict[str, str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_RECOMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="balance_sheet",
            correlation_id=correlation_id,
            description=f"Balances recomputed over {expense_count} expenses",
            details={
                "expense_count": expense_count,
                "net_balances": net_balances,
            },
        )

    @staticmethod
    def recompute_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMPUTE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="balance_sheet",
            correlation_id=correlation_id,
            description="Balance recomputation failed; keeping previous balances",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
