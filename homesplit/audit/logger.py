"""
Audit Logger

DESIGN DECISION: Every write to shared household data is logged.
This provides:
1. Complete traceability (who added or removed what)
2. Debugging capability when balances look wrong
3. A history housemates can read in the AuditLog sheet

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from homesplit.models.audit import AuditEvent, AuditEventBuilder
from homesplit.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and housemate visibility)
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
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
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

    async def log_expense_recorded(
        self,
        expense_id: UUID,
        paid_by: str,
        amount: str,
        split_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly recorded expense."""
        await self.log(AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            paid_by=paid_by,
            amount=amount,
            split_type=split_type,
            correlation_id=correlation_id,
        ))

    async def log_expense_rejected(
        self,
        expense_id: UUID,
        paid_by: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense that failed validation."""
        await self.log(AuditEventBuilder.expense_rejected(
            expense_id=expense_id,
            paid_by=paid_by,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_shopping_item_added(
        self,
        item_id: UUID,
        name: str,
        actor: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.shopping_item_added(
            item_id=item_id,
            name=name,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_shopping_item_updated(
        self,
        item_id: UUID,
        name: str,
        changes: dict[str, Any],
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.shopping_item_updated(
            item_id=item_id,
            name=name,
            changes=changes,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_shopping_item_deleted(
        self,
        item_id: UUID,
        name: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.shopping_item_deleted(
            item_id=item_id,
            name=name,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_balances_recomputed(
        self,
        expense_count: int,
        net_balances: dict[str, str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.balances_recomputed(
            expense_count=expense_count,
            net_balances=net_balances,
            correlation_id=correlation_id,
        ))

    async def log_recompute_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recompute_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
