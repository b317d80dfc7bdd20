"""Tests for the audit logger."""

import asyncio
from uuid import uuid4

from homesplit.audit import AuditLogger, create_correlation_id
from homesplit.models import AuditEventBuilder, AuditEventType, AuditSeverity
from homesplit.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger persistence behaviour."""

    def test_local_only_logging_succeeds(self):
        logger = AuditLogger()
        assert asyncio.run(logger.log_recompute_failed(error_message="x")) is None

    def test_events_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        expense_id = uuid4()

        async def scenario():
            await logger.log_expense_recorded(
                expense_id=expense_id,
                paid_by="sachin",
                amount="300",
                split_type="equal",
                correlation_id=correlation_id,
            )
            await logger.log_expense_deleted(
                expense_id=expense_id,
                actor="sunny",
                correlation_id=correlation_id,
            )
            return await storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert [e.event_type for e in events] == [
            AuditEventType.EXPENSE_RECORDED,
            AuditEventType.EXPENSE_DELETED,
        ]
        assert events[1].actor == "sunny"

    def test_storage_failure_is_swallowed(self):
        logger = AuditLogger(FailingAuditStorage())
        event_result = asyncio.run(logger.log(
            AuditEventBuilder.system_error("ValueError", "bad")
        ))
        assert event_result is False

    def test_severity_levels(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        async def scenario():
            await logger.log_balances_recomputed(expense_count=3, net_balances={"a": "0"})
            await logger.log_external_service_error(service="storage", error_message="timeout")
            await logger.log_shopping_item_added(item_id=uuid4(), name="Milk", actor="sunny")
            return await storage.get_recent_events()

        severities = {e.event_type: e.severity for e in asyncio.run(scenario())}
        assert severities[AuditEventType.BALANCES_RECOMPUTED] == AuditSeverity.DEBUG
        assert severities[AuditEventType.EXTERNAL_SERVICE_ERROR] == AuditSeverity.ERROR
        assert severities[AuditEventType.SHOPPING_ITEM_ADDED] == AuditSeverity.INFO

    def test_correlation_ids_unique(self):
        assert create_correlation_id() != create_correlation_id()
