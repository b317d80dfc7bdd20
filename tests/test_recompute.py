"""Tests for the balance recomputer."""

import asyncio
from decimal import Decimal

from homesplit.audit import AuditLogger
from homesplit.models import AuditEventType, BalanceSheet
from homesplit.services.storage import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    StorageConnectionError,
)
from homesplit.sync import BalanceRecomputer


class CountingStorage(InMemoryExpenseStorage):
    """Counts ledger reads; can be switched to fail."""

    def __init__(self, expenses=None):
        super().__init__(expenses)
        self.reads = 0
        self.fail = False

    async def list_expenses(self):
        self.reads += 1
        if self.fail:
            raise StorageConnectionError("sheet unreachable")
        return await super().list_expenses()


async def stop_and_wait(recomputer, task):
    recomputer.stop()
    await asyncio.wait_for(task, timeout=2)


class TestRecomputeNow:
    """Tests for a single recomputation."""

    def test_publishes_sheet(self, ledger, roster):
        storage = CountingStorage(ledger)
        recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)

        sheet = asyncio.run(recomputer.recompute_now())

        assert isinstance(sheet, BalanceSheet)
        assert recomputer.latest is sheet
        assert sheet.expense_count == 3
        assert sheet.net_balances() == {
            "sachin": Decimal("100"),
            "sunny": Decimal("500"),
            "adarsh": Decimal("-600"),
        }
        assert recomputer.last_error is None

    def test_storage_failure_keeps_previous_sheet(self, ledger, roster):
        storage = CountingStorage(ledger)
        audit_storage = InMemoryAuditStorage()
        recomputer = BalanceRecomputer(
            storage,
            roster,
            debounce_seconds=0,
            audit_logger=AuditLogger(audit_storage),
        )

        async def scenario():
            first = await recomputer.recompute_now()
            storage.fail = True
            second = await recomputer.recompute_now()
            return first, second

        first, second = asyncio.run(scenario())

        assert second is first
        assert isinstance(recomputer.last_error, StorageConnectionError)
        assert any(
            e.event_type == AuditEventType.RECOMPUTE_FAILED for e in audit_storage._events
        )

    def test_failure_before_any_sheet(self, roster):
        storage = CountingStorage()
        storage.fail = True
        recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)

        assert asyncio.run(recomputer.recompute_now()) is None
        assert recomputer.latest is None
        assert recomputer.last_error is not None

    def test_error_cleared_after_recovery(self, roster):
        storage = CountingStorage()
        storage.fail = True
        recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)

        async def scenario():
            await recomputer.recompute_now()
            storage.fail = False
            return await recomputer.recompute_now()

        sheet = asyncio.run(scenario())
        assert sheet is not None
        assert recomputer.last_error is None

    def test_sync_and_async_listeners(self, ledger, roster):
        seen = []

        async def async_listener(sheet):
            seen.append(("async", sheet.expense_count))

        def sync_listener(sheet):
            seen.append(("sync", sheet.expense_count))

        async def scenario():
            storage = CountingStorage(ledger)
            await BalanceRecomputer(
                storage, roster, debounce_seconds=0, listener=sync_listener,
            ).recompute_now()
            await BalanceRecomputer(
                storage, roster, debounce_seconds=0, listener=async_listener,
            ).recompute_now()

        asyncio.run(scenario())
        assert seen == [("sync", 3), ("async", 3)]


class TestRunLoop:
    """Tests for signal coalescing in the run loop."""

    def test_burst_coalesces_to_one_recompute(self, ledger, roster):
        storage = CountingStorage(ledger)

        async def scenario():
            recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)
            for _ in range(5):
                recomputer.notify_changed()
            assert recomputer.has_pending

            task = asyncio.create_task(recomputer.run())
            await asyncio.sleep(0.05)
            await stop_and_wait(recomputer, task)
            return recomputer

        recomputer = asyncio.run(scenario())
        assert storage.reads == 1
        assert recomputer.latest.expense_count == 3
        assert not recomputer.is_running

    def test_signals_during_debounce_are_drained(self, ledger, roster):
        storage = CountingStorage(ledger)

        async def scenario():
            recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0.1)
            task = asyncio.create_task(recomputer.run())
            await asyncio.sleep(0)

            recomputer.notify_changed()
            await asyncio.sleep(0.02)
            recomputer.notify_changed()
            recomputer.notify_changed()

            await asyncio.sleep(0.3)
            await stop_and_wait(recomputer, task)

        asyncio.run(scenario())
        assert storage.reads == 1

    def test_separate_changes_recompute_separately(self, ledger, roster):
        storage = CountingStorage(ledger)
        published = []

        async def scenario():
            recomputer = BalanceRecomputer(
                storage, roster, debounce_seconds=0, listener=published.append,
            )
            task = asyncio.create_task(recomputer.run())

            recomputer.notify_changed()
            await asyncio.sleep(0.05)
            await storage.delete_expense(ledger[0].id)
            recomputer.notify_changed()
            await asyncio.sleep(0.05)

            await stop_and_wait(recomputer, task)

        asyncio.run(scenario())
        assert storage.reads == 2
        assert [sheet.expense_count for sheet in published] == [3, 2]

    def test_loop_survives_storage_failure(self, ledger, roster):
        storage = CountingStorage(ledger)

        async def scenario():
            recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)
            task = asyncio.create_task(recomputer.run())

            storage.fail = True
            recomputer.notify_changed()
            await asyncio.sleep(0.05)
            failed_error = recomputer.last_error

            storage.fail = False
            recomputer.notify_changed()
            await asyncio.sleep(0.05)

            await stop_and_wait(recomputer, task)
            return recomputer, failed_error

        recomputer, failed_error = asyncio.run(scenario())
        assert failed_error is not None
        assert recomputer.last_error is None
        assert recomputer.latest.expense_count == 3

    def test_loop_survives_listener_error(self, ledger, roster):
        storage = CountingStorage(ledger)

        def bad_listener(sheet):
            raise RuntimeError("ui gone")

        async def scenario():
            recomputer = BalanceRecomputer(
                storage, roster, debounce_seconds=0, listener=bad_listener,
            )
            task = asyncio.create_task(recomputer.run())
            recomputer.notify_changed()
            await asyncio.sleep(0.05)
            recomputer.notify_changed()
            await asyncio.sleep(0.05)
            assert recomputer.is_running
            await stop_and_wait(recomputer, task)

        asyncio.run(scenario())
        assert storage.reads == 2

    def test_notify_after_stop_ignored(self, roster):
        async def scenario():
            recomputer = BalanceRecomputer(CountingStorage(), roster, debounce_seconds=0)
            recomputer.stop()
            recomputer.notify_changed()
            await asyncio.wait_for(recomputer.run(), timeout=1)
            return recomputer

        recomputer = asyncio.run(scenario())
        assert recomputer.latest is None


class TestEnsureCurrent:
    """Tests for on-demand refresh without a running loop."""

    def test_recomputes_only_when_stale(self, ledger, roster):
        storage = CountingStorage(ledger)

        async def scenario():
            recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)
            first = await recomputer.ensure_current()
            again = await recomputer.ensure_current()
            recomputer.notify_changed()
            third = await recomputer.ensure_current()
            return first, again, third

        first, again, third = asyncio.run(scenario())
        assert again is first
        assert third is not first
        assert storage.reads == 2

    def test_failed_refresh_retried_on_next_call(self, ledger, roster):
        storage = CountingStorage(ledger[:2])

        async def scenario():
            recomputer = BalanceRecomputer(storage, roster, debounce_seconds=0)
            before = await recomputer.ensure_current()

            await storage.save_expense(ledger[2])
            recomputer.notify_changed()
            storage.fail = True
            stale = await recomputer.ensure_current()

            storage.fail = False
            after = await recomputer.ensure_current()
            return recomputer, before, stale, after

        recomputer, before, stale, after = asyncio.run(scenario())
        assert stale is before
        assert after.expense_count == 3
        assert recomputer.last_error is None
        assert storage.reads == 3


class TestRetryAfterFailure:
    """Tests for the run loop recovering from a failed ledger read."""

    def test_run_retries_without_new_signal(self, ledger, roster):
        storage = CountingStorage(ledger)

        async def scenario():
            recomputer = BalanceRecomputer(
                storage, roster, debounce_seconds=0, retry_seconds=0.02,
            )
            task = asyncio.create_task(recomputer.run())

            storage.fail = True
            recomputer.notify_changed()
            await asyncio.sleep(0.01)
            failed_error = recomputer.last_error

            storage.fail = False
            await asyncio.sleep(0.2)

            await stop_and_wait(recomputer, task)
            return recomputer, failed_error

        recomputer, failed_error = asyncio.run(scenario())
        assert failed_error is not None
        assert recomputer.last_error is None
        assert recomputer.latest.expense_count == 3

    def test_backoff_grows_while_failing(self, roster):
        storage = CountingStorage()
        storage.fail = True

        async def scenario():
            recomputer = BalanceRecomputer(
                storage, roster, debounce_seconds=0, retry_seconds=0.05,
            )
            task = asyncio.create_task(recomputer.run())
            recomputer.notify_changed()
            # Reads at ~0, 0.05, 0.15, 0.35 with doubling delays
            await asyncio.sleep(0.25)
            await stop_and_wait(recomputer, task)

        asyncio.run(scenario())
        assert storage.reads == 3

    def test_stop_cancels_pending_retry(self, roster):
        storage = CountingStorage()
        storage.fail = True

        async def scenario():
            recomputer = BalanceRecomputer(
                storage, roster, debounce_seconds=0, retry_seconds=0.05,
            )
            task = asyncio.create_task(recomputer.run())
            recomputer.notify_changed()
            await asyncio.sleep(0.01)
            await stop_and_wait(recomputer, task)
            await asyncio.sleep(0.1)
            return recomputer

        recomputer = asyncio.run(scenario())
        assert storage.reads == 1
        assert not recomputer.has_pending
