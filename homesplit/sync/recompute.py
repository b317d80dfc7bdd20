"""
Balance Recomputation on Change

DESIGN DECISION: Balances are never patched incrementally. Any change to
the ledger only *signals* that the balances are stale; the recomputer
then re-reads the whole ledger and folds it again.

The signal channel is a depth-one queue:
- A signal arriving while one is already pending replaces it
- Signals arriving during the debounce window are drained
- So a burst of writes costs one recomputation, not one per write

CRITICAL: A failed ledger read is NOT an empty ledger. The previous
sheet stays published and `last_error` is set, so the UI can say
"couldn't refresh" instead of showing everyone as settled.

A failed refresh stays stale until retried: run() re-signals itself with
exponential backoff, and ensure_current() recomputes while last_error
is set.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional

import structlog

from homesplit.audit import AuditLogger
from homesplit.config import get_settings
from homesplit.models import BalanceSheet, Roster
from homesplit.services.storage import ExpenseStorageInterface, StorageError
from homesplit.settlement import compute_balances


logger = structlog.get_logger(__name__)

_RECOMPUTE = object()
_STOP = object()

RETRY_MAX_SECONDS = 60.0

BalanceListener = Callable[[BalanceSheet], Any]


class BalanceRecomputer:
    """
    Keeps a published BalanceSheet in step with the expense ledger.

    Usage:
        recomputer = BalanceRecomputer(storage, roster)
        task = asyncio.create_task(recomputer.run())
        ...
        recomputer.notify_changed()   # after every write
        ...
        recomputer.stop()
        await task
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        roster: Roster,
        debounce_seconds: Optional[float] = None,
        listener: Optional[BalanceListener] = None,
        audit_logger: Optional[AuditLogger] = None,
        retry_seconds: float = 1.0,
    ):
        """
        Args:
            storage: Where the ledger is read from
            roster: The household members balances are computed for
            debounce_seconds: Quiet period before recomputing.
                             Defaults to the configured value.
            listener: Called with every published sheet (sync or async)
            audit_logger: Optional audit trail for recomputations
            retry_seconds: First delay before retrying a failed ledger read
                           from run(); doubles per failure up to a minute
        """
        if debounce_seconds is None:
            debounce_seconds = get_settings().app.recompute_debounce_seconds

        self._storage = storage
        self._roster = roster
        self._debounce = max(0.0, debounce_seconds)
        self._listener = listener
        self._audit_logger = audit_logger
        self._retry_seconds = max(0.0, retry_seconds)
        self._failures = 0
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._stopping = False
        self._running = False

        self.latest: Optional[BalanceSheet] = None
        self.last_error: Optional[StorageError] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_pending(self) -> bool:
        """Is a recomputation signal waiting to be picked up?"""
        return not self._queue.empty()

    def _offer(self, signal: object) -> None:
        try:
            self._queue.put_nowait(signal)
        except asyncio.QueueFull:
            # Last wins: the pending signal is superseded
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(signal)

    def notify_changed(self) -> None:
        """Signal that the ledger changed. Never blocks."""
        if self._stopping:
            return
        self._offer(_RECOMPUTE)

    def stop(self) -> None:
        """Ask the run loop to finish after its current recomputation."""
        self._stopping = True
        self._cancel_retry()
        self._offer(_STOP)

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _retry(self) -> None:
        self._retry_handle = None
        if not self._stopping and self.last_error is not None:
            self._offer(_RECOMPUTE)

    def _schedule_retry(self) -> None:
        """Re-signal after a failed read, backing off exponentially."""
        self._failures += 1
        delay = min(self._retry_seconds * 2 ** (self._failures - 1), RETRY_MAX_SECONDS)
        self._cancel_retry()
        logger.info("recompute_retry_scheduled", delay_seconds=delay, attempt=self._failures)
        self._retry_handle = asyncio.get_running_loop().call_later(delay, self._retry)

    def _drain(self) -> None:
        while True:
            try:
                signal = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if signal is _STOP:
                self._stopping = True

    async def _publish(self, sheet: BalanceSheet) -> None:
        if self._listener is None:
            return
        result = self._listener(sheet)
        if inspect.isawaitable(result):
            await result

    async def recompute_now(self) -> Optional[BalanceSheet]:
        """
        Read the ledger, fold it and publish the result.

        Returns:
            The new sheet, or the previous one if the ledger read failed
        """
        try:
            expenses = await self._storage.list_expenses()
        except StorageError as e:
            self.last_error = e
            logger.warning("recompute_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_recompute_failed(error_message=str(e))
            return self.latest

        snapshot = tuple(expenses)
        sheet = BalanceSheet(
            balances=compute_balances(snapshot, self._roster),
            expense_count=len(snapshot),
        )

        self.latest = sheet
        self.last_error = None
        logger.debug("balances_recomputed", expense_count=sheet.expense_count)

        if self._audit_logger:
            await self._audit_logger.log_balances_recomputed(
                expense_count=sheet.expense_count,
                net_balances={u: str(v) for u, v in sheet.net_balances().items()},
            )

        await self._publish(sheet)
        return sheet

    async def ensure_current(self) -> Optional[BalanceSheet]:
        """
        Recompute if a change is pending, nothing was published yet,
        or the last refresh failed.

        For callers that don't keep `run()` alive (e.g. a Streamlit rerun).
        """
        if self.latest is None or self.has_pending or self.last_error is not None:
            self._drain()
            return await self.recompute_now()
        return self.latest

    async def run(self) -> None:
        """Recompute whenever signalled, until stop() is called."""
        self._running = True
        logger.info("recomputer_started", debounce_seconds=self._debounce)
        try:
            while not self._stopping:
                signal = await self._queue.get()
                if signal is _STOP:
                    break

                await asyncio.sleep(self._debounce)
                self._drain()

                try:
                    await self.recompute_now()
                    if self.last_error is None:
                        self._failures = 0
                        self._cancel_retry()
                    elif not self._stopping:
                        self._schedule_retry()
                except Exception as e:
                    logger.exception("recompute_crashed", error=str(e))
                    if self._audit_logger:
                        await self._audit_logger.log_error(
                            error_type=type(e).__name__,
                            error_message=str(e),
                        )
        finally:
            self._cancel_retry()
            self._running = False
            logger.info("recomputer_stopped")
