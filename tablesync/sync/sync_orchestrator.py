import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Sequence, TYPE_CHECKING

from ..core.endpoints import Endpoint
from ..core.enums import LogLevel, TableStatus
from ..core.exceptions import ConfigurationError, PerTableSyncError, SyncStateError, ValidationError
from ..core.models import SyncSnapshot
from ..process.output_classifier import (
    LogEvent,
    OutputEvent,
    ProgressEvent,
    RowProcessedEvent,
    TableErrorEvent,
)
from ..process.process_controller import ProcessController, ToolCheck
from ..schema.catalog import TableCatalog
from ..state.sync_state_store import SyncStateStore
from .cancellation import CancellationToken

if TYPE_CHECKING:
    from ..datastore.statistics import StatisticsProvider

NOT_CONFIGURED_MESSAGE = (
    "Database sync is not configured. "
    "Please set DBSYNC_MASTER_URL and DBSYNC_TEST_URL environment variables."
)


class SyncOrchestrator:
    """
    Run-level state machine: Idle -> Running -> Stopping -> Idle.

    Tables of a run are synced strictly one after another in dependency order.
    A failing table is recorded and the batch moves on; only precondition
    failures reject ``start``.
    """

    def __init__(self,
                 catalog: TableCatalog,
                 source: Optional[Endpoint],
                 target: Optional[Endpoint],
                 process_controller: Optional[ProcessController] = None,
                 state_store: Optional[SyncStateStore] = None,
                 statistics_provider: Optional['StatisticsProvider'] = None,
                 logger: Optional[logging.Logger] = None):
        self.catalog = catalog
        self.source = source
        self.target = target
        self.process_controller = process_controller or ProcessController()
        self.state_store = state_store or SyncStateStore()
        self.statistics_provider = statistics_provider
        self.logger = logger or logging.getLogger(f"{__name__}.SyncOrchestrator")
        self._start_lock = asyncio.Lock()
        self._token: Optional[CancellationToken] = None
        self._run_task: Optional[asyncio.Task] = None

        self.state_store.register_tables(self.catalog.all_tables)

    @property
    def is_available(self) -> bool:
        return self.source is not None and self.target is not None

    @property
    def is_running(self) -> bool:
        return self.state_store.is_running

    async def check_tool(self) -> ToolCheck:
        return await self.process_controller.check_tool()

    async def get_state(self) -> SyncSnapshot:
        """Snapshot of the run, decorated with table statistics when available"""
        if self.statistics_provider is not None:
            await self.state_store.ensure_statistics(self.catalog.all_tables, self.statistics_provider)
        return self.state_store.get_snapshot()

    def clear_logs(self) -> None:
        self.state_store.clear_logs()

    async def close(self) -> None:
        """Release resources held for statistics; call once the orchestrator is idle"""
        if self.statistics_provider is not None:
            await self.statistics_provider.close()

    async def start(self, table_names: Optional[Sequence[str]] = None, dry_run: bool = True) -> List[str]:
        """
        Validate preconditions and launch a run in the background.

        Returns the ordered list of tables that will be synced.
        """
        async with self._start_lock:
            if not self.is_available:
                raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

            if self.state_store.is_running:
                raise SyncStateError("Sync is already running")

            await self.process_controller.verify_tool()

            if table_names:
                selected = list(dict.fromkeys(table_names))
                invalid = self.catalog.unknown(selected)
                if invalid:
                    raise ValidationError(f"Invalid table names: {', '.join(invalid)}", invalid)
                tables = self.catalog.order(selected)
            else:
                tables = self.catalog.all_tables

            self.state_store.register_tables(self.catalog.all_tables)
            self.state_store.reset_tables(tables)
            self.state_store.begin_run(len(tables))
            self._token = CancellationToken()

            store = self.state_store
            store.record_log(LogLevel.INFO, f"Sync started for {len(tables)} table(s){' (DRY RUN)' if dry_run else ''}")
            store.record_log(LogLevel.INFO, f"Master DSN: {self.source.masked_dsn()}")
            store.record_log(LogLevel.INFO, f"Slave DSN: {self.target.masked_dsn()}")

            self._run_task = asyncio.create_task(self._run(tables, dry_run, self._token))
            return tables

    async def stop(self) -> None:
        if not self.state_store.is_running:
            raise SyncStateError("Sync is not running")

        if self._token is not None:
            self._token.cancel()
        self.state_store.set_stopping()
        self.state_store.record_log(LogLevel.INFO, "Stopping sync...")

        if self.process_controller.terminate():
            self.state_store.record_log(LogLevel.INFO, "Terminating current sync process...")

    async def wait_until_idle(self) -> None:
        """Wait for the current run, if any, to finish"""
        if self._run_task is not None:
            await asyncio.shield(self._run_task)

    async def _run(self, tables: List[str], dry_run: bool, token: CancellationToken) -> None:
        store = self.state_store
        failed = 0
        stopped = False
        try:
            for table in tables:
                if token.is_cancelled:
                    store.record_log(LogLevel.WARNING, token.reason or "Sync stopped by user")
                    stopped = True
                    break

                if not await self._sync_table(table, dry_run):
                    failed += 1
        finally:
            snapshot = store.get_snapshot()
            store.finish_run()
            if stopped:
                store.record_log(
                    LogLevel.INFO,
                    f"Sync stopped after {snapshot.completed_tables} of {len(tables)} table(s)"
                )
            elif failed:
                store.record_log(
                    LogLevel.WARNING,
                    f"Sync completed for all tables: {snapshot.completed_tables} succeeded, {failed} failed"
                )
            else:
                store.record_log(LogLevel.INFO, "Sync completed for all tables")

    async def _sync_table(self, table: str, dry_run: bool) -> bool:
        store = self.state_store
        store.set_current_table(table)
        store.upsert_table_status(table, status=TableStatus.BUSY, started_at=datetime.now(), error=None)
        store.record_log(LogLevel.INFO, f"Starting sync for table: {table}", table)

        try:
            await self.process_controller.start_sync(
                table, self.source, self.target, dry_run,
                on_event=lambda event: self._apply_event(table, event),
            )
        except Exception as e:
            if not isinstance(e, PerTableSyncError):
                self.logger.exception(f"Unexpected error while syncing {table}")
            message = str(e) or e.__class__.__name__
            store.upsert_table_status(table, status=TableStatus.ERROR, error=message, completed_at=datetime.now())
            store.record_log(LogLevel.ERROR, f"Error syncing table {table}: {message}", table)
            return False
        else:
            completed_at = datetime.now()
            store.upsert_table_status(table, status=TableStatus.DONE, error=None,
                                      completed_at=completed_at, last_sync_time=completed_at)
            store.increment_completed()
            store.record_log(LogLevel.INFO, f"Completed sync for table: {table}", table)
            return True
        finally:
            store.set_current_table(None)

    def _apply_event(self, table: str, event: OutputEvent) -> None:
        store = self.state_store
        if isinstance(event, LogEvent):
            store.record_log(event.level, event.message, table)
        elif isinstance(event, RowProcessedEvent):
            store.increment_rows_processed(table, event.count)
        elif isinstance(event, ProgressEvent):
            store.upsert_table_status(table, rows_processed=event.processed, rows_total=event.total)
        elif isinstance(event, TableErrorEvent):
            # Provisional until the exit code is known
            store.upsert_table_status(table, error=event.message)
