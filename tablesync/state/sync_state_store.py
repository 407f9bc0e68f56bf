import asyncio
import copy
import logging
from collections import deque
from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, Optional, TYPE_CHECKING

from ..core.enums import LogLevel
from ..core.models import LogEntry, SyncSnapshot, SyncState, TableSyncStatus

if TYPE_CHECKING:
    from ..datastore.statistics import StatisticsProvider

MAX_LOG_ENTRIES = 1000

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class SyncStateStore:
    """
    Single source of truth for run state, per-table status and run logs.

    Written by one orchestrator loop, read by any number of snapshot readers.
    Every mutation and every snapshot holds the same lock, so a snapshot never
    observes half of a mutation.
    """

    def __init__(self, max_log_entries: int = MAX_LOG_ENTRIES, logger: Optional[logging.Logger] = None):
        self._state = SyncState()
        self._tables: Dict[str, TableSyncStatus] = {}
        self._logs: deque = deque(maxlen=max_log_entries)
        self._lock = Lock()
        self._stats_lock: Optional[asyncio.Lock] = None
        self.logger = logger or logging.getLogger(f"{__name__}.SyncStateStore")

    def get_snapshot(self) -> SyncSnapshot:
        with self._lock:
            return SyncSnapshot.capture(self._state, self._tables, list(self._logs))

    # Logs

    def record_log(self, level: LogLevel, message: str, table: Optional[str] = None) -> LogEntry:
        level = LogLevel(level)
        entry = LogEntry(timestamp=datetime.now(), level=level, message=message, table=table)
        with self._lock:
            self._logs.append(entry)
        prefix = f"[{table}] " if table else ""
        self.logger.log(_PYTHON_LEVELS[level], f"{prefix}{message}")
        return entry

    def clear_logs(self) -> None:
        with self._lock:
            self._logs.clear()
        self.record_log(LogLevel.INFO, "Logs cleared")

    # Tables

    def register_tables(self, tables: Iterable[str]) -> None:
        """Make sure every table has a status entry"""
        with self._lock:
            for table in tables:
                if table not in self._tables:
                    self._tables[table] = TableSyncStatus(table=table)

    def upsert_table_status(self, table: str, **patch) -> TableSyncStatus:
        """Merge a partial update into a table's status, creating a todo entry if needed"""
        with self._lock:
            status = self._tables.get(table)
            if status is None:
                status = TableSyncStatus(table=table)
                self._tables[table] = status
            for key, value in patch.items():
                if not hasattr(status, key) or key == 'table':
                    raise AttributeError(f"Unknown table status field: {key}")
                setattr(status, key, value)
            return copy.copy(status)

    def increment_rows_processed(self, table: str, amount: int = 1) -> None:
        with self._lock:
            status = self._tables.setdefault(table, TableSyncStatus(table=table))
            status.rows_processed = (status.rows_processed or 0) + amount

    def reset_tables(self, tables: Iterable[str]) -> None:
        """Put tables back to todo for a new run"""
        with self._lock:
            for table in tables:
                status = self._tables.setdefault(table, TableSyncStatus(table=table))
                status.reset()

    # Run state

    def begin_run(self, total_tables: int) -> None:
        with self._lock:
            self._state.is_running = True
            self._state.is_stopping = False
            self._state.start_time = datetime.now()
            self._state.current_table = None
            self._state.total_tables = total_tables
            self._state.completed_tables = 0

    def set_current_table(self, table: Optional[str]) -> None:
        with self._lock:
            self._state.current_table = table

    def set_stopping(self) -> None:
        with self._lock:
            self._state.is_stopping = True

    def increment_completed(self) -> int:
        with self._lock:
            self._state.completed_tables += 1
            return self._state.completed_tables

    def finish_run(self) -> None:
        with self._lock:
            self._state.is_running = False
            self._state.is_stopping = False
            self._state.current_table = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.is_running

    # Statistics

    async def ensure_statistics(self, table_names: Iterable[str], stats_provider: 'StatisticsProvider') -> bool:
        """
        Fetch row counts and sizes once, when any tracked table still lacks them.

        Tables missing from the provider's answer are zeroed. Returns True when
        a fetch happened and succeeded.
        """
        self.register_tables(table_names)

        if self._stats_lock is None:
            self._stats_lock = asyncio.Lock()

        async with self._stats_lock:
            with self._lock:
                missing = [name for name, status in self._tables.items() if status.row_count is None]
                tracked = list(self._tables)
            if not missing:
                return False

            try:
                statistics = await stats_provider.fetch_statistics(tracked)
            except Exception as e:
                self.logger.warning(f"Error fetching table statistics: {e}")
                return False

            with self._lock:
                for name in tracked:
                    status = self._tables[name]
                    stats = statistics.get(name)
                    status.row_count = stats.row_count if stats else 0
                    status.table_size_mb = stats.table_size_mb if stats else 0.0
            self.logger.debug(f"Loaded statistics for {len(statistics)} of {len(tracked)} tables")
            return True
