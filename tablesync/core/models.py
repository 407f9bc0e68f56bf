import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional, Any

from .enums import TableStatus, LogLevel


@dataclass
class TableSyncStatus:
    """Sync status of a single table"""
    table: str
    status: TableStatus = TableStatus.TODO
    rows_processed: Optional[int] = None
    rows_total: Optional[int] = None
    # Decoration from information_schema
    row_count: Optional[int] = None
    table_size_mb: Optional[float] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    # Last successful sync, survives resets
    last_sync_time: Optional[datetime] = None

    def reset(self) -> None:
        """Reset run-specific fields, keeping table statistics and the last sync time"""
        self.status = TableStatus.TODO
        self.rows_processed = None
        self.rows_total = None
        self.started_at = None
        self.completed_at = None
        self.error = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass(frozen=True)
class LogEntry:
    """A single run-visible log line"""
    timestamp: datetime
    level: LogLevel
    message: str
    table: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'level': self.level.value,
            'table': self.table,
            'message': self.message,
        }


@dataclass
class SyncState:
    """Run-level state, written only by the orchestrator loop"""
    is_running: bool = False
    is_stopping: bool = False
    start_time: Optional[datetime] = None
    current_table: Optional[str] = None
    total_tables: int = 0
    completed_tables: int = 0


@dataclass
class SyncSnapshot:
    """Point-in-time copy of the run state, safe to hand to readers"""
    is_running: bool
    is_stopping: bool
    start_time: Optional[datetime]
    current_table: Optional[str]
    total_tables: int
    completed_tables: int
    tables: Dict[str, TableSyncStatus] = field(default_factory=dict)
    logs: List[LogEntry] = field(default_factory=list)

    @classmethod
    def capture(cls, state: SyncState, tables: Dict[str, TableSyncStatus],
                logs: List[LogEntry]) -> 'SyncSnapshot':
        return cls(
            is_running=state.is_running,
            is_stopping=state.is_stopping,
            start_time=state.start_time,
            current_table=state.current_table,
            total_tables=state.total_tables,
            completed_tables=state.completed_tables,
            tables={name: copy.copy(status) for name, status in tables.items()},
            logs=list(logs),
        )


@dataclass(frozen=True)
class TableStatistics:
    """Row count and on-disk size of a table"""
    row_count: int = 0
    table_size_mb: float = 0.0
