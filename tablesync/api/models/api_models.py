from datetime import datetime
from typing import Optional, List, Any
from pydantic import BaseModel, Field

from ...core.models import LogEntry, TableSyncStatus


class TableStatusModel(BaseModel):
    """Sync status of one table"""
    table: str
    status: str
    rows_processed: Optional[int] = None
    rows_total: Optional[int] = None
    row_count: Optional[int] = None
    table_size_mb: Optional[float] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    last_sync_time: Optional[datetime] = None

    @classmethod
    def from_status(cls, status: TableSyncStatus) -> 'TableStatusModel':
        return cls(**status.to_dict())


class LogEntryModel(BaseModel):
    """Run log entry"""
    timestamp: datetime
    level: str
    table: Optional[str] = None
    message: str

    @classmethod
    def from_entry(cls, entry: LogEntry) -> 'LogEntryModel':
        return cls(timestamp=entry.timestamp, level=entry.level.value, table=entry.table, message=entry.message)


class SyncStatusResponse(BaseModel):
    """Availability plus the current run state"""
    available: bool
    tool_installed: Optional[bool] = None
    message: Optional[str] = None
    is_running: bool = False
    is_stopping: bool = False
    start_time: Optional[datetime] = None
    current_table: Optional[str] = None
    total_tables: int = 0
    completed_tables: int = 0
    tables: List[TableStatusModel] = Field(default_factory=list)
    logs: List[LogEntryModel] = Field(default_factory=list)


class StartSyncRequest(BaseModel):
    """Body of a start request; omit tables to sync the whole catalog"""
    tables: Optional[List[str]] = None
    dry_run: bool = True


class ApiResponse(BaseModel):
    """Generic API response wrapper"""
    success: bool
    message: str
    data: Optional[Any] = None
