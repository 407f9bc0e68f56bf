from .enums import TableStatus, LogLevel
from .models import TableSyncStatus, LogEntry, SyncState, SyncSnapshot, TableStatistics
from .endpoints import Endpoint, mask_secrets
from .exceptions import (
    TableSyncError,
    ConfigurationError,
    ToolUnavailableError,
    ValidationError,
    SyncStateError,
    PerTableSyncError,
    ProcessSpawnError,
    CycleWarning,
)

__all__ = [
    'TableStatus',
    'LogLevel',
    'TableSyncStatus',
    'LogEntry',
    'SyncState',
    'SyncSnapshot',
    'TableStatistics',
    'Endpoint',
    'mask_secrets',
    'TableSyncError',
    'ConfigurationError',
    'ToolUnavailableError',
    'ValidationError',
    'SyncStateError',
    'PerTableSyncError',
    'ProcessSpawnError',
    'CycleWarning',
]
