"""
Error taxonomy for the table sync controller.

Configuration, tool, validation and state errors reject the initiating call.
Per-table errors are captured into table status and logs by the orchestrator
and never reject a run.
"""


class TableSyncError(Exception):
    """Base class for all table sync errors"""
    pass


class ConfigurationError(TableSyncError):
    """Source or target endpoint is not configured"""
    pass


class ToolUnavailableError(TableSyncError):
    """The external sync binary is missing or cannot be executed"""
    pass


class ValidationError(TableSyncError):
    """A requested table is not part of the catalog"""

    def __init__(self, message: str, invalid_tables=None):
        super().__init__(message)
        self.invalid_tables = list(invalid_tables or [])


class SyncStateError(TableSyncError):
    """Operation not allowed in the current run state (already running, not running)"""
    pass


class PerTableSyncError(TableSyncError):
    """The sync process for a single table failed"""

    def __init__(self, table: str, message: str, exit_code=None, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.table = table
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class ProcessSpawnError(PerTableSyncError):
    """The OS refused to launch the sync process"""
    pass


class CycleWarning(UserWarning):
    """The dependency graph contains a cycle; the closing edge was dropped"""
    pass
