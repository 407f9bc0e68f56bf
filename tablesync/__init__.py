"""
Table Sync - dependency ordered master to test table synchronization

Main modules:
- core: Data models, enums, endpoint descriptors and errors
- schema: Schema dependency parsing, topological ordering and the table catalog
- state: Shared run state and the run log buffer
- process: pt-table-sync process lifecycle and output classification
- sync: Run-level orchestration and cancellation
- config: Configuration loading
"""

from .core.models import SyncSnapshot, TableSyncStatus, LogEntry
from .core.endpoints import Endpoint
from .schema.catalog import TableCatalog
from .state.sync_state_store import SyncStateStore
from .process.process_controller import ProcessController
from .sync.sync_orchestrator import SyncOrchestrator
from .sync.orchestrator_factory import create_orchestrator_from_config
from .config.global_config_loader import GlobalConfig, load_global_config

__version__ = "1.0.0"
__all__ = [
    'SyncSnapshot',
    'TableSyncStatus',
    'LogEntry',
    'Endpoint',
    'TableCatalog',
    'SyncStateStore',
    'ProcessController',
    'SyncOrchestrator',
    'create_orchestrator_from_config',
    'GlobalConfig',
    'load_global_config',
]
