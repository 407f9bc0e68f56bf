from .sync_orchestrator import SyncOrchestrator
from .cancellation import CancellationToken
from .orchestrator_factory import create_orchestrator_from_config

__all__ = ['SyncOrchestrator', 'CancellationToken', 'create_orchestrator_from_config']
