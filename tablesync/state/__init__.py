from .sync_state_store import SyncStateStore, MAX_LOG_ENTRIES

__all__ = ['SyncStateStore', 'MAX_LOG_ENTRIES']
