from .global_config_loader import GlobalConfig, SyncConfig, ApiConfig, load_global_config

__all__ = ['GlobalConfig', 'SyncConfig', 'ApiConfig', 'load_global_config']
