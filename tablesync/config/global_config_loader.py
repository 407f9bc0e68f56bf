import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field


@dataclass
class SyncConfig:
    """Source/target connections and the external tool"""
    master_url: Optional[str] = None
    test_url: Optional[str] = None
    tool_path: str = "pt-table-sync"
    terminate_grace_period: float = 5.0
    schema_path: str = "prisma/schema.prisma"
    log_buffer_size: int = 1000
    # Query row counts and sizes from the target's information_schema
    collect_statistics: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.master_url and self.test_url)


@dataclass
class ApiConfig:
    """HTTP API configuration"""
    host: str = "127.0.0.1"
    port: int = 8010
    status_log_limit: int = 100


@dataclass
class GlobalConfig:
    """Global configuration for the table sync controller"""
    sync: SyncConfig = field(default_factory=SyncConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlobalConfig':
        """Create GlobalConfig from dictionary"""
        return cls(
            sync=SyncConfig(**data.get('sync', {})),
            api=ApiConfig(**data.get('api', {})),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GlobalConfig':
        """Load GlobalConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            # Return default config if file doesn't exist
            return cls.default()

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def default(cls) -> 'GlobalConfig':
        """Return default configuration"""
        return cls()

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> 'GlobalConfig':
        """Environment variables take precedence over file values"""
        environ = os.environ if environ is None else environ
        if environ.get('DBSYNC_MASTER_URL'):
            self.sync.master_url = environ['DBSYNC_MASTER_URL']
        if environ.get('DBSYNC_TEST_URL'):
            self.sync.test_url = environ['DBSYNC_TEST_URL']
        if environ.get('PT_TABLE_SYNC_PATH'):
            self.sync.tool_path = environ['PT_TABLE_SYNC_PATH']
        return self


def load_global_config(config_path: Optional[str] = None,
                       environ: Optional[Dict[str, str]] = None) -> GlobalConfig:
    """
    Load global configuration from YAML file and apply environment overrides.
    If no path provided, looks for tablesync.yaml in standard locations.
    """
    if config_path:
        return GlobalConfig.from_yaml(config_path).apply_env(environ)

    # Try standard locations
    search_paths = [
        Path("./tablesync.yaml"),
        Path("./config/tablesync.yaml"),
        Path("/etc/tablesync/tablesync.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return GlobalConfig.from_yaml(str(path)).apply_env(environ)

    # Return default if no config found
    return GlobalConfig.default().apply_env(environ)
