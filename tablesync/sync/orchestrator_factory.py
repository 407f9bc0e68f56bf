"""
Composition root: build a SyncOrchestrator from the global configuration.
"""
import logging
from typing import Optional

from ..config.global_config_loader import GlobalConfig
from ..core.endpoints import Endpoint
from ..datastore.mysql_datastore import MySQLDatastore
from ..datastore.statistics import InformationSchemaStatisticsProvider
from ..process.process_controller import ProcessController
from ..schema.catalog import TableCatalog
from ..state.sync_state_store import SyncStateStore
from .sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


def create_orchestrator_from_config(global_config: GlobalConfig,
                                    catalog: Optional[TableCatalog] = None) -> SyncOrchestrator:
    """
    Create a SyncOrchestrator wired from configuration.

    Missing connection URLs leave the orchestrator unavailable instead of
    failing here; ``start`` reports the ConfigurationError.
    """
    sync_config = global_config.sync
    source = target = None
    if sync_config.is_configured:
        source = Endpoint.from_url(sync_config.master_url)
        target = Endpoint.from_url(sync_config.test_url)
    else:
        logger.warning("DBSYNC_MASTER_URL and DBSYNC_TEST_URL are not both set, sync is unavailable")

    statistics_provider = None
    if target is not None and sync_config.collect_statistics:
        statistics_provider = InformationSchemaStatisticsProvider(MySQLDatastore("statistics", target))

    return SyncOrchestrator(
        catalog=catalog or TableCatalog(schema_path=sync_config.schema_path),
        source=source,
        target=target,
        process_controller=ProcessController(
            tool_path=sync_config.tool_path,
            grace_period=sync_config.terminate_grace_period,
        ),
        state_store=SyncStateStore(max_log_entries=sync_config.log_buffer_size),
        statistics_provider=statistics_provider,
    )
