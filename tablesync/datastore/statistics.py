"""
Table statistics (row count, size) used to decorate the sync status.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from ..core.models import TableStatistics
from .base_datastore import BaseDatastore

STATISTICS_QUERY = """
    SELECT
        table_name AS table_name,
        table_rows AS row_count,
        ROUND(((data_length + index_length) / 1024 / 1024), 2) AS table_size_mb
    FROM information_schema.TABLES
    WHERE table_schema = DATABASE()
      AND table_name IN ({placeholders})
"""


class StatisticsProvider(ABC):

    @abstractmethod
    async def fetch_statistics(self, table_names: Sequence[str]) -> Dict[str, TableStatistics]:
        """Return statistics for the tables that exist; missing tables are left out"""
        pass

    async def close(self) -> None:
        """Release connections held by the provider"""
        pass


class InformationSchemaStatisticsProvider(StatisticsProvider):
    """Reads approximate row counts and sizes from MySQL information_schema"""

    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore
        self.logger = logging.getLogger(f"{__name__}.InformationSchemaStatisticsProvider")

    async def fetch_statistics(self, table_names: Sequence[str]) -> Dict[str, TableStatistics]:
        names: List[str] = list(table_names)
        if not names:
            return {}

        await self.datastore.connect()
        query = STATISTICS_QUERY.format(placeholders=", ".join(["%s"] * len(names)))
        rows = await self.datastore.fetch_all(query, names)

        statistics = {}
        for row in rows:
            # information_schema column casing differs between MySQL versions
            row = {key.lower(): value for key, value in row.items()}
            statistics[row['table_name']] = TableStatistics(
                row_count=int(row.get('row_count') or 0),
                table_size_mb=float(row.get('table_size_mb') or 0),
            )
        self.logger.debug(f"Fetched statistics for {len(statistics)} tables")
        return statistics

    async def close(self) -> None:
        await self.datastore.disconnect()
