"""
MySQL datastore implementation.
"""
from typing import Dict, List, Optional, Any

import aiomysql

from .base_datastore import BaseDatastore
from ..core.endpoints import DEFAULT_MYSQL_PORT, Endpoint


class MySQLDatastore(BaseDatastore):
    """MySQL datastore backed by an aiomysql connection pool"""

    def __init__(self, name: str, endpoint: Endpoint, max_connections: int = 2):
        super().__init__(name, endpoint)
        self.max_connections = max_connections

    async def _create_connection(self) -> None:
        self._connection_pool = await aiomysql.create_pool(
            host=self.endpoint.host,
            port=self.endpoint.port or DEFAULT_MYSQL_PORT,
            user=self.endpoint.user,
            password=self.endpoint.password or '',
            db=self.endpoint.database,
            autocommit=True,
            minsize=1,
            maxsize=self.max_connections,
        )

    async def _cleanup_connections(self) -> None:
        if self._connection_pool:
            self._connection_pool.close()
            await self._connection_pool.wait_closed()
            self._connection_pool = None

    async def fetch_all(self, query: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        if not self._is_connected or not self._connection_pool:
            raise RuntimeError(f"MySQL datastore {self.name} is not connected")

        self._logger.debug(f"Executing MySQL query: {query}")
        async with self._connection_pool.acquire() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cur:
                await cur.execute(query, params or [])
                return list(await cur.fetchall())
