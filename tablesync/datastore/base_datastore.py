"""
Base datastore interface for database connections used by the controller.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any

from ..core.endpoints import Endpoint


class BaseDatastore(ABC):
    """
    Abstract base class for datastore implementations.

    Provides idempotent connect/disconnect guarded by a lock and a raw query
    method. Drivers are loaded lazily by subclasses.
    """

    def __init__(self, name: str, endpoint: Endpoint):
        self.name = name
        self.endpoint = endpoint
        self._connection_pool = None
        self._connection_lock = asyncio.Lock()
        self._is_connected = False
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @abstractmethod
    async def _create_connection(self) -> None:
        """Create the actual database connection - implemented by subclasses"""
        pass

    @abstractmethod
    async def _cleanup_connections(self) -> None:
        """Clean up database connections - implemented by subclasses"""
        pass

    @abstractmethod
    async def fetch_all(self, query: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Run a SELECT and return rows as dictionaries"""
        pass

    async def connect(self) -> None:
        """Connect to the datastore - idempotent operation"""
        async with self._connection_lock:
            if self._is_connected:
                return

            self._logger.info(f"Connecting to {self.__class__.__name__}: {self.name}")
            try:
                await self._create_connection()
                self._is_connected = True
            except Exception as e:
                self._logger.error(f"Failed to connect to {self.__class__.__name__} {self.name}: {e}")
                await self._cleanup_connections()
                raise

    async def disconnect(self) -> None:
        """Disconnect from the datastore - idempotent operation"""
        async with self._connection_lock:
            if not self._is_connected:
                return

            try:
                await self._cleanup_connections()
            except Exception as e:
                self._logger.error(f"Error during disconnect from {self.__class__.__name__} {self.name}: {e}")
            # Still mark as disconnected even if cleanup failed
            self._is_connected = False
