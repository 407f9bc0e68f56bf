"""
Datastore package for the statistics queries that decorate the sync status.
"""

from .base_datastore import BaseDatastore
from .mysql_datastore import MySQLDatastore
from .statistics import StatisticsProvider, InformationSchemaStatisticsProvider

__all__ = [
    'BaseDatastore',
    'MySQLDatastore',
    'StatisticsProvider',
    'InformationSchemaStatisticsProvider',
]
