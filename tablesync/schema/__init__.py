from .dependency_parser import SchemaDependencyParser, ParseResult, TableDependencyGraph
from .ordering import TopologicalSorter, topological_sort, get_ordered_tables
from .catalog import TableCatalog, TABLES_LARGE, TABLES_NORMAL

__all__ = [
    'SchemaDependencyParser',
    'ParseResult',
    'TableDependencyGraph',
    'TopologicalSorter',
    'topological_sort',
    'get_ordered_tables',
    'TableCatalog',
    'TABLES_LARGE',
    'TABLES_NORMAL',
]
