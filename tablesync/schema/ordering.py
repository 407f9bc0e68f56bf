"""
Dependency ordering of tables.

Referenced tables come before the tables that reference them, so inserts on the
target never hit a missing parent row. Real schemas contain circular foreign
keys; a cycle is reported and its closing edge dropped instead of failing.
"""
import logging
import warnings
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import CycleWarning
from .dependency_parser import ParseResult, TableDependencyGraph

logger = logging.getLogger(__name__)

_UNVISITED, _VISITING, _VISITED = 0, 1, 2


class TopologicalSorter:
    """
    Depth-first topological sort with three-color marking.

    Tables are visited in input order, their dependencies in declaration order,
    so the result is deterministic. Edges that leave the input subset are
    ignored. Edges closing a cycle are collected in ``dropped_edges``.
    """

    def __init__(self, graph: Optional[TableDependencyGraph] = None):
        self.graph = graph if graph is not None else TableDependencyGraph()
        self.dropped_edges: List[Tuple[str, str]] = []

    def sort(self, tables: Sequence[str]) -> List[str]:
        self.dropped_edges = []
        selected = list(dict.fromkeys(tables))
        in_subset = set(selected)
        marks: Dict[str, int] = {table: _UNVISITED for table in selected}
        result: List[str] = []

        for root in selected:
            if marks[root] != _UNVISITED:
                continue
            # Explicit stack of (table, iterator over its dependencies)
            marks[root] = _VISITING
            stack = [(root, iter(self._dependencies(root, in_subset)))]
            while stack:
                table, deps = stack[-1]
                advanced = False
                for dep in deps:
                    if marks[dep] == _VISITING:
                        self._drop_edge(table, dep)
                    elif marks[dep] == _UNVISITED:
                        marks[dep] = _VISITING
                        stack.append((dep, iter(self._dependencies(dep, in_subset))))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    marks[table] = _VISITED
                    result.append(table)

        return result

    def _dependencies(self, table: str, in_subset: set) -> List[str]:
        return [dep for dep in self.graph.dependencies_of(table) if dep in in_subset and dep != table]

    def _drop_edge(self, table: str, dependency: str) -> None:
        self.dropped_edges.append((table, dependency))
        message = f"Circular dependency detected: {table} -> {dependency}, ignoring this edge"
        logger.warning(message)
        warnings.warn(message, CycleWarning, stacklevel=3)


def topological_sort(tables: Sequence[str], graph: TableDependencyGraph) -> List[str]:
    """Order tables so that referenced tables precede the tables referencing them"""
    return TopologicalSorter(graph).sort(tables)


def get_ordered_tables(tables: Sequence[str], parse_result: ParseResult) -> List[str]:
    """
    Order tables using a parse result, falling back to the input order.

    The fallback applies when the schema could not be parsed, so callers always
    get a usable batch order even without dependency information.
    """
    if not parse_result.ok:
        logger.error(f"Error determining table order, using original order: {parse_result.error}")
        return list(tables)

    try:
        return topological_sort(tables, parse_result.graph)
    except Exception as e:
        logger.error(f"Error determining table order, using original order: {e}")
        return list(tables)
