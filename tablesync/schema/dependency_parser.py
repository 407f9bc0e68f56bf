"""
Foreign key dependency extraction from a Prisma schema.

This is a best-effort line scanner, not a grammar. It looks for relation fields
that own the foreign key, i.e. fields annotated with
``@relation(fields: [...], references: [...])``:

    user      security_users  @relation(fields: [UserID], references: [UserID])
    contacts? @relation("fietsenstallingen_SiteIDTocontacts", fields: [SiteID], references: [ID])

Back-relations (``security_users[]`` without ``fields``) do not produce edges.
"""
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

SCALAR_TYPES = frozenset([
    'String', 'Int', 'Boolean', 'DateTime', 'Decimal', 'BigInt', 'Float', 'Bytes', 'Json',
])

_MODEL_START = re.compile(r"^model\s+(\w+)\s*\{")
_MODEL_MAP = re.compile(r"^\s*@@map\(\s*(?:name:\s*)?\"([^\"]+)\"\s*\)")
_RELATION_ARGS = r"@relation\s*\([^)]*fields:\s*\[[^\]]+\][^)]*references:\s*\[[^\]]+\][^)]*\)"
# field name, then the referenced type, then the annotation
_FIELD_TYPE_RELATION = re.compile(r"(\w+)[ \t]+(\w+)\??(?:\[\])?[ \t]+" + _RELATION_ARGS)
# bare referenced type directly before the annotation
_TYPE_RELATION = re.compile(r"(\w+)\??(?:\[\])?[ \t]+" + _RELATION_ARGS)

logger = logging.getLogger(__name__)


class TableDependencyGraph(Mapping):
    """
    Read-only mapping of table name to the tables it references.

    Dependencies keep their declaration order and are de-duplicated.
    """

    def __init__(self, edges: Optional[Mapping] = None):
        self._edges: Dict[str, Tuple[str, ...]] = {
            table: tuple(dict.fromkeys(deps))
            for table, deps in (edges or {}).items()
        }

    def __getitem__(self, table: str) -> Tuple[str, ...]:
        return self._edges[table]

    def __iter__(self) -> Iterator[str]:
        return iter(self._edges)

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self) -> str:
        return f"TableDependencyGraph({self._edges!r})"

    def dependencies_of(self, table: str) -> Tuple[str, ...]:
        return self._edges.get(table, ())


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing a schema; ``error`` is set when parsing failed"""
    graph: TableDependencyGraph = field(default_factory=TableDependencyGraph)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SchemaDependencyParser:
    """Extract a TableDependencyGraph from Prisma schema text. Never raises."""

    def __init__(self, scalar_types: Iterable[str] = SCALAR_TYPES):
        self.scalar_types = frozenset(scalar_types)
        self.logger = logging.getLogger(f"{__name__}.SchemaDependencyParser")

    def parse_file(self, path: Union[str, Path]) -> ParseResult:
        try:
            content = Path(path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Could not read schema file {path}: {e}")
            return ParseResult(error=f"Could not read schema file {path}: {e}")
        return self.parse(content)

    def parse(self, content: str) -> ParseResult:
        if not isinstance(content, str):
            return ParseResult(error=f"Schema content must be text, got {type(content).__name__}")

        try:
            return self._parse(content)
        except Exception as e:
            self.logger.exception("Unexpected error while parsing schema")
            return ParseResult(error=f"Schema parse failed: {e}")

    def _parse(self, content: str) -> ParseResult:
        dependencies: Dict[str, List[str]] = {}
        table_names: Dict[str, str] = {}
        error = None

        current_model = None
        for line_no, line in enumerate(content.splitlines(), start=1):
            if current_model is None:
                match = _MODEL_START.match(line)
                if match:
                    current_model = match.group(1)
                    dependencies.setdefault(current_model, [])
                continue

            if line.strip() == '}':
                current_model = None
                continue

            if _MODEL_START.match(line):
                error = f"Model '{current_model}' is not closed before line {line_no}"
                break

            map_match = _MODEL_MAP.match(line)
            if map_match:
                table_names[current_model] = map_match.group(1)
                continue

            for referenced in self._referenced_models(line):
                if referenced != current_model and referenced not in dependencies[current_model]:
                    dependencies[current_model].append(referenced)

        if error is None and current_model is not None:
            error = f"Model '{current_model}' is not closed at end of schema"

        graph = TableDependencyGraph({
            table_names.get(model, model): [table_names.get(dep, dep) for dep in deps]
            for model, deps in dependencies.items()
        })

        if error:
            self.logger.warning(f"Schema parsed partially: {error}")
        else:
            self.logger.debug(f"Parsed dependencies for {len(graph)} models")

        return ParseResult(graph=graph, error=error)

    def _referenced_models(self, line: str) -> List[str]:
        found = []
        for match in _FIELD_TYPE_RELATION.finditer(line):
            found.append(match.group(2))
        for match in _TYPE_RELATION.finditer(line):
            found.append(match.group(1))
        return [name for name in found if name not in self.scalar_types]
