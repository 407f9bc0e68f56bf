"""
Tests for foreign key extraction from Prisma schemas.
"""

import pytest

from tablesync.schema.dependency_parser import (
    ParseResult,
    SchemaDependencyParser,
    TableDependencyGraph,
)


@pytest.fixture
def parser():
    return SchemaDependencyParser()


class TestSchemaDependencyParser:

    def test_sample_schema_edges(self, parser, sample_schema):
        result = parser.parse(sample_schema)

        assert result.ok
        assert result.graph['accounts'] == ('security_users',)
        assert result.graph['security_users'] == ('security_roles',)
        assert result.graph['security_roles'] == ()

    def test_back_relations_produce_no_edges(self, parser):
        schema = """
model parent {
  ID       Int     @id
  children child[]
}

model child {
  ID       Int     @id
  ParentID Int
  parent   parent  @relation(fields: [ParentID], references: [ID])
}
"""
        result = parser.parse(schema)

        assert result.graph.dependencies_of('parent') == ()
        assert result.graph.dependencies_of('child') == ('parent',)

    def test_self_reference_is_excluded(self, parser):
        schema = """
model contacts {
  ID       String    @id
  ParentID String?
  parent   contacts? @relation("contacts_tree", fields: [ParentID], references: [ID])
  children contacts[] @relation("contacts_tree")
}
"""
        result = parser.parse(schema)

        assert result.ok
        assert result.graph['contacts'] == ()

    def test_named_relation_and_multiple_targets(self, parser):
        schema = """
model fietsenstallingen {
  ID        String    @id
  SiteID    String?
  ExploitantID String?
  site      contacts? @relation("fietsenstallingen_SiteIDTocontacts", fields: [SiteID], references: [ID])
  exploitant contacts? @relation("fietsenstallingen_ExploitantIDTocontacts", fields: [ExploitantID], references: [ID])
  typeID    String?
  type      fietsenstallingtypen? @relation(fields: [typeID], references: [id])
}
"""
        result = parser.parse(schema)

        # Duplicate targets collapse, declaration order is kept
        assert result.graph['fietsenstallingen'] == ('contacts', 'fietsenstallingtypen')

    def test_scalar_fields_are_ignored(self, parser):
        schema = """
model odd {
  ID   Int    @id
  Ref  String @relation(fields: [ID], references: [ID])
}
"""
        result = parser.parse(schema)

        assert result.graph['odd'] == ()

    def test_model_map_renames_tables(self, parser):
        schema = """
model Role {
  id    Int    @id
  users User[]
  @@map("security_roles")
}

model User {
  id     Int  @id
  roleId Int
  role   Role @relation(fields: [roleId], references: [id])

  @@map(name: "security_users")
}
"""
        result = parser.parse(schema)

        assert set(result.graph) == {'security_roles', 'security_users'}
        assert result.graph['security_users'] == ('security_roles',)

    def test_non_model_blocks_are_skipped(self, parser):
        schema = """
datasource db {
  provider = "mysql"
  url      = env("DATABASE_URL")
}

enum Kind {
  A
  B
}

model t {
  id Int @id
}
"""
        result = parser.parse(schema)

        assert result.ok
        assert list(result.graph) == ['t']

    def test_empty_schema(self, parser):
        result = parser.parse("")

        assert result.ok
        assert len(result.graph) == 0

    def test_unclosed_model_at_end(self, parser):
        schema = """
model security_roles {
  RoleID Int @id
}

model security_users {
  UserID String @id
  RoleID Int?
  security_roles security_roles? @relation(fields: [RoleID], references: [RoleID])
"""
        result = parser.parse(schema)

        assert not result.ok
        assert "security_users" in result.error
        assert "not closed" in result.error
        # Edges seen before the error are still reported
        assert result.graph['security_users'] == ('security_roles',)

    def test_model_opened_inside_model(self, parser):
        schema = "model a {\n  id Int @id\nmodel b {\n  id Int @id\n}\n"

        result = parser.parse(schema)

        assert not result.ok
        assert "line 3" in result.error

    def test_non_text_input(self, parser):
        result = parser.parse(None)

        assert not result.ok
        assert isinstance(result.graph, TableDependencyGraph)
        assert len(result.graph) == 0

    def test_parse_file(self, parser, tmp_path, sample_schema):
        path = tmp_path / "schema.prisma"
        path.write_text(sample_schema, encoding="utf-8")

        result = parser.parse_file(path)

        assert result.ok
        assert result.graph['accounts'] == ('security_users',)

    def test_parse_missing_file(self, parser, tmp_path):
        result = parser.parse_file(tmp_path / "missing.prisma")

        assert not result.ok
        assert "Could not read schema file" in result.error


class TestTableDependencyGraph:

    def test_dependencies_are_deduplicated(self):
        graph = TableDependencyGraph({'a': ['b', 'c', 'b']})

        assert graph['a'] == ('b', 'c')
        assert graph.dependencies_of('missing') == ()

    def test_parse_result_defaults(self):
        result = ParseResult()

        assert result.ok
        assert len(result.graph) == 0
