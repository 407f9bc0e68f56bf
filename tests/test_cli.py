"""
Tests for the click command line interface.
"""

import pytest
import yaml
from click.testing import CliRunner

from tablesync.cli.sync_cli import cli


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    for name in ("DBSYNC_MASTER_URL", "DBSYNC_TEST_URL", "PT_TABLE_SYNC_PATH"):
        monkeypatch.delenv(name, raising=False)

    def _write(**sync):
        path = tmp_path / "tablesync.yaml"
        path.write_text(yaml.safe_dump({'sync': sync}))
        return str(path)
    return _write


@pytest.fixture
def runner():
    return CliRunner()


class TestOrder:

    def test_dependency_order(self, runner, write_config, tmp_path, sample_schema):
        schema = tmp_path / "schema.prisma"
        schema.write_text(sample_schema)
        config = write_config(schema_path=str(schema))

        result = runner.invoke(cli, [
            '--global-config', config, 'order',
            '-t', 'accounts', '-t', 'security_users', '-t', 'security_roles',
        ])

        assert result.exit_code == 0, result.output
        lines = [line.strip() for line in result.output.splitlines() if line.strip()]
        assert lines == [
            "1. security_roles",
            "2. security_users  <- security_roles",
            "3. accounts  <- security_users",
        ]

    def test_unknown_table(self, runner, write_config, tmp_path):
        config = write_config(schema_path=str(tmp_path / "missing.prisma"))

        result = runner.invoke(cli, ['--global-config', config, 'order', '-t', 'nope'])

        assert result.exit_code == 2
        assert "Unknown table(s): nope" in result.output


class TestCheck:

    def test_not_configured(self, runner, write_config, fake_tool):
        config = write_config(tool_path=str(fake_tool))

        result = runner.invoke(cli, ['--global-config', config, 'check'])

        assert result.exit_code == 1
        assert "pt-table-sync 3.5.5" in result.output
        assert "not configured" in result.output

    def test_ready(self, runner, write_config, fake_tool):
        config = write_config(
            tool_path=str(fake_tool),
            master_url="mysql://reader:pw@master.db/prod",
            test_url="mysql://writer:pw@test.db/test",
            collect_statistics=False,
        )

        result = runner.invoke(cli, ['--global-config', config, 'check'])

        assert result.exit_code == 0, result.output


class TestRun:

    def test_run_single_table(self, runner, write_config, fake_tool, tool_behaviour, tmp_path):
        tool_behaviour({"accounts": {"exit": 1}})
        config = write_config(
            tool_path=str(fake_tool),
            master_url="mysql://reader:pw@master.db/prod",
            test_url="mysql://writer:pw@test.db/test",
            schema_path=str(tmp_path / "missing.prisma"),
            collect_statistics=False,
        )

        result = runner.invoke(cli, ['--global-config', config, 'run', '-t', 'accounts'])

        assert result.exit_code == 0, result.output
        assert "Syncing 1 table(s) (dry run)" in result.output
        assert "Completed 1 of 1 table(s)" in result.output

    def test_run_failure_exit_code(self, runner, write_config, fake_tool, tool_behaviour, tmp_path):
        tool_behaviour({"accounts": {"exit": 2, "stderr": ["Error: boom"]}})
        config = write_config(
            tool_path=str(fake_tool),
            master_url="mysql://reader:pw@master.db/prod",
            test_url="mysql://writer:pw@test.db/test",
            schema_path=str(tmp_path / "missing.prisma"),
            collect_statistics=False,
        )

        result = runner.invoke(cli, ['--global-config', config, 'run', '-t', 'accounts', '--execute'])

        assert result.exit_code == 1
        assert "accounts: Sync failed for table accounts with exit code 2" in result.output
