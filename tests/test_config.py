"""
Tests for global configuration loading.
"""

import pytest
import yaml

from tablesync.config.global_config_loader import GlobalConfig, load_global_config
from tablesync.datastore.statistics import InformationSchemaStatisticsProvider
from tablesync.schema.catalog import TableCatalog
from tablesync.sync.orchestrator_factory import create_orchestrator_from_config


class TestGlobalConfig:

    def test_defaults(self):
        config = GlobalConfig.default()

        assert config.sync.tool_path == "pt-table-sync"
        assert config.sync.terminate_grace_period == 5.0
        assert config.sync.log_buffer_size == 1000
        assert not config.sync.is_configured
        assert config.api.port == 8010

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "tablesync.yaml"
        path.write_text(yaml.safe_dump({
            'sync': {
                'master_url': 'mysql://r:pw@master/prod',
                'test_url': 'mysql://w:pw@test/test',
                'terminate_grace_period': 2.5,
            },
            'api': {'port': 9000},
        }))

        config = GlobalConfig.from_yaml(str(path))

        assert config.sync.is_configured
        assert config.sync.terminate_grace_period == 2.5
        assert config.api.port == 9000
        assert config.api.host == "127.0.0.1"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = GlobalConfig.from_yaml(str(tmp_path / "missing.yaml"))

        assert config == GlobalConfig.default()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert GlobalConfig.from_yaml(str(path)) == GlobalConfig.default()

    def test_unknown_key_is_rejected(self):
        with pytest.raises(TypeError):
            GlobalConfig.from_dict({'sync': {'master': 'x'}})


class TestEnvironmentOverrides:

    def test_environment_wins_over_file(self, tmp_path):
        path = tmp_path / "tablesync.yaml"
        path.write_text(yaml.safe_dump({'sync': {'master_url': 'mysql://file@a/x', 'tool_path': '/opt/pt'}}))

        config = load_global_config(str(path), environ={
            'DBSYNC_MASTER_URL': 'mysql://env@b/x',
            'DBSYNC_TEST_URL': 'mysql://env@c/y',
        })

        assert config.sync.master_url == 'mysql://env@b/x'
        assert config.sync.test_url == 'mysql://env@c/y'
        assert config.sync.tool_path == '/opt/pt'

    def test_tool_path_override(self):
        config = load_global_config(environ={'PT_TABLE_SYNC_PATH': '/usr/local/bin/pt-table-sync'})

        assert config.sync.tool_path == '/usr/local/bin/pt-table-sync'

    def test_empty_values_are_ignored(self):
        config = GlobalConfig.default().apply_env({'DBSYNC_MASTER_URL': ''})

        assert config.sync.master_url is None

    def test_search_paths(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "tablesync.yaml").write_text(yaml.safe_dump({'api': {'port': 8123}}))
        monkeypatch.chdir(tmp_path)

        config = load_global_config(environ={})

        assert config.api.port == 8123


class TestOrchestratorFactory:

    def test_configured(self):
        config = GlobalConfig.from_dict({'sync': {
            'master_url': 'mysql://reader:pw@master.db:3310/prod',
            'test_url': 'mysql://writer:pw@test.db/test',
            'tool_path': '/opt/percona/bin/pt-table-sync',
            'terminate_grace_period': 1.5,
            'log_buffer_size': 50,
        }})

        orchestrator = create_orchestrator_from_config(config, catalog=TableCatalog(groups=[['a']]))

        assert orchestrator.is_available
        assert orchestrator.source.port == 3310
        assert orchestrator.target.database == 'test'
        assert orchestrator.process_controller.tool_path == '/opt/percona/bin/pt-table-sync'
        assert orchestrator.process_controller.grace_period == 1.5
        assert isinstance(orchestrator.statistics_provider, InformationSchemaStatisticsProvider)
        assert orchestrator.state_store.get_snapshot().tables.keys() == {'a'}

    def test_not_configured(self):
        orchestrator = create_orchestrator_from_config(GlobalConfig.default(), catalog=TableCatalog(groups=[['a']]))

        assert not orchestrator.is_available
        assert orchestrator.statistics_provider is None

    def test_statistics_can_be_disabled(self):
        config = GlobalConfig.from_dict({'sync': {
            'master_url': 'mysql://reader:pw@master.db/prod',
            'test_url': 'mysql://writer:pw@test.db/test',
            'collect_statistics': False,
        }})

        orchestrator = create_orchestrator_from_config(config, catalog=TableCatalog(groups=[['a']]))

        assert orchestrator.statistics_provider is None
