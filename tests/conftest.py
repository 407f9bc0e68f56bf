"""Pytest configuration and fixtures for tablesync tests."""

import asyncio
import json
import logging
import stat
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tablesync.core.endpoints import Endpoint
from tablesync.core.exceptions import PerTableSyncError, ToolUnavailableError
from tablesync.process.process_controller import ToolCheck
from tablesync.schema.catalog import TableCatalog
from tablesync.state.sync_state_store import SyncStateStore
from tablesync.sync.sync_orchestrator import SyncOrchestrator

# Configure logging
logging.basicConfig(level=logging.INFO)

MASTER_PASSWORD = "m4st3r-s3cret"
TEST_PASSWORD = "t3st-s3cret"

SAMPLE_SCHEMA = """
generator client {
  provider = "prisma-client-js"
}

model security_roles {
  RoleID         Int              @id
  Name           String?
  security_users security_users[]
}

model security_users {
  UserID         String          @id
  RoleID         Int?
  security_roles security_roles? @relation(fields: [RoleID], references: [RoleID])
  accounts       accounts[]
}

model accounts {
  ID             String         @id
  UserID         String?
  owner          security_users? @relation(fields: [UserID], references: [UserID], onDelete: NoAction)
  backup_owner   security_users? @relation("accounts_backup", fields: [BackupID], references: [UserID])
  BackupID       String?
}
"""

FAKE_TOOL = '''#!{python}
import json
import os
import signal
import sys
import time

args = sys.argv[1:]
if "--version" in args:
    print("pt-table-sync 3.5.5")
    sys.exit(0)

table = [arg for arg in args if ",t=" in arg][0].rsplit(",t=", 1)[1]
with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), table + ".args"), "w") as f:
    json.dump(args, f)

behaviour = json.loads(os.environ.get("FAKE_PT_BEHAVIOUR", "{{}}")).get(table, {{}})
if behaviour.get("ignore_term"):
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
for line in behaviour.get("stdout", []):
    print(line, flush=True)
for line in behaviour.get("stderr", []):
    print(line, file=sys.stderr, flush=True)
time.sleep(behaviour.get("sleep", 0))
sys.exit(behaviour.get("exit", 0))
'''


@pytest.fixture
def source_endpoint() -> Endpoint:
    return Endpoint(host="master.db", user="reader", password=MASTER_PASSWORD, port=3306, database="prod")


@pytest.fixture
def target_endpoint() -> Endpoint:
    return Endpoint(host="test.db", user="writer", password=TEST_PASSWORD, port=3307, database="test")


@pytest.fixture
def fake_tool(tmp_path) -> Path:
    """An executable stand-in for pt-table-sync driven by FAKE_PT_BEHAVIOUR"""
    script = tmp_path / "pt-table-sync"
    script.write_text(FAKE_TOOL.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def tool_behaviour(monkeypatch):
    """Set per-table behaviour of the fake tool"""
    def _set(behaviour: Dict[str, dict]) -> None:
        monkeypatch.setenv("FAKE_PT_BEHAVIOUR", json.dumps(behaviour))
    return _set


@pytest.fixture
def small_catalog() -> TableCatalog:
    return TableCatalog(groups=[["T1", "T2", "T3"]], schema_text="")


class FakeProcessController:
    """In-memory ProcessController replacement with controllable per-table outcomes"""

    def __init__(self, failures: Optional[Dict[str, str]] = None,
                 events: Optional[Dict[str, list]] = None,
                 blocking: Optional[List[str]] = None,
                 tool_installed: bool = True):
        self.failures = failures or {}
        self.events = events or {}
        self.blocking = set(blocking or [])
        self.tool_installed = tool_installed
        self.calls: List[str] = []
        self.dry_runs: List[bool] = []
        self.terminate_calls = 0
        self._active = False
        self._release = asyncio.Event()

    @property
    def is_active(self) -> bool:
        return self._active

    async def check_tool(self) -> ToolCheck:
        if self.tool_installed:
            return ToolCheck(installed=True, version="pt-table-sync 3.5.5")
        return ToolCheck(installed=False, error="pt-table-sync not found in PATH")

    async def verify_tool(self) -> ToolCheck:
        check = await self.check_tool()
        if not check.installed:
            raise ToolUnavailableError(check.error)
        return check

    async def start_sync(self, table, source, target, dry_run=True, on_event=None):
        self.calls.append(table)
        self.dry_runs.append(dry_run)
        self._active = True
        try:
            for event in self.events.get(table, []):
                on_event(event)
            if table in self.blocking:
                await self._release.wait()
                raise PerTableSyncError(table, f"Sync failed for table {table} with exit code -15", exit_code=-15)
            await asyncio.sleep(0)
            if table in self.failures:
                raise PerTableSyncError(table, self.failures[table], exit_code=2)
        finally:
            self._active = False

    def terminate(self) -> bool:
        self.terminate_calls += 1
        self._release.set()
        return self._active


@pytest.fixture
def fake_controller() -> FakeProcessController:
    return FakeProcessController()


@pytest.fixture
def make_orchestrator(small_catalog, source_endpoint, target_endpoint):
    """Build an orchestrator over T1..T3 with the given controller"""
    def _make(controller, catalog=None, **kwargs) -> SyncOrchestrator:
        return SyncOrchestrator(
            catalog=catalog or small_catalog,
            source=kwargs.pop('source', source_endpoint),
            target=kwargs.pop('target', target_endpoint),
            process_controller=controller,
            state_store=kwargs.pop('state_store', SyncStateStore()),
            **kwargs,
        )
    return _make


async def _wait_for(predicate, timeout: float = 5.0, interval: float = 0.01) -> None:
    """Poll until predicate() is true"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def sample_schema() -> str:
    return SAMPLE_SCHEMA


@pytest.fixture
def wait_for():
    return _wait_for


@pytest.fixture
def controller_factory():
    return FakeProcessController
