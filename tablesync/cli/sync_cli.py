#!/usr/bin/env python3
"""
Table Sync CLI

Run a master to test table sync in the foreground, inspect the dependency
order, check the pt-table-sync installation or serve the HTTP API.
"""

import asyncio
import click
import logging
import signal
import sys
from typing import Optional, Sequence

from ..config.global_config_loader import GlobalConfig, load_global_config
from ..core.enums import TableStatus
from ..core.exceptions import TableSyncError
from ..sync.orchestrator_factory import create_orchestrator_from_config
from ..sync.sync_orchestrator import SyncOrchestrator


class SyncCLI:
    """Command-line interface around a SyncOrchestrator"""

    def __init__(self, global_config: GlobalConfig, orchestrator: Optional[SyncOrchestrator] = None):
        self.logger = logging.getLogger(__name__)
        self.global_config = global_config
        self.orchestrator = orchestrator or create_orchestrator_from_config(global_config)

    async def run_sync(self, tables: Sequence[str], dry_run: bool, poll_interval: float = 1.0) -> bool:
        """Run a batch and wait for it; returns False when any table failed"""
        orchestrator = self.orchestrator
        try:
            ordered = await orchestrator.start(list(tables) or None, dry_run=dry_run)
        except TableSyncError as e:
            self.logger.error(f"Cannot start sync: {e}")
            return False

        click.echo(f"Syncing {len(ordered)} table(s){' (dry run)' if dry_run else ''}")
        self._install_stop_handler()

        last_reported = None
        while orchestrator.is_running:
            snapshot = orchestrator.state_store.get_snapshot()
            progress = (snapshot.completed_tables, snapshot.current_table)
            if progress != last_reported:
                click.echo(f"[{snapshot.completed_tables}/{snapshot.total_tables}] "
                           f"{snapshot.current_table or '-'}")
                last_reported = progress
            await asyncio.sleep(poll_interval)

        await orchestrator.wait_until_idle()
        snapshot = orchestrator.state_store.get_snapshot()
        failed = [name for name in ordered if snapshot.tables[name].status == TableStatus.ERROR]

        click.echo(f"\nCompleted {snapshot.completed_tables} of {len(ordered)} table(s)")
        for name in failed:
            first_line = (snapshot.tables[name].error or "").splitlines()[0:1]
            click.echo(f"  ✗ {name}: {first_line[0] if first_line else 'unknown error'}")
        return not failed and snapshot.completed_tables == len(ordered)

    def _install_stop_handler(self) -> None:
        loop = asyncio.get_running_loop()

        def request_stop():
            click.echo("\nStop requested, finishing current table...")
            loop.create_task(self._stop())

        try:
            loop.add_signal_handler(signal.SIGINT, request_stop)
        except NotImplementedError:
            self.logger.debug("Signal handlers not supported on this platform")

    async def _stop(self) -> None:
        try:
            await self.orchestrator.stop()
        except TableSyncError as e:
            self.logger.warning(f"Could not stop sync: {e}")

    def show_order(self, tables: Sequence[str]) -> None:
        catalog = self.orchestrator.catalog
        unknown = catalog.unknown(tables)
        if unknown:
            raise click.BadParameter(f"Unknown table(s): {', '.join(unknown)}", param_hint='--table')

        ordered = catalog.order(list(tables)) if tables else catalog.all_tables
        parse_result = catalog.dependency_graph()
        if not parse_result.ok:
            click.echo(f"Warning: using declared order, schema not usable ({parse_result.error})", err=True)

        for position, table in enumerate(ordered, start=1):
            deps = [dep for dep in parse_result.graph.dependencies_of(table) if dep in ordered]
            suffix = f"  <- {', '.join(deps)}" if deps else ""
            click.echo(f"{position:4d}. {table}{suffix}")

    async def check_tool(self) -> bool:
        check = await self.orchestrator.check_tool()
        if check.installed:
            click.echo(f"✓ {self.global_config.sync.tool_path}: {check.version or 'installed'}")
        else:
            click.echo(f"✗ {check.error}")
        if not self.orchestrator.is_available:
            click.echo("✗ DBSYNC_MASTER_URL and DBSYNC_TEST_URL are not configured")
        return check.installed and self.orchestrator.is_available

    async def close(self) -> None:
        await self.orchestrator.close()


@click.group()
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level')
@click.pass_context
def cli(ctx, global_config, log_level):
    """Table Sync CLI - Sync master tables to the test database with pt-table-sync"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    ctx.ensure_object(dict)
    ctx.obj['global_config'] = load_global_config(global_config)


def _sync_cli(ctx) -> SyncCLI:
    if 'cli' not in ctx.obj:
        ctx.obj['cli'] = SyncCLI(ctx.obj['global_config'])
    return ctx.obj['cli']


@cli.command()
@click.option('--table', '-t', 'tables', multiple=True, help='Table to sync (repeatable, default: all)')
@click.option('--execute', is_flag=True, help='Apply changes to the target instead of a dry run')
@click.pass_context
def run(ctx, tables, execute):
    """Sync tables in dependency order"""
    async def _run():
        sync_cli = _sync_cli(ctx)
        try:
            return await sync_cli.run_sync(tables, dry_run=not execute)
        finally:
            await sync_cli.close()

    ok = asyncio.run(_run())
    sys.exit(0 if ok else 1)


@cli.command()
@click.option('--table', '-t', 'tables', multiple=True, help='Restrict to these tables (repeatable)')
@click.pass_context
def order(ctx, tables):
    """Print the dependency order tables are synced in"""
    _sync_cli(ctx).show_order(tables)


@cli.command()
@click.pass_context
def check(ctx):
    """Check configuration and the pt-table-sync installation"""
    async def _check():
        sync_cli = _sync_cli(ctx)
        try:
            return await sync_cli.check_tool()
        finally:
            await sync_cli.close()

    ok = asyncio.run(_check())
    sys.exit(0 if ok else 1)


@cli.command()
@click.option('--host', default=None, help='Bind address (overrides config)')
@click.option('--port', type=int, default=None, help='Port (overrides config)')
@click.pass_context
def serve(ctx, host, port):
    """Serve the HTTP API"""
    from ..api.main import run_server

    global_cfg = ctx.obj['global_config']
    if host:
        global_cfg.api.host = host
    if port:
        global_cfg.api.port = port
    run_server(global_cfg)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
