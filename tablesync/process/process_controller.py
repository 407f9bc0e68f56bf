"""
Lifecycle of the external pt-table-sync process, one table at a time.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.endpoints import Endpoint
from ..core.enums import LogLevel
from ..core.exceptions import PerTableSyncError, ProcessSpawnError, ToolUnavailableError
from .output_classifier import (
    LogEvent,
    OutputEvent,
    classify_stderr_line,
    classify_stdout_line,
)

DEFAULT_TOOL = "pt-table-sync"
DEFAULT_GRACE_PERIOD = 5.0
STREAM_LIMIT = 1024 * 1024

# 0: no differences, 1: differences found (expected in dry-run),
# 25: differences found with non-fatal errors
SUCCESS_EXIT_CODES = frozenset([0, 1])
WARNING_EXIT_CODES = frozenset([25])

INSTALL_HINT = (
    "Please install Percona Toolkit "
    "(https://www.percona.com/software/database-tools/percona-toolkit) "
    "or set PT_TABLE_SYNC_PATH to the full path of pt-table-sync."
)

EventCallback = Callable[[OutputEvent], None]


@dataclass(frozen=True)
class ToolCheck:
    installed: bool
    version: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SyncOutcome:
    table: str
    exit_code: int
    with_warnings: bool = False


class ProcessController:
    """
    Owns at most one running pt-table-sync invocation.

    Output lines are masked, classified and handed to the caller's event
    callback; the controller itself never writes shared state. A new sync may
    only start once the previous one has settled.
    """

    def __init__(self, tool_path: str = DEFAULT_TOOL,
                 grace_period: float = DEFAULT_GRACE_PERIOD,
                 logger: Optional[logging.Logger] = None):
        self.tool_path = tool_path
        self.grace_period = grace_period
        self.logger = logger or logging.getLogger(f"{__name__}.ProcessController")
        self._process: Optional[asyncio.subprocess.Process] = None
        self._kill_timer: Optional[asyncio.TimerHandle] = None
        self._terminating = False
        # Set while a process is being spawned; a terminate request is held until it exists
        self._spawning = False
        self._terminate_pending = False
        self._emit: Optional[EventCallback] = None

    @property
    def is_active(self) -> bool:
        return self._spawning or (self._process is not None and self._process.returncode is None)

    # Tool availability check

    async def check_tool(self) -> ToolCheck:
        """Run ``--version`` and report whether the tool can be executed"""
        try:
            process = await asyncio.create_subprocess_exec(
                self.tool_path, '--version',
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            output, _ = await process.communicate()
        except OSError as e:
            return ToolCheck(installed=False, error=f"Failed to execute {self.tool_path}: {e}")

        text = output.decode('utf-8', errors='replace').strip()
        if process.returncode == 0 or DEFAULT_TOOL in text:
            return ToolCheck(installed=True, version=text or None)
        return ToolCheck(installed=False, error=f"{self.tool_path} not found in PATH")

    async def verify_tool(self) -> ToolCheck:
        check = await self.check_tool()
        if not check.installed:
            raise ToolUnavailableError(f"pt-table-sync not available: {check.error}\n{INSTALL_HINT}")
        return check

    # Command line

    def build_command(self, table: str, source: Endpoint, target: Endpoint, dry_run: bool = True) -> List[str]:
        return [
            self.tool_path,
            '--verbose',
            # Skip replication checks, they need SUPER/REPLICATION CLIENT privileges
            '--no-check-slave',
            '--dry-run' if dry_run else '--execute',
            source.to_dsn(table),
            target.to_dsn(table),
        ]

    def masked_command(self, table: str, source: Endpoint, target: Endpoint, dry_run: bool = True) -> str:
        command = " ".join(self.build_command(table, source, target, dry_run))
        return target.mask(source.mask(command))

    # Sync

    async def start_sync(self, table: str, source: Endpoint, target: Endpoint,
                         dry_run: bool = True,
                         on_event: Optional[EventCallback] = None) -> SyncOutcome:
        """
        Run pt-table-sync for one table and wait for it to settle.

        Raises PerTableSyncError for unexpected exit codes and ProcessSpawnError
        when the process cannot be launched.
        """
        if self._process is not None or self._spawning:
            raise RuntimeError("A sync process is already active")

        emit = on_event or (lambda event: None)

        def mask(text: str) -> str:
            return target.mask(source.mask(text))

        self._spawning = True
        self._terminate_pending = False
        try:
            emit(LogEvent(LogLevel.INFO, f"Executing: {self.masked_command(table, source, target, dry_run)}"))
            process = await asyncio.create_subprocess_exec(
                *self.build_command(table, source, target, dry_run),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            self._spawning = False
            self._terminate_pending = False
            message = f"Process error for table {table}: {mask(str(e))}"
            emit(LogEvent(LogLevel.ERROR, message))
            raise ProcessSpawnError(table, message)
        except BaseException:
            self._spawning = False
            self._terminate_pending = False
            raise

        self._process = process
        self._emit = emit
        self._terminating = False
        self._spawning = False
        if self._terminate_pending:
            self._terminate_pending = False
            self.terminate()
        stdout_lines: List[str] = []
        stderr_lines: List[str] = []

        try:
            await asyncio.gather(
                self._read_stream(process.stdout, table, classify_stdout_line, stdout_lines, mask, emit),
                self._read_stream(process.stderr, table, classify_stderr_line, stderr_lines, mask, emit),
            )
            exit_code = await process.wait()
        except BaseException:
            # Reader failure or cancellation: do not leave an orphaned child behind
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        finally:
            self._settle(process)

        emit(LogEvent(LogLevel.INFO, f"Sync process for table {table} completed with code {exit_code}"))

        if exit_code in SUCCESS_EXIT_CODES:
            return SyncOutcome(table=table, exit_code=exit_code)

        if exit_code in WARNING_EXIT_CODES:
            emit(LogEvent(LogLevel.WARNING, f"Table {table} sync completed with warnings (exit code {exit_code})"))
            return SyncOutcome(table=table, exit_code=exit_code, with_warnings=True)

        stdout_text = "\n".join(stdout_lines)
        stderr_text = "\n".join(stderr_lines)
        error_msg = f"Sync failed for table {table} with exit code {exit_code}"
        emit(LogEvent(LogLevel.ERROR, error_msg))

        all_output = "\n".join([
            "=== Process Output (stdout) ===",
            stdout_text,
            "=== Process Output (stderr) ===",
            stderr_text,
        ])
        if stdout_text.strip() or stderr_text.strip():
            emit(LogEvent(LogLevel.ERROR, f"Process output for table {table}:\n{all_output}"))

        raise PerTableSyncError(
            table,
            f"{error_msg}\n\nProcess output:\n{all_output}",
            exit_code=exit_code,
            stdout=stdout_text,
            stderr=stderr_text,
        )

    async def _read_stream(self, stream: asyncio.StreamReader, table: str, classify,
                           buffer: List[str], mask: Callable[[str], str], emit: EventCallback) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                break
            line = mask(raw.decode('utf-8', errors='replace').rstrip("\r\n"))
            buffer.append(line)
            for event in classify(line, table):
                emit(event)

    def _settle(self, process: asyncio.subprocess.Process) -> None:
        if self._kill_timer is not None:
            self._kill_timer.cancel()
            self._kill_timer = None
        if self._process is process:
            self._process = None
            self._emit = None
        self._terminating = False

    # Cancellation

    def terminate(self) -> bool:
        """
        Ask the running process to exit, force killing it after the grace period.

        A request that arrives while the process is still being spawned is held
        and applied as soon as the process exists. Returns False when there is
        nothing to terminate.
        """
        process = self._process
        if process is None and self._spawning:
            if self._terminate_pending:
                return False
            self.logger.info("Sync process is starting, it will be terminated once spawned")
            self._terminate_pending = True
            return True

        if process is None or process.returncode is not None or self._terminating:
            return False

        self._terminating = True
        self.logger.info(f"Sending SIGTERM to sync process {process.pid}")
        try:
            process.terminate()
        except ProcessLookupError:
            return False

        loop = asyncio.get_running_loop()
        self._kill_timer = loop.call_later(self.grace_period, self._force_kill, process)
        return True

    def _force_kill(self, process: asyncio.subprocess.Process) -> None:
        self._kill_timer = None
        if process.returncode is not None:
            return
        self.logger.warning(f"Sync process {process.pid} still running after {self.grace_period}s, sending SIGKILL")
        if self._emit is not None:
            self._emit(LogEvent(LogLevel.WARNING, "Force killing sync process"))
        try:
            process.kill()
        except ProcessLookupError:
            pass
