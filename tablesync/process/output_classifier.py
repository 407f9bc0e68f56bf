"""
Line classification for pt-table-sync output.

Each output line becomes a list of events. The classifier never touches shared
state; the orchestrator decides what an event means for the table status.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from ..core.enums import LogLevel

SQL_ERROR_PREVIEW = 200
TABLE_ERROR_PREVIEW = 500

_DML = re.compile(r"^(INSERT|UPDATE|DELETE|REPLACE)\s+", re.IGNORECASE)
_PROGRESS_KEYWORD = re.compile(r"chunk|progress|rows", re.IGNORECASE)
_PROGRESS_PAIR = re.compile(r"(\d+)\s*/\s*(\d+)")
_COMPLETION = re.compile(r"complete|done|finished", re.IGNORECASE)
_ERROR = re.compile(r"error|failed", re.IGNORECASE)
_ERROR_TOKEN = re.compile(r"error", re.IGNORECASE)
_WARNING = re.compile(r"warn", re.IGNORECASE)
_STDERR_WARNING = re.compile(r"warning", re.IGNORECASE)


@dataclass(frozen=True)
class LogEvent:
    level: LogLevel
    message: str


@dataclass(frozen=True)
class RowProcessedEvent:
    """One DML statement was printed or executed"""
    count: int = 1


@dataclass(frozen=True)
class ProgressEvent:
    processed: int
    total: int


@dataclass(frozen=True)
class TableErrorEvent:
    """The tool reported an error; the exit code still decides the verdict"""
    message: str


OutputEvent = Union[LogEvent, RowProcessedEvent, ProgressEvent, TableErrorEvent]


def classify_stdout_line(line: str, table: str) -> List[OutputEvent]:
    line = line.rstrip("\r\n")
    if not line.strip():
        return []

    if _DML.match(line):
        events: List[OutputEvent] = [RowProcessedEvent()]
        if _ERROR_TOKEN.search(line):
            events.append(LogEvent(LogLevel.ERROR, f"SQL Error: {line[:SQL_ERROR_PREVIEW]}"))
        return events

    if _PROGRESS_KEYWORD.search(line):
        events = []
        progress = parse_progress(line)
        if progress:
            events.append(progress)
        events.append(LogEvent(LogLevel.INFO, line))
        return events

    if _COMPLETION.search(line):
        return [LogEvent(LogLevel.INFO, f"Table sync complete: {table}")]

    if _ERROR.search(line):
        return [LogEvent(LogLevel.ERROR, line), TableErrorEvent(line[:TABLE_ERROR_PREVIEW])]

    if _WARNING.search(line):
        return [LogEvent(LogLevel.WARNING, line)]

    return [LogEvent(LogLevel.INFO, line)]


def classify_stderr_line(line: str, table: str) -> List[OutputEvent]:
    line = line.rstrip("\r\n")
    if not line.strip():
        return []

    if _ERROR_TOKEN.search(line):
        return [LogEvent(LogLevel.ERROR, line), TableErrorEvent(line[:TABLE_ERROR_PREVIEW])]

    if _STDERR_WARNING.search(line):
        return [LogEvent(LogLevel.WARNING, line)]

    return [LogEvent(LogLevel.INFO, line)]


def parse_progress(line: str) -> Optional[ProgressEvent]:
    match = _PROGRESS_PAIR.search(line)
    if not match:
        return None
    return ProgressEvent(processed=int(match.group(1)), total=int(match.group(2)))
