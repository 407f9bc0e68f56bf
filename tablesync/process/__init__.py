from .process_controller import ProcessController, SyncOutcome, ToolCheck
from .output_classifier import (
    LogEvent,
    RowProcessedEvent,
    ProgressEvent,
    TableErrorEvent,
    classify_stdout_line,
    classify_stderr_line,
)

__all__ = [
    'ProcessController',
    'SyncOutcome',
    'ToolCheck',
    'LogEvent',
    'RowProcessedEvent',
    'ProgressEvent',
    'TableErrorEvent',
    'classify_stdout_line',
    'classify_stderr_line',
]
