from enum import Enum


class TableStatus(str, Enum):
    TODO = "todo"
    BUSY = "busy"
    DONE = "done"
    ERROR = "error"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
