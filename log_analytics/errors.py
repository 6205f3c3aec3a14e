"""
Error types raised while reading, parsing and exporting access logs.
"""

from typing import Iterable, Optional


class LogAnalyticsError(Exception):
    """Base class for all log analytics errors"""


class ParseError(LogAnalyticsError):
    """A single input line could not be turned into a Record"""

    def __init__(self, message: str, line_no: int, line: str):
        super().__init__(f"line {line_no}: {message}")
        self.message = message
        self.line_no = line_no
        self.line = line


class FieldCountError(ParseError):
    """Line is missing one of the five fields (or a field is empty)"""


class StatusFormatError(ParseError):
    """Status field is not an integer"""


class InputUnavailableError(LogAnalyticsError):
    def __init__(self, path: str, reason: Optional[str] = None):
        msg = f"cannot read input {path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.path = path
        self.reason = reason


class ExportError(LogAnalyticsError):
    """One or more output targets could not be written"""

    def __init__(self, targets: Iterable[str], reason: Optional[str] = None):
        self.targets = list(targets)
        msg = "failed to write " + ", ".join(self.targets)
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.reason = reason


class AnalysisCancelled(LogAnalyticsError):
    def __init__(self, name: str):
        super().__init__(f"analysis {name} cancelled")
        self.name = name
