"""Error taxonomy for the launcher core.

Every error carries a severity so the front end can decide whether to
abort startup or degrade:

- CRITICAL / HIGH: startup must stop (ingestion, configuration)
- MEDIUM: reported, feature degrades (history load/save)
- LOW: recovered locally (malformed entry lines)
"""

from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class LiftoffError(Exception):
    """Base class for all launcher errors."""
    severity = ErrorSeverity.HIGH

    @property
    def is_fatal(self) -> bool:
        return self.severity.value >= ErrorSeverity.HIGH.value


class ParseError(LiftoffError):
    """A single entry line could not be parsed."""
    severity = ErrorSeverity.LOW

    def __init__(self, message: str, line: str, column: int = 0):
        super().__init__(message)
        self.line = line
        self.column = column


class SourceError(LiftoffError):
    """A source scanner failed to read its origin."""
    severity = ErrorSeverity.HIGH

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class SearchPathError(SourceError):
    """Path scanning was requested but no search path is configured."""

    def __init__(self, message: str = "no search path configured"):
        super().__init__("path", message)


class IngestionError(LiftoffError):
    """Building the candidate index failed; no partial index exists."""
    severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class HistoryLoadError(LiftoffError):
    """An existing history store could not be read."""
    severity = ErrorSeverity.MEDIUM


class HistorySaveError(LiftoffError):
    """The history store could not be written."""
    severity = ErrorSeverity.MEDIUM


class ConfigError(LiftoffError):
    """Configuration file missing or invalid."""
    severity = ErrorSeverity.CRITICAL


class SessionError(LiftoffError):
    """Session API used out of order."""
    severity = ErrorSeverity.HIGH
