"""Parser logging — a structured record of what the loader saw.

Reading a ``numa_maps`` file is deliberately forgiving: a property the
parser does not understand is skipped, and a line without an address
is dropped.  Forgiving is not the same as silent, though.  The loader
writes what it skipped into a ``Logger`` supplied by the caller, so the
caller decides whether to print it, assert on it, or throw it away.

Entries carry the 1-based input line they refer to, so a caller can
ask for everything said about one line.  Nothing here writes to stdout
or stderr.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "loader").
        line_number: The 1-based input line the event refers to, if any.

    """

    level: LogLevel
    message: str
    source: str
    line_number: int | None = None

    def __str__(self) -> str:
        """Format as ``[LEVEL] source:line: message``."""
        where = self.source if self.line_number is None else f"{self.source}:{self.line_number}"
        return f"[{self.level.name}] {where}: {self.message}"


class Logger:
    """Append-only log buffer with filtering."""

    def __init__(self) -> None:
        """Create an empty logger."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in the order they were written."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        line_number: int | None = None,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            line_number: Input line the event refers to.

        """
        self._entries.append(
            LogEntry(level=level, message=message, source=source, line_number=line_number)
        )

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        line_number: int | None = None,
    ) -> list[LogEntry]:
        """Return entries matching every criterion that is set.

        ``line_number`` picks out everything the loader said about one
        input line, e.g. all bad tokens on line 7.
        """
        return [
            e
            for e in self._entries
            if (min_level is None or e.level >= min_level)
            and (source is None or e.source == source)
            and (line_number is None or e.line_number == line_number)
        ]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)
