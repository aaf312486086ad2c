"""
Pydantic models and helpers for reading persisted error logs.

Each line written by :class:`~errguard.sink.LogSink` is parsed into a
:class:`LogEntry`.  Pydantic provides:
- Validation of every line against the persisted schema
- Type conversion (severity codes stay ints, locations stay optional)
- Round-trip dumps for ``errguard show --json``

The reader is used by the CLI; the pipeline itself never reads logs back.
"""

from __future__ import annotations

from collections import Counter, deque
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from errguard.errors import LogReadError

# ============================================================================
# LOG LINE MODELS
# ============================================================================


class LogFrame(BaseModel):
    """One backtrace frame of a logged error."""

    file: str
    line: int | None = None
    function: str


class LogErrorRecord(BaseModel):
    """
    One intercepted error inside a log line.

    Attributes:
        type: ``"runtime_error"`` or ``"exception"``
        code: Severity code (runtime errors) or exception code
        name: Exception class name, present for exceptions only
    """

    type: Literal["runtime_error", "exception"]
    code: int
    message: str
    file: str | None = None
    line: int | None = None
    backtrace: list[LogFrame] = Field(default_factory=list)
    name: str | None = None


class LogCounts(BaseModel):
    minor: int = 0
    major: int = 0
    fatal: int = 0


class LogErrors(BaseModel):
    counts: LogCounts
    errors: list[LogErrorRecord] = Field(default_factory=list)


class LogEntry(BaseModel):
    """
    One persisted flush.

    Attributes:
        timestamp: Timestamp configured for the process
        fatal_type: Kind of the last record if the flush was fatal, else None
        data: Extra metadata, present only if it was ever set
        errors: Counters and records extracted from the ledger
    """

    timestamp: str
    fatal_type: Literal["runtime_error", "exception"] | None = None
    data: dict[str, Any] | None = None
    errors: LogErrors

    @property
    def is_fatal(self) -> bool:
        return self.errors.counts.fatal > 0


class LogSummary(BaseModel):
    """Totals across a sequence of log entries."""

    entries: int = 0
    fatal_entries: int = 0
    counts: LogCounts = Field(default_factory=LogCounts)
    fatal_types: dict[str, int] = Field(default_factory=dict)


# ============================================================================
# READERS
# ============================================================================


def iter_entries(path: Path) -> Iterator[LogEntry]:
    """
    Yield every entry in ``path``, skipping blank lines.

    Raises:
        LogReadError: If the file cannot be opened or a line does not match
            the log schema.  The message names the 1-based line number.
    """
    try:
        fh = path.open("r", encoding="utf-8")
    except OSError as exc:
        raise LogReadError(f"Cannot open error log {path}: {exc}") from exc
    with fh:
        for number, raw in enumerate(fh, start=1):
            if not raw.strip():
                continue
            try:
                yield LogEntry.model_validate_json(raw)
            except ValidationError as exc:
                raise LogReadError(f"{path}:{number}: malformed log line: {exc}") from exc


def read_entries(path: Path) -> list[LogEntry]:
    """Return all entries in ``path``."""
    return list(iter_entries(path))


def tail_entries(path: Path, count: int) -> list[LogEntry]:
    """Return the last ``count`` entries in ``path``, oldest first."""
    if count <= 0:
        return []
    return list(deque(iter_entries(path), maxlen=count))


def summarize(entries: Iterable[LogEntry]) -> LogSummary:
    """Sum counters and tally fatal types across ``entries``."""
    minor = major = fatal = total = fatal_entries = 0
    fatal_types: Counter[str] = Counter()
    for entry in entries:
        total += 1
        counts = entry.errors.counts
        minor += counts.minor
        major += counts.major
        fatal += counts.fatal
        if entry.is_fatal:
            fatal_entries += 1
        if entry.fatal_type is not None:
            fatal_types[entry.fatal_type] += 1
    return LogSummary(
        entries=total,
        fatal_entries=fatal_entries,
        counts=LogCounts(minor=minor, major=major, fatal=fatal),
        fatal_types=dict(fatal_types),
    )
