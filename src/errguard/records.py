"""Immutable error records held by the ledger.

These frozen dataclasses are the permanent record of one intercepted
signal.  They are created by the lifecycle entry points, owned by the
:class:`~errguard.ledger.Ledger`, and serialised verbatim into the ``errors``
list of every persisted log line via :meth:`ErrorRecord.to_dict`.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

from errguard.severity import ErrorKind


@dataclass(frozen=True)
class Frame:
    """One stack frame of a captured backtrace.

    Attributes:
        file:     Source file path as reported by the interpreter.
        line:     Line number within ``file`` (``None`` if unknown).
        function: Name of the executing function.
    """

    file: str
    line: int | None
    function: str

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "line": self.line, "function": self.function}


@dataclass(frozen=True)
class ErrorRecord:
    """A single intercepted runtime error or exception.

    Attributes:
        kind:      :attr:`ErrorKind.RUNTIME_ERROR` or :attr:`ErrorKind.EXCEPTION`.
        code:      Severity code for runtime errors.  For exceptions this is
                   whatever numeric code the exception carries (``errno`` or
                   ``code``), else ``0``; it plays no part in classification.
        message:   Human-readable message.
        file:      File where the signal originated, if known.
        line:      Line where the signal originated, if known.
        backtrace: Captured frames, outermost first.
        name:      Exception class name; ``None`` for runtime errors.
    """

    kind: ErrorKind
    code: int
    message: str
    file: str | None = None
    line: int | None = None
    backtrace: tuple[Frame, ...] = field(default_factory=tuple)
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-serialisable representation persisted in logs."""
        data: dict[str, Any] = {
            "type": self.kind.value,
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "backtrace": [frame.to_dict() for frame in self.backtrace],
        }
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_signal(
        cls,
        code: int,
        message: str,
        file: str | None = None,
        line: int | None = None,
        backtrace: tuple[Frame, ...] | None = None,
    ) -> ErrorRecord:
        """Build a runtime-error record from raw host callback arguments."""
        return cls(
            kind=ErrorKind.RUNTIME_ERROR,
            code=int(code),
            message=str(message),
            file=file,
            line=line,
            backtrace=backtrace if backtrace is not None else (),
        )

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorRecord:
        """Build an exception record from a raised exception.

        ``file`` and ``line`` are taken from the innermost traceback frame,
        which is where the exception was actually raised.
        """
        frames = frames_from_traceback(exc.__traceback__)
        file = frames[-1].file if frames else None
        line = frames[-1].line if frames else None
        return cls(
            kind=ErrorKind.EXCEPTION,
            code=_exception_code(exc),
            message=str(exc),
            file=file,
            line=line,
            backtrace=frames,
            name=type(exc).__name__,
        )


def frames_from_traceback(tb: TracebackType | None) -> tuple[Frame, ...]:
    """Convert a traceback chain into :class:`Frame` objects, outermost first."""
    if tb is None:
        return ()
    return tuple(
        Frame(file=summary.filename, line=summary.lineno, function=summary.name)
        for summary in traceback.extract_tb(tb)
    )


def capture_backtrace(skip: int = 0) -> tuple[Frame, ...]:
    """Capture the current call stack, outermost first.

    Args:
        skip: Number of innermost frames to drop in addition to this
              function's own frame.
    """
    stack = traceback.extract_stack()[: -(skip + 1)]
    return tuple(
        Frame(file=summary.filename, line=summary.lineno, function=summary.name)
        for summary in stack
    )


def _exception_code(exc: BaseException) -> int:
    for attr in ("errno", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0
