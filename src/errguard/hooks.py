"""Wiring between the Python runtime and an :class:`~errguard.lifecycle.ErrorContext`.

The runtime delivers signals through three mechanisms, all replaced by
:meth:`PythonRuntimeHost.install`:

- ``warnings.showwarning``  — routable runtime errors.  The warning category
  is mapped to a :class:`~errguard.severity.Severity` by
  :func:`severity_for_warning`.
- ``sys.excepthook``        — uncaught exceptions (always fatal).
- ``atexit``                — end-of-process notification.

The host also answers "what was the last terminal signal you recorded on
your own?" for the end-of-process reconciliation.  In CPython that is
``sys.last_exc`` (``sys.last_value`` before 3.12), which the interpreter sets
when an unhandled error bypassed the installed excepthook.  Embedders can
record a signal explicitly with :meth:`PythonRuntimeHost.record_terminal_signal`.
"""

from __future__ import annotations

import atexit
import logging
import sys
import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol, TextIO

from errguard.config import build_config
from errguard.lifecycle import ErrorContext
from errguard.records import capture_backtrace, frames_from_traceback
from errguard.severity import Severity

logger = logging.getLogger(__name__)

# Most specific categories first; the first ``issubclass`` match wins.
_WARNING_SEVERITIES: tuple[tuple[type[Warning], Severity], ...] = (
    (DeprecationWarning, Severity.DEPRECATED),
    (PendingDeprecationWarning, Severity.DEPRECATED),
    (FutureWarning, Severity.DEPRECATED),
    (SyntaxWarning, Severity.COMPILE_WARNING),
    (ImportWarning, Severity.CORE_WARNING),
    (RuntimeWarning, Severity.WARNING),
    (ResourceWarning, Severity.NOTICE),
    (BytesWarning, Severity.NOTICE),
    (UnicodeWarning, Severity.NOTICE),
    (EncodingWarning, Severity.STRICT),
    (UserWarning, Severity.USER_WARNING),
)


@dataclass(frozen=True)
class HostSignal:
    """A terminal signal the host recorded without routing it to a handler."""

    code: int
    message: str
    file: str | None = None
    line: int | None = None


class RuntimeHost(Protocol):
    def install(self, context: ErrorContext) -> None: ...

    def last_terminal_signal(self) -> HostSignal | None: ...


def severity_for_warning(category: type[Warning]) -> Severity:
    """Map a warning category to the severity it is recorded under."""
    for base, severity in _WARNING_SEVERITIES:
        if issubclass(category, base):
            return severity
    return Severity.USER_WARNING


def signal_from_exception(exc: BaseException) -> HostSignal:
    """Describe an unrouted exception as a core-fatal :class:`HostSignal`."""
    if isinstance(exc, SyntaxError):
        return HostSignal(
            code=Severity.PARSE,
            message=exc.msg or str(exc),
            file=exc.filename,
            line=exc.lineno,
        )
    frames = frames_from_traceback(exc.__traceback__)
    return HostSignal(
        code=Severity.ERROR,
        message=f"{type(exc).__name__}: {exc}",
        file=frames[-1].file if frames else None,
        line=frames[-1].line if frames else None,
    )


class PythonRuntimeHost:
    """Installs an :class:`ErrorContext` into the running interpreter."""

    def __init__(self) -> None:
        self._context: ErrorContext | None = None
        self._previous_excepthook = sys.excepthook
        self._warnings_guard: warnings.catch_warnings | None = None
        self._recorded: HostSignal | None = None
        self._seen_exception: BaseException | None = None

    @property
    def installed(self) -> bool:
        return self._context is not None

    def install(self, context: ErrorContext) -> None:
        """Route warnings, uncaught exceptions and interpreter exit to ``context``.

        Only the main thread is covered.  ``threading.excepthook`` is left
        alone, so an exception that ends a worker thread is reported by the
        threading module and never reaches the ledger.

        Raises:
            RuntimeError: If this host already has a context installed.
        """
        if self._context is not None:
            raise RuntimeError("An error context is already installed on this host")
        self._context = context
        self._previous_excepthook = sys.excepthook
        # catch_warnings saves filters and showwarning for uninstall().
        self._warnings_guard = warnings.catch_warnings()
        self._warnings_guard.__enter__()
        warnings.simplefilter("default")
        warnings.showwarning = self._showwarning
        sys.excepthook = self._excepthook
        atexit.register(context.on_process_end)
        logger.debug("errguard: hooks installed (mode=%s)", context.config.mode.value)

    def uninstall(self) -> None:
        """Restore the hooks that were active before :meth:`install`."""
        if self._context is None:
            return
        atexit.unregister(self._context.on_process_end)
        sys.excepthook = self._previous_excepthook
        if self._warnings_guard is not None:
            self._warnings_guard.__exit__(None, None, None)
            self._warnings_guard = None
        self._context = None
        logger.debug("errguard: hooks uninstalled")

    def record_terminal_signal(
        self,
        code: int,
        message: str,
        file: str | None = None,
        line: int | None = None,
    ) -> None:
        """Record an out-of-band terminal signal for end-of-process reconciliation."""
        self._recorded = HostSignal(code=int(code), message=message, file=file, line=line)

    def last_terminal_signal(self) -> HostSignal | None:
        """Return the terminal signal the handler never saw, if any.

        ``sys.last_exc`` is set before ``sys.excepthook`` runs, so an
        exception the installed hook already received is skipped, as is a
        ``KeyboardInterrupt``.
        """
        if self._recorded is not None:
            return self._recorded
        exc = getattr(sys, "last_exc", None) or getattr(sys, "last_value", None)
        if exc is None or exc is self._seen_exception:
            return None
        if isinstance(exc, KeyboardInterrupt):
            return None
        return signal_from_exception(exc)

    # ── Installed callbacks ──────────────────────────────────────────────────

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        self._seen_exception = exc
        if self._context is None or issubclass(exc_type, KeyboardInterrupt):
            self._previous_excepthook(exc_type, exc, tb)
            return
        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        self._context.handle_exception(exc)

    def _showwarning(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        if self._context is None:
            return
        self._context.handle_error(
            severity_for_warning(category),
            str(message),
            filename,
            lineno,
            capture_backtrace(skip=1),
        )


def initialise(
    parameters: Mapping[str, Any],
    *,
    host: RuntimeHost | None = None,
    stream: TextIO | None = None,
    terminate: Callable[[int], None] | None = None,
) -> ErrorContext:
    """Validate ``parameters``, create the process context and install it.

    Configuration errors propagate before any hook is installed.

    Args:
        parameters: Handler parameters; see :data:`errguard.config.OPTIONS`.
        host:       Runtime adapter; defaults to a new :class:`PythonRuntimeHost`.
        stream:     Output stream for user-visible fatal output.
        terminate:  Process terminator, ``callable(exit_code)``.

    Returns:
        The installed :class:`ErrorContext`.
    """
    config = build_config(parameters)
    if host is None:
        host = PythonRuntimeHost()
    context = ErrorContext(config, host=host, stream=stream, terminate=terminate)
    host.install(context)
    return context
