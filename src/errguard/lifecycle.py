"""The per-process error context and its once-only shutdown sequence.

:class:`ErrorContext` is created once at process start (normally through
:func:`errguard.initialise`) and passed by reference to every hook.  It owns
the ledger, the sink and the fatal-action dispatcher, and it tracks a single
write-once flag, :attr:`ErrorContext.shutdown_complete`.

Lifecycle
---------
::

    Idle/Recording ──fatal append──────────────┐
          │                                    ▼
          └──on_process_end()──────────► ShuttingDown ──► Done

- Any append that classifies as fatal runs the shutdown sequence in-line,
  before control returns to whoever delivered the signal.
- :meth:`ErrorContext.on_process_end` always runs at interpreter exit.  It is
  a no-op once the sequence has run.  Otherwise it asks the host for the
  last terminal signal it recorded on its own; a core-fatal signal is fed
  back through :meth:`ErrorContext.handle_error` so it reaches shutdown the
  normal way, anything else goes straight to the shutdown sequence.

Shutdown sequence
-----------------
1. Set ``shutdown_complete``.
2. No fatal errors: conditionally flush the log and return.
3. Otherwise dispatch the mode's fatal action, then terminate the process.
   Termination happens even if the action raised.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, TextIO

from errguard.actions import FatalActionDispatcher
from errguard.config import HandlerConfig
from errguard.errors import LogWriteError
from errguard.ledger import Ledger, LedgerSnapshot
from errguard.records import ErrorRecord, Frame, capture_backtrace
from errguard.severity import CORE_FATAL, Bucket, Severity, classify
from errguard.sink import LogSink

if TYPE_CHECKING:
    from errguard.hooks import HostSignal

logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 1


class TerminalSignalSource(Protocol):
    """The part of the host the context queries at process end."""

    def last_terminal_signal(self) -> HostSignal | None: ...


def exit_process(code: int) -> None:
    """Flush the standard streams and end the process immediately."""
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            try:
                stream.flush()
            except (OSError, ValueError):
                pass
    os._exit(code)


class ErrorContext:
    """Classification, buffering and once-only shutdown for one process.

    Args:
        config:    Validated handler configuration.
        host:      Source of the host's last terminal signal; ``None`` means
                   no out-of-band signals are ever reconciled.
        stream:    Output stream for user-visible fatal output.
        terminate: Called with the exit code after a fatal action.  Must not
                   return in production; tests inject a recorder.
    """

    def __init__(
        self,
        config: HandlerConfig,
        *,
        host: TerminalSignalSource | None = None,
        stream: TextIO | None = None,
        terminate: Callable[[int], None] | None = None,
    ) -> None:
        self.config = config
        self.ledger = Ledger()
        self.sink = LogSink(config, self.ledger)
        self.dispatcher = FatalActionDispatcher(config, self.ledger, self.sink, stream)
        self._host = host
        self._terminate = terminate if terminate is not None else exit_process
        self._shutdown_complete = False

    @property
    def shutdown_complete(self) -> bool:
        return self._shutdown_complete

    # ── Entry points ─────────────────────────────────────────────────────────

    def handle_error(
        self,
        code: int,
        message: str,
        file: str | None = None,
        line: int | None = None,
        backtrace: tuple[Frame, ...] | None = None,
    ) -> Bucket:
        """Record a routed runtime error; returns its bucket."""
        if backtrace is None:
            backtrace = capture_backtrace(skip=1)
        return self._record(ErrorRecord.from_signal(code, message, file, line, backtrace))

    def handle_exception(self, exc: BaseException) -> Bucket:
        """Record an uncaught exception.  Always fatal."""
        return self._record(ErrorRecord.from_exception(exc))

    def trigger(self, severity: Severity | int, message: str, stacklevel: int = 1) -> Bucket:
        """Raise a runtime error from application code.

        ``stacklevel`` works like :func:`warnings.warn`: ``1`` attributes the
        error to the direct caller.
        """
        backtrace = capture_backtrace(skip=stacklevel)
        origin = backtrace[-1] if backtrace else None
        return self.handle_error(
            int(severity),
            message,
            origin.file if origin else None,
            origin.line if origin else None,
            backtrace,
        )

    def on_process_end(self) -> None:
        """End-of-process hook; safe to call any number of times."""
        if self._shutdown_complete:
            return
        signal = self._host.last_terminal_signal() if self._host is not None else None
        if signal is not None and signal.code in CORE_FATAL:
            logger.debug("errguard: reconciling unrouted terminal signal %s", signal.code)
            self.handle_error(signal.code, signal.message, signal.file, signal.line, ())
        else:
            self._shutdown()

    # ── Ledger accessors ─────────────────────────────────────────────────────

    def get_last(self) -> ErrorRecord | None:
        return self.ledger.get_last()

    def extract(self, with_counts: bool = False) -> list[ErrorRecord] | LedgerSnapshot:
        return self.ledger.extract(with_counts=with_counts)

    def add_log_data(self, data: Mapping[str, Any]) -> None:
        """Merge extra metadata into every subsequent log line."""
        self.config.add_log_data(data)

    def get_log_data(self) -> dict[str, Any] | None:
        return self.config.log_data

    # ── Internals ────────────────────────────────────────────────────────────

    def _record(self, record: ErrorRecord) -> Bucket:
        bucket = classify(
            record.kind,
            record.code,
            major=self.config.major_mask,
            minor=self.config.minor_mask,
        )
        self.ledger.append(record, bucket)
        if bucket is Bucket.FATAL and not self._shutdown_complete:
            self._shutdown()
        return bucket

    def _shutdown(self) -> None:
        self._shutdown_complete = True
        if self.ledger.counts.fatal == 0:
            try:
                self.sink.conditional_flush()
            except LogWriteError:
                logger.error("errguard: could not write error log", exc_info=True)
            return

        logger.info("errguard: fatal error, running %s action", self.config.mode.value)
        try:
            self.dispatcher.dispatch()
        except LogWriteError:
            logger.error("errguard: could not write error log", exc_info=True)
        except Exception:
            logger.exception("errguard: fatal action failed")
        finally:
            self._terminate(FATAL_EXIT_CODE)
