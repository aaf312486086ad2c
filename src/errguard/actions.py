"""Fatal action dispatch for the three terminal modes.

============  ============================================  ===================
Mode          Built-in action                               Output
============  ============================================  ===================
development   render counters + full ledger dump            full diagnostics
production    write log line, then print a generic notice   generic notice only
silent        write log line                                nothing
============  ============================================  ===================

A per-mode override, when configured, replaces the built-in action for that
mode entirely.  A missing override always falls back to the built-in action
of the *same* mode.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from errguard.config import HandlerConfig, Mode
from errguard.ledger import Ledger, LedgerSnapshot
from errguard.records import ErrorRecord
from errguard.severity import ErrorKind, kind_name, severity_name
from errguard.sink import LogSink

logger = logging.getLogger(__name__)

PRODUCTION_NOTICE = "Application error\nDetails have been logged\n"

_RULE = "-" * 72


class FatalActionDispatcher:
    """Runs the terminal action for the configured mode.

    Args:
        config: Handler configuration (mode and overrides).
        ledger: The ledger to render or flush.
        sink:   Log sink used by production and silent modes.
        stream: Where user-visible output goes.  Defaults to ``sys.stderr``
                resolved at dispatch time.
    """

    def __init__(
        self,
        config: HandlerConfig,
        ledger: Ledger,
        sink: LogSink,
        stream: TextIO | None = None,
    ) -> None:
        self._config = config
        self._ledger = ledger
        self._sink = sink
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def dispatch(self) -> None:
        """Run the override or built-in action for the configured mode."""
        mode = self._config.mode
        override = self._config.fatal_action_for(mode)
        if override is not None:
            logger.info("errguard: running %s fatal-action override", mode.value)
            override()
            return
        if mode is Mode.DEVELOPMENT:
            self._development()
        elif mode is Mode.PRODUCTION:
            self._production()
        else:
            self._silent()

    def _development(self) -> None:
        last = self._ledger.get_last()
        snapshot = self._ledger.extract(with_counts=True)
        self.stream.write(render_diagnostics(last, snapshot))
        self.stream.flush()

    def _production(self) -> None:
        # The notice is shown even when the log write fails.
        try:
            self._sink.write()
        finally:
            self.stream.write(PRODUCTION_NOTICE)
            self.stream.flush()

    def _silent(self) -> None:
        self._sink.write()


def render_heading(record: ErrorRecord | None) -> str:
    """Return the diagnostic heading naming the last record."""
    if record is None:
        return "Fatal error"
    if record.kind is ErrorKind.EXCEPTION:
        return f"Uncaught {record.name or kind_name(record.kind)}"
    return f"Runtime error: {severity_name(record.code)}"


def render_diagnostics(last: ErrorRecord | None, snapshot: LedgerSnapshot) -> str:
    """Render the development-mode diagnostic report as plain text."""
    counts = snapshot.counts
    lines = [
        _RULE,
        render_heading(last),
        _RULE,
        f"minor: {counts.minor}  major: {counts.major}  fatal: {counts.fatal}",
        _RULE,
    ]
    for index, record in enumerate(snapshot.records, start=1):
        lines.extend(_render_record(index, record))
    lines.append(_RULE)
    return "\n".join(lines) + "\n"


def _render_record(index: int, record: ErrorRecord) -> list[str]:
    if record.kind is ErrorKind.EXCEPTION:
        label = record.name or kind_name(record.kind)
    else:
        label = severity_name(record.code)
    location = f"{record.file}:{record.line}" if record.file else "<unknown>"
    out = [f"#{index} [{label}] {record.message}", f"    at {location}"]
    for frame in record.backtrace:
        out.append(f"      {frame.file}:{frame.line} in {frame.function}")
    return out
