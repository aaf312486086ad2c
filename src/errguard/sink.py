"""JSONL log sink for ledger snapshots.

Overview
--------
The sink turns the current ledger contents into one self-contained JSON
line and appends it to the configured log file.  Building the payload uses
``Ledger.extract(with_counts=True)``, so the ledger is always empty after a
write.

Two entry points:

- :meth:`LogSink.conditional_flush` — writes only when the ledger holds at
  least one major or fatal record; returns whether a line was written.
- :meth:`LogSink.write` — writes unconditionally.  Used by the production
  and silent fatal actions.

Line format
-----------
.. code-block:: json

    {
      "timestamp":  "2026-02-27T14:23:01.452345+00:00",
      "fatal_type": "exception",
      "data":       {"request_id": "abc123"},
      "errors": {
        "counts": {"minor": 0, "major": 1, "fatal": 1},
        "errors": [ { ...ErrorRecord.to_dict()... } ]
      }
    }

``fatal_type`` is the kind of the last record when the fatal counter is
non-zero, else ``null``.  ``data`` is present only if extra log data was
ever set.

Concurrency
-----------
``fcntl.flock(LOCK_EX)`` is acquired before every append and released after
``flush()``.  Processes appending to the same file queue up behind the lock,
so lines are never interleaved or truncated.

**Platform note:** ``fcntl`` is POSIX-only.

Failure handling
----------------
Writability is checked once by :func:`~errguard.config.build_config`.  At
write time a filesystem failure raises :exc:`LogWriteError`; there is no
retry.  The lifecycle controller catches it and logs it.
"""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path
from typing import Any

from errguard.config import HandlerConfig
from errguard.errors import LogWriteError
from errguard.ledger import Ledger

logger = logging.getLogger(__name__)


class LogSink:
    """Serialises ledger snapshots to the configured JSONL file."""

    def __init__(self, config: HandlerConfig, ledger: Ledger) -> None:
        self._config = config
        self._ledger = ledger

    @property
    def path(self) -> Path:
        return self._config.log_path

    def conditional_flush(self) -> bool:
        """Write a line if any major or fatal errors are buffered.

        Returns:
            ``True`` if a line was written, ``False`` otherwise.

        Raises:
            LogWriteError: If the append fails.
        """
        counts = self._ledger.counts
        if counts.fatal > 0 or counts.major > 0:
            self.write()
            return True
        logger.debug("sink: nothing to flush (minor=%d)", counts.minor)
        return False

    def write(self) -> None:
        """Extract the ledger and append it as one JSON line.

        Raises:
            LogWriteError: If the append fails.
        """
        line = json.dumps(self._build_payload(), ensure_ascii=False, default=str)
        try:
            _append_line_locked(self.path, line)
        except OSError as exc:
            raise LogWriteError(f"Failed to append error log to {self.path}: {exc}") from exc
        logger.debug("sink: appended error log line to %s", self.path.name)

    def _build_payload(self) -> dict[str, Any]:
        counts = self._ledger.counts
        last = self._ledger.get_last()
        payload: dict[str, Any] = {
            "timestamp": self._config.timestamp,
            "fatal_type": last.kind.value if counts.fatal > 0 and last is not None else None,
        }
        if self._config.log_data is not None:
            payload["data"] = self._config.log_data
        payload["errors"] = self._ledger.extract(with_counts=True).to_dict()
        return payload


def _append_line_locked(path: Path, line: str) -> None:
    """Append one newline-terminated line to ``path`` under an exclusive lock.

    The file is opened in append mode; it is never truncated.  The lock is
    released in ``finally`` even if the write raises.

    Raises:
        OSError: If the open or write fails.
    """
    with path.open("a", encoding="utf-8") as fh:
        fcntl.flock(fh, fcntl.LOCK_EX)
        try:
            fh.write(line + "\n")
            fh.flush()
        finally:
            fcntl.flock(fh, fcntl.LOCK_UN)
