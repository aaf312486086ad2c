"""errguard — last line of defence for runtime errors inside one process.

Every warning, explicitly triggered error, and uncaught exception raised by the
running process is classified as *minor*, *major* or *fatal*, buffered in an
in-memory ledger, and — exactly once per process — turned into a terminal
action (diagnostic rendering, generic notice plus log, or silent log).

Public surface
--------------
- :func:`initialise`            — build the config, create the context, install hooks.
- :class:`ErrorContext`         — the per-process pipeline (ledger, sink, lifecycle).
- :func:`build_config`          — validate a parameter mapping into a :class:`HandlerConfig`.
- :class:`Severity` / :class:`Bucket` / :class:`ErrorKind` — classification enums.
- :class:`Mode`                 — terminal-action profile.
- :exc:`ConfigurationError`     — raised by :func:`initialise` on bad parameters.

Usage example
-------------
::

    import errguard

    context = errguard.initialise(
        {
            "mode": "production",
            "log_directory": "/var/log/myapp",
            "log_data": {"request_id": request_id},
        }
    )

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from errguard.config import HandlerConfig, Mode, build_config
from errguard.errors import (
    ConfigurationError,
    ErrguardError,
    InvalidOptionError,
    LogReadError,
    LogTargetError,
    LogWriteError,
    MaskNotSettableError,
    UnknownOptionError,
)
from errguard.hooks import HostSignal, PythonRuntimeHost, initialise
from errguard.ledger import Ledger, LedgerCounts, LedgerSnapshot
from errguard.lifecycle import ErrorContext
from errguard.records import ErrorRecord, Frame
from errguard.severity import Bucket, ErrorKind, Severity, classify

# ---------------------------------------------------------------------------
# Package version — read from pyproject.toml via importlib.metadata.
#
# Falls back to the pyproject version when the package is imported from a
# source checkout without being installed.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("errguard")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "Bucket",
    "ConfigurationError",
    "ErrguardError",
    "ErrorContext",
    "ErrorKind",
    "ErrorRecord",
    "Frame",
    "HandlerConfig",
    "HostSignal",
    "InvalidOptionError",
    "Ledger",
    "LedgerCounts",
    "LedgerSnapshot",
    "LogReadError",
    "LogTargetError",
    "LogWriteError",
    "MaskNotSettableError",
    "Mode",
    "PythonRuntimeHost",
    "Severity",
    "UnknownOptionError",
    "__version__",
    "build_config",
    "classify",
    "initialise",
]
