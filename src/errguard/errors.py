"""Typed exceptions for the errguard package.

Configuration errors are raised by :func:`~errguard.config.build_config`
before any hook is installed; they abort start-up and are never captured by
the pipeline itself.  I/O errors are raised by the sink and reader and are
handled at the lifecycle boundary.
"""

from __future__ import annotations

from collections.abc import Iterable


class ErrguardError(RuntimeError):
    """Base exception for errguard failures."""


class ConfigurationError(ErrguardError):
    """Base exception for invalid handler parameters."""


class UnknownOptionError(ConfigurationError):
    """One or more parameter keys are not recognised.

    Args:
        keys: Every unrecognised key, in the order submitted.
    """

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys = tuple(str(key) for key in keys)
        super().__init__(f"Invalid keys ({', '.join(self.keys)}) submitted")


class InvalidOptionError(ConfigurationError):
    """A recognised option was given an unusable value.

    Args:
        option: The parameter key.
        detail: What was wrong with the value.
    """

    def __init__(self, option: str, detail: str) -> None:
        super().__init__(f"{option}: {detail}")
        self.option = option
        self.detail = detail


class MaskNotSettableError(ConfigurationError):
    """A minor/major mask contains severities the host cannot route."""

    def __init__(self, option: str, severities: Iterable[object]) -> None:
        self.option = option
        self.severities = tuple(sorted(severities))
        names = ", ".join(getattr(s, "name", str(s)) for s in self.severities)
        super().__init__(f"Invalid error types submitted for {option}: {names}")


class LogTargetError(ConfigurationError):
    """The configured log file is missing or not writable."""

    def __init__(self, path: object, detail: str) -> None:
        super().__init__(f"Log file ({path}) {detail}")
        self.path = path
        self.detail = detail


class LogWriteError(ErrguardError):
    """Appending a record to the log file failed."""


class LogReadError(ErrguardError):
    """A persisted log line could not be parsed."""
