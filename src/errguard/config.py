"""Handler configuration: option table, setters, and validation.

A parameter mapping is turned into a :class:`HandlerConfig` by
:func:`build_config`.  Each recognised key is bound to exactly one typed
setter in the fixed :data:`OPTIONS` table; there is no name-based dispatch
onto methods.

Validation order
----------------
1. The parameters must be a mapping.
2. Every key is checked against :data:`OPTIONS`.  All unknown keys are
   collected and reported together in one :exc:`UnknownOptionError`, before
   any setter runs.
3. Setters run in submission order; each raises :exc:`InvalidOptionError`
   on a bad value.
4. Minor and major masks are checked against :data:`SETTABLE`.
5. The log target must be an existing, writable file.

Every failure is a :exc:`ConfigurationError` raised at start-up; nothing is
deferred to the moment a real fatal error occurs.
"""

from __future__ import annotations

import enum
import importlib
import inspect
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

from errguard.errors import (
    InvalidOptionError,
    LogTargetError,
    MaskNotSettableError,
    UnknownOptionError,
)
from errguard.severity import (
    DEFAULT_MAJOR,
    DEFAULT_MINOR,
    SETTABLE,
    Severity,
    coerce_severities,
)

DEFAULT_LOG_FILE = "errors.jsonl"

FatalAction = Callable[[], object]


class Mode(enum.Enum):
    """Terminal-action profile used when a fatal error occurs."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    SILENT = "silent"


@dataclass
class HandlerConfig:
    """Validated handler configuration.

    Attributes:
        mode:          Terminal-action profile.
        minor_mask:    Severities counted as minor.
        major_mask:    Severities counted as major.
        settable_mask: Severities the host can route; fixed.
        fatal_actions: Zero-argument overrides keyed by mode.
        log_directory: Directory holding the log file.
        log_file:      Log file name within ``log_directory``.
        timestamp:     Timestamp written with every log line.
        log_data:      Extra metadata written under ``data``; ``None`` until
                       first set.
    """

    mode: Mode = Mode.DEVELOPMENT
    minor_mask: frozenset[Severity] = DEFAULT_MINOR
    major_mask: frozenset[Severity] = DEFAULT_MAJOR
    settable_mask: frozenset[Severity] = field(default=SETTABLE, init=False)
    fatal_actions: dict[Mode, FatalAction] = field(default_factory=dict)
    log_directory: Path = field(default_factory=Path.cwd)
    log_file: str = DEFAULT_LOG_FILE
    timestamp: str | None = None
    log_data: dict[str, Any] | None = None

    @property
    def log_path(self) -> Path:
        """Absolute path of the log file."""
        return self.log_directory / self.log_file

    def fatal_action_for(self, mode: Mode) -> FatalAction | None:
        """Return the override configured for ``mode``, if any."""
        return self.fatal_actions.get(mode)

    def add_log_data(self, data: object) -> None:
        """Merge ``data`` into :attr:`log_data`; existing keys are overwritten."""
        if not isinstance(data, Mapping):
            raise InvalidOptionError("log_data", "Input must be a mapping")
        if self.log_data is None:
            self.log_data = {}
        self.log_data.update(data)


# =============================================================================
# SETTERS
# =============================================================================


def _set_errors_major(cfg: HandlerConfig, value: object) -> None:
    cfg.major_mask = _coerce_mask("errors_major", value)


def _set_errors_minor(cfg: HandlerConfig, value: object) -> None:
    cfg.minor_mask = _coerce_mask("errors_minor", value)


def _set_mode(cfg: HandlerConfig, value: object) -> None:
    cfg.mode = parse_mode(value)


def _set_log_directory(cfg: HandlerConfig, value: object) -> None:
    if not isinstance(value, (str, os.PathLike)):
        raise InvalidOptionError("log_directory", f"expected a path, got {value!r}")
    cfg.log_directory = Path(value)


def _set_log_file(cfg: HandlerConfig, value: object) -> None:
    name = str(value)
    if not name.strip():
        raise InvalidOptionError("log_file", "must be a non-empty file name")
    cfg.log_file = name


def _set_timestamp(cfg: HandlerConfig, value: object) -> None:
    cfg.timestamp = str(value)


def _set_log_data(cfg: HandlerConfig, value: object) -> None:
    cfg.add_log_data(value)


def _fatal_action_setter(mode: Mode) -> Callable[[HandlerConfig, object], None]:
    option = f"fatal_action_{mode.value}"

    def setter(cfg: HandlerConfig, value: object) -> None:
        cfg.fatal_actions[mode] = resolve_action(option, value)

    return setter


#: Recognised parameter keys and their setters.
OPTIONS: Mapping[str, Callable[[HandlerConfig, object], None]] = MappingProxyType(
    {
        "errors_major": _set_errors_major,
        "errors_minor": _set_errors_minor,
        "mode": _set_mode,
        "log_directory": _set_log_directory,
        "log_file": _set_log_file,
        "timestamp": _set_timestamp,
        "log_data": _set_log_data,
        "fatal_action_development": _fatal_action_setter(Mode.DEVELOPMENT),
        "fatal_action_production": _fatal_action_setter(Mode.PRODUCTION),
        "fatal_action_silent": _fatal_action_setter(Mode.SILENT),
    }
)


# =============================================================================
# VALUE PARSERS
# =============================================================================


def parse_mode(value: object) -> Mode:
    """Accept a :class:`Mode` or its case-insensitive name."""
    if isinstance(value, Mode):
        return value
    if isinstance(value, str):
        try:
            return Mode(value.strip().lower())
        except ValueError:
            pass
    choices = ", ".join(m.value for m in Mode)
    raise InvalidOptionError("mode", f"expected one of {choices}, got {value!r}")


def resolve_action(option: str, value: object) -> FatalAction:
    """Resolve and validate a fatal-action override.

    ``value`` is either a callable or a ``"package.module:attribute"``
    reference (``attribute`` may be dotted, e.g. ``"app.errors:Handler.fatal"``).
    The result must be callable with no arguments.

    Raises:
        InvalidOptionError: If the reference cannot be imported or the
            target is not a zero-argument callable.
    """
    target = _import_reference(option, value) if isinstance(value, str) else value
    if not callable(target):
        raise InvalidOptionError(option, f"Submitted action ({value!r}) is not callable")
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        # Some builtins expose no signature; trust callable() for those.
        return target
    try:
        signature.bind()
    except TypeError:
        raise InvalidOptionError(
            option, f"Submitted action ({value!r}) must accept no arguments"
        ) from None
    return target


def _import_reference(option: str, reference: str) -> object:
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise InvalidOptionError(
            option, f"expected 'package.module:attribute', got {reference!r}"
        )
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise InvalidOptionError(option, f"cannot import {module_name!r}: {exc}") from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise InvalidOptionError(
                option, f"{reference!r} does not resolve to an attribute"
            ) from None
    return target


def _coerce_mask(option: str, value: object) -> frozenset[Severity]:
    try:
        return coerce_severities(value)
    except ValueError as exc:
        raise InvalidOptionError(option, str(exc)) from exc


# =============================================================================
# BUILD
# =============================================================================


def build_config(parameters: object, *, now: datetime | None = None) -> HandlerConfig:
    """Validate ``parameters`` and return a ready-to-use :class:`HandlerConfig`.

    Args:
        parameters: Mapping of recognised option keys (see :data:`OPTIONS`)
                    to values.  Every key is optional.
        now:        Clock override for the default timestamp.

    Raises:
        ConfigurationError: Any subclass, on the first failed check.  An
            :exc:`UnknownOptionError` always names every unknown key.
    """
    if not isinstance(parameters, Mapping):
        raise InvalidOptionError("parameters", "Parameters must be a mapping")

    unknown = [key for key in parameters if key not in OPTIONS]
    if unknown:
        raise UnknownOptionError(unknown)

    cfg = HandlerConfig()
    for key, value in parameters.items():
        OPTIONS[key](cfg, value)

    if cfg.timestamp is None:
        cfg.timestamp = (now or datetime.now(UTC)).isoformat()

    _check_mask("errors_minor", cfg.minor_mask, cfg.settable_mask)
    _check_mask("errors_major", cfg.major_mask, cfg.settable_mask)
    check_log_target(cfg.log_path)
    return cfg


def _check_mask(option: str, mask: frozenset[Severity], settable: frozenset[Severity]) -> None:
    outside = mask - settable
    if outside:
        raise MaskNotSettableError(option, outside)


def check_log_target(path: Path) -> None:
    """Raise :exc:`LogTargetError` unless ``path`` is an existing writable file."""
    if not path.is_file():
        raise LogTargetError(path, "does not exist")
    if not os.access(path, os.W_OK):
        raise LogTargetError(path, "cannot be written to")
