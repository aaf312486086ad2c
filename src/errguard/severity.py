"""Severity codes, buckets, and the pure classification function.

Severity codes keep the integer values of the host runtime they were first
modelled on, so persisted log lines carry stable numeric ``code`` fields.
Masks, however, are never handled as bit fields inside the pipeline: they
are ``frozenset[Severity]`` and classification is a membership test.
Integer bitmasks are accepted only at the configuration boundary by
:func:`coerce_severities`.

Classification rules
--------------------
- An exception is always :attr:`Bucket.FATAL`; masks are never consulted.
- A runtime error whose code is in the major mask is :attr:`Bucket.MAJOR`.
- Otherwise, if its code is in the minor mask it is :attr:`Bucket.MINOR`.
- Anything else is :attr:`Bucket.FATAL`.

Major is tested before minor, so a code present in both masks resolves to
major.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable


class Severity(enum.IntEnum):
    """Runtime error severity codes."""

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    STRICT = 2048
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384


class Bucket(enum.Enum):
    """Classification outcome for a single signal."""

    MINOR = "minor"
    MAJOR = "major"
    FATAL = "fatal"


class ErrorKind(enum.Enum):
    """What delivered the signal: a routed runtime error or an exception."""

    RUNTIME_ERROR = "runtime_error"
    EXCEPTION = "exception"


# Severities the host can route through the handler.  Anything outside this
# set is inherently fatal and may never appear in a minor or major mask.
SETTABLE: frozenset[Severity] = frozenset(
    {
        Severity.WARNING,
        Severity.NOTICE,
        Severity.CORE_WARNING,
        Severity.COMPILE_WARNING,
        Severity.USER_WARNING,
        Severity.USER_NOTICE,
        Severity.STRICT,
        Severity.RECOVERABLE_ERROR,
        Severity.DEPRECATED,
        Severity.USER_DEPRECATED,
    }
)

# Fatal conditions the handler never sees directly; they are only visible
# as the host's last terminal signal at process end.
CORE_FATAL: frozenset[Severity] = frozenset(
    {
        Severity.ERROR,
        Severity.PARSE,
        Severity.CORE_ERROR,
        Severity.COMPILE_ERROR,
        Severity.USER_ERROR,
    }
)

DEFAULT_MINOR: frozenset[Severity] = frozenset(
    {Severity.NOTICE, Severity.USER_NOTICE, Severity.STRICT}
)

DEFAULT_MAJOR: frozenset[Severity] = frozenset(
    {
        Severity.WARNING,
        Severity.CORE_WARNING,
        Severity.COMPILE_WARNING,
        Severity.USER_WARNING,
        Severity.DEPRECATED,
        Severity.USER_DEPRECATED,
    }
)

_KIND_NAMES = {
    ErrorKind.RUNTIME_ERROR: "Runtime error",
    ErrorKind.EXCEPTION: "Exception",
}


def severity_name(code: int) -> str:
    """Return the symbolic name for ``code``, or ``"UNKNOWN_ERROR"``."""
    try:
        return Severity(code).name
    except ValueError:
        return "UNKNOWN_ERROR"


def kind_name(kind: ErrorKind) -> str:
    """Return a human-readable label for an :class:`ErrorKind`."""
    return _KIND_NAMES.get(kind, "Unknown error type")


def coerce_severities(value: object) -> frozenset[Severity]:
    """Normalise a mask value into a ``frozenset[Severity]``.

    Accepted forms:

    - an ``int`` bitmask (every set bit must be a known severity);
    - a :class:`Severity` member;
    - a severity name, case-insensitive (``"warning"``, ``"USER_NOTICE"``);
    - any iterable of the above.

    Raises:
        ValueError: If the value, or any element of it, cannot be mapped to
            a known severity.
    """
    if isinstance(value, Severity):
        return frozenset({value})
    if isinstance(value, bool):
        raise ValueError(f"Not a severity mask: {value!r}")
    if isinstance(value, int):
        return _from_bitmask(value)
    if isinstance(value, str):
        return frozenset({_from_name(value)})
    if isinstance(value, Iterable):
        result: set[Severity] = set()
        for item in value:
            result |= coerce_severities(item)
        return frozenset(result)
    raise ValueError(f"Not a severity mask: {value!r}")


def _from_bitmask(mask: int) -> frozenset[Severity]:
    if mask < 0:
        raise ValueError(f"Severity bitmask must be non-negative, got {mask}")
    members = frozenset(s for s in Severity if mask & s)
    leftover = mask & ~sum(members)
    if leftover:
        raise ValueError(f"Unknown severity bits in mask: {leftover:#x}")
    return members


def _from_name(name: str) -> Severity:
    key = name.strip().upper()
    if key.startswith("E_"):
        key = key[2:]
    try:
        return Severity[key]
    except KeyError:
        raise ValueError(f"Unknown severity name: {name!r}") from None


def classify(
    kind: ErrorKind,
    code: int,
    *,
    major: frozenset[Severity],
    minor: frozenset[Severity],
) -> Bucket:
    """Map a signal to its :class:`Bucket`.

    Pure and deterministic: the result depends only on the arguments.

    Args:
        kind:  Delivery mechanism of the signal.
        code:  Severity code.  Ignored for exceptions; codes that are not
               members of :class:`Severity` are never in a mask and
               therefore classify as fatal.
        major: Severities treated as major.
        minor: Severities treated as minor.
    """
    if kind is ErrorKind.EXCEPTION:
        return Bucket.FATAL
    if code in major:
        return Bucket.MAJOR
    if code in minor:
        return Bucket.MINOR
    return Bucket.FATAL
