"""
Shared pytest fixtures for the errguard test suite.

This module provides fixtures that are automatically available to all test files:
- A temporary log directory holding an empty, writable error log
- A recording host stub and a recording process terminator
- A factory building a fresh ErrorContext per test

No fixture installs real interpreter hooks; only tests/test_hooks.py does,
and it always uninstalls them again.
"""

import io
from collections.abc import Callable
from pathlib import Path

import pytest

from errguard.config import DEFAULT_LOG_FILE, build_config
from errguard.hooks import HostSignal
from errguard.lifecycle import ErrorContext

# ============================================================================
# ENVIRONMENT ISOLATION
# ============================================================================

_SETTINGS_ENV = (
    "ERRGUARD_MODE",
    "ERRGUARD_LOG_DIR",
    "ERRGUARD_LOG_FILE",
    "ERRGUARD_LOG_LEVEL",
    "ERRGUARD_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ERRGUARD_* variables so the developer's shell cannot leak in."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# LOG FIXTURES
# ============================================================================


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """
    Create a log directory containing an empty error log.

    The handler requires the log file to exist at configuration time, so
    every test that builds a config points ``log_directory`` here.
    """
    directory = tmp_path / "logs"
    directory.mkdir()
    (directory / DEFAULT_LOG_FILE).touch()
    return directory


@pytest.fixture
def log_path(log_dir: Path) -> Path:
    return log_dir / DEFAULT_LOG_FILE


# ============================================================================
# HOST AND TERMINATION STUBS
# ============================================================================


class FakeHost:
    """Host stub that records installation and serves a canned signal."""

    def __init__(self) -> None:
        self.installed_context: ErrorContext | None = None
        self.signal: HostSignal | None = None

    def install(self, context: ErrorContext) -> None:
        self.installed_context = context

    def last_terminal_signal(self) -> HostSignal | None:
        return self.signal


class ExitRecorder:
    """Stand-in for process termination that only records exit codes."""

    def __init__(self) -> None:
        self.codes: list[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)

    @property
    def called(self) -> bool:
        return bool(self.codes)


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def exit_recorder() -> ExitRecorder:
    return ExitRecorder()


# ============================================================================
# CONTEXT FACTORY
# ============================================================================


@pytest.fixture
def make_context(
    log_dir: Path, fake_host: FakeHost, exit_recorder: ExitRecorder
) -> Callable[..., ErrorContext]:
    """
    Build a fresh ErrorContext from keyword parameters.

    ``log_directory`` defaults to the ``log_dir`` fixture.  User-visible
    output goes to an ``io.StringIO`` available as
    ``context.dispatcher.stream``.
    """

    def factory(host=None, **parameters) -> ErrorContext:
        parameters.setdefault("log_directory", log_dir)
        config = build_config(parameters)
        return ErrorContext(
            config,
            host=fake_host if host is None else host,
            stream=io.StringIO(),
            terminate=exit_recorder,
        )

    return factory
