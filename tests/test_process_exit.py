"""End-to-end exit paths in a real interpreter.

Each test writes a small script that calls :func:`errguard.initialise` with
the default :class:`~errguard.hooks.PythonRuntimeHost`, runs it in a child
process and inspects the exit code, the standard streams and the error log.
Nothing here injects ``terminate``: the child ends through ``atexit`` and
``os._exit`` exactly as an application would.
"""

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from errguard.actions import PRODUCTION_NOTICE
from errguard.lifecycle import FATAL_EXIT_CODE
from tests.helpers import read_log

SRC_DIR = Path(__file__).resolve().parent.parent / "src"


def run_script(body: str, log_dir: Path, mode: str) -> subprocess.CompletedProcess[str]:
    """Run ``body`` after installing errguard in a fresh interpreter."""
    script = log_dir / "app.py"
    script.write_text(
        "import errguard\n"
        f"context = errguard.initialise({{'mode': {mode!r}, 'log_directory': {str(log_dir)!r}}})\n"
        + textwrap.dedent(body),
        encoding="utf-8",
    )
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, str(script)],
        capture_output=True,
        text=True,
        env=env,
        timeout=60,
    )


@pytest.mark.unit
class TestProcessExit:
    def test_clean_exit_writes_nothing(self, log_dir: Path, log_path: Path) -> None:
        result = run_script("print('done')\n", log_dir, "production")

        assert result.returncode == 0
        assert result.stdout == "done\n"
        assert log_path.read_text() == ""

    def test_major_only_run_logs_once_and_exits_zero(self, log_dir: Path, log_path: Path) -> None:
        result = run_script(
            """
            import warnings
            warnings.warn("cache is cold", RuntimeWarning)
            print("done")
            """,
            log_dir,
            "production",
        )

        assert result.returncode == 0
        assert result.stdout == "done\n"
        lines = read_log(log_path)
        assert len(lines) == 1
        assert lines[0]["errors"]["counts"] == {"minor": 0, "major": 1, "fatal": 0}
        assert lines[0]["errors"]["errors"][0]["message"] == "cache is cold"

    def test_uncaught_exception_in_production(self, log_dir: Path, log_path: Path) -> None:
        result = run_script("raise ValueError('bad input')\n", log_dir, "production")

        assert result.returncode == FATAL_EXIT_CODE
        assert result.stderr == PRODUCTION_NOTICE
        lines = read_log(log_path)
        assert len(lines) == 1
        assert lines[0]["fatal_type"] == "exception"
        assert lines[0]["errors"]["counts"]["fatal"] == 1
        assert lines[0]["errors"]["errors"][0]["name"] == "ValueError"

    def test_uncaught_exception_in_development(self, log_dir: Path, log_path: Path) -> None:
        result = run_script("raise ValueError('bad input')\n", log_dir, "development")

        assert result.returncode == FATAL_EXIT_CODE
        assert "Uncaught ValueError" in result.stderr
        assert "bad input" in result.stderr
        assert log_path.read_text() == ""

    def test_fatal_runtime_error_stops_the_program(self, log_dir: Path, log_path: Path) -> None:
        result = run_script(
            """
            from errguard import Severity
            context.trigger(Severity.USER_ERROR, "cannot continue")
            print("unreachable")
            """,
            log_dir,
            "silent",
        )

        assert result.returncode == FATAL_EXIT_CODE
        assert result.stdout == ""
        assert result.stderr == ""
        lines = read_log(log_path)
        assert len(lines) == 1
        assert lines[0]["fatal_type"] == "runtime_error"
        assert lines[0]["errors"]["errors"][0]["message"] == "cannot continue"

    def test_keyboard_interrupt_is_not_logged(self, log_dir: Path, log_path: Path) -> None:
        result = run_script("raise KeyboardInterrupt\n", log_dir, "production")

        assert result.returncode != FATAL_EXIT_CODE
        assert "KeyboardInterrupt" in result.stderr
        assert PRODUCTION_NOTICE not in result.stderr
        assert log_path.read_text() == ""
