"""Shared test helpers for the errguard test suite."""

import json
from pathlib import Path


def read_log(path: Path) -> list[dict]:
    """Read and parse all non-empty lines of a JSONL error log."""
    return [
        json.loads(line)
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
