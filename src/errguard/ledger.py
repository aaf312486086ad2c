"""Process-scoped error ledger.

The ledger is an ordered buffer of :class:`~errguard.records.ErrorRecord`
plus one counter per :class:`~errguard.severity.Bucket`.  Records are kept
in insertion order and never reordered.

Invariant: each counter equals the number of records of that bucket
appended since the last :meth:`Ledger.extract`.  ``extract`` builds its
snapshot and swaps in fresh empty state in one step, so no caller ever
observes a half-reset ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, overload

from errguard.records import ErrorRecord
from errguard.severity import Bucket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerCounts:
    """Per-bucket counters at a point in time."""

    minor: int = 0
    major: int = 0
    fatal: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"minor": self.minor, "major": self.major, "fatal": self.fatal}


@dataclass(frozen=True)
class LedgerSnapshot:
    """Counters and records returned by ``extract(with_counts=True)``."""

    counts: LedgerCounts
    records: tuple[ErrorRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "counts": self.counts.to_dict(),
            "errors": [record.to_dict() for record in self.records],
        }


class Ledger:
    """Ordered record buffer with bucket counters."""

    def __init__(self) -> None:
        self._records: list[ErrorRecord] = []
        self._counts: dict[Bucket, int] = dict.fromkeys(Bucket, 0)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def counts(self) -> LedgerCounts:
        """Current counters, without mutating the ledger."""
        return LedgerCounts(
            minor=self._counts[Bucket.MINOR],
            major=self._counts[Bucket.MAJOR],
            fatal=self._counts[Bucket.FATAL],
        )

    def append(self, record: ErrorRecord, bucket: Bucket) -> None:
        """Append ``record`` and bump the counter for ``bucket``."""
        self._records.append(record)
        self._counts[bucket] += 1
        logger.debug("ledger: appended %s record (code=%s)", bucket.value, record.code)

    def get_last(self) -> ErrorRecord | None:
        """Return the most recently appended record, or ``None`` if empty."""
        if self._records:
            return self._records[-1]
        return None

    @overload
    def extract(self, with_counts: Literal[False] = ...) -> list[ErrorRecord]: ...

    @overload
    def extract(self, with_counts: Literal[True]) -> LedgerSnapshot: ...

    def extract(self, with_counts: bool = False) -> list[ErrorRecord] | LedgerSnapshot:
        """Return everything buffered so far and reset the ledger.

        Args:
            with_counts: When ``True`` return a :class:`LedgerSnapshot`
                         carrying the counters as well as the records;
                         otherwise return the plain record list.
        """
        records, counts = self._records, self.counts
        self._records = []
        self._counts = dict.fromkeys(Bucket, 0)
        if with_counts:
            return LedgerSnapshot(counts=counts, records=tuple(records))
        return records
