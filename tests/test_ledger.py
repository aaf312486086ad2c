"""Unit tests for the ledger and error records."""

from __future__ import annotations

import pytest

from errguard.ledger import Ledger, LedgerCounts, LedgerSnapshot
from errguard.records import ErrorRecord, Frame, capture_backtrace
from errguard.severity import Bucket, ErrorKind, Severity


def _record(code: int = Severity.WARNING, message: str = "msg") -> ErrorRecord:
    return ErrorRecord.from_signal(code, message, "app.py", 10)


@pytest.mark.unit
class TestLedger:
    def test_single_major_append(self) -> None:
        ledger = Ledger()
        ledger.append(_record(Severity.WARNING), Bucket.MAJOR)

        snapshot = ledger.extract(with_counts=True)

        assert snapshot.counts == LedgerCounts(minor=0, major=1, fatal=0)
        assert len(snapshot.records) == 1

    def test_counts_match_buckets_then_reset(self) -> None:
        ledger = Ledger()
        ledger.append(_record(Severity.NOTICE), Bucket.MINOR)
        ledger.append(_record(Severity.USER_NOTICE), Bucket.MINOR)
        ledger.append(_record(Severity.WARNING), Bucket.MAJOR)

        first = ledger.extract(with_counts=True)
        second = ledger.extract(with_counts=True)

        assert first.counts.to_dict() == {"minor": 2, "major": 1, "fatal": 0}
        assert second.counts.to_dict() == {"minor": 0, "major": 0, "fatal": 0}
        assert second.records == ()
        assert len(ledger) == 0

    def test_extract_without_counts_returns_records_in_order(self) -> None:
        ledger = Ledger()
        for i in range(3):
            ledger.append(_record(message=f"m{i}"), Bucket.MAJOR)

        records = ledger.extract()

        assert [r.message for r in records] == ["m0", "m1", "m2"]
        assert ledger.counts == LedgerCounts()

    def test_extract_on_empty_ledger(self) -> None:
        assert Ledger().extract() == []
        assert Ledger().extract(with_counts=True) == LedgerSnapshot(counts=LedgerCounts())

    def test_get_last_does_not_mutate(self) -> None:
        ledger = Ledger()
        assert ledger.get_last() is None

        ledger.append(_record(message="first"), Bucket.MINOR)
        ledger.append(_record(message="second"), Bucket.MAJOR)

        assert ledger.get_last().message == "second"
        assert len(ledger) == 2
        assert ledger.counts.major == 1

    def test_snapshot_to_dict(self) -> None:
        ledger = Ledger()
        ledger.append(_record(Severity.WARNING, "careful"), Bucket.MAJOR)

        data = ledger.extract(with_counts=True).to_dict()

        assert data["counts"] == {"minor": 0, "major": 1, "fatal": 0}
        assert data["errors"][0]["message"] == "careful"
        assert data["errors"][0]["code"] == 2


@pytest.mark.unit
class TestErrorRecord:
    def test_from_signal(self) -> None:
        record = ErrorRecord.from_signal(Severity.NOTICE, "hello", "x.py", 4)

        assert record.kind is ErrorKind.RUNTIME_ERROR
        assert record.code == 8
        assert type(record.code) is int
        assert record.name is None
        assert "name" not in record.to_dict()

    def test_from_exception_uses_innermost_frame(self) -> None:
        def explode() -> None:
            raise ValueError("boom")

        try:
            explode()
        except ValueError as exc:
            record = ErrorRecord.from_exception(exc)

        assert record.kind is ErrorKind.EXCEPTION
        assert record.name == "ValueError"
        assert record.message == "boom"
        assert record.code == 0
        assert record.file == __file__
        assert record.backtrace[-1].function == "explode"
        assert record.line == record.backtrace[-1].line

    def test_from_exception_picks_errno(self) -> None:
        exc = FileNotFoundError(2, "No such file")
        record = ErrorRecord.from_exception(exc)

        assert record.code == 2
        assert record.file is None
        assert record.backtrace == ()

    def test_records_are_immutable(self) -> None:
        record = _record()
        with pytest.raises(AttributeError):
            record.message = "changed"  # type: ignore[misc]

    def test_capture_backtrace_ends_at_caller(self) -> None:
        frames = capture_backtrace()
        assert frames[-1] == Frame(
            file=__file__, line=frames[-1].line, function="test_capture_backtrace_ends_at_caller"
        )
