"""Unit tests for severity codes and the classifier."""

from __future__ import annotations

import pytest

from errguard.severity import (
    CORE_FATAL,
    DEFAULT_MAJOR,
    DEFAULT_MINOR,
    SETTABLE,
    Bucket,
    ErrorKind,
    Severity,
    classify,
    coerce_severities,
    kind_name,
    severity_name,
)


@pytest.mark.unit
class TestClassify:
    """classify() is a pure function of (kind, code, masks)."""

    def test_exception_is_fatal_regardless_of_masks(self) -> None:
        everything = frozenset(Severity)
        bucket = classify(ErrorKind.EXCEPTION, Severity.WARNING, major=everything, minor=everything)
        assert bucket is Bucket.FATAL

    def test_warning_is_major_with_default_masks(self) -> None:
        bucket = classify(
            ErrorKind.RUNTIME_ERROR, Severity.WARNING, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR
        )
        assert bucket is Bucket.MAJOR

    def test_notice_is_minor_with_default_masks(self) -> None:
        bucket = classify(
            ErrorKind.RUNTIME_ERROR, Severity.NOTICE, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR
        )
        assert bucket is Bucket.MINOR

    def test_user_error_is_fatal(self) -> None:
        bucket = classify(
            ErrorKind.RUNTIME_ERROR, Severity.USER_ERROR, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR
        )
        assert bucket is Bucket.FATAL

    def test_unmapped_code_is_fatal(self) -> None:
        bucket = classify(ErrorKind.RUNTIME_ERROR, 3, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR)
        assert bucket is Bucket.FATAL

    def test_major_wins_when_code_is_in_both_masks(self) -> None:
        both = frozenset({Severity.NOTICE})
        bucket = classify(ErrorKind.RUNTIME_ERROR, Severity.NOTICE, major=both, minor=both)
        assert bucket is Bucket.MAJOR

    def test_plain_int_code_matches_enum_mask(self) -> None:
        bucket = classify(ErrorKind.RUNTIME_ERROR, 2, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR)
        assert bucket is Bucket.MAJOR

    def test_is_deterministic(self) -> None:
        results = {
            classify(ErrorKind.RUNTIME_ERROR, Severity.STRICT, major=DEFAULT_MAJOR, minor=DEFAULT_MINOR)
            for _ in range(5)
        }
        assert results == {Bucket.MINOR}


@pytest.mark.unit
class TestSeveritySets:
    def test_defaults_are_settable(self) -> None:
        assert DEFAULT_MINOR <= SETTABLE
        assert DEFAULT_MAJOR <= SETTABLE

    def test_core_fatal_is_never_settable(self) -> None:
        assert not CORE_FATAL & SETTABLE

    def test_default_masks_do_not_overlap(self) -> None:
        assert not DEFAULT_MINOR & DEFAULT_MAJOR


@pytest.mark.unit
class TestCoerceSeverities:
    def test_bitmask(self) -> None:
        assert coerce_severities(2 | 8) == {Severity.WARNING, Severity.NOTICE}

    def test_zero_bitmask_is_empty(self) -> None:
        assert coerce_severities(0) == frozenset()

    def test_member(self) -> None:
        assert coerce_severities(Severity.STRICT) == {Severity.STRICT}

    def test_names_are_case_insensitive_and_accept_prefix(self) -> None:
        assert coerce_severities(["notice", "E_USER_NOTICE", "Strict"]) == {
            Severity.NOTICE,
            Severity.USER_NOTICE,
            Severity.STRICT,
        }

    def test_mixed_iterable(self) -> None:
        assert coerce_severities([Severity.WARNING, 8, "deprecated"]) == {
            Severity.WARNING,
            Severity.NOTICE,
            Severity.DEPRECATED,
        }

    @pytest.mark.parametrize("value", ["bogus", 1 << 15, -1, True, 1.5, [None]])
    def test_rejects_unknown_values(self, value: object) -> None:
        with pytest.raises(ValueError):
            coerce_severities(value)


@pytest.mark.unit
class TestNames:
    def test_severity_name(self) -> None:
        assert severity_name(2) == "WARNING"
        assert severity_name(Severity.USER_DEPRECATED) == "USER_DEPRECATED"

    def test_unknown_severity_name(self) -> None:
        assert severity_name(3) == "UNKNOWN_ERROR"

    def test_kind_name(self) -> None:
        assert kind_name(ErrorKind.RUNTIME_ERROR) == "Runtime error"
        assert kind_name(ErrorKind.EXCEPTION) == "Exception"
