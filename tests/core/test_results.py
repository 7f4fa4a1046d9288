"""Tests for autocert.core.results: validation outcome values."""

from __future__ import annotations

from autocert.core.results import AuthorizationFailure, AuthorizationSuccess, FailureKind


class TestOutcomes:
    def test_success_is_ok(self):
        assert AuthorizationSuccess("a.test").ok is True

    def test_failure_is_not_ok(self):
        failure = AuthorizationFailure("a.test", FailureKind.TIMEOUT, "too slow", attempts=60)
        assert failure.ok is False
        assert failure.attempts == 60

    def test_failure_str(self):
        failure = AuthorizationFailure("a.test", FailureKind.INVALID, "bad dns")
        assert str(failure) == "a.test: bad dns (invalid)"

    def test_failures_compare_by_value(self):
        a = AuthorizationFailure("a.test", FailureKind.REVOKED, "r")
        b = AuthorizationFailure("a.test", FailureKind.REVOKED, "r")
        assert a == b
