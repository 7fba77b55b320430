"""Tests for QuotaGuard rolling 24h ceilings."""

from datetime import datetime, timedelta, timezone

from oracle.messages import QUOTA_EXCEEDED
from oracle.quota import QuotaGuard

NOW = datetime(2017, 3, 3, 12, 0, tzinfo=timezone.utc)


def _guard(db_path, alerts, per_requester=10, total=100):
    return QuotaGuard(db_path, alerts, max_per_requester_per_day=per_requester, max_per_day=total)


class TestQuotaGuard:
    def test_accepts_up_to_limit(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=10)
        for i in range(10):
            assert guard.check("dev-1", now=NOW).ok
            guard.record("dev-1", f"BA{i}-2017-03-01", now=NOW)
        assert alerts.count == 0

    def test_eleventh_request_rejected_with_one_alert(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=10)
        for i in range(10):
            guard.record("dev-1", f"BA{i}-2017-03-01", now=NOW)

        decision = guard.check("dev-1", now=NOW)

        assert not decision.ok
        assert decision.reason == QUOTA_EXCEEDED
        assert alerts.count == 1

    def test_every_excess_request_alerts_once(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=2)
        guard.record("dev-1", "A", now=NOW)
        guard.record("dev-1", "B", now=NOW)

        for _ in range(3):
            assert not guard.check("dev-1", now=NOW).ok
        assert alerts.count == 3

    def test_other_requesters_unaffected(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=2)
        guard.record("dev-1", "A", now=NOW)
        guard.record("dev-1", "B", now=NOW)

        assert guard.check("dev-2", now=NOW).ok

    def test_global_ceiling(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=10, total=5)
        for i in range(5):
            guard.record(f"dev-{i}", "A", now=NOW)

        decision = guard.check("dev-new", now=NOW)

        assert not decision.ok
        assert alerts.count == 1

    def test_window_rolls_after_24_hours(self, db_path, alerts):
        guard = _guard(db_path, alerts, per_requester=1)
        guard.record("dev-1", "A", now=NOW - timedelta(hours=25))

        assert guard.check("dev-1", now=NOW).ok
        assert not guard.check("dev-1", now=NOW - timedelta(hours=2)).ok

    def test_usage_counts(self, db_path, alerts):
        guard = _guard(db_path, alerts)
        guard.record("dev-1", "A", '{"flightStatuses": []}', now=NOW)
        guard.record("dev-2", "A", now=NOW)

        usage = guard.usage("dev-1", now=NOW)

        assert usage.requester == 1
        assert usage.total == 2
