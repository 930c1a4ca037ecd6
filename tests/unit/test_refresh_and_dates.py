"""Unit tests for the snapshot refresher retry policy and date helpers"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from spurz_engine.services.refresh import SnapshotRefresher
from spurz_engine.utils.date_utils import days_until, expires_in, to_naive_utc


class FlakyScope:
    """Session scope that fails a fixed number of times before giving up"""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    @contextmanager
    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("database unavailable")
        yield None


def test_refresh_gives_up_after_max_retries():
    scope = FlakyScope(failures=10)
    sleeps = []

    refresher = SnapshotRefresher(scope, max_retries=3, backoff_base=0.5, sleep=sleeps.append)

    assert refresher.run("user-1", trigger="ledger") is False
    assert scope.calls == 3
    assert sleeps == [0.5, 1.0]


def test_refresh_needs_at_least_one_attempt():
    scope = FlakyScope(failures=10)
    refresher = SnapshotRefresher(scope, max_retries=0, backoff_base=0.1, sleep=lambda _: None)

    assert refresher.run("user-1") is False
    assert scope.calls == 1


def test_to_naive_utc():
    aware = datetime(2026, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert to_naive_utc(aware) == datetime(2026, 1, 1, 0, 0)
    assert to_naive_utc(datetime(2026, 1, 1)) == datetime(2026, 1, 1)


def test_expires_in():
    now = datetime(2026, 1, 1)
    assert expires_in(30, now) == datetime(2026, 1, 31)


def test_days_until():
    now = datetime(2026, 1, 1)
    assert days_until(None, now) is None
    assert days_until(now - timedelta(hours=1), now) == 0
    assert days_until(now + timedelta(hours=1), now) == 1
    assert days_until(now + timedelta(days=30), now) == 30
