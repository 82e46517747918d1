from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from database import wait_for_database


class FlakyEngine:
    """Fails to connect ``failures`` times, then delegates to a real engine."""

    def __init__(self, failures: int) -> None:
        self.remaining = failures
        self.real = create_engine("sqlite:///:memory:")

    @contextmanager
    def connect(self):
        if self.remaining:
            self.remaining -= 1
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        with self.real.connect() as conn:
            yield conn


def test_wait_for_database_retries_with_fixed_backoff():
    sleeps = []
    failures = wait_for_database(FlakyEngine(3), sleep=sleeps.append)

    assert failures == 3
    assert sleeps == [5.0, 5.0, 5.0]


def test_wait_for_database_returns_immediately_when_up():
    sleeps = []
    assert wait_for_database(FlakyEngine(0), sleep=sleeps.append) == 0
    assert sleeps == []
