"""Shared pytest fixtures"""
from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from contest_tracker.storage.database import Database
from contest_tracker.storage.models import Contest, Platform
from contest_tracker.utils.duration import duration_minutes, format_duration

NOW = datetime(2025, 3, 1, 12, 0, 0)


def make_contest(
    name: str = "Codeforces Round 999 (Div. 2)",
    platform: Platform = Platform.CODEFORCES,
    start_time: Optional[datetime] = None,
    minutes: int = 120,
    url: str = "https://codeforces.com/contests/2000",
    contest_type: Optional[str] = "div2",
    difficulty: Optional[str] = "1600-1899"
) -> Contest:
    """Build an unsaved contest"""
    start_time = start_time or NOW + timedelta(hours=2)
    end_time = start_time + timedelta(minutes=minutes)
    length = duration_minutes(start_time, end_time)
    return Contest(
        platform=platform,
        name=name,
        url=url,
        start_time=start_time,
        end_time=end_time,
        duration=format_duration(length),
        duration_minutes=length,
        difficulty=difficulty,
        contest_type=contest_type
    )


class FakeEmailClient:
    """Records reminders instead of sending them"""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[tuple] = []
        self.attempts = 0

    async def send(self, user, contest, preferences) -> bool:
        self.attempts += 1
        if not self.succeed:
            return False
        self.sent.append((user.id, contest.id))
        return True


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def database(tmp_path):
    """Database backed by a temporary SQLite file"""
    return Database(db_path=str(tmp_path / "contests.db"))


@pytest.fixture
def user(database):
    return database.create_user("alice", "alice@example.com")


@pytest.fixture
def email_client():
    return FakeEmailClient()
