"""Data models for contests, users, preferences and reminders"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class Platform(str, Enum):
    """Supported contest platforms"""
    CODEFORCES = "codeforces"
    CODECHEF = "codechef"
    LEETCODE = "leetcode"


class NotificationTiming(str, Enum):
    """How long before a contest starts a reminder is sent"""
    ONE_HOUR = "1hour"
    THREE_HOURS = "3hours"
    ONE_DAY = "1day"

    @classmethod
    def parse(cls, value: Optional[str]) -> "NotificationTiming":
        """Parse a stored timing value, falling back to one hour"""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown notification timing {value!r}, using {cls.ONE_HOUR.value}")
            return cls.ONE_HOUR


# Contest types recognised per platform ('other' is the fallback everywhere)
CONTEST_TYPES: Dict[Platform, Tuple[str, ...]] = {
    Platform.CODEFORCES: ("div1", "div2", "div3", "div4", "educational", "global", "other"),
    Platform.CODECHEF: ("long", "cookoff", "lunchtime", "starters", "other"),
    Platform.LEETCODE: ("weekly", "biweekly", "other"),
}


@dataclass
class Contest:
    """Represents a programming contest on one platform"""
    platform: Platform
    name: str
    url: str
    start_time: datetime
    end_time: datetime
    duration: str
    duration_minutes: int
    difficulty: Optional[str] = None
    contest_type: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class User:
    """A registered user who can receive reminders"""
    id: int
    username: str
    email: Optional[str]
    created_at: Optional[datetime] = None


@dataclass
class NotificationPreference:
    """Per-user email reminder settings"""
    user_id: int
    email_notifications: bool = True
    notification_timing: str = NotificationTiming.ONE_HOUR.value
    notify_codeforces: bool = True
    notify_codechef: bool = True
    notify_leetcode: bool = True
    id: Optional[int] = None

    @property
    def timing(self) -> NotificationTiming:
        return NotificationTiming.parse(self.notification_timing)


@dataclass
class ContestReminder:
    """Tracks whether a user has been reminded about a contest"""
    id: int
    user_id: int
    contest_id: int
    reminded: bool = False


@dataclass
class ContestPreference:
    """Per-user filters applied to contest listings"""
    user_id: int
    codeforces_min_rating: int = 0
    codeforces_max_rating: int = 4000
    codeforces_types: List[str] = field(default_factory=list)
    codechef_types: List[str] = field(default_factory=list)
    leetcode_types: List[str] = field(default_factory=list)
    min_duration_minutes: int = 0
    max_duration_minutes: int = 1440
    favorite_contest_ids: List[int] = field(default_factory=list)
    id: Optional[int] = None

    def types_for(self, platform: Platform) -> List[str]:
        """Contest type allow-list for a platform"""
        return {
            Platform.CODEFORCES: self.codeforces_types,
            Platform.CODECHEF: self.codechef_types,
            Platform.LEETCODE: self.leetcode_types,
        }[platform]
