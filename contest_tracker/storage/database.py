"""SQLite database operations"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, List, Optional

from .models import (
    Contest,
    ContestPreference,
    ContestReminder,
    NotificationPreference,
    Platform,
    User,
)
from ..utils.timezone import now_utc

# Columns that may be changed through update_contest (administrative correction)
CONTEST_UPDATABLE_FIELDS = (
    "name", "url", "start_time", "end_time", "duration",
    "duration_minutes", "difficulty", "contest_type",
)

NOTIFICATION_PREFERENCE_FIELDS = (
    "email_notifications", "notification_timing",
    "notify_codeforces", "notify_codechef", "notify_leetcode",
)


class Database:
    """SQLite database manager for contests, users, preferences and reminders"""

    def __init__(self, db_path: str = "data/contests.db"):
        """Initialize database connection"""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist"""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    platform TEXT NOT NULL,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    duration TEXT NOT NULL,
                    duration_minutes INTEGER NOT NULL,
                    difficulty TEXT,
                    contest_type TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (platform, name, start_time)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    email TEXT UNIQUE,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notification_preferences (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE
                        REFERENCES users(id) ON DELETE CASCADE,
                    email_notifications INTEGER NOT NULL DEFAULT 1,
                    notification_timing TEXT NOT NULL DEFAULT '1hour',
                    notify_codeforces INTEGER NOT NULL DEFAULT 1,
                    notify_codechef INTEGER NOT NULL DEFAULT 1,
                    notify_leetcode INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contest_reminders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    contest_id INTEGER NOT NULL REFERENCES contests(id) ON DELETE CASCADE,
                    reminded INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (user_id, contest_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS contest_preferences (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE
                        REFERENCES users(id) ON DELETE CASCADE,
                    codeforces_min_rating INTEGER NOT NULL DEFAULT 0,
                    codeforces_max_rating INTEGER NOT NULL DEFAULT 4000,
                    codeforces_types TEXT NOT NULL DEFAULT '[]',
                    codechef_types TEXT NOT NULL DEFAULT '[]',
                    leetcode_types TEXT NOT NULL DEFAULT '[]',
                    min_duration_minutes INTEGER NOT NULL DEFAULT 0,
                    max_duration_minutes INTEGER NOT NULL DEFAULT 1440,
                    favorite_contest_ids TEXT NOT NULL DEFAULT '[]'
                )
            """)

            # Indexes for performance
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_contests_start_time
                ON contests(start_time)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_contests_end_time
                ON contests(end_time)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    # Contests

    def create_contest(self, contest: Contest) -> Contest:
        """Insert a contest and return it with its assigned ID"""
        created_at = contest.created_at or now_utc()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO contests
                (platform, name, url, start_time, end_time, duration,
                 duration_minutes, difficulty, contest_type, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                Platform(contest.platform).value,
                contest.name,
                contest.url,
                contest.start_time.isoformat(),
                contest.end_time.isoformat(),
                contest.duration,
                contest.duration_minutes,
                contest.difficulty,
                contest.contest_type,
                created_at.isoformat()
            ))
            conn.commit()
            contest_id = cursor.lastrowid

        return self.get_contest_by_id(contest_id)

    def get_contest_by_id(self, contest_id: int) -> Optional[Contest]:
        """Get a contest by ID"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM contests WHERE id = ?", (contest_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_contest(row)
            return None

    def get_all_contests(self) -> List[Contest]:
        """Get every stored contest"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM contests ORDER BY start_time ASC")
            return [self._row_to_contest(row) for row in cursor.fetchall()]

    def get_upcoming_contests(
        self,
        now: Optional[datetime] = None,
        platforms: Optional[Iterable[Platform]] = None
    ) -> List[Contest]:
        """Get contests starting after now, earliest first"""
        now = now or now_utc()
        query = "SELECT * FROM contests WHERE start_time > ?"
        params: List[Any] = [now.isoformat()]
        query, params = self._filter_platforms(query, params, platforms)
        query += " ORDER BY start_time ASC"

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_contest(row) for row in cursor.fetchall()]

    def get_current_contests(
        self,
        now: Optional[datetime] = None,
        platforms: Optional[Iterable[Platform]] = None
    ) -> List[Contest]:
        """Get contests running at the given time"""
        now = now or now_utc()
        query = "SELECT * FROM contests WHERE start_time <= ? AND end_time >= ?"
        params: List[Any] = [now.isoformat(), now.isoformat()]
        query, params = self._filter_platforms(query, params, platforms)
        query += " ORDER BY start_time ASC"

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_contest(row) for row in cursor.fetchall()]

    def get_past_contests(
        self,
        days: int,
        now: Optional[datetime] = None,
        platforms: Optional[Iterable[Platform]] = None
    ) -> List[Contest]:
        """Get contests that ended within the last `days` days, most recent first"""
        now = now or now_utc()
        cutoff = now - timedelta(days=days)
        query = "SELECT * FROM contests WHERE end_time < ? AND end_time > ?"
        params: List[Any] = [now.isoformat(), cutoff.isoformat()]
        query, params = self._filter_platforms(query, params, platforms)
        query += " ORDER BY end_time DESC"

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [self._row_to_contest(row) for row in cursor.fetchall()]

    def update_contest(self, contest_id: int, **fields) -> Optional[Contest]:
        """Correct fields of a stored contest"""
        unknown = set(fields) - set(CONTEST_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update contest fields: {', '.join(sorted(unknown))}")
        if not fields:
            return self.get_contest_by_id(contest_id)

        values = [
            value.isoformat() if isinstance(value, datetime) else value
            for value in fields.values()
        ]
        assignments = ", ".join(f"{name} = ?" for name in fields)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE contests SET {assignments} WHERE id = ?",
                (*values, contest_id)
            )
            conn.commit()

        return self.get_contest_by_id(contest_id)

    @staticmethod
    def _filter_platforms(query: str, params: List[Any], platforms):
        """Append a platform IN (...) clause when platforms are given"""
        if not platforms:
            return query, params
        values = [Platform(p).value for p in platforms]
        placeholders = ", ".join("?" for _ in values)
        return f"{query} AND platform IN ({placeholders})", params + values

    # Users

    def create_user(self, username: str, email: Optional[str]) -> User:
        """Register a user"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO users (username, email, created_at)
                VALUES (?, ?, ?)
            """, (username, email, now_utc().isoformat()))
            conn.commit()
            user_id = cursor.lastrowid

        return self.get_user(user_id)

    def get_user(self, user_id: int) -> Optional[User]:
        """Get a user by ID"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_user(row)
            return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users WHERE username = ?", (username,))
            row = cursor.fetchone()
            if row:
                return self._row_to_user(row)
            return None

    def list_users(self) -> List[User]:
        """Get all users"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users ORDER BY id ASC")
            return [self._row_to_user(row) for row in cursor.fetchall()]

    # Notification preferences

    def get_notification_preferences(self, user_id: int) -> Optional[NotificationPreference]:
        """Get a user's notification preferences"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM notification_preferences WHERE user_id = ?",
                (user_id,)
            )
            row = cursor.fetchone()
            if row:
                return self._row_to_notification_preference(row)
            return None

    def create_notification_preferences(
        self,
        preferences: NotificationPreference
    ) -> NotificationPreference:
        """Store notification preferences for a user"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO notification_preferences
                (user_id, email_notifications, notification_timing,
                 notify_codeforces, notify_codechef, notify_leetcode)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                preferences.user_id,
                int(preferences.email_notifications),
                preferences.notification_timing,
                int(preferences.notify_codeforces),
                int(preferences.notify_codechef),
                int(preferences.notify_leetcode)
            ))
            conn.commit()

        return self.get_notification_preferences(preferences.user_id)

    def update_notification_preferences(
        self,
        user_id: int,
        **fields
    ) -> Optional[NotificationPreference]:
        """Update some notification preference fields for a user"""
        unknown = set(fields) - set(NOTIFICATION_PREFERENCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")
        if fields:
            values = [int(v) if isinstance(v, bool) else v for v in fields.values()]
            assignments = ", ".join(f"{name} = ?" for name in fields)
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE notification_preferences SET {assignments} WHERE user_id = ?",
                    (*values, user_id)
                )
                conn.commit()

        return self.get_notification_preferences(user_id)

    # Contest preferences

    def get_contest_preferences(self, user_id: int) -> Optional[ContestPreference]:
        """Get a user's contest filter preferences"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM contest_preferences WHERE user_id = ?",
                (user_id,)
            )
            row = cursor.fetchone()
            if row:
                return self._row_to_contest_preference(row)
            return None

    def save_contest_preferences(self, preferences: ContestPreference) -> ContestPreference:
        """Insert or replace a user's contest filter preferences"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO contest_preferences
                (user_id, codeforces_min_rating, codeforces_max_rating,
                 codeforces_types, codechef_types, leetcode_types,
                 min_duration_minutes, max_duration_minutes, favorite_contest_ids)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    codeforces_min_rating = excluded.codeforces_min_rating,
                    codeforces_max_rating = excluded.codeforces_max_rating,
                    codeforces_types = excluded.codeforces_types,
                    codechef_types = excluded.codechef_types,
                    leetcode_types = excluded.leetcode_types,
                    min_duration_minutes = excluded.min_duration_minutes,
                    max_duration_minutes = excluded.max_duration_minutes,
                    favorite_contest_ids = excluded.favorite_contest_ids
            """, (
                preferences.user_id,
                preferences.codeforces_min_rating,
                preferences.codeforces_max_rating,
                json.dumps(preferences.codeforces_types),
                json.dumps(preferences.codechef_types),
                json.dumps(preferences.leetcode_types),
                preferences.min_duration_minutes,
                preferences.max_duration_minutes,
                json.dumps(preferences.favorite_contest_ids)
            ))
            conn.commit()

        return self.get_contest_preferences(preferences.user_id)

    # Contest reminders

    def get_contest_reminder(self, user_id: int, contest_id: int) -> Optional[ContestReminder]:
        """Get the reminder for a user and contest"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT * FROM contest_reminders
                WHERE user_id = ? AND contest_id = ?
            """, (user_id, contest_id))
            row = cursor.fetchone()
            if row:
                return self._row_to_reminder(row)
            return None

    def get_contest_reminders(self, user_id: int) -> List[ContestReminder]:
        """Get all reminders of a user"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM contest_reminders WHERE user_id = ? ORDER BY id ASC",
                (user_id,)
            )
            return [self._row_to_reminder(row) for row in cursor.fetchall()]

    def create_contest_reminder(
        self,
        user_id: int,
        contest_id: int,
        reminded: bool = False
    ) -> ContestReminder:
        """Create a reminder; raises sqlite3.IntegrityError if one exists"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO contest_reminders (user_id, contest_id, reminded)
                VALUES (?, ?, ?)
            """, (user_id, contest_id, int(reminded)))
            conn.commit()
            reminder_id = cursor.lastrowid

        return ContestReminder(
            id=reminder_id,
            user_id=user_id,
            contest_id=contest_id,
            reminded=reminded
        )

    def update_contest_reminder(self, reminder_id: int, reminded: bool) -> Optional[ContestReminder]:
        """Set the reminded flag of a reminder"""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE contest_reminders SET reminded = ? WHERE id = ?",
                (int(reminded), reminder_id)
            )
            conn.commit()
            cursor.execute("SELECT * FROM contest_reminders WHERE id = ?", (reminder_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_reminder(row)
            return None

    # Row mapping

    def _row_to_contest(self, row: sqlite3.Row) -> Contest:
        """Convert database row to Contest object"""
        return Contest(
            id=row['id'],
            platform=Platform(row['platform']),
            name=row['name'],
            url=row['url'],
            start_time=datetime.fromisoformat(row['start_time']),
            end_time=datetime.fromisoformat(row['end_time']),
            duration=row['duration'],
            duration_minutes=row['duration_minutes'],
            difficulty=row['difficulty'],
            contest_type=row['contest_type'],
            created_at=datetime.fromisoformat(row['created_at'])
        )

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User object"""
        return User(
            id=row['id'],
            username=row['username'],
            email=row['email'],
            created_at=datetime.fromisoformat(row['created_at'])
        )

    def _row_to_notification_preference(self, row: sqlite3.Row) -> NotificationPreference:
        """Convert database row to NotificationPreference object"""
        return NotificationPreference(
            id=row['id'],
            user_id=row['user_id'],
            email_notifications=bool(row['email_notifications']),
            notification_timing=row['notification_timing'],
            notify_codeforces=bool(row['notify_codeforces']),
            notify_codechef=bool(row['notify_codechef']),
            notify_leetcode=bool(row['notify_leetcode'])
        )

    def _row_to_contest_preference(self, row: sqlite3.Row) -> ContestPreference:
        """Convert database row to ContestPreference object"""
        return ContestPreference(
            id=row['id'],
            user_id=row['user_id'],
            codeforces_min_rating=row['codeforces_min_rating'],
            codeforces_max_rating=row['codeforces_max_rating'],
            codeforces_types=json.loads(row['codeforces_types']),
            codechef_types=json.loads(row['codechef_types']),
            leetcode_types=json.loads(row['leetcode_types']),
            min_duration_minutes=row['min_duration_minutes'],
            max_duration_minutes=row['max_duration_minutes'],
            favorite_contest_ids=json.loads(row['favorite_contest_ids'])
        )

    def _row_to_reminder(self, row: sqlite3.Row) -> ContestReminder:
        """Convert database row to ContestReminder object"""
        return ContestReminder(
            id=row['id'],
            user_id=row['user_id'],
            contest_id=row['contest_id'],
            reminded=bool(row['reminded'])
        )
