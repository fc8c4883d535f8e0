"""User-facing operations on preferences, favorites and reminders"""
import sqlite3
from dataclasses import replace
from typing import Iterable, List, Optional

from .contest_filter import filter_contests
from ..storage.database import NOTIFICATION_PREFERENCE_FIELDS, Database
from ..storage.models import (
    CONTEST_TYPES,
    Contest,
    ContestPreference,
    ContestReminder,
    NotificationPreference,
    NotificationTiming,
    Platform,
    User,
)
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

CONTEST_PREFERENCE_FIELDS = (
    "codeforces_min_rating", "codeforces_max_rating",
    "codeforces_types", "codechef_types", "leetcode_types",
    "min_duration_minutes", "max_duration_minutes",
)

_TYPE_FIELDS = {
    "codeforces_types": Platform.CODEFORCES,
    "codechef_types": Platform.CODECHEF,
    "leetcode_types": Platform.LEETCODE,
}


class ReminderExistsError(ValueError):
    """The user already has a reminder for the contest"""

    def __init__(self, reminder: ContestReminder):
        super().__init__(
            f"Reminder already exists for user {reminder.user_id} "
            f"and contest {reminder.contest_id}"
        )
        self.reminder = reminder


class PreferenceService:
    """Preference, favorite and reminder operations for a single user"""

    def __init__(self, database: Database):
        self.database = database

    def get_notification_preferences(self, user_id: int) -> NotificationPreference:
        """Get notification preferences, creating the defaults on first access"""
        self._require_user(user_id)
        preferences = self.database.get_notification_preferences(user_id)
        if preferences is None:
            logger.debug(f"Creating default notification preferences for user {user_id}")
            preferences = self.database.create_notification_preferences(
                NotificationPreference(user_id=user_id)
            )
        return preferences

    def update_notification_preferences(self, user_id: int, **fields) -> NotificationPreference:
        """
        Update notification preferences

        Raises:
            ValueError: Unknown field, non-boolean flag or unknown timing
            LookupError: User does not exist
        """
        self._require_user(user_id)
        unknown = set(fields) - set(NOTIFICATION_PREFERENCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        if "notification_timing" in fields:
            timing = fields["notification_timing"]
            valid = [t.value for t in NotificationTiming]
            if timing not in valid:
                raise ValueError(f"notification_timing must be one of {', '.join(valid)}")
            fields["notification_timing"] = NotificationTiming(timing).value

        for name, value in fields.items():
            if name != "notification_timing" and not isinstance(value, bool):
                raise ValueError(f"{name} must be a boolean")

        self.get_notification_preferences(user_id)
        return self.database.update_notification_preferences(user_id, **fields)

    def get_contest_preferences(self, user_id: int) -> ContestPreference:
        """Get contest filter preferences, defaults when none are stored"""
        return self.database.get_contest_preferences(user_id) or ContestPreference(user_id=user_id)

    def update_contest_preferences(self, user_id: int, **fields) -> ContestPreference:
        """
        Update contest filter preferences

        Raises:
            ValueError: Unknown field, unknown contest type or inverted range
            LookupError: User does not exist
        """
        self._require_user(user_id)
        unknown = set(fields) - set(CONTEST_PREFERENCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        for name, platform in _TYPE_FIELDS.items():
            if name in fields:
                invalid = set(fields[name]) - set(CONTEST_TYPES[platform])
                if invalid:
                    raise ValueError(
                        f"Unknown {platform.value} contest types: {', '.join(sorted(invalid))}"
                    )
                fields[name] = list(fields[name])

        preferences = replace(self.get_contest_preferences(user_id), **fields)

        if preferences.codeforces_min_rating > preferences.codeforces_max_rating:
            raise ValueError("codeforces_min_rating must not exceed codeforces_max_rating")
        if preferences.min_duration_minutes > preferences.max_duration_minutes:
            raise ValueError("min_duration_minutes must not exceed max_duration_minutes")

        return self.database.save_contest_preferences(preferences)

    def toggle_favorite(self, user_id: int, contest_id: int) -> ContestPreference:
        """
        Add a contest to the user's favorites, or remove it if present

        Raises:
            LookupError: User or contest does not exist
        """
        self._require_user(user_id)
        self._require_contest(contest_id)
        preferences = self.get_contest_preferences(user_id)

        favorites = list(preferences.favorite_contest_ids)
        if contest_id in favorites:
            favorites.remove(contest_id)
        else:
            favorites.append(contest_id)

        return self.database.save_contest_preferences(
            replace(preferences, favorite_contest_ids=favorites)
        )

    def get_favorite_contests(self, user_id: int) -> List[Contest]:
        """Get the user's favorite contests that still exist"""
        favorites = []
        for contest_id in self.get_contest_preferences(user_id).favorite_contest_ids:
            contest = self.database.get_contest_by_id(contest_id)
            if contest is not None:
                favorites.append(contest)
        return favorites

    def get_personalized_contests(
        self,
        user_id: int,
        platforms: Optional[Iterable[Platform]] = None
    ) -> List[Contest]:
        """Upcoming contests filtered by the user's contest preferences"""
        contests = self.database.get_upcoming_contests(platforms=platforms)
        return filter_contests(contests, self.get_contest_preferences(user_id))

    def add_reminder(self, user_id: int, contest_id: int) -> ContestReminder:
        """
        Opt in to a reminder for a contest

        Raises:
            LookupError: User or contest does not exist
            ReminderExistsError: User already has a reminder for it
        """
        self._require_user(user_id)
        self._require_contest(contest_id)

        existing = self.database.get_contest_reminder(user_id, contest_id)
        if existing is not None:
            raise ReminderExistsError(existing)

        try:
            return self.database.create_contest_reminder(user_id, contest_id, reminded=False)
        except sqlite3.IntegrityError:
            existing = self.database.get_contest_reminder(user_id, contest_id)
            if existing is None:
                raise
            raise ReminderExistsError(existing)

    def get_reminders(self, user_id: int) -> List[ContestReminder]:
        return self.database.get_contest_reminders(user_id)

    def _require_user(self, user_id: int) -> User:
        user = self.database.get_user(user_id)
        if user is None:
            raise LookupError(f"User {user_id} not found")
        return user

    def _require_contest(self, contest_id: int) -> Contest:
        contest = self.database.get_contest_by_id(contest_id)
        if contest is None:
            raise LookupError(f"Contest {contest_id} not found")
        return contest
