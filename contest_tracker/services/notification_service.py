"""Notification service for scheduling and sending contest reminders"""
import asyncio
from datetime import datetime, timedelta
from operator import attrgetter
from typing import Callable, Dict, Optional, Protocol, Tuple

from ..storage.database import Database
from ..storage.models import Contest, NotificationPreference, NotificationTiming, Platform, User
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc

logger = setup_logger(__name__)

# (exclusive lower bound, inclusive upper bound) on the time until start.
# Each window is wider than the check interval so a contest is caught once.
TIMING_WINDOWS: Dict[NotificationTiming, Tuple[timedelta, timedelta]] = {
    NotificationTiming.ONE_HOUR: (timedelta(minutes=50), timedelta(minutes=60)),
    NotificationTiming.THREE_HOURS: (timedelta(minutes=170), timedelta(minutes=180)),
    NotificationTiming.ONE_DAY: (timedelta(minutes=1380), timedelta(minutes=1440)),
}

PLATFORM_NOTIFY_FLAGS: Dict[Platform, Callable[[NotificationPreference], bool]] = {
    Platform.CODEFORCES: attrgetter("notify_codeforces"),
    Platform.CODECHEF: attrgetter("notify_codechef"),
    Platform.LEETCODE: attrgetter("notify_leetcode"),
}


class EmailDispatcher(Protocol):
    async def send(self, user: User, contest: Contest, preferences: NotificationPreference) -> bool:
        ...


def in_notification_window(timing: NotificationTiming, time_until_start: timedelta) -> bool:
    """Check whether the time until a contest starts falls in a timing's window"""
    lower, upper = TIMING_WINDOWS[timing]
    return lower < time_until_start <= upper


class NotificationService:
    """Service for managing contest reminders"""

    def __init__(
        self,
        database: Database,
        email_client: EmailDispatcher,
        check_interval: int = 300
    ):
        """
        Initialize notification service

        Args:
            database: Database instance
            email_client: Dispatcher used to deliver reminders
            check_interval: Seconds between notification checks
        """
        self.database = database
        self.email_client = email_client
        self.check_interval = check_interval
        self.running = False

    async def start(self):
        """Start the notification checking loop"""
        self.running = True
        logger.info(f"Starting notification service (check every {self.check_interval}s)")

        while self.running:
            try:
                await self.check_and_notify()
            except Exception as e:
                logger.error(f"Error in notification loop: {e}")

            await asyncio.sleep(self.check_interval)

    def stop(self):
        """Stop the notification checking loop"""
        self.running = False
        logger.info("Stopping notification service")

    def should_notify(
        self,
        preferences: NotificationPreference,
        contest: Contest,
        now: datetime
    ) -> bool:
        """
        Decide whether a user qualifies for a reminder about a contest now

        Args:
            preferences: The user's notification preferences
            contest: Upcoming contest
            now: Current naive UTC time

        Returns:
            True if email is enabled, the platform is enabled and the
            contest start falls in the window of the chosen timing
        """
        if not preferences.email_notifications:
            return False
        if not PLATFORM_NOTIFY_FLAGS[contest.platform](preferences):
            return False
        return in_notification_window(preferences.timing, contest.start_time - now)

    async def check_and_notify(self, now: Optional[datetime] = None) -> int:
        """
        Send reminders for every (user, contest) pair that qualifies now

        Args:
            now: Current naive UTC time, defaults to the real clock

        Returns:
            Number of reminders sent
        """
        now = now or now_utc()
        contests = self.database.get_upcoming_contests(now)
        if not contests:
            return 0

        users = self.database.list_users()
        sent = 0

        for contest in contests:
            for user in users:
                try:
                    if await self._notify_user(user, contest, now):
                        sent += 1
                except Exception as e:
                    logger.error(f"Error processing notifications for user {user.id}: {e}")

        if sent:
            logger.info(f"Sent {sent} contest reminder(s)")
        return sent

    async def _notify_user(self, user: User, contest: Contest, now: datetime) -> bool:
        """Send one reminder if the user qualifies and has not been reminded yet"""
        preferences = self.database.get_notification_preferences(user.id)
        if preferences is None:
            preferences = NotificationPreference(user_id=user.id)

        if not self.should_notify(preferences, contest, now):
            return False

        reminder = self.database.get_contest_reminder(user.id, contest.id)
        if reminder is not None and reminder.reminded:
            return False

        # Only record the reminder as sent once delivery succeeded, so a
        # failed send is retried on the next tick inside the window
        if not await self.email_client.send(user, contest, preferences):
            logger.warning(f"Reminder for {contest.name} to user {user.id} not delivered")
            return False

        if reminder is None:
            self.database.create_contest_reminder(user.id, contest.id, reminded=True)
        else:
            self.database.update_contest_reminder(reminder.id, True)

        logger.info(
            f"Reminded user {user.id} about {contest.name} "
            f"(starts at {contest.start_time})"
        )
        return True
