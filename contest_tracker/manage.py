"""Management commands for the contest tracker"""
import argparse
import asyncio
import sqlite3
import sys
from datetime import timedelta
from typing import List

from .config import Config
from .storage.database import Database
from .storage.models import CONTEST_TYPES, Contest, NotificationPreference, NotificationTiming, Platform, User
from .services.aggregator import ContestAggregator
from .services.contest_fetcher import classify_contest
from .services.contest_importer import ContestImporter
from .services.email_client import EmailClient
from .services.notification_service import TIMING_WINDOWS, NotificationService
from .services.preference_service import PreferenceService
from .utils.duration import format_duration
from .utils.logger import setup_logger
from .utils.timezone import now_utc

logger = setup_logger(__name__)


def create_test_contest(platform: Platform, name: str, minutes: int, length: int) -> Contest:
    """
    Create a clearly labeled test contest

    Args:
        platform: Contest platform
        name: Contest name, prefixed with [TEST]
        minutes: Minutes from now until the contest starts
        length: Contest length in minutes

    Returns:
        Contest object (not stored)
    """
    start_time = now_utc().replace(second=0, microsecond=0) + timedelta(minutes=minutes)
    contest_type, difficulty = classify_contest(platform, name)

    return Contest(
        platform=platform,
        name=f"[TEST] {name}",
        url="https://example.invalid/test-contest",
        start_time=start_time,
        end_time=start_time + timedelta(minutes=length),
        duration=format_duration(length),
        duration_minutes=length,
        difficulty=difficulty,
        contest_type=contest_type
    )


def cmd_refresh(config: Config, args):
    """Fetch contests from all platforms once and import them"""
    database = Database(db_path=config.database_path)
    importer = ContestImporter(database, ContestAggregator.from_config(config))
    result = asyncio.run(importer.refresh())
    if result is not None:
        logger.info(f"✓ Imported {result.inserted} new contest(s), {result.skipped} already known")


def cmd_notify(config: Config, args):
    """Run a single notification check"""
    database = Database(db_path=config.database_path)
    service = NotificationService(database, EmailClient.from_config(config))
    sent = asyncio.run(service.check_and_notify())
    logger.info(f"✓ Sent {sent} reminder(s)")


def cmd_add_user(config: Config, args):
    """Register a user with notification preferences"""
    database = Database(db_path=config.database_path)
    try:
        user = database.create_user(args.username, args.email)
    except sqlite3.IntegrityError:
        logger.error(f"User {args.username!r} or email {args.email!r} already exists")
        sys.exit(1)

    PreferenceService(database).update_notification_preferences(
        user.id,
        notification_timing=args.timing
    )
    logger.info(f"✓ Created user {user.username} (ID: {user.id}), reminders {args.timing} before start")


def _print_contests(contests: List[Contest], empty_message: str):
    for contest in contests:
        print(
            f"{contest.id:>5}  {contest.start_time:%Y-%m-%d %H:%M} UTC  {contest.platform.value:<10}  "
            f"{contest.duration:>7}  {contest.name}"
        )
    if not contests:
        logger.info(empty_message)


def _platforms(args):
    return [Platform(args.platform)] if args.platform else None


def cmd_list_upcoming(config: Config, args):
    """Print upcoming contests"""
    database = Database(db_path=config.database_path)
    contests = database.get_upcoming_contests(platforms=_platforms(args))[:args.limit]
    _print_contests(contests, "No upcoming contests stored")


def cmd_list_current(config: Config, args):
    """Print contests that are running now"""
    database = Database(db_path=config.database_path)
    contests = database.get_current_contests(platforms=_platforms(args))[:args.limit]
    _print_contests(contests, "No contests running right now")


def cmd_list_past(config: Config, args):
    """Print contests that ended recently, most recent first"""
    database = Database(db_path=config.database_path)
    contests = database.get_past_contests(args.days, platforms=_platforms(args))[:args.limit]
    _print_contests(contests, f"No contests ended in the last {args.days} day(s)")


def cmd_correct_contest(config: Config, args):
    """Correct the classification or link of a stored contest"""
    database = Database(db_path=config.database_path)
    contest = database.get_contest_by_id(args.contest_id)
    if contest is None:
        logger.error(f"Contest {args.contest_id} not found")
        sys.exit(1)

    fields = {}
    if args.difficulty is not None:
        fields["difficulty"] = args.difficulty
    if args.type is not None:
        if args.type not in CONTEST_TYPES[contest.platform]:
            logger.error(
                f"Unknown {contest.platform.value} contest type {args.type!r}, "
                f"expected one of: {', '.join(CONTEST_TYPES[contest.platform])}"
            )
            sys.exit(1)
        fields["contest_type"] = args.type
    if args.url is not None:
        fields["url"] = args.url

    if not fields:
        logger.error("Nothing to correct, pass --difficulty, --type or --url")
        sys.exit(1)

    contest = database.update_contest(contest.id, **fields)
    logger.info(f"✓ Updated contest {contest.id} ({contest.name}): {', '.join(sorted(fields))}")


def cmd_test_email(config: Config, args):
    """Send a reminder for a test contest straight to an address"""
    if not config.email_configured:
        logger.error("Email is not configured, set EMAIL_USER and EMAIL_PASS")
        sys.exit(1)

    contest = create_test_contest(Platform(args.platform), "Email Delivery Check", 60, 120)
    user = User(id=0, username=args.email.split("@")[0], email=args.email)
    preferences = NotificationPreference(user_id=0)

    logger.info(f"Sending test reminder to {args.email}...")
    if asyncio.run(EmailClient.from_config(config).send(user, contest, preferences)):
        logger.info("✓ Test email sent successfully!")
    else:
        logger.error("✗ Failed to send test email")
        sys.exit(1)


def cmd_seed_contest(config: Config, args):
    """Store a test contest so the notification loop picks it up"""
    contest = create_test_contest(Platform(args.platform), args.name, args.minutes, args.length)
    database = Database(db_path=config.database_path)
    try:
        contest = database.create_contest(contest)
    except sqlite3.IntegrityError:
        logger.error("An identical test contest is already stored")
        sys.exit(1)

    logger.info(f"✓ Test contest stored in database (ID: {contest.id}), starts at {contest.start_time}")
    logger.info("Reminders are sent inside these windows before start:")
    for timing, (lower, upper) in TIMING_WINDOWS.items():
        logger.info(f"  {timing.value}: between {upper} and {lower} before start")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage the contest tracker"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Fetch and import contests once")
    refresh.set_defaults(func=cmd_refresh)

    notify = subparsers.add_parser("notify", help="Run one notification check")
    notify.set_defaults(func=cmd_notify)

    add_user = subparsers.add_parser("add-user", help="Register a user")
    add_user.add_argument("username", type=str)
    add_user.add_argument("email", type=str)
    add_user.add_argument(
        "--timing",
        choices=[t.value for t in NotificationTiming],
        default=NotificationTiming.ONE_HOUR.value,
        help="When to send reminders (default: 1hour)"
    )
    add_user.set_defaults(func=cmd_add_user)

    upcoming = subparsers.add_parser("list-upcoming", help="Show upcoming contests")
    upcoming.add_argument("--platform", choices=[p.value for p in Platform])
    upcoming.add_argument("--limit", type=int, default=20)
    upcoming.set_defaults(func=cmd_list_upcoming)

    current = subparsers.add_parser("list-current", help="Show contests running now")
    current.add_argument("--platform", choices=[p.value for p in Platform])
    current.add_argument("--limit", type=int, default=20)
    current.set_defaults(func=cmd_list_current)

    past = subparsers.add_parser("list-past", help="Show recently ended contests")
    past.add_argument("--days", type=int, default=7, help="How far back to look (default: 7)")
    past.add_argument("--platform", choices=[p.value for p in Platform])
    past.add_argument("--limit", type=int, default=20)
    past.set_defaults(func=cmd_list_past)

    correct = subparsers.add_parser("correct-contest", help="Fix the difficulty, type or URL of a contest")
    correct.add_argument("contest_id", type=int)
    correct.add_argument("--difficulty", type=str)
    correct.add_argument("--type", type=str, help="Contest type, e.g. div2 or starters")
    correct.add_argument("--url", type=str)
    correct.set_defaults(func=cmd_correct_contest)

    test_email = subparsers.add_parser("test-email", help="Send a test reminder email")
    test_email.add_argument("email", type=str)
    test_email.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=Platform.CODEFORCES.value
    )
    test_email.set_defaults(func=cmd_test_email)

    seed = subparsers.add_parser("seed-contest", help="Store a labeled test contest")
    seed.add_argument(
        "--minutes",
        type=int,
        default=55,
        help="Minutes from now for contest start time (default: 55)"
    )
    seed.add_argument("--length", type=int, default=120, help="Contest length in minutes")
    seed.add_argument("--name", type=str, default="Codeforces Round (Div. 2)")
    seed.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=Platform.CODEFORCES.value
    )
    seed.set_defaults(func=cmd_seed_contest)

    return parser


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    args.func(config, args)


if __name__ == "__main__":
    main()
