"""Configuration loading and validation"""
import os
from typing import Optional
from dotenv import load_dotenv

from .services.email_client import DEFAULT_SENDER
from .utils.logger import setup_logger

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Narrowest reminder window; a longer check interval could skip a window
MAX_NOTIFICATION_CHECK_INTERVAL = 10


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # Storage
        self.database_path = os.getenv("DATABASE_PATH", "data/contests.db")

        # CLIST.by credentials (CodeChef and LeetCode primary source)
        self.clist_username: Optional[str] = os.getenv("CLIST_USERNAME") or None
        self.clist_api_key: Optional[str] = os.getenv("CLIST_API_KEY") or None

        # Email configuration
        self.email_host = os.getenv("EMAIL_HOST", "smtp.gmail.com")
        self.email_port = self._get_int("EMAIL_PORT", 587)
        self.email_user: Optional[str] = os.getenv("EMAIL_USER") or None
        self.email_password: Optional[str] = os.getenv("EMAIL_PASS") or None
        self.email_from = os.getenv("EMAIL_FROM", DEFAULT_SENDER)

        # Scheduling
        self.contest_fetch_interval = self._get_int("CONTEST_FETCH_INTERVAL", 60)
        self.notification_check_interval = self._get_int("NOTIFICATION_CHECK_INTERVAL", 5)

        # Fetching
        self.fetch_timeout = self._get_int("FETCH_TIMEOUT", 30)
        self.contest_lookback_days = self._get_int("CONTEST_LOOKBACK_DAYS", 7)
        self.contest_lookahead_days = self._get_int("CONTEST_LOOKAHEAD_DAYS", 30)

        self._validate()
        logger.info("Configuration loaded successfully")

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_password)

    @property
    def clist_configured(self) -> bool:
        return bool(self.clist_username and self.clist_api_key)

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}")

    def _validate(self):
        """Validate configuration values"""
        if self.contest_fetch_interval < 1:
            raise ValueError("CONTEST_FETCH_INTERVAL must be at least 1 minute")

        if not 1 <= self.notification_check_interval <= MAX_NOTIFICATION_CHECK_INTERVAL:
            raise ValueError(
                f"NOTIFICATION_CHECK_INTERVAL must be between 1 and "
                f"{MAX_NOTIFICATION_CHECK_INTERVAL} minutes"
            )

        if self.fetch_timeout < 1:
            raise ValueError("FETCH_TIMEOUT must be at least 1 second")

        if self.contest_lookback_days < 0 or self.contest_lookahead_days < 0:
            raise ValueError("CONTEST_LOOKBACK_DAYS and CONTEST_LOOKAHEAD_DAYS must be non-negative")

        if not 0 < self.email_port < 65536:
            raise ValueError("EMAIL_PORT must be a valid port number")

        logger.info(f"Contest fetch interval: {self.contest_fetch_interval} minutes")
        logger.info(f"Notification check interval: {self.notification_check_interval} minutes")
        if not self.clist_configured:
            logger.warning("CLIST_USERNAME/CLIST_API_KEY not set, using fallback sources only")
        if not self.email_configured:
            logger.warning("EMAIL_USER/EMAIL_PASS not set, reminder emails will not be sent")
