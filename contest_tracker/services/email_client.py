"""SMTP email client for sending contest reminders"""
import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

import aiosmtplib

from ..storage.models import Contest, NotificationPreference, NotificationTiming, User
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_SENDER = "CodeContestTracker <noreply@codecontesttracker.com>"

TIMING_LABELS = {
    NotificationTiming.ONE_HOUR: "in about an hour",
    NotificationTiming.THREE_HOURS: "in about three hours",
    NotificationTiming.ONE_DAY: "tomorrow",
}



def single_line(value: str) -> str:
    """Collapse whitespace, including line breaks, into single spaces"""
    return " ".join(value.split())

class EmailClient:
    """Sends reminder emails through an SMTP server"""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = DEFAULT_SENDER,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        """
        Initialize email client

        Args:
            host: SMTP server host
            port: SMTP server port (465 uses implicit TLS, others STARTTLS)
            username: SMTP login
            password: SMTP password
            sender: From header of reminder emails
            max_retries: Attempts per email before giving up
            retry_delay: Base delay in seconds for exponential backoff
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_config(cls, config) -> "EmailClient":
        return cls(
            host=config.email_host,
            port=config.email_port,
            username=config.email_user,
            password=config.email_password,
            sender=config.email_from
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    async def send(
        self,
        user: User,
        contest: Contest,
        preferences: NotificationPreference
    ) -> bool:
        """
        Send a contest reminder with exponential backoff retry

        Args:
            user: Recipient
            contest: Contest to remind about
            preferences: Recipient's notification preferences

        Returns:
            True if the email was accepted by the SMTP server
        """
        if not self.configured:
            logger.error("Email transport not configured, set EMAIL_USER and EMAIL_PASS")
            return False

        if not user.email:
            logger.error(f"User {user.id} has no email address defined")
            return False

        try:
            message = self._build_message(user, contest, preferences)
        except Exception as e:
            logger.error(f"Failed to build reminder for contest {contest.id} to {user.email}: {e}")
            return False

        for attempt in range(self.max_retries):
            if await self._send_message(message, user.email):
                logger.info(f"Sent reminder for {single_line(contest.name)} to {user.email}")
                return True

            if attempt < self.max_retries - 1:
                wait_time = self.retry_delay * 2 ** attempt  # Exponential backoff
                logger.info(f"Retrying email to {user.email} in {wait_time} seconds...")
                await asyncio.sleep(wait_time)

        logger.error(f"Failed to send reminder to {user.email} after {self.max_retries} attempts")
        return False

    async def _send_message(self, message: MIMEMultipart, recipient: str) -> bool:
        """Single delivery attempt"""
        implicit_tls = self.port == 465
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=implicit_tls,
                start_tls=not implicit_tls
            )
            return True
        except aiosmtplib.SMTPException as e:
            logger.error(f"SMTP error sending email to {recipient}: {e}")
            return False
        except OSError as e:
            logger.error(f"Connection error sending email to {recipient}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending email to {recipient}: {e}")
            return False

    def _build_message(
        self,
        user: User,
        contest: Contest,
        preferences: NotificationPreference
    ) -> MIMEMultipart:
        """
        Format the reminder email

        Args:
            user: Recipient
            contest: Contest to remind about
            preferences: Recipient's notification preferences

        Returns:
            MIME message ready to send
        """
        message = MIMEMultipart("alternative")
        message["From"] = self.sender
        message["To"] = user.email
        name = single_line(contest.name)
        message["Subject"] = f"Reminder: {name} starts soon"

        start = contest.start_time.strftime("%A, %B %d, %Y %H:%M UTC")
        when = TIMING_LABELS[preferences.timing]
        platform = contest.platform.value.capitalize()

        text = "\n".join([
            f"Hello {user.username},",
            "",
            f"{name} on {platform} starts {when}.",
            f"Start time: {start}",
            f"Duration: {contest.duration}",
            f"Contest page: {contest.url}",
            "",
            "Good luck and happy coding!",
        ])

        html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #3f51b5;">Contest Reminder</h2>
          <p>Hello {escape(user.username)},</p>
          <p>This is a reminder that the following programming contest starts {when}:</p>
          <div style="border: 1px solid #e0e0e0; border-radius: 4px; padding: 16px; margin: 16px 0;">
            <h3 style="margin-top: 0; color: #424242;">{escape(name)}</h3>
            <p><strong>Platform:</strong> {platform}</p>
            <p><strong>Start Time:</strong> {start}</p>
            <p><strong>Duration:</strong> {escape(contest.duration)}</p>
            <p><a href="{escape(contest.url)}" style="color: #3f51b5; font-weight: bold;">View Contest</a></p>
          </div>
          <p>Good luck and happy coding!</p>
          <p style="margin-top: 40px; font-size: 12px; color: #757575;">
            You can change or turn off these reminders in your notification settings.
          </p>
        </div>
        """

        message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))
        return message
