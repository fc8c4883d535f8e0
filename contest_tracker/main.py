"""Main entry point for the contest tracker service"""
import asyncio
import signal
import sys

from .config import Config
from .storage.database import Database
from .services.aggregator import ContestAggregator
from .services.contest_importer import ContestImporter
from .services.email_client import EmailClient
from .services.notification_service import NotificationService
from .utils.logger import setup_logger

logger = setup_logger(__name__)


class ContestTracker:
    """Main service orchestrator"""

    def __init__(self, config: Config):
        """Initialize service components"""
        self.config = config
        self.database = Database(db_path=config.database_path)
        self.running = False

        # Initialize services
        self.aggregator = ContestAggregator.from_config(config)
        self.importer = ContestImporter(self.database, self.aggregator)
        self.email_client = EmailClient.from_config(config)
        self.notification_service = NotificationService(
            database=self.database,
            email_client=self.email_client,
            check_interval=config.notification_check_interval * 60
        )

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    async def start(self):
        """Start the service"""
        self.running = True
        logger.info("Starting contest tracker...")

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        # Start notification service
        notification_task = asyncio.create_task(self.notification_service.start())

        # Start contest refresh loop
        refresh_task = asyncio.create_task(self._contest_refresh_loop())

        try:
            # Run until stopped
            while self.running:
                await asyncio.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            # Stop services
            logger.info("Stopping services...")
            self.notification_service.stop()
            refresh_task.cancel()
            notification_task.cancel()

            logger.info("Contest tracker stopped")

    async def _contest_refresh_loop(self):
        """Background loop for fetching and importing contests"""
        logger.info("Starting contest refresh loop...")

        # Fetch immediately on startup
        await self._refresh_contests()

        # Then fetch on interval
        while self.running:
            try:
                await asyncio.sleep(self.config.contest_fetch_interval * 60)
                if self.running:
                    await self._refresh_contests()
            except asyncio.CancelledError:
                break

    async def _refresh_contests(self):
        """Run one fetch and import cycle"""
        try:
            result = await self.importer.refresh()
        except Exception as e:
            logger.error(f"Error refreshing contests: {e}")
            return

        if result is not None and result.fetched == 0:
            logger.warning("No contests found from any platform")


async def main():
    """Main entry point"""
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        tracker = ContestTracker(config)
        await tracker.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
