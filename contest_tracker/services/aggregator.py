"""Concurrent aggregation of all platform fetchers"""
import asyncio
from typing import List, Optional, Sequence

from .contest_fetcher import ContestFetcher
from .codechef_fetcher import CodechefFetcher
from .codeforces_fetcher import CodeforcesFetcher
from .leetcode_fetcher import LeetcodeFetcher
from ..storage.models import Contest
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class ContestAggregator:
    """Runs every platform fetcher concurrently and concatenates the results"""

    def __init__(self, fetchers: Sequence[ContestFetcher], fetch_timeout: Optional[float] = None):
        """
        Initialize aggregator

        Args:
            fetchers: Platform fetchers to run
            fetch_timeout: Seconds to wait for a single fetcher before giving up on it
        """
        self.fetchers = list(fetchers)
        self.fetch_timeout = fetch_timeout

    @classmethod
    def from_config(cls, config) -> "ContestAggregator":
        """Build the default fetchers for all platforms from configuration"""
        options = dict(
            clist_username=config.clist_username,
            clist_api_key=config.clist_api_key,
            timeout=config.fetch_timeout,
            lookback_days=config.contest_lookback_days,
            lookahead_days=config.contest_lookahead_days,
        )
        fetchers = [
            CodeforcesFetcher(**options),
            CodechefFetcher(**options),
            LeetcodeFetcher(**options),
        ]
        # Leave headroom over the per-request timeout for fallback sources
        return cls(fetchers, fetch_timeout=config.fetch_timeout * 3)

    async def fetch_all(self) -> List[Contest]:
        """
        Fetch contests from all platforms

        Returns:
            Contests of every platform; a failing platform contributes nothing
        """
        results = await asyncio.gather(*(self._run_fetcher(f) for f in self.fetchers))

        contests = [contest for batch in results for contest in batch]
        logger.info(f"Fetched {len(contests)} contests from {len(self.fetchers)} platform(s)")
        return contests

    async def _run_fetcher(self, fetcher: ContestFetcher) -> List[Contest]:
        """Run one blocking fetcher in a worker thread"""
        name = type(fetcher).__name__
        try:
            call = asyncio.to_thread(fetcher.fetch)
            if self.fetch_timeout:
                return await asyncio.wait_for(call, timeout=self.fetch_timeout)
            return await call
        except asyncio.TimeoutError:
            logger.error(f"{name} did not finish within {self.fetch_timeout}s")
            return []
        except Exception as e:
            logger.error(f"{name} failed: {e}")
            return []
