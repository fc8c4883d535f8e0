"""Base fetcher: source fallback chain, time window filtering and classification"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import requests

from ..storage.models import Contest, Platform
from ..utils.duration import duration_minutes, format_duration
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc

logger = setup_logger(__name__)

DEFAULT_TIMEOUT = 30

# (markers, contest type, difficulty); first matching rule wins
ClassificationRule = Tuple[Tuple[str, ...], str, Optional[str]]

CLASSIFICATION_RULES: Dict[Platform, Sequence[ClassificationRule]] = {
    Platform.CODEFORCES: (
        (("div. 1", "div.1", "div 1"), "div1", "1900+"),
        (("div. 2", "div.2", "div 2"), "div2", "1600-1899"),
        (("div. 3", "div.3", "div 3"), "div3", "1300-1599"),
        (("div. 4", "div.4", "div 4"), "div4", "0-1299"),
        (("educational",), "educational", "1600+"),
        (("global",), "global", "All levels"),
    ),
    Platform.CODECHEF: (
        (("long", "challenge"), "long", "All levels"),
        (("cook-off", "cook"), "cookoff", "Medium-Hard"),
        (("lunchtime", "lunch"), "lunchtime", "Medium"),
        (("starters",), "starters", "All levels"),
    ),
    # 'biweekly' contains 'weekly', so it has to be checked first
    Platform.LEETCODE: (
        (("biweekly",), "biweekly", "Medium-Hard"),
        (("weekly",), "weekly", "Medium-Hard"),
    ),
}


def classify_contest(platform: Platform, name: str) -> Tuple[str, Optional[str]]:
    """
    Classify a contest by its name

    Args:
        platform: Platform the contest belongs to
        name: Contest name as published by the platform

    Returns:
        Tuple of (contest type, difficulty label or None)
    """
    lowered = name.lower()
    for markers, contest_type, difficulty in CLASSIFICATION_RULES[platform]:
        if any(marker in lowered for marker in markers):
            return contest_type, difficulty
    return "other", None


@dataclass
class ContestListing:
    """A contest as read from an external source, before normalization"""
    name: str
    url: str
    start_time: datetime
    end_time: datetime


class ContestSource:
    """One way of retrieving contest listings for a platform"""

    name = "source"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def fetch_listings(self, window_start: datetime, window_end: datetime) -> List[ContestListing]:
        """
        Retrieve raw listings. May raise on transport or parse errors.

        Args:
            window_start: Earliest start time of interest (sources may ignore it)
            window_end: Latest start time of interest (sources may ignore it)
        """
        raise NotImplementedError


class ContestFetcher:
    """Fetches and normalizes contests of one platform from an ordered list of sources"""

    platform: Platform

    def __init__(
        self,
        sources: Sequence[ContestSource],
        lookback_days: int = 7,
        lookahead_days: int = 30,
        clock: Callable[[], datetime] = now_utc
    ):
        """
        Initialize fetcher

        Args:
            sources: Sources in priority order; later ones are fallbacks
            lookback_days: Keep contests that ended at most this many days ago
            lookahead_days: Keep contests starting at most this many days ahead
            clock: Returns the current naive UTC time
        """
        self.sources = list(sources)
        self.lookback_days = lookback_days
        self.lookahead_days = lookahead_days
        self.clock = clock

    def fetch(self) -> List[Contest]:
        """
        Fetch contests, falling back through the sources in order

        Never raises: failures are logged and an empty list is returned
        when no source produced any contest.

        Returns:
            List of normalized Contest objects
        """
        now = self.clock()
        window_start = now - timedelta(days=self.lookback_days)
        window_end = now + timedelta(days=self.lookahead_days)

        for source in self.sources:
            try:
                logger.debug(f"Fetching {self.platform.value} contests from {source.name}")
                listings = source.fetch_listings(window_start, window_end)
                contests = self._normalize(listings, window_start, window_end)
            except requests.RequestException as e:
                logger.error(f"Failed to fetch {self.platform.value} contests from {source.name}: {e}")
                continue
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Unexpected {self.platform.value} response from {source.name}: {e}")
                continue
            except Exception as e:
                logger.error(f"Error fetching {self.platform.value} contests from {source.name}: {e}")
                continue

            if contests:
                logger.info(f"Fetched {len(contests)} {self.platform.value} contests from {source.name}")
                return contests

            logger.warning(f"No {self.platform.value} contests from {source.name}")

        logger.warning(f"All sources failed for {self.platform.value}, returning no contests")
        return []

    def _normalize(
        self,
        listings: List[ContestListing],
        window_start: datetime,
        window_end: datetime
    ) -> List[Contest]:
        """Drop invalid or out-of-window listings and build Contest records"""
        contests = []
        for listing in listings:
            if listing.end_time <= listing.start_time:
                logger.debug(f"Skipping {listing.name!r}: end time is not after start time")
                continue
            if listing.end_time < window_start or listing.start_time > window_end:
                continue
            contests.append(self._to_contest(listing))
        return contests

    def _to_contest(self, listing: ContestListing) -> Contest:
        """Build a Contest from a listing"""
        minutes = duration_minutes(listing.start_time, listing.end_time)
        contest_type, difficulty = classify_contest(self.platform, listing.name)

        return Contest(
            platform=self.platform,
            name=listing.name,
            url=listing.url,
            start_time=listing.start_time,
            end_time=listing.end_time,
            duration=format_duration(minutes),
            duration_minutes=minutes,
            difficulty=difficulty,
            contest_type=contest_type
        )
