"""Deduplicating import of fetched contests into the contest store"""
import asyncio
import sqlite3
from dataclasses import dataclass
from typing import Iterable, Optional, Set, Tuple

from .aggregator import ContestAggregator
from ..storage.database import Database
from ..storage.models import Contest, Platform
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

DedupKey = Tuple[str, str, str]


def dedup_key(contest: Contest) -> DedupKey:
    """
    Generate deduplication key for a contest

    Exact platform, name and ISO start time; no fuzzy matching.
    """
    return (
        Platform(contest.platform).value,
        contest.name,
        contest.start_time.isoformat()
    )


@dataclass
class ImportResult:
    """Outcome of one import run"""
    fetched: int
    inserted: int

    @property
    def skipped(self) -> int:
        return self.fetched - self.inserted


class ContestImporter:
    """Merges fetched contests into the store without creating duplicates"""

    def __init__(self, database: Database, aggregator: Optional[ContestAggregator] = None):
        """
        Initialize importer

        Args:
            database: Contest store
            aggregator: Aggregator used by refresh()
        """
        self.database = database
        self.aggregator = aggregator
        self._refresh_lock = asyncio.Lock()

    def import_contests(self, contests: Iterable[Contest]) -> ImportResult:
        """
        Insert contests whose key is not stored yet

        Existing rows are never modified; the first write wins.

        Args:
            contests: Contests from the aggregator

        Returns:
            Number of fetched and newly inserted contests
        """
        contests = list(contests)
        seen: Set[DedupKey] = {dedup_key(c) for c in self.database.get_all_contests()}
        inserted = 0

        for contest in contests:
            key = dedup_key(contest)
            if key in seen:
                logger.debug(f"Skipping known contest: {key[0]} {contest.name}")
                continue

            try:
                self.database.create_contest(contest)
            except sqlite3.IntegrityError:
                # Inserted concurrently by another run
                logger.debug(f"Contest already stored: {key[0]} {contest.name}")
            else:
                inserted += 1
            seen.add(key)

        logger.info(f"Stored {inserted} new contests ({len(contests)} total fetched)")
        return ImportResult(fetched=len(contests), inserted=inserted)

    async def refresh(self) -> Optional[ImportResult]:
        """
        Fetch from all platforms and import the result

        Returns:
            ImportResult, or None when a refresh is already running
        """
        if self.aggregator is None:
            raise RuntimeError("ContestImporter.refresh() needs an aggregator")

        if self._refresh_lock.locked():
            logger.warning("Contest refresh already in progress, skipping")
            return None

        async with self._refresh_lock:
            logger.info("Fetching contests from platforms...")
            contests = await self.aggregator.fetch_all()
            return self.import_contests(contests)
