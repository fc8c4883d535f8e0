"""Tests for the deduplicating importer"""
from datetime import timedelta

import pytest

from contest_tracker.services.aggregator import ContestAggregator
from contest_tracker.services.contest_fetcher import ContestFetcher, ContestListing, ContestSource
from contest_tracker.services.contest_importer import ContestImporter, dedup_key
from contest_tracker.storage.models import Platform

from conftest import NOW, make_contest


class StubAggregator:
    def __init__(self, contests):
        self.contests = contests
        self.calls = 0

    async def fetch_all(self):
        self.calls += 1
        return list(self.contests)


def test_dedup_key_is_deterministic():
    a = make_contest("Round A", start_time=NOW)
    b = make_contest("Round A", start_time=NOW, url="https://mirror.example.com", minutes=60)

    assert a is not b
    assert dedup_key(a) == dedup_key(b)
    assert dedup_key(a) == ("codeforces", "Round A", NOW.isoformat())


def test_dedup_key_distinguishes_platform_name_and_start():
    base = make_contest("Round A", start_time=NOW)

    assert dedup_key(base) != dedup_key(make_contest("Round A", platform=Platform.CODECHEF, start_time=NOW))
    assert dedup_key(base) != dedup_key(make_contest("Round a", start_time=NOW))
    assert dedup_key(base) != dedup_key(make_contest("Round A", start_time=NOW + timedelta(minutes=1)))


def test_import_twice_is_idempotent(database):
    contests = [
        make_contest("Round A", start_time=NOW + timedelta(days=1)),
        make_contest("Round B", start_time=NOW + timedelta(days=2)),
    ]
    importer = ContestImporter(database)

    first = importer.import_contests(contests)
    second = importer.import_contests(contests)

    assert (first.fetched, first.inserted) == (2, 2)
    assert (second.fetched, second.inserted, second.skipped) == (2, 0, 2)
    assert len(database.get_all_contests()) == 2


def test_duplicates_within_one_batch_are_inserted_once(database):
    contest = make_contest("Round A")
    result = ContestImporter(database).import_contests([contest, make_contest("Round A")])

    assert result.inserted == 1
    assert len(database.get_all_contests()) == 1


def test_plain_string_platform_is_deduplicated(database, monkeypatch):
    contest = make_contest("Round A", platform="codeforces")
    importer = ContestImporter(database)

    assert importer.import_contests([contest]).inserted == 1
    assert importer.import_contests([contest]).skipped == 1

    # Rows stored by a concurrent run are not in the seen set
    monkeypatch.setattr(database, "get_all_contests", lambda: [])
    assert importer.import_contests([contest]).inserted == 0
    assert dedup_key(contest) == dedup_key(make_contest("Round A", platform=Platform.CODEFORCES))


def test_existing_rows_are_not_updated(database):
    importer = ContestImporter(database)
    importer.import_contests([make_contest("Round A", difficulty="1600-1899")])

    importer.import_contests([make_contest("Round A", difficulty="1900+", contest_type="div1")])

    stored = database.get_all_contests()
    assert len(stored) == 1
    assert stored[0].difficulty == "1600-1899"
    assert stored[0].contest_type == "div2"


@pytest.mark.asyncio
async def test_refresh_imports_aggregated_contests(database):
    aggregator = StubAggregator([make_contest("Round A")])
    importer = ContestImporter(database, aggregator)

    result = await importer.refresh()

    assert result.inserted == 1
    assert aggregator.calls == 1


@pytest.mark.asyncio
async def test_refresh_without_aggregator_raises(database):
    with pytest.raises(RuntimeError):
        await ContestImporter(database).refresh()


@pytest.mark.asyncio
async def test_refresh_is_skipped_while_running(database):
    importer = ContestImporter(database, StubAggregator([]))

    async with importer._refresh_lock:
        assert await importer.refresh() is None


class ScenarioSource(ContestSource):
    name = "scenario"

    def __init__(self, listings):
        super().__init__()
        self.listings = listings

    def fetch_listings(self, window_start, window_end):
        return list(self.listings)


class ScenarioFetcher(ContestFetcher):
    def __init__(self, platform, listings):
        self.platform = platform
        super().__init__([ScenarioSource(listings)], clock=lambda: NOW)


@pytest.mark.asyncio
async def test_end_to_end_import_scenario(database):
    start = NOW + timedelta(hours=5)
    aggregator = ContestAggregator([
        ScenarioFetcher(Platform.CODEFORCES, [
            ContestListing("Round A", "https://codeforces.com/contests/1", start,
                           start + timedelta(seconds=7200)),
        ]),
        ScenarioFetcher(Platform.LEETCODE, [
            ContestListing("Weekly 1", "https://leetcode.com/contest/weekly-1",
                           start + timedelta(days=1),
                           start + timedelta(days=1, seconds=5400)),
        ]),
    ])
    importer = ContestImporter(database, aggregator)
    assert database.get_all_contests() == []

    await importer.refresh()

    stored = {c.name: c for c in database.get_all_contests()}
    assert len(stored) == 2
    assert stored["Round A"].duration == "2h"
    assert stored["Weekly 1"].duration == "1h 30m"
    assert stored["Weekly 1"].contest_type == "weekly"

    result = await importer.refresh()

    assert result.inserted == 0
    assert len(database.get_all_contests()) == 2
