"""Tests for platform fetchers and their sources"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests

from contest_tracker.services.clist import CLIST_MAX_CONTEST_LENGTH, ClistSource
from contest_tracker.services.codechef_fetcher import CodechefApiSource, CodechefFetcher
from contest_tracker.services.codeforces_fetcher import CodeforcesApiSource, CodeforcesFetcher
from contest_tracker.services.contest_fetcher import ContestListing, ContestSource
from contest_tracker.services.leetcode_fetcher import LeetcodeFetcher, LeetcodeGraphQLSource
from contest_tracker.storage.models import Platform

NOW = datetime(2025, 3, 1, 12, 0, 0)


def clock():
    return NOW


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class StaticSource(ContestSource):
    """Test source returning fixed listings"""

    def __init__(self, listings, name="static"):
        super().__init__()
        self.listings = listings
        self.name = name
        self.calls = 0

    def fetch_listings(self, window_start, window_end):
        self.calls += 1
        return list(self.listings)


class FailingSource(ContestSource):
    """Test source that always fails"""

    name = "failing"

    def __init__(self, error):
        super().__init__()
        self.error = error

    def fetch_listings(self, window_start, window_end):
        raise self.error


def listing(name, start, minutes=120):
    return ContestListing(
        name=name,
        url="https://example.com/contest",
        start_time=start,
        end_time=start + timedelta(minutes=minutes)
    )


class TestCodeforcesApiSource:
    def test_parses_contest_list(self):
        epoch = int((datetime(2025, 3, 2, 14, 35) - datetime(1970, 1, 1)).total_seconds())
        payload = {
            "status": "OK",
            "result": [
                {"id": 2050, "name": "Codeforces Round 999 (Div. 2)", "phase": "BEFORE",
                 "durationSeconds": 7200, "startTimeSeconds": epoch},
                {"id": 2051, "name": "Unscheduled", "phase": "BEFORE", "durationSeconds": 7200},
            ],
        }
        with patch("contest_tracker.services.codeforces_fetcher.requests.get",
                   return_value=json_response(payload)) as mock_get:
            listings = CodeforcesApiSource(timeout=5).fetch_listings(NOW, NOW)

        mock_get.assert_called_once_with("https://codeforces.com/api/contest.list", timeout=5)
        assert len(listings) == 1
        assert listings[0].url == "https://codeforces.com/contests/2050"
        assert listings[0].start_time == datetime(2025, 3, 2, 14, 35)
        assert listings[0].end_time == datetime(2025, 3, 2, 16, 35)

    def test_failed_status_raises(self):
        payload = {"status": "FAILED", "comment": "Call limit exceeded"}
        with patch("contest_tracker.services.codeforces_fetcher.requests.get",
                   return_value=json_response(payload)):
            with pytest.raises(ValueError):
                CodeforcesApiSource().fetch_listings(NOW, NOW)


class TestClistSource:
    def test_without_credentials_yields_nothing(self):
        with patch("contest_tracker.services.clist.requests.get") as mock_get:
            assert ClistSource(2, None, None).fetch_listings(NOW, NOW) == []
        mock_get.assert_not_called()

    def test_parses_objects_as_utc(self):
        payload = {"objects": [{
            "event": "Starters 170",
            "href": "https://www.codechef.com/START170",
            "start": "2025-03-05T14:30:00",
            "end": "2025-03-05T16:30:00",
            "duration": 7200,
        }]}
        with patch("contest_tracker.services.clist.requests.get",
                   return_value=json_response(payload)) as mock_get:
            listings = ClistSource(2, "user", "key").fetch_listings(
                NOW - timedelta(days=7), NOW + timedelta(days=30)
            )

        params = mock_get.call_args.kwargs["params"]
        assert params["resource__id"] == 2
        assert params["username"] == "user"
        assert params["api_key"] == "key"
        assert params["start__gt"] == "2025-02-08T12:00:00"
        assert params["start__lt"] == "2025-03-31T12:00:00"
        assert listings[0].start_time == datetime(2025, 3, 5, 14, 30)
        assert listings[0].end_time == datetime(2025, 3, 5, 16, 30)

    def test_long_contest_started_before_window_is_kept(self):
        payload = {"objects": [{
            "event": "February Long Challenge",
            "href": "https://www.codechef.com/FEB25",
            "start": "2025-02-14T09:30:00",
            "end": "2025-02-24T09:30:00",
        }]}
        source = ClistSource(2, "user", "key")
        with patch("contest_tracker.services.clist.requests.get",
                   return_value=json_response(payload)) as mock_get:
            contests = CodechefFetcher(sources=[source], clock=clock).fetch()

        window_start = NOW - timedelta(days=7)
        queried_from = datetime.strptime(mock_get.call_args.kwargs["params"]["start__gt"], "%Y-%m-%dT%H:%M:%S")
        assert queried_from == window_start - CLIST_MAX_CONTEST_LENGTH
        assert [c.name for c in contests] == ["February Long Challenge"]
        assert contests[0].duration_minutes == 10 * 24 * 60


class TestCodechefApiSource:
    def test_converts_ist_offsets_to_utc(self):
        payload = {
            "present_contests": [],
            "future_contests": [{
                "contest_code": "START171",
                "contest_name": "Starters 171",
                "contest_start_date_iso": "2025-03-05T20:00:00+05:30",
                "contest_end_date_iso": "2025-03-05T22:00:00+05:30",
            }],
            "past_contests": None,
        }
        with patch("contest_tracker.services.codechef_fetcher.requests.get",
                   return_value=json_response(payload)):
            listings = CodechefApiSource().fetch_listings(NOW, NOW)

        assert listings[0].url == "https://www.codechef.com/START171"
        assert listings[0].start_time == datetime(2025, 3, 5, 14, 30)


class TestLeetcodeGraphQLSource:
    def test_parses_all_contests(self):
        start = datetime(2025, 3, 2, 2, 30)
        epoch = int((start - datetime(1970, 1, 1)).total_seconds())
        payload = {"data": {"allContests": [
            {"title": "Weekly Contest 439", "titleSlug": "weekly-contest-439",
             "startTime": epoch, "duration": 5400},
        ]}}
        with patch("contest_tracker.services.leetcode_fetcher.requests.post",
                   return_value=json_response(payload)):
            listings = LeetcodeGraphQLSource().fetch_listings(NOW, NOW)

        assert listings[0].url == "https://leetcode.com/contest/weekly-contest-439"
        assert listings[0].start_time == start
        assert listings[0].end_time == start + timedelta(minutes=90)


class TestContestFetcher:
    def test_normalizes_listings(self):
        source = StaticSource([listing("Codeforces Round 999 (Div. 2)", NOW + timedelta(days=1), 135)])
        contests = CodeforcesFetcher(sources=[source], clock=clock).fetch()

        assert len(contests) == 1
        contest = contests[0]
        assert contest.platform == Platform.CODEFORCES
        assert contest.contest_type == "div2"
        assert contest.difficulty == "1600-1899"
        assert contest.duration_minutes == 135
        assert contest.duration == "2h 15m"

    def test_filters_by_time_window(self):
        source = StaticSource([
            listing("Ended long ago", NOW - timedelta(days=10)),
            listing("Ended five days ago", NOW - timedelta(days=5)),
            listing("Far future", NOW + timedelta(days=40)),
            listing("Next week", NOW + timedelta(days=7)),
        ])
        contests = LeetcodeFetcher(sources=[source], clock=clock).fetch()

        assert [c.name for c in contests] == ["Ended five days ago", "Next week"]

    def test_drops_listings_ending_before_start(self):
        broken = ContestListing("Broken", "https://example.com", NOW, NOW - timedelta(hours=1))
        source = StaticSource([broken, listing("Fine", NOW + timedelta(hours=3))])
        contests = CodechefFetcher(sources=[source], clock=clock).fetch()

        assert [c.name for c in contests] == ["Fine"]

    def test_falls_back_to_next_source_on_error(self):
        secondary = StaticSource([listing("Weekly Contest 1", NOW + timedelta(days=1))], name="secondary")
        fetcher = LeetcodeFetcher(
            sources=[FailingSource(requests.ConnectionError("down")), secondary],
            clock=clock
        )

        contests = fetcher.fetch()

        assert [c.name for c in contests] == ["Weekly Contest 1"]
        assert secondary.calls == 1

    def test_falls_back_when_primary_is_empty(self):
        secondary = StaticSource([listing("Starters 1", NOW + timedelta(days=1))], name="secondary")
        fetcher = CodechefFetcher(sources=[StaticSource([]), secondary], clock=clock)

        assert len(fetcher.fetch()) == 1

    def test_primary_result_wins(self):
        primary = StaticSource([listing("Round A", NOW + timedelta(days=1))], name="primary")
        secondary = StaticSource([listing("Round B", NOW + timedelta(days=1))], name="secondary")

        contests = CodeforcesFetcher(sources=[primary, secondary], clock=clock).fetch()

        assert [c.name for c in contests] == ["Round A"]
        assert secondary.calls == 0

    @pytest.mark.parametrize("error", [
        requests.Timeout("timed out"),
        KeyError("objects"),
        ValueError("bad json"),
        RuntimeError("unexpected"),
    ])
    def test_never_raises_when_all_sources_fail(self, error):
        fetcher = CodeforcesFetcher(sources=[FailingSource(error), FailingSource(error)], clock=clock)

        assert fetcher.fetch() == []

    def test_default_sources_order(self):
        fetcher = CodeforcesFetcher(clist_username="u", clist_api_key="k")
        assert [s.name for s in fetcher.sources] == ["codeforces-api", "clist"]

        fetcher = CodechefFetcher(clist_username="u", clist_api_key="k")
        assert [s.name for s in fetcher.sources] == ["clist", "codechef-api"]

        fetcher = LeetcodeFetcher()
        assert [s.name for s in fetcher.sources] == ["clist", "leetcode-graphql"]

    def test_http_error_from_real_source_is_contained(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
        with patch("contest_tracker.services.codeforces_fetcher.requests.get", return_value=response):
            fetcher = CodeforcesFetcher(sources=[CodeforcesApiSource()], clock=clock)
            assert fetcher.fetch() == []
