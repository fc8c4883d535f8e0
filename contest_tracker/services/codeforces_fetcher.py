"""Codeforces contest fetcher"""
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import requests

from .clist import CODEFORCES_RESOURCE_ID, ClistSource
from .contest_fetcher import DEFAULT_TIMEOUT, ContestFetcher, ContestListing, ContestSource
from ..storage.models import Platform
from ..utils.timezone import from_timestamp

CODEFORCES_API_URL = "https://codeforces.com/api/contest.list"


class CodeforcesApiSource(ContestSource):
    """Contest listings from the official Codeforces API"""

    name = "codeforces-api"

    def __init__(self, api_url: str = CODEFORCES_API_URL, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.api_url = api_url

    def fetch_listings(self, window_start: datetime, window_end: datetime) -> List[ContestListing]:
        response = requests.get(self.api_url, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        if data.get("status") != "OK":
            raise ValueError(f"Codeforces API status {data.get('status')!r}: {data.get('comment')}")

        listings = []
        for item in data["result"]:
            # Contests without a scheduled start are not announced yet
            if "startTimeSeconds" not in item:
                continue
            start_time = from_timestamp(item["startTimeSeconds"])
            listings.append(ContestListing(
                name=item["name"],
                url=f"https://codeforces.com/contests/{item['id']}",
                start_time=start_time,
                end_time=start_time + timedelta(seconds=item["durationSeconds"])
            ))
        return listings


class CodeforcesFetcher(ContestFetcher):
    """Codeforces contests: official API first, CLIST as fallback"""

    platform = Platform.CODEFORCES

    def __init__(
        self,
        sources: Optional[Sequence[ContestSource]] = None,
        clist_username: Optional[str] = None,
        clist_api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs
    ):
        if sources is None:
            sources = [
                CodeforcesApiSource(timeout=timeout),
                ClistSource(CODEFORCES_RESOURCE_ID, clist_username, clist_api_key, timeout=timeout),
            ]
        super().__init__(sources, **kwargs)
