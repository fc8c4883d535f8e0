"""LeetCode contest fetcher"""
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import requests

from .clist import LEETCODE_RESOURCE_ID, ClistSource
from .contest_fetcher import DEFAULT_TIMEOUT, ContestFetcher, ContestListing, ContestSource
from ..storage.models import Platform
from ..utils.timezone import from_timestamp

LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql"

ALL_CONTESTS_QUERY = """
{
  allContests {
    title
    titleSlug
    startTime
    duration
  }
}
"""


class LeetcodeGraphQLSource(ContestSource):
    """Contest listings from LeetCode's GraphQL endpoint"""

    name = "leetcode-graphql"

    def __init__(self, api_url: str = LEETCODE_GRAPHQL_URL, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.api_url = api_url

    def fetch_listings(self, window_start: datetime, window_end: datetime) -> List[ContestListing]:
        response = requests.post(
            self.api_url,
            json={"query": ALL_CONTESTS_QUERY},
            headers={"Referer": "https://leetcode.com/contest/"},
            timeout=self.timeout
        )
        response.raise_for_status()

        listings = []
        for item in response.json()["data"]["allContests"]:
            start_time = from_timestamp(item["startTime"])
            listings.append(ContestListing(
                name=item["title"],
                url=f"https://leetcode.com/contest/{item['titleSlug']}",
                start_time=start_time,
                end_time=start_time + timedelta(seconds=item["duration"])
            ))
        return listings


class LeetcodeFetcher(ContestFetcher):
    """LeetCode contests: CLIST first, LeetCode GraphQL as fallback"""

    platform = Platform.LEETCODE

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
                ClistSource(LEETCODE_RESOURCE_ID, clist_username, clist_api_key, timeout=timeout),
                LeetcodeGraphQLSource(timeout=timeout),
            ]
        super().__init__(sources, **kwargs)
