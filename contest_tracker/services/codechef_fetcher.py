"""CodeChef contest fetcher"""
from datetime import datetime
from typing import List, Optional, Sequence

import requests

from .clist import CODECHEF_RESOURCE_ID, ClistSource
from .contest_fetcher import DEFAULT_TIMEOUT, ContestFetcher, ContestListing, ContestSource
from ..storage.models import Platform
from ..utils.timezone import parse_iso

CODECHEF_API_URL = "https://www.codechef.com/api/list/contests/all"

# CodeChef publishes its local times in IST when no offset is given
CODECHEF_TIMEZONE = "Asia/Kolkata"


class CodechefApiSource(ContestSource):
    """Contest listings from CodeChef's public contest list"""

    name = "codechef-api"

    def __init__(self, api_url: str = CODECHEF_API_URL, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.api_url = api_url

    def fetch_listings(self, window_start: datetime, window_end: datetime) -> List[ContestListing]:
        params = {
            "sort_type": "start",
            "sorting_order": "asc",
            "offset": 0,
            "mode": "all",
        }
        response = requests.get(self.api_url, params=params, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()

        listings = []
        for section in ("present_contests", "future_contests", "past_contests"):
            for item in data.get(section) or []:
                listings.append(ContestListing(
                    name=item["contest_name"],
                    url=f"https://www.codechef.com/{item['contest_code']}",
                    start_time=parse_iso(item["contest_start_date_iso"], CODECHEF_TIMEZONE),
                    end_time=parse_iso(item["contest_end_date_iso"], CODECHEF_TIMEZONE)
                ))
        return listings


class CodechefFetcher(ContestFetcher):
    """CodeChef contests: CLIST first, CodeChef's own API as fallback"""

    platform = Platform.CODECHEF

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
                ClistSource(CODECHEF_RESOURCE_ID, clist_username, clist_api_key, timeout=timeout),
                CodechefApiSource(timeout=timeout),
            ]
        super().__init__(sources, **kwargs)
