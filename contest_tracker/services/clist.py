"""CLIST.by contest API source, shared by all platforms"""
from datetime import datetime, timedelta
from typing import List, Optional

import requests

from .contest_fetcher import DEFAULT_TIMEOUT, ContestListing, ContestSource
from ..utils.logger import setup_logger
from ..utils.timezone import parse_iso

logger = setup_logger(__name__)

CLIST_API_URL = "https://clist.by/api/v1/contest/"

# CLIST resource identifiers
CODEFORCES_RESOURCE_ID = 1
CODECHEF_RESOURCE_ID = 2
LEETCODE_RESOURCE_ID = 102

# Longest contest still overlapping the window, queried by start time
CLIST_MAX_CONTEST_LENGTH = timedelta(days=14)


class ClistSource(ContestSource):
    """Contest listings for one resource from the CLIST.by API"""

    name = "clist"

    def __init__(
        self,
        resource_id: int,
        username: Optional[str],
        api_key: Optional[str],
        api_url: str = CLIST_API_URL,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """
        Initialize CLIST source

        Args:
            resource_id: CLIST resource ID of the platform
            username: CLIST account name
            api_key: CLIST API key
            api_url: Contest endpoint of the CLIST API
            timeout: HTTP timeout in seconds
        """
        super().__init__(timeout)
        self.resource_id = resource_id
        self.username = username
        self.api_key = api_key
        self.api_url = api_url

    @property
    def configured(self) -> bool:
        return bool(self.username and self.api_key)

    def fetch_listings(self, window_start: datetime, window_end: datetime) -> List[ContestListing]:
        if not self.configured:
            logger.warning("CLIST credentials not configured, skipping CLIST source")
            return []

        params = {
            "username": self.username,
            "api_key": self.api_key,
            "resource__id": self.resource_id,
            "start__gt": (window_start - CLIST_MAX_CONTEST_LENGTH).strftime("%Y-%m-%dT%H:%M:%S"),
            "start__lt": window_end.strftime("%Y-%m-%dT%H:%M:%S"),
            "order_by": "start",
            "limit": 1000,
        }
        response = requests.get(self.api_url, params=params, timeout=self.timeout)
        response.raise_for_status()

        listings = []
        for item in response.json()["objects"]:
            listings.append(ContestListing(
                name=item["event"],
                url=item["href"],
                start_time=parse_iso(item["start"]),
                end_time=parse_iso(item["end"])
            ))

        logger.debug(f"CLIST returned {len(listings)} contests for resource {self.resource_id}")
        return listings
