"""Filtering of contest listings by a user's contest preferences"""
import re
from typing import Iterable, List, Optional, Tuple

from ..storage.models import Contest, ContestPreference, Platform

_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_OPEN_RANGE = re.compile(r"^\s*(\d+)\s*\+\s*$")


def rating_band(difficulty: Optional[str]) -> Optional[Tuple[int, Optional[int]]]:
    """
    Parse a Codeforces difficulty label into a rating band

    "1600-1899" -> (1600, 1899), "1900+" -> (1900, None).
    Labels that are not rating bands return None.
    """
    if not difficulty:
        return None
    match = _RANGE.match(difficulty)
    if match:
        return int(match.group(1)), int(match.group(2))
    match = _OPEN_RANGE.match(difficulty)
    if match:
        return int(match.group(1)), None
    return None


def matches_preferences(contest: Contest, preferences: ContestPreference) -> bool:
    """Check a contest against duration bounds, type allow-lists and rating range"""
    if not (preferences.min_duration_minutes
            <= contest.duration_minutes
            <= preferences.max_duration_minutes):
        return False

    allowed_types = preferences.types_for(contest.platform)
    if allowed_types and (contest.contest_type or "other") not in allowed_types:
        return False

    if contest.platform == Platform.CODEFORCES:
        band = rating_band(contest.difficulty)
        if band is not None:
            low, high = band
            if low > preferences.codeforces_max_rating:
                return False
            if high is not None and high < preferences.codeforces_min_rating:
                return False

    return True


def filter_contests(
    contests: Iterable[Contest],
    preferences: ContestPreference
) -> List[Contest]:
    """Keep the contests matching the preferences, preserving order"""
    return [c for c in contests if matches_preferences(c, preferences)]
