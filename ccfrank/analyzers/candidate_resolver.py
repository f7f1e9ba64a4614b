"""
analyzers/candidate_resolver.py
Picks the venue of a citation out of a multi-hit DBLP search response.

Selection per response:
  1. No hits          → no match
  2. Exactly one hit  → its venue path (or the abbreviation fallback if it has no URL)
  3. Several hits     → year-window scan, exact year wins
Then the chosen path is normalized against the ranking table and PACMPL
papers are mapped back to the conference that published them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ccfrank.analyzers.dblp_client import Hit, SearchResponse
from ccfrank.utils.venue_data import RankTable

logger = logging.getLogger(__name__)

# PACMPL publishes OOPSLA, POPL, PLDI and ICFP proceedings as journal issues
PACMPL_PATH = "/journals/pacmpl/pacmpl"
UMBRELLA_PATHS = {PACMPL_PATH, "/journals/pacmpl"}
PACMPL_CONFERENCES = {
    "oopsla": "/conf/oopsla/oopsla",
    "oopsla1": "/conf/oopsla/oopsla",
    "oopsla2": "/conf/oopsla/oopsla",
    "popl": "/conf/popl/popl",
    "pldi": "/conf/pldi/pldi",
    "icfp": "/conf/icfp/icfp",
}


class Outcome(Enum):
    VENUE_PATH = "venue_path"
    ABBREVIATION = "abbreviation"  # rank by the hit's number/venue field instead
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class Candidate:
    outcome: Outcome
    venue_path: str = ""
    first_author: str = ""
    year: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.outcome is not Outcome.NO_MATCH


NO_MATCH = Candidate(Outcome.NO_MATCH)


def is_informal(hit: Hit) -> bool:
    # "Informal Publications", and "Informal and Other Publications" on newer DBLP
    return hit.type.startswith("Informal")


def _is_numeric(text: str) -> bool:
    try:
        float(text)
        return True
    except ValueError:
        return False


class CandidateResolver:
    def __init__(self, table: RankTable):
        self.table = table

    def resolve(self, response: SearchResponse, author: str, year) -> Candidate:
        """Run hit selection, path normalization and umbrella aliasing."""
        picked = self.pick(response, author, year)
        if picked.outcome is not Outcome.VENUE_PATH:
            return picked

        path = self.normalize(picked.venue_path)
        if path in UMBRELLA_PATHS:
            path = self.alias_umbrella(response)
        return Candidate(Outcome.VENUE_PATH, path, picked.first_author, picked.year)

    def pick(self, response: SearchResponse, author: str, year) -> Candidate:
        if response.total_hits == 0 or not response.hits:
            return NO_MATCH

        if response.total_hits == 1:
            hit = response.hits[0]
            if not hit.venue_path:
                return Candidate(Outcome.ABBREVIATION, "", hit.first_author, hit.year)
            return Candidate(Outcome.VENUE_PATH, hit.venue_path, hit.first_author, hit.year)

        try:
            target = int(str(year).strip())
        except (TypeError, ValueError):
            logger.debug("Unusable target year %r for author %s", year, author)
            return NO_MATCH

        chosen = NO_MATCH
        last_year = None
        for hit in response.hits[:response.sent_hits]:
            if is_informal(hit):
                continue
            if not hit.authors or not hit.venue_path or hit.year is None:
                continue
            first_author = hit.first_author

            if abs(target - hit.year) > 1 or hit.year == last_year:
                continue
            last_year = hit.year
            candidate = Candidate(Outcome.VENUE_PATH, hit.venue_path, first_author, hit.year)

            if hit.year == target + 1:
                chosen = candidate
            elif hit.year == target:
                chosen = candidate
                break
            elif not chosen.matched:
                chosen = candidate

        return chosen

    def normalize(self, venue_path: str) -> str:
        """Canonical table path for a DBLP path, or the path unchanged."""
        record = self.table.lookup_by_venue_path(venue_path)
        return record.venue_path if record else venue_path

    @staticmethod
    def alias_umbrella(response: SearchResponse) -> str:
        number = ""
        for hit in response.hits[:response.sent_hits]:
            if hit.number:
                number = hit.number.lower()
                break
        return PACMPL_CONFERENCES.get(number, PACMPL_PATH)

    @staticmethod
    def abbreviation_hint(response: SearchResponse) -> str:
        """First hit's issue number or venue, if it reads like a venue code."""
        if not response.hits:
            return ""
        hit = response.hits[0]
        hint = hit.number or hit.venue
        if not hint or _is_numeric(hint):
            return ""
        return hint
