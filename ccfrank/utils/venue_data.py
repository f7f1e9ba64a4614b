"""
utils/venue_data.py
Loads and indexes the bundled CCF ranking dataset.
Provides venue → rank lookup by abbreviation or by DBLP venue path.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
BUNDLED_RANKINGS = _DATA_DIR / "ccf_rankings.json"

# /conf/name/name2023 -> /conf/name/name, /journals/x/x12-3 -> /journals/x/x
_YEAR_SUFFIX = re.compile(r"[0-9]{1,4}(-[0-9]{1,4})?$")

# Precedence when mapping a rank string to its CSS tag
_RANK_CLASS_ORDER = "ABCEP"


class Rank(Enum):
    A = "A"
    B = "B"
    C = "C"
    E = "E"  # expanded list
    P = "P"  # preprint
    NONE = "none"

    @classmethod
    def parse(cls, value) -> "Rank":
        if isinstance(value, Rank):
            return value
        text = (value or "").strip()
        for rank in cls:
            if rank.value == text or rank.value == text.upper():
                return rank
        return cls.NONE


class VenueKind(Enum):
    CONFERENCE = "conference"
    JOURNAL = "journal"


class LookupStrategy(Enum):
    BY_ABBREVIATION = "abbreviation"
    BY_VENUE_PATH = "venue_path"


def strip_year_suffix(path: str) -> str:
    """Drop a trailing year or year range ("2019", "19", "2019-20")."""
    return _YEAR_SUFFIX.sub("", path)


def get_rank_class(rank: Union[Rank, str, None]) -> str:
    """Map a rank to its CSS-style tag (ccf-a … ccf-p, ccf-none)."""
    text = rank.value if isinstance(rank, Rank) else (rank or "")
    for r in _RANK_CLASS_ORDER:
        if text.startswith(r):
            return f"ccf-{r.lower()}"
    return "ccf-none"


@dataclass(frozen=True)
class RankingRecord:
    rank: Rank
    abbreviation: str        # upper-case
    full_name: str
    venue_path: str          # DBLP path, year suffix stripped
    kind: VenueKind

    @property
    def rank_class(self) -> str:
        return get_rank_class(self.rank)

    @property
    def display_text(self) -> str:
        if self.rank is Rank.E:
            return "Expanded"
        if self.rank is Rank.P:
            return "Preprint"
        if self.rank is Rank.NONE:
            return "CCF None"
        return f"CCF {self.rank.value}"

    @property
    def info(self) -> str:
        """Tooltip text, e.g. "Symposium on Operating Systems Principles (SOSP): CCF A"."""
        text = self.full_name
        if self.abbreviation and self.abbreviation != self.full_name:
            text += f" ({self.abbreviation})"
        if self.rank is Rank.E:
            return text + ": Expanded"
        if self.rank is Rank.P:
            return text + ": Preprint"
        if self.rank is Rank.NONE:
            return text + ": Not Found"
        return text + f": CCF {self.rank.value}"


def _stream_of(venue_path: str) -> str:
    """DBLP record stream of a venue path: /conf/sosp/sosp -> /conf/sosp."""
    head, sep, _ = venue_path.rstrip("/").rpartition("/")
    return head if sep and head else ""


class RankTable:
    """
    CCF ranking table. Each kind (conference, journal) has one mapping that
    holds every record twice: under its upper-case abbreviation and under its
    venue path. A secondary stream index resolves the shorter paths found in
    DBLP record URLs (/rec/conf/sosp/Key19 carries only /conf/sosp).
    """

    def __init__(self):
        self._tables: dict[VenueKind, dict[str, RankingRecord]] = {
            VenueKind.CONFERENCE: {},
            VenueKind.JOURNAL: {},
        }
        self._streams: dict[VenueKind, dict[str, RankingRecord]] = {
            VenueKind.CONFERENCE: {},
            VenueKind.JOURNAL: {},
        }
        self.skipped_entries = 0

    @classmethod
    def from_bundled(cls, path: Optional[Path] = None) -> "RankTable":
        table = cls()
        table.load_json(path or BUNDLED_RANKINGS)
        return table

    # ── Loading ────────────────────────────────────────────────────────────────

    def add_entry(self, rank, abbreviation: str, full_name: str, venue_path: str,
                  kind: VenueKind) -> RankingRecord:
        """Insert or overwrite a record; the last write for a key wins."""
        kind = VenueKind(kind)
        path = strip_year_suffix(venue_path)
        record = RankingRecord(
            rank=Rank.parse(rank),
            abbreviation=abbreviation.upper(),
            full_name=full_name,
            venue_path=path,
            kind=kind,
        )
        table = self._tables[kind]
        table[record.abbreviation] = record
        table[path] = record

        stream = _stream_of(path)
        if stream:
            self._streams[kind][stream] = record
        return record

    def load_json(self, path: Path) -> int:
        """
        Load {"conferences": [...], "journals": [...]} where each entry is
        {"rank", "abbr", "name", "url"}. Returns the number of records added.
        """
        if not path.exists():
            logger.warning("Ranking data not found: %s", path)
            return 0
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Could not read ranking data %s: %s", path, e)
            return 0

        added = 0
        for section, kind in (("conferences", VenueKind.CONFERENCE), ("journals", VenueKind.JOURNAL)):
            for entry in data.get(section, []):
                try:
                    self.add_entry(entry["rank"], entry["abbr"], entry.get("name") or entry["abbr"],
                                   entry["url"], kind)
                    added += 1
                except (KeyError, TypeError, AttributeError):
                    self.skipped_entries += 1
        if self.skipped_entries:
            logger.debug("Skipped %d malformed ranking entries", self.skipped_entries)
        return added

    # ── Lookup ─────────────────────────────────────────────────────────────────

    def lookup(self, query: str, strategy: LookupStrategy) -> Optional[RankingRecord]:
        if strategy is LookupStrategy.BY_ABBREVIATION:
            return self.lookup_by_abbreviation(query)
        if strategy is LookupStrategy.BY_VENUE_PATH:
            return self.lookup_by_venue_path(query)
        raise ValueError(f"Unknown lookup strategy: {strategy!r}")

    def lookup_by_abbreviation(self, abbr: str) -> Optional[RankingRecord]:
        if not abbr:
            return None
        key = abbr.strip().upper()
        if not key:
            return None

        record = self._tables[VenueKind.CONFERENCE].get(key) or self._tables[VenueKind.JOURNAL].get(key)
        if record:
            return record

        # Truncated codes ("SOSP" cited for "SOSP19"): first conference key
        # extending the abbreviation wins, in insertion order.
        for candidate, record in self._tables[VenueKind.CONFERENCE].items():
            if candidate.startswith(key) and candidate != key:
                return record
        return None

    def lookup_by_venue_path(self, path: str) -> Optional[RankingRecord]:
        if not path:
            return None
        clean = strip_year_suffix(path.strip())
        if not clean:
            return None
        for kind in (VenueKind.CONFERENCE, VenueKind.JOURNAL):
            record = self._tables[kind].get(clean)
            if record:
                return record
        for kind in (VenueKind.CONFERENCE, VenueKind.JOURNAL):
            record = self._streams[kind].get(clean)
            if record:
                return record
        return None

    def get_rank_class(self, rank) -> str:
        return get_rank_class(rank)

    # ── Stats ──────────────────────────────────────────────────────────────────

    def records(self, kind: Optional[VenueKind] = None) -> list[RankingRecord]:
        """Distinct records, in insertion order."""
        kinds = [kind] if kind else [VenueKind.CONFERENCE, VenueKind.JOURNAL]
        seen: dict[RankingRecord, None] = {}
        for k in kinds:
            for record in self._tables[k].values():
                seen.setdefault(record, None)
        return list(seen)

    def stats(self) -> dict:
        conferences = len(self.records(VenueKind.CONFERENCE))
        journals = len(self.records(VenueKind.JOURNAL))
        return {
            "total": conferences + journals,
            "conferences": conferences,
            "journals": journals,
        }

    def __len__(self) -> int:
        return self.stats()["total"]
