"""
CCFRank — resolves scholarly citations to CCF conference/journal rankings
using a bundled ranking table and the DBLP publication search API.
"""

from ccfrank.config import Config
from ccfrank.analyzers.rank_resolver import RankResolver, RankResult
from ccfrank.utils.cache import ResponseCache
from ccfrank.utils.venue_data import LookupStrategy, Rank, RankingRecord, RankTable, VenueKind

__version__ = "0.3.0"

__all__ = [
    "Config",
    "LookupStrategy",
    "Rank",
    "RankingRecord",
    "RankResolver",
    "RankResult",
    "RankTable",
    "ResponseCache",
    "VenueKind",
]
