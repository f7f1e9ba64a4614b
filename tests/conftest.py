"""
Pytest configuration and shared fixtures.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from ccfrank.config import Config
from ccfrank.utils.cache import MemoryStorage, ResponseCache
from ccfrank.utils.venue_data import RankTable, VenueKind


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeTransport:
    """Records query URLs and replays canned response bodies."""

    def __init__(self, body: str = "", error: Optional[Exception] = None):
        self.body = body
        self.error = error
        self.calls: List[str] = []

    def __call__(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.body


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> Config:
    """Config isolated from the caller's environment."""
    return Config(
        dblp_api_base="https://dblp.org/search/publ/api",
        client_version="9.9.9",
        cache_ttl_seconds=86400,
        cache_capacity=1000,
        cache_file=None,
        cache_quota_bytes=1024 * 1024,
        rankings_file=None,
        log_level="DEBUG",
    )


@pytest.fixture
def table() -> RankTable:
    """Small ranking table covering both kinds and the PACMPL conferences."""
    t = RankTable()
    t.add_entry("A", "SOSP", "ACM Symposium on Operating Systems Principles", "/conf/sosp/sosp", VenueKind.CONFERENCE)
    t.add_entry("A", "OSDI", "USENIX Symposium on Operating Systems Design and Implementation", "/conf/osdi/osdi", VenueKind.CONFERENCE)
    t.add_entry("A", "OOPSLA", "Conference on Object-Oriented Programming Systems, Languages, and Applications", "/conf/oopsla/oopsla", VenueKind.CONFERENCE)
    t.add_entry("A", "POPL", "ACM SIGPLAN-SIGACT Symposium on Principles of Programming Languages", "/conf/popl/popl", VenueKind.CONFERENCE)
    t.add_entry("A", "PLDI", "ACM SIGPLAN Conference on Programming Language Design and Implementation", "/conf/pldi/pldi", VenueKind.CONFERENCE)
    t.add_entry("B", "ICFP", "ACM SIGPLAN International Conference on Functional Programming", "/conf/icfp/icfp", VenueKind.CONFERENCE)
    t.add_entry("C", "APSys", "Asia-Pacific Workshop on Systems", "/conf/apsys/apsys", VenueKind.CONFERENCE)
    t.add_entry("A", "TOCS", "ACM Transactions on Computer Systems", "/journals/tocs/tocs", VenueKind.JOURNAL)
    t.add_entry("P", "CoRR", "Computing Research Repository", "/journals/corr/corr", VenueKind.JOURNAL)
    return t


@pytest.fixture
def cache(clock) -> ResponseCache:
    return ResponseCache(storage=MemoryStorage(), clock=clock)


@pytest.fixture
def make_hit():
    """Factory for DBLP `hit` objects."""

    def _make(url: Optional[str], year: Any, type: str = "Conference and Workshop Papers",
              authors: Optional[List[str]] = None, number: Optional[str] = None,
              venue: Optional[str] = None) -> Dict[str, Any]:
        names = ["Alice Smith", "Bob Jones"] if authors is None else authors
        info: Dict[str, Any] = {"type": type, "year": str(year)}
        if names:
            author_list = [{"@pid": f"p/{i}", "text": n} for i, n in enumerate(names)]
            # DBLP sends a bare object when there is a single author
            info["authors"] = {"author": author_list if len(author_list) > 1 else author_list[0]}
        if url is not None:
            info["url"] = url
        if number is not None:
            info["number"] = number
        if venue is not None:
            info["venue"] = venue
        return {"@score": "1", "@id": "1", "info": info}

    return _make


@pytest.fixture
def make_payload():
    """Factory for full DBLP search documents around a list of hits."""

    def _make(hits: List[Dict[str, Any]], total: Optional[int] = None) -> Dict[str, Any]:
        total = len(hits) if total is None else total
        result_hits: Dict[str, Any] = {
            "@total": str(total),
            "@computed": str(total),
            "@sent": str(len(hits)),
            "@first": "0",
        }
        if hits:
            result_hits["hit"] = hits
        return {"result": {"query": "q", "status": {"@code": "200", "text": "OK"}, "hits": result_hits}}

    return _make


@pytest.fixture
def transport_for():
    """Build a FakeTransport that serves the given payload."""

    def _make(payload: Optional[Dict[str, Any]] = None, body: Optional[str] = None,
              error: Optional[Exception] = None) -> FakeTransport:
        if body is None:
            body = json.dumps(payload) if payload is not None else ""
        return FakeTransport(body=body, error=error)

    return _make
