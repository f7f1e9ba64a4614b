"""
analyzers/rank_resolver.py
Resolves a citation (title, author, year) to its CCF ranking record.

Pipeline per citation:
  1. Build the DBLP query URL (doubles as the cache key)
  2. Cache hit  → replay selection on the cached raw response
  3. Cache miss → query DBLP off the event loop, select, cache the raw response
  4. Look the chosen venue up in the ranking table
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ccfrank.config import Config
from ccfrank.analyzers.candidate_resolver import Candidate, CandidateResolver, Outcome
from ccfrank.analyzers.dblp_client import (
    DblpClient,
    MalformedResponseError,
    SearchResponse,
    build_query_url,
)
from ccfrank.utils.cache import ResponseCache
from ccfrank.utils.log import setup_logging
from ccfrank.utils.venue_data import RankingRecord, RankTable

logger = logging.getLogger(__name__)


@dataclass
class RankResult:
    title: str
    author: str
    year: str
    record: Optional[RankingRecord] = None   # None is the "not found" marker
    venue_path: str = ""
    from_cache: bool = False
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.record is not None

    @property
    def rank_class(self) -> str:
        return self.record.rank_class if self.record else "ccf-none"

    @property
    def display_text(self) -> str:
        return self.record.display_text if self.record else "CCF None"


class RankResolver:
    """
    Ties the ranking table, the response cache and the search transport
    together. The transport takes a query URL and returns the body text; it
    may be a plain callable (run in a worker thread) or a coroutine function.
    """

    def __init__(self, table: RankTable, cache: ResponseCache,
                 transport: Optional[Callable] = None,
                 config: Optional[Config] = None):
        self.config = config or Config()
        self.table = table
        self.cache = cache
        self.transport = transport if transport is not None else DblpClient(self.config)
        self.candidates = CandidateResolver(table)
        self._stats = {"total": 0, "cached": 0, "api": 0, "not_found": 0, "errors": 0}
        # the loop only holds weak references to tasks
        self._pending: set = set()

    @classmethod
    def from_config(cls, config: Optional[Config] = None,
                    transport: Optional[Callable] = None) -> "RankResolver":
        config = config or Config()
        config.validate()
        setup_logging(config.log_level)
        cache = ResponseCache.from_config(config)
        cache.clear_expired()
        table = RankTable.from_bundled(config.rankings_file)
        logger.debug("Ranking table: %s", table.stats())
        return cls(table, cache, transport=transport, config=config)

    def query_url(self, title: str, author: str) -> str:
        return build_query_url(title, author, self.config)

    # ── Resolution ─────────────────────────────────────────────────────────────

    async def resolve(self, title: str, author: str, year) -> RankResult:
        """Never raises; failures come back as a not-found RankResult."""
        year = str(year).strip() if year is not None else ""
        key = self.query_url(title, author)
        self._stats["total"] += 1

        cached = self.cache.get(key)
        if cached is not None:
            try:
                response = SearchResponse.from_hits(cached.get("response") if isinstance(cached, dict) else None)
            except MalformedResponseError as e:
                logger.warning("Discarding unusable cached response for %r: %s", title, e)
                self.cache.remove(key)
            else:
                logger.debug('fetch from cache: %s (%s) "%s"', author, year, title)
                self._stats["cached"] += 1
                candidate = self.candidates.resolve(response, author, year)
                return self._rank(title, author, year, response, candidate, from_cache=True)

        logger.debug('fetch from API: %s (%s) "%s"', author, year, title)
        logger.debug("query url: %s", key)
        try:
            body = await self._fetch(key)
        except Exception as e:
            logger.warning("Search request failed for %r: %s", title, e)
            self._stats["errors"] += 1
            self.cache.clear_expired()
            return self._not_found(title, author, year, error=str(e))

        try:
            response = SearchResponse.from_text(body)
        except MalformedResponseError as e:
            logger.warning("Error parsing API response for %r: %s", title, e)
            self._stats["errors"] += 1
            return self._not_found(title, author, year, error=str(e))

        self._stats["api"] += 1
        candidate = self.candidates.resolve(response, author, year)
        self.cache.set(key, {
            "response": response.raw,
            "venue_path": candidate.venue_path or None,
        })
        return self._rank(title, author, year, response, candidate, from_cache=False)

    def resolve_sync(self, title: str, author: str, year) -> RankResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.resolve(title, author, year))

    async def resolve_many(self, citations: Iterable[tuple], stagger: float = 0.0) -> list[RankResult]:
        """
        Resolve (title, author, year) tuples concurrently. With stagger > 0 the
        i-th request starts i * stagger seconds late to spread load on DBLP.
        """
        async def delayed(index: int, citation: tuple) -> RankResult:
            if stagger > 0 and index:
                await asyncio.sleep(index * stagger)
            return await self.resolve(*citation)

        return list(await asyncio.gather(
            *(delayed(i, c) for i, c in enumerate(citations))
        ))

    def submit(self, title: str, author: str, year,
               callback: Optional[Callable[[RankResult], None]] = None) -> "asyncio.Task":
        """
        Schedule a resolution on the running loop. The callback fires with the
        RankResult on completion; pass None when nothing is left to annotate.
        """
        task = asyncio.get_running_loop().create_task(self.resolve(title, author, year))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if callback is not None:
            task.add_done_callback(lambda t: self._deliver(t, callback))
        return task

    # ── Stats / lifecycle ──────────────────────────────────────────────────────

    def get_stats(self) -> dict:
        """Resolver counters plus cache and table statistics."""
        return {
            **self._stats,
            "cache": self.cache.stats(),
            "table": self.table.stats(),
        }

    def close(self):
        self.cache.flush()
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()

    # ── Internal ───────────────────────────────────────────────────────────────

    async def _fetch(self, url: str) -> str:
        call = getattr(self.transport, "__call__", None)
        if inspect.iscoroutinefunction(self.transport) or inspect.iscoroutinefunction(call):
            return await self.transport(url)
        return await asyncio.to_thread(self.transport, url)

    def _rank(self, title: str, author: str, year: str, response: SearchResponse,
              candidate: Candidate, from_cache: bool) -> RankResult:
        record = None
        if candidate.outcome is Outcome.VENUE_PATH:
            record = self.table.lookup_by_venue_path(candidate.venue_path)
        elif candidate.outcome is Outcome.ABBREVIATION:
            hint = self.candidates.abbreviation_hint(response)
            record = self.table.lookup_by_abbreviation(hint) if hint else None

        if record is None:
            self._stats["not_found"] += 1
        return RankResult(
            title=title,
            author=author,
            year=year,
            record=record,
            venue_path=candidate.venue_path,
            from_cache=from_cache,
        )

    def _not_found(self, title: str, author: str, year: str, error: str) -> RankResult:
        self._stats["not_found"] += 1
        return RankResult(title=title, author=author, year=year, error=error)

    @staticmethod
    def _deliver(task: "asyncio.Task", callback: Callable[[RankResult], None]):
        if task.cancelled():
            return
        try:
            callback(task.result())
        except Exception:
            logger.exception("Rank callback failed")
