"""
analyzers/dblp_client.py
DBLP publication search: query URL construction, response parsing into
SearchResponse/Hit, and the default requests-based transport.
"""

import json
import logging
import threading
import time
import urllib.parse
from dataclasses import dataclass, field
from typing import Optional

import requests

from ccfrank.config import Config

logger = logging.getLogger(__name__)

# https://dblp.org/rec/conf/sosp/KwonFRWP19 -> /conf/sosp
REC_MARKER = "/rec"

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


class MalformedResponseError(ValueError):
    """The search API returned something that is not a DBLP hits document."""


def extract_venue_path(url: str) -> str:
    """Path between the /rec marker and the record key, or "" if absent."""
    if not url:
        return ""
    start = url.find(REC_MARKER + "/")
    end = url.rfind("/")
    if start < 0 or end <= start + len(REC_MARKER):
        return ""
    return url[start + len(REC_MARKER):end]


def _to_int(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_text(value) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class Hit:
    type: str = ""
    authors: tuple = ()
    year: Optional[int] = None
    url: str = ""
    number: str = ""   # issue-like field; carries the conference for PACMPL
    venue: str = ""

    @property
    def venue_path(self) -> str:
        return extract_venue_path(self.url)

    @property
    def first_author(self) -> str:
        return self.authors[0] if self.authors else ""

    @classmethod
    def from_info(cls, info) -> "Hit":
        """Build from a DBLP hit "info" object, tolerating missing fields."""
        if not isinstance(info, dict):
            return cls()

        authors_field = info.get("authors")
        raw_authors = authors_field.get("author") if isinstance(authors_field, dict) else None
        if isinstance(raw_authors, dict):
            raw_authors = [raw_authors]
        authors = tuple(
            _to_text(a.get("text") if isinstance(a, dict) else a)
            for a in (raw_authors or [])
        )

        return cls(
            type=_to_text(info.get("type")),
            authors=tuple(a for a in authors if a),
            year=_to_int(info.get("year")),
            url=_to_text(info.get("url")),
            number=_to_text(info.get("number")),
            venue=_to_text(info.get("venue")),
        )


@dataclass
class SearchResponse:
    total_hits: int
    sent_hits: int
    hits: list = field(default_factory=list)
    raw: dict = field(default_factory=dict, repr=False)  # result.hits as received

    @classmethod
    def from_hits(cls, raw_hits) -> "SearchResponse":
        """Parse the `result.hits` object of a DBLP search response."""
        if not isinstance(raw_hits, dict):
            raise MalformedResponseError("result.hits is not an object")

        total = _to_int(raw_hits.get("@total"))
        if total is None:
            raise MalformedResponseError("result.hits has no numeric @total")

        items = raw_hits.get("hit") or []
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list):
            raise MalformedResponseError("result.hits.hit is not a list")
        if total > 0 and not items:
            raise MalformedResponseError(f"@total is {total} but no hits were sent")

        hits = [Hit.from_info(item.get("info") if isinstance(item, dict) else None) for item in items]
        sent = _to_int(raw_hits.get("@sent"))
        if sent is None:
            sent = len(hits)
        return cls(total_hits=total, sent_hits=min(sent, len(hits)), hits=hits, raw=raw_hits)

    @classmethod
    def from_payload(cls, payload) -> "SearchResponse":
        if not isinstance(payload, dict):
            raise MalformedResponseError("response body is not a JSON object")
        result = payload.get("result")
        if not isinstance(result, dict) or "hits" not in result:
            raise MalformedResponseError("response has no result.hits")
        return cls.from_hits(result["hits"])

    @classmethod
    def from_text(cls, body: str) -> "SearchResponse":
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedResponseError(f"response is not JSON: {e}") from e
        return cls.from_payload(payload)


def build_query_url(title: str, author: str, config: Optional[Config] = None) -> str:
    """DBLP search URL for a title/author pair, tagged with the client version."""
    config = config or Config()
    query = urllib.parse.quote(f"{title} author:{author}", safe=_URI_COMPONENT_SAFE)
    app = urllib.parse.quote(config.client_id, safe=_URI_COMPONENT_SAFE)
    return f"{config.dblp_api_base}?q={query}&format=json&app={app}"


class DblpClient:
    """
    DBLP publication search API (free, no key). Callable as the resolver's
    transport: takes a query URL, returns the response body text.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": f"{self.config.client_id} (CCF rank annotator)",
            "Accept": "application/json",
        })
        self.requests_made = 0
        self._consecutive_429 = 0
        # fetch() runs on asyncio.to_thread workers
        self._lock = threading.Lock()

    def __call__(self, query_url: str) -> str:
        return self.fetch(query_url)

    def fetch(self, query_url: str, _retry: int = 0) -> str:
        with self._lock:
            self.requests_made += 1
        resp = self.session.get(query_url, timeout=self.config.request_timeout)
        if resp.status_code == 429:
            with self._lock:
                self._consecutive_429 += 1
                wait = 5 * self._consecutive_429
            if _retry < self.config.max_429_retries:
                logger.debug("DBLP rate limit hit, retrying in %ss", wait)
                time.sleep(wait)
                return self.fetch(query_url, _retry=_retry + 1)
        resp.raise_for_status()
        with self._lock:
            self._consecutive_429 = 0
        return resp.text

    def close(self):
        self.session.close()
