"""
utils/citation_text.py
Text helpers for the page handlers that embed this package. The resolver
never calls them; handlers use them to turn the strings scraped from a
listing into the (venue path) or (author, year) inputs resolve() takes.
"""

import re

from ccfrank.utils.venue_data import strip_year_suffix

_BYLINE_PUNCT = re.compile(r"[,\-…]")
_AUTHOR_PUNCT = re.compile(r"[,…]")


def extract_db_path(href: str) -> str:
    """
    Venue path of a DBLP table-of-contents link, year suffix stripped:
    https://dblp.org/db/conf/sosp/sosp2019.html -> /conf/sosp/sosp
    """
    if not href or "/db/" not in href:
        return ""
    start = href.index("/db/") + len("/db")
    end = href.rfind(".html")
    if end <= start:
        return ""
    return strip_year_suffix(href[start:end])


def split_scholar_byline(text: str) -> tuple[str, str]:
    """
    (author surname, year) from a Google Scholar result byline such as
    "J Smith, A Doe - Proc. SOSP, 2019 - dl.acm.org".
    """
    parts = _BYLINE_PUNCT.sub("", text or "").split(" ")
    author = parts[1] if len(parts) > 1 else ""
    # third token from the end, or the first one on short bylines
    year = parts[-3:][0]
    return author, year


def citation_author(text: str) -> str:
    """Surname of the first author on a Scholar profile's citation row."""
    parts = _AUTHOR_PUNCT.sub("", text or "").split(" ")
    return parts[1] if len(parts) > 1 else ""
