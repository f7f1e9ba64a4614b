"""
Tests for the page-text helpers.
"""

import pytest

from ccfrank.utils.citation_text import citation_author, extract_db_path, split_scholar_byline


class TestExtractDbPath:
    @pytest.mark.parametrize("href,expected", [
        ("https://dblp.org/db/conf/sosp/sosp2019.html", "/conf/sosp/sosp"),
        ("https://dblp.org/db/journals/tocs/tocs37.html", "/journals/tocs/tocs"),
        ("https://dblp.uni-trier.de/db/conf/osdi/index.html", "/conf/osdi/index"),
        ("https://dblp.org/pid/12/345.html", ""),
        ("https://dblp.org/db/", ""),
        ("", ""),
    ])
    def test_paths(self, href, expected):
        assert extract_db_path(href) == expected


class TestScholarByline:
    def test_author_and_year(self):
        assert split_scholar_byline("J Smith, A Doe - Proc. SOSP, 2019 - dl.acm.org") == ("Smith", "2019")

    def test_short_text(self):
        """Bylines under three tokens take the year from the first token."""
        assert split_scholar_byline("Smith") == ("", "Smith")
        assert split_scholar_byline("J Smith") == ("Smith", "J")
        assert split_scholar_byline(None) == ("", "")

    def test_citation_author(self):
        assert citation_author("J Smith, A Doe, B Roe") == "Smith"
        assert citation_author("J Smith…") == "Smith"
        assert citation_author("") == ""
