"""
config.py — CCFRank configuration
Edit this file or use environment variables to configure the resolver.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

# Load .env from project root (one level above the package)
from dotenv import load_dotenv
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_path(name: str) -> Optional[Path]:
    raw = os.environ.get(name, "").strip()
    return Path(raw) if raw else None


@dataclass
class Config:
    # ── DBLP search API (free, no key needed) ─────────────────────────────────
    dblp_api_base: str = field(
        default_factory=lambda: os.environ.get("CCFRANK_DBLP_API", "https://dblp.org/search/publ/api")
    )
    client_name: str = "CCFrank4dblp"
    client_version: str = field(default_factory=lambda: os.environ.get("CCFRANK_CLIENT_VERSION", "0.3.0"))
    request_timeout: float = 10.0                    # seconds, per HTTP request
    max_429_retries: int = 2                          # DBLP throttles bursts of lookups

    # ── Response cache ─────────────────────────────────────────────────────────
    cache_ttl_seconds: int = field(default_factory=lambda: _env_int("CCFRANK_CACHE_TTL", 86400))
    cache_capacity: int = field(default_factory=lambda: _env_int("CCFRANK_CACHE_CAPACITY", 1000))
    cache_prefix: str = "CCFrank4dblp_"
    # None keeps the cache in memory only
    cache_file: Optional[Path] = field(default_factory=lambda: _env_path("CCFRANK_CACHE_FILE"))
    cache_quota_bytes: int = field(default_factory=lambda: _env_int("CCFRANK_CACHE_QUOTA", 5 * 1024 * 1024))

    # ── Ranking data (bundled) ────────────────────────────────────────────────
    rankings_file: Optional[Path] = field(default_factory=lambda: _env_path("CCFRANK_RANKINGS"))

    log_level: str = field(default_factory=lambda: os.environ.get("CCFRANK_LOG_LEVEL", "INFO"))

    @property
    def client_id(self) -> str:
        """Versioned client tag sent to DBLP and baked into cache keys."""
        return f"{self.client_name}_{self.client_version}"

    def validate(self):
        if self.cache_ttl_seconds <= 0:
            raise ValueError(f"cache_ttl_seconds must be positive, got {self.cache_ttl_seconds}")
        if self.cache_capacity <= 0:
            raise ValueError(f"cache_capacity must be positive, got {self.cache_capacity}")
        if not self.client_version:
            raise ValueError(
                "client_version not set.\n"
                "Cache keys are versioned by client; set it:\n"
                "  export CCFRANK_CLIENT_VERSION=0.3.0"
            )
