"""
utils/cache.py
Bounded, time-limited cache for DBLP search responses.
Avoids redundant API calls for citations seen within the TTL window.
"""

import json
import hashlib
import logging
import time
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400
DEFAULT_CAPACITY = 1000
DEFAULT_PREFIX = "CCFrank4dblp_"


class StorageQuotaError(Exception):
    """Raised by a storage backend when a write would exceed its quota."""


def _normalize_key(text: str) -> str:
    """Normalize a string into a cache-safe key."""
    cleaned = text.strip()
    # Hash the exact query so keys stay case-sensitive
    h = hashlib.md5(cleaned.encode("utf-8")).hexdigest()[:12]
    # Also keep a slug for readability
    slug = "".join(c if c.isalnum() else "_" for c in cleaned.lower())[:60]
    return f"{slug}_{h}"


# ── Storage backends ──────────────────────────────────────────────────────────

class KeyValueStorage:
    """String → string store with a global quota."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str):
        """Store a value; raises StorageQuotaError when the quota is hit."""
        raise NotImplementedError

    def remove(self, key: str):
        raise NotImplementedError

    def keys(self, prefix: str = "") -> list[str]:
        raise NotImplementedError

    def flush(self):
        """Persist pending writes (no-op for volatile stores)."""


class MemoryStorage(KeyValueStorage):
    """
    Dict-backed storage. Size is counted as len(key) + len(value) over all
    stored items, the way browser storage quotas are measured.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        if self.quota_bytes is not None:
            current = self.size()
            if key in self._data:
                current -= len(key) + len(self._data[key])
            if current + len(key) + len(value) > self.quota_bytes:
                raise StorageQuotaError(
                    f"Writing {key!r} needs {len(key) + len(value)} bytes, "
                    f"{self.quota_bytes - current} of {self.quota_bytes} available"
                )
        self._data[key] = value

    def remove(self, key: str):
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def size(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())


class JsonFileStorage(MemoryStorage):
    """
    MemoryStorage persisted to a single JSON file.
    Structure: { key: value_string }. Writes hit disk on flush().
    """

    def __init__(self, path: Path, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes=quota_bytes)
        self._file = Path(path)
        self._file.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._load()

    def _load(self) -> dict:
        if self._file.exists():
            try:
                with open(self._file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return {str(k): v for k, v in data.items() if isinstance(v, str)}
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Ignoring unreadable cache file %s: %s", self._file, e)
        return {}

    def flush(self):
        """Write current cache state to disk."""
        try:
            with open(self._file, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=1)
        except IOError as e:
            logger.warning("Could not write cache file %s: %s", self._file, e)


# ── Response cache ────────────────────────────────────────────────────────────

class ResponseCache:
    """
    Prefix-namespaced cache over a KeyValueStorage.
    Each stored value is JSON: { "value": ..., "expires": ts, "timestamp": ts }.
    An entry is live while now < expires.
    """

    def __init__(self, storage: Optional[KeyValueStorage] = None,
                 ttl_seconds: int = DEFAULT_TTL_SECONDS,
                 capacity: int = DEFAULT_CAPACITY,
                 prefix: str = DEFAULT_PREFIX,
                 clock: Callable[[], float] = time.time):
        self.storage = storage if storage is not None else MemoryStorage()
        self.ttl = ttl_seconds
        self.capacity = capacity
        self.prefix = prefix
        self.clock = clock

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> "ResponseCache":
        if config.cache_file:
            storage = JsonFileStorage(config.cache_file, quota_bytes=config.cache_quota_bytes)
        else:
            storage = MemoryStorage(quota_bytes=config.cache_quota_bytes)
        return cls(
            storage=storage,
            ttl_seconds=config.cache_ttl_seconds,
            capacity=config.cache_capacity,
            prefix=config.cache_prefix,
            clock=clock,
        )

    def _key(self, raw_key: str) -> str:
        return self.prefix + _normalize_key(raw_key)

    @staticmethod
    def _decode(raw: Optional[str]) -> Optional[dict]:
        """Parse a stored entry; None means missing or corrupt."""
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(entry, dict) or not isinstance(entry.get("expires"), (int, float)):
            return None
        return entry

    # ── Public API ─────────────────────────────────────────────────────────────

    def get(self, raw_key: str):
        """Retrieve cached data, or None if missing/expired/corrupt."""
        key = self._key(raw_key)
        raw = self.storage.get(key)
        if raw is None:
            return None
        entry = self._decode(raw)
        if entry is None:
            logger.warning("Dropping corrupted cache entry %s", key)
            self.storage.remove(key)
            return None
        if self.clock() >= entry["expires"]:
            self.storage.remove(key)
            return None
        return entry.get("value")

    def set(self, raw_key: str, value) -> bool:
        """
        Store data in the cache. Returns False instead of raising when the
        storage refuses the write even after a full clear.
        """
        key = self._key(raw_key)
        try:
            self._cleanup(exclude=key)
            self._write(key, value)
            return True
        except StorageQuotaError as e:
            logger.warning("Cache quota exceeded (%s), clearing all entries", e)
            self.clear_all()
            try:
                self._write(key, value)
                return True
            except (StorageQuotaError, OSError) as retry_err:
                logger.error("Failed to save cache item after cleanup: %s", retry_err)
                return False
        except (TypeError, ValueError, OSError) as e:
            logger.error("Failed to save cache item: %s", e)
            return False

    def remove(self, raw_key: str) -> bool:
        self.storage.remove(self._key(raw_key))
        return True

    def has(self, raw_key: str) -> bool:
        return self.get(raw_key) is not None

    def clear_all(self):
        """Remove all entries under this cache's prefix."""
        for key in self.storage.keys(self.prefix):
            self.storage.remove(key)

    def clear_expired(self):
        """Remove expired and corrupted entries."""
        now = self.clock()
        for key in self.storage.keys(self.prefix):
            entry = self._decode(self.storage.get(key))
            if entry is None or now >= entry["expires"]:
                self.storage.remove(key)

    def flush(self):
        self.storage.flush()

    def stats(self) -> dict:
        """Return cache statistics."""
        now = self.clock()
        total = valid = expired = size = 0
        for key in self.storage.keys(self.prefix):
            total += 1
            raw = self.storage.get(key) or ""
            size += len(key) + len(raw)
            entry = self._decode(raw)
            if entry is None:
                continue
            if now >= entry["expires"]:
                expired += 1
            else:
                valid += 1
        return {"total": total, "valid": valid, "expired": expired, "size": size}

    def __len__(self) -> int:
        return len(self.storage.keys(self.prefix))

    # ── Internal ───────────────────────────────────────────────────────────────

    def _write(self, key: str, value):
        now = self.clock()
        entry = {"value": value, "expires": now + self.ttl, "timestamp": now}
        self.storage.set(key, json.dumps(entry))

    def _cleanup(self, exclude: str):
        """
        Drop expired and corrupted entries, then evict the soonest-expiring
        ones so that the pending write keeps the count within capacity.
        """
        now = self.clock()
        live = []
        for key in self.storage.keys(self.prefix):
            entry = self._decode(self.storage.get(key))
            if entry is None or now >= entry["expires"]:
                self.storage.remove(key)
            elif key != exclude:
                live.append((entry["expires"], key))

        room = self.capacity - 1
        if len(live) > room:
            live.sort(key=lambda item: item[0])
            for _, key in live[:len(live) - room]:
                self.storage.remove(key)
