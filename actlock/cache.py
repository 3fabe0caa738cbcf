"""
On-disk cache for GitHub API responses
"""

import json
import logging
import os
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

CACHE_DIR_ENV = "ACTLOCK_CACHE_DIR"
CACHE_FILE_NAME = "responses.json"
CACHE_EXPIRY_HOURS = 1


def default_cache_dir() -> Path:
    """Get the cache directory, honouring ACTLOCK_CACHE_DIR and XDG_CACHE_HOME."""
    override = os.getenv(CACHE_DIR_ENV)
    if override:
        return Path(override)
    xdg_cache = os.getenv("XDG_CACHE_HOME")
    base = Path(xdg_cache) if xdg_cache else Path.home() / ".cache"
    return base / "actlock"


class ResponseCache:
    """JSON file cache of API responses keyed by request URL.

    Entries hold the status code, decoded body, ETag and the time they were
    stored. The cache is an optimization only: a missing, unreadable or
    corrupt file behaves like an empty cache.
    """

    def __init__(self, cache_dir: Optional[Path] = None, expiry: timedelta = timedelta(hours=CACHE_EXPIRY_HOURS)):
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
        self.cache_file = self.cache_dir / CACHE_FILE_NAME
        self.expiry = expiry
        self.logger = logging.getLogger(__name__)
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Load the cache from disk."""
        if self._entries is None:
            self._entries = {}
            if self.cache_file.exists():
                try:
                    with open(self.cache_file, 'r', encoding='utf-8') as f:
                        data = json.load(f)
                    if isinstance(data, dict):
                        self._entries = data
                except (json.JSONDecodeError, OSError) as e:
                    self.logger.debug(f"Ignoring unreadable cache {self.cache_file}: {e}")
        return self._entries

    def _save(self) -> None:
        """Save the cache to disk."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, 'w', encoding='utf-8') as f:
                json.dump(self._load(), f, indent=2)
        except OSError as e:
            self.logger.debug(f"Could not write cache {self.cache_file}: {e}")

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a cached entry regardless of its age."""
        entry = self._load().get(key)
        return entry if isinstance(entry, dict) else None

    def is_fresh(self, entry: Dict[str, Any]) -> bool:
        try:
            cached_time = datetime.fromisoformat(entry.get('timestamp', '2000-01-01'))
        except (TypeError, ValueError):
            return False
        return datetime.now() - cached_time < self.expiry

    def set(self, key: str, status: int, body: Any, etag: Optional[str] = None) -> None:
        """Store a response."""
        self._load()[key] = {
            'status': status,
            'body': body,
            'etag': etag,
            'timestamp': datetime.now().isoformat(),
        }
        self._save()

    def touch(self, key: str) -> None:
        """Mark an entry as freshly validated."""
        entry = self.get(key)
        if entry is not None:
            entry['timestamp'] = datetime.now().isoformat()
            self._save()

    def clear(self) -> bool:
        """Remove the cache directory. Returns False if there was nothing to remove."""
        self._entries = None
        if not self.cache_dir.exists():
            return False
        shutil.rmtree(self.cache_dir)
        self.logger.info(f"Removed cache directory {self.cache_dir}")
        return True
