"""
Content-addressed response cache.

Stores response bodies on disk under the SHA-256 of their URL. Only bodies that
decoded successfully are stored, so a hit decodes to the same payload a network
call would have produced.
"""

import hashlib
from pathlib import Path

from ..logging_config import get_logger

# Module-level logger
logger = get_logger("response_cache")


class ResponseCache:
    """
    Disk cache of response bodies keyed by URL hash.

    Read-then-write with no locking: two fetch cycles must not share one
    cache directory at the same time.
    """

    cache_dir: Path

    def __init__(self, cache_dir: Path):
        """
        Initialize response cache.

        Args:
            cache_dir: Directory holding cached bodies (created if missing)
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Response cache initialized: {self.cache_dir}")

    @staticmethod
    def key(url: str) -> str:
        return hashlib.sha256(url.encode("utf-8")).hexdigest()

    def path_for(self, url: str) -> Path:
        return self.cache_dir / f"{self.key(url)}.json"

    def get(self, url: str) -> bytes | None:
        """Return the cached body for a URL, or None on a miss."""
        path = self.path_for(url)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Ignoring unreadable cache entry {path}: {e}")
            return None

    def put(self, url: str, body: bytes) -> None:
        """Store a body that decoded successfully."""
        path = self.path_for(url)
        # Write then rename so an interrupted write never leaves a partial entry
        tmp_path = path.with_suffix(".tmp")
        _ = tmp_path.write_bytes(body)
        _ = tmp_path.replace(path)
        logger.debug(f"Cached {url} as {path.name}")

    def discard(self, url: str) -> None:
        """Remove an entry that no longer decodes."""
        self.path_for(url).unlink(missing_ok=True)
