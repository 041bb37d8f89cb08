"""
Usage store - persisted identity -> selection count map.

Counts feed the default ordering of an empty query. They are read once when
the catalog is built and only ever grow through increment(), which is
serialized so concurrent selections of the same application never lose a
count.
"""
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional


class UsageStore:
    """Flat identity -> count mapping backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None, counts: Optional[Dict[str, int]] = None):
        """
        Args:
            path: JSON file to persist to (None keeps counts in memory only)
            counts: Initial counts
        """
        self.path = Path(path) if path is not None else None
        self._counts: Dict[str, int] = dict(counts or {})
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: Path) -> "UsageStore":
        """
        Load counts from ``path``.

        A missing, unreadable or corrupt file yields an empty store; every
        count then defaults to zero.
        """
        from jogger.core.logger import get_logger
        logger = get_logger()

        path = Path(path)
        counts: Dict[str, int] = {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            data = {}
        except (OSError, ValueError) as e:
            logger.warning(f"[USAGE] Ignoring unreadable usage store {path}: {e}")
            data = {}

        if not isinstance(data, dict):
            logger.warning(f"[USAGE] Ignoring usage store {path}: expected an object")
            data = {}

        for identity, count in data.items():
            if isinstance(count, int) and not isinstance(count, bool) and count > 0:
                counts[str(identity)] = count

        logger.debug(f"[USAGE] Loaded {len(counts)} usage counts from {path}")
        return cls(path, counts)

    def get(self, identity: str) -> int:
        return self._counts.get(identity, 0)

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current counts."""
        with self._lock:
            return dict(self._counts)

    def increment(self, identity: str) -> int:
        """
        Add one selection for ``identity`` and persist the store.

        Returns:
            The new count
        """
        with self._lock:
            count = self._counts.get(identity, 0) + 1
            self._counts[identity] = count
            self._save_locked()
        return count

    def _save_locked(self) -> None:
        """Write the counts atomically (temp file + rename). Caller holds the lock."""
        if self.path is None:
            return

        from jogger.core.logger import get_logger

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".usage-", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._counts, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            get_logger().error(f"[USAGE] Failed to save usage store {self.path}: {e}")
