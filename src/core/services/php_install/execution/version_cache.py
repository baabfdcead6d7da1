"""
L4 Execution — Latest-version cache.

One JSON file in the user's config dir, keyed by release line::

    {"8.3": {"version": "8.3.12",
             "download_url": "https://www.php.net/distributions/php-8.3.12.tar.gz",
             "fetched_at": 1729000000.0}}

Entries older than the TTL are ignored.  The file is a convenience:
read errors mean "no cache", write errors are warnings.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from src.core.models.php import ReleaseInfo, UserContext
from src.core.persistence.config_store import write_json_atomic

logger = logging.getLogger(__name__)


class VersionCache:
    def __init__(
        self,
        path: Path,
        *,
        ttl: int = 3600,
        owner: UserContext | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._path = path
        self._ttl = ttl
        self._owner = owner
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (FileNotFoundError, OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, release_line: str) -> ReleaseInfo | None:
        """Fresh cached answer for ``release_line``, or None."""
        entry = self._read().get(release_line)
        if not isinstance(entry, dict):
            return None
        try:
            age = self._clock() - float(entry.get("fetched_at", 0))
        except (TypeError, ValueError):
            return None
        if age < 0 or age >= self._ttl:
            return None
        if not entry.get("version") or not entry.get("download_url"):
            return None
        return ReleaseInfo(
            release_line=release_line,
            version=entry["version"],
            download_url=entry["download_url"],
        )

    def put(self, info: ReleaseInfo) -> None:
        data = self._read()
        data[info.release_line] = {
            "version": info.version,
            "download_url": info.download_url,
            "fetched_at": self._clock(),
        }
        try:
            write_json_atomic(self._path, data)
            self._chown()
        except OSError as e:
            logger.warning("Cannot write version cache %s: %s", self._path, e)

    def _chown(self) -> None:
        # Written as root under sudo; hand it back to the developer
        if self._owner is None or os.geteuid() != 0 or self._owner.is_root:
            return
        try:
            os.chown(self._path.parent, self._owner.uid, self._owner.gid)
            os.chown(self._path, self._owner.uid, self._owner.gid)
        except OSError as e:
            logger.warning("Cannot chown %s to %s: %s", self._path, self._owner.username, e)
