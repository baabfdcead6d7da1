"""
L4 Execution — Install registry.

One ``InstalledVersion`` per release line, stored in the config store
at ``php.[<line>]``.  Records are only ever written whole.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from src.core.models.php import InstalledVersion

logger = logging.getLogger(__name__)

ROOT_KEY = "php"


class ConfigStore(Protocol):
    def get(self, path: str, default: Any = None) -> Any: ...

    def set(self, path: str, value: Any) -> None: ...

    def delete(self, path: str) -> bool: ...


def _record_path(release_line: str) -> str:
    return f"{ROOT_KEY}.[{release_line}]"


def _line_key(release_line: str) -> tuple:
    try:
        return tuple(int(p) for p in release_line.split("."))
    except ValueError:
        return (float("inf"), release_line)


class InstallRegistry:
    """Reads and writes install records through an injected store."""

    def __init__(self, store: ConfigStore):
        self._store = store

    def _parse(self, release_line: str, raw: Any) -> InstalledVersion | None:
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed record for PHP %s", release_line)
            return None
        try:
            return InstalledVersion.model_validate({**raw, "release_line": release_line})
        except ValidationError as e:
            # Keep the line visible so it can still be removed or rebuilt
            logger.warning("Record for PHP %s is invalid (%s) — extensions reset", release_line, e)
            return InstalledVersion(
                release_line=release_line,
                exact_version=str(raw.get("exact_version", "")),
                install_path=str(raw.get("install_path", "")),
                is_default=raw.get("is_default") is True,
            )

    def get(self, release_line: str) -> InstalledVersion | None:
        raw = self._store.get(_record_path(release_line))
        if raw is None:
            return None
        return self._parse(release_line, raw)

    def is_installed(self, release_line: str) -> bool:
        return self.get(release_line) is not None

    def save(self, record: InstalledVersion) -> None:
        self._store.set(_record_path(record.release_line), record.model_dump(mode="json"))
        logger.debug("Saved record for PHP %s", record.release_line)

    def delete(self, release_line: str) -> bool:
        return self._store.delete(_record_path(release_line))

    def list(self) -> list[InstalledVersion]:
        """All records, ordered by release line."""
        raw = self._store.get(ROOT_KEY, {}) or {}
        if not isinstance(raw, dict):
            logger.warning("Install registry root is not an object — ignoring it")
            return []
        records = [self._parse(line, data) for line, data in raw.items()]
        return sorted((r for r in records if r is not None), key=lambda r: _line_key(r.release_line))

    def default(self) -> InstalledVersion | None:
        return next((r for r in self.list() if r.is_default), None)

    def set_default(self, release_line: str | None) -> None:
        """Make ``release_line`` the only default (None clears it)."""
        for record in self.list():
            wanted = record.release_line == release_line
            if record.is_default != wanted:
                record.is_default = wanted
                self.save(record)
