"""
Config store — a path-addressable JSON document with get/set/delete.

Paths are dot-separated; a bracketed segment is taken literally so keys
may contain dots::

    "php.[8.3]"            → {"php": {"8.3": ...}}
    "php.[8.3].is_default" → {"php": {"8.3": {"is_default": ...}}}

``JsonConfigStore`` persists to disk (atomic write: temp file, then
rename).  ``MemoryConfigStore`` keeps the document in memory; the core
accepts either, so tests and dry runs never touch the user's config.
"""

from __future__ import annotations

import copy
import json
import logging
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.json"


class ConfigStoreError(Exception):
    """Raised when the store cannot be read, written, or addressed."""


def parse_path(path: str) -> list[str]:
    """Split a store path into keys, honouring ``[literal.keys]``."""
    if not path:
        raise ConfigStoreError("Empty config path")

    parts: list[str] = []
    current = ""
    in_brackets = False

    for ch in path:
        if ch == "[" and not in_brackets:
            in_brackets = True
        elif ch == "]" and in_brackets:
            in_brackets = False
        elif ch == "." and not in_brackets:
            if current:
                parts.append(current)
            current = ""
        else:
            current += ch

    if in_brackets:
        raise ConfigStoreError(f"Unclosed bracket in config path: {path}")
    if current:
        parts.append(current)
    if not parts:
        raise ConfigStoreError(f"Invalid config path: {path}")
    return parts


class MemoryConfigStore:
    """In-memory document store."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}

    @property
    def data(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def get(self, path: str, default: Any = None) -> Any:
        """Return a deep copy of the value at ``path``, or ``default``."""
        node: Any = self._data
        for key in parse_path(path):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return copy.deepcopy(node)

    def set(self, path: str, value: Any) -> None:
        """Set ``value`` at ``path``, creating parent objects as needed."""
        keys = parse_path(path)
        before = copy.deepcopy(self._data)
        node = self._data
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = copy.deepcopy(value)
        self._commit_or_revert(before)

    def delete(self, path: str) -> bool:
        """Remove the value at ``path``. Returns False if nothing was there."""
        keys = parse_path(path)
        node: Any = self._data
        for key in keys[:-1]:
            if not isinstance(node, dict) or key not in node:
                return False
            node = node[key]
        if not isinstance(node, dict) or keys[-1] not in node:
            return False
        before = copy.deepcopy(self._data)
        del node[keys[-1]]
        self._commit_or_revert(before)
        return True

    def _commit_or_revert(self, before: dict[str, Any]) -> None:
        # A change that cannot be persisted is not kept in memory either
        try:
            self._commit()
        except ConfigStoreError:
            self._data = before
            raise

    def _commit(self) -> None:
        """Hook for persistent subclasses."""


class JsonConfigStore(MemoryConfigStore):
    """Document store backed by a JSON file, saved after every change."""

    def __init__(self, path: Path):
        super().__init__()
        self._path = path
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.is_file():
            logger.debug("No config file at %s — starting empty", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigStoreError(f"Cannot read config {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigStoreError(
                f"Expected a JSON object in {self._path}, got {type(data).__name__}"
            )
        return data

    def _commit(self) -> None:
        try:
            write_json_atomic(self._path, self._data)
        except OSError as e:
            raise ConfigStoreError(f"Cannot write config {self._path}: {e}") from e


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    _fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.stem}_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Saved %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
