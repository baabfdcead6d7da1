"""
L5 Orchestration — Extension lifecycle.

Queues extension changes as pending deltas on the install record and,
when asked, applies them with a rebuild.  A failed rebuild restores
the record from a snapshot taken before anything was touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from src.core.models.php import ConfigSnapshot, InstalledVersion
from src.core.persistence.config_store import ConfigStoreError
from src.core.services.php_install.data.catalog import (
    DEFAULT_FEATURE_MODULES,
    available_feature_modules,
)
from src.core.services.php_install.domain.errors import NotInstalled, PhpInstallError
from src.core.services.php_install.domain.extensions import (
    commit_pending,
    plan_add,
    plan_remove,
    plan_replace,
    validate_names,
)
from src.core.services.php_install.domain.snapshot import restore_snapshot, take_snapshot
from src.core.services.php_install.execution.registry import InstallRegistry

logger = logging.getLogger(__name__)

# (record, desired modules, bypass_cache) -> rebuilt record
RebuildFn = Callable[[InstalledVersion, set[str], bool], InstalledVersion]
# (rebuilt record, record it replaces) -> None
SettleFn = Callable[[InstalledVersion, InstalledVersion], None]


def _noop(record: InstalledVersion, prior: InstalledVersion) -> None:
    pass


class ExtensionLifecycleManager:
    def __init__(
        self,
        registry: InstallRegistry,
        rebuild: RebuildFn,
        *,
        retire: SettleFn = _noop,
        discard: SettleFn = _noop,
    ):
        self._registry = registry
        self._rebuild = rebuild
        self._retire = retire
        self._discard = discard

    def _record(self, release_line: str) -> InstalledVersion:
        record = self._registry.get(release_line)
        if record is None:
            raise NotInstalled(release_line)
        return record

    # ── Queries ─────────────────────────────────────────────────

    def list(self, release_line: str) -> dict[str, Any]:
        """Installed, pending and remaining catalog names for a line."""
        record = self._record(release_line)
        desired = record.desired_modules
        return {
            "release_line": release_line,
            "installed": sorted(record.feature_modules),
            "pending_add": sorted(record.pending_add),
            "pending_remove": sorted(record.pending_remove),
            "available": [n for n in available_feature_modules() if n not in desired],
        }

    # ── Mutations ───────────────────────────────────────────────

    def add(self, release_line: str, names: list[str], rebuild_now: bool = False) -> dict[str, Any]:
        valid = validate_names(names)
        record = self._record(release_line)
        updated, noops = plan_add(record, valid)
        return self._apply(record, updated, noops, rebuild_now)

    def remove(self, release_line: str, names: list[str], rebuild_now: bool = False) -> dict[str, Any]:
        valid = validate_names(names)
        record = self._record(release_line)
        updated, noops = plan_remove(record, valid)
        return self._apply(record, updated, noops, rebuild_now)

    def replace(self, release_line: str, names: list[str], rebuild_now: bool = False) -> dict[str, Any]:
        valid = validate_names(names)
        record = self._record(release_line)
        updated = plan_replace(record, valid)
        return self._apply(record, updated, [], rebuild_now)

    def commit(self, release_line: str, *, bypass_cache: bool = False, force: bool = False) -> dict[str, Any]:
        """Rebuild with the pending deltas applied.

        Without ``force`` a record with nothing pending is left alone.  A
        record with no modules at all (e.g. salvaged from a damaged
        config) is rebuilt with the default set.
        """
        record = self._record(release_line)
        if not record.has_pending and not force:
            return self._summary(record, [], rebuilt=False)
        updated = record
        if not record.desired_modules and not record.has_pending:
            logger.warning("PHP %s has no recorded extensions — using the default set", release_line)
            updated = record.model_copy(update={"pending_add": set(DEFAULT_FEATURE_MODULES)})
        return self._rebuild_with(record, updated, bypass_cache)

    # ── Internals ───────────────────────────────────────────────

    def _apply(
        self,
        original: InstalledVersion,
        updated: InstalledVersion,
        noops: list[str],
        rebuild_now: bool,
    ) -> dict[str, Any]:
        if noops:
            logger.info("PHP %s: already in the requested state: %s", original.release_line, ", ".join(noops))

        if not rebuild_now or not updated.has_pending:
            if updated != original:
                self._registry.save(updated)
            summary = self._summary(updated, noops, rebuilt=False)
            if rebuild_now:
                summary["message"] = "nothing to change"
            return summary

        return self._rebuild_with(original, updated, False, noops)

    def _rebuild_with(
        self,
        original: InstalledVersion,
        updated: InstalledVersion,
        bypass_cache: bool,
        noops: list[str] | None = None,
    ) -> dict[str, Any]:
        snapshot = take_snapshot(original)
        self._registry.save(updated)

        try:
            rebuilt = self._rebuild(updated, updated.desired_modules, bypass_cache)
        except PhpInstallError:
            self._restore(original, snapshot)
            raise

        committed = commit_pending(rebuilt)
        try:
            self._registry.save(committed)
        except ConfigStoreError:
            self._discard(committed, original)
            self._restore(original, snapshot)
            raise
        self._retire(committed, original)
        return self._summary(committed, noops or [], rebuilt=True)

    def _restore(self, original: InstalledVersion, snapshot: ConfigSnapshot) -> None:
        """Put the pre-call record back. Never raises."""
        try:
            restored = restore_snapshot(self._registry.get(original.release_line) or original, snapshot)
            self._registry.save(restored)
        except ConfigStoreError as e:
            logger.warning("PHP %s: extension state not restored: %s", original.release_line, e)
            return
        logger.warning("PHP %s: rebuild failed — extension state restored", original.release_line)

    @staticmethod
    def _summary(record: InstalledVersion, noops: list[str], rebuilt: bool) -> dict[str, Any]:
        return {
            "release_line": record.release_line,
            "rebuilt": rebuilt,
            "noops": list(noops),
            "installed": sorted(record.feature_modules),
            "pending_add": sorted(record.pending_add),
            "pending_remove": sorted(record.pending_remove),
        }
