"""
L1 Domain — Snapshot and restore of a record's module state (pure).

A snapshot is taken right before an extension-driven rebuild.  Restore
is FULL replacement: the restored record carries exactly the snapshot's
module and pending sets, whatever the failed attempt left behind.
"""

from __future__ import annotations

from src.core.models.php import ConfigSnapshot, InstalledVersion


def take_snapshot(record: InstalledVersion) -> ConfigSnapshot:
    return ConfigSnapshot(
        release_line=record.release_line,
        feature_modules=frozenset(record.feature_modules),
        pending_add=frozenset(record.pending_add),
        pending_remove=frozenset(record.pending_remove),
    )


def restore_snapshot(record: InstalledVersion, snapshot: ConfigSnapshot) -> InstalledVersion:
    restored = record.model_copy(deep=True)
    restored.feature_modules = set(snapshot.feature_modules)
    restored.pending_add = set(snapshot.pending_add)
    restored.pending_remove = set(snapshot.pending_remove)
    return restored
