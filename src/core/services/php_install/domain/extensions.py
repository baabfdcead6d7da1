"""
L1 Domain — Extension name validation and pending-set arithmetic (pure).

Every function takes an ``InstalledVersion`` and returns a NEW record;
the caller decides whether to persist it.  No I/O.
"""

from __future__ import annotations

from src.core.models.php import InstalledVersion
from src.core.services.php_install.data.catalog import FEATURE_MODULES
from src.core.services.php_install.domain.errors import InvalidFeatureModules


def suggest_similar(name: str, catalog: list[str] | None = None) -> list[str]:
    """Catalog names that contain ``name`` or are contained by it.

    Case-insensitive, sorted.  ``mysql`` suggests ``mysqli`` and
    ``pdo-mysql``; ``pdo-mysqlnd`` suggests ``pdo-mysql``.
    """
    names = catalog if catalog is not None else list(FEATURE_MODULES)
    needle = name.lower()
    if not needle:
        return []
    return sorted(c for c in names if needle in c.lower() or c.lower() in needle)


def validate_names(names: list[str]) -> list[str]:
    """Return ``names`` de-duplicated, or raise with per-name suggestions.

    Raises:
        InvalidFeatureModules: If any name is not in the catalog.
            Nothing is returned for partially valid input.
    """
    seen: list[str] = []
    invalid: list[str] = []
    for raw in names:
        name = raw.strip()
        if name in seen or name in invalid:
            continue
        if name in FEATURE_MODULES:
            seen.append(name)
        else:
            invalid.append(name)

    if invalid:
        raise InvalidFeatureModules(
            invalid, {n: suggest_similar(n) for n in invalid},
        )
    return seen


def plan_add(record: InstalledVersion, names: list[str]) -> tuple[InstalledVersion, list[str]]:
    """Queue ``names`` for addition.

    Returns ``(new_record, noops)``.  A name already effective (installed
    and not pending removal, or already pending addition) is a no-op.
    A name pending removal is simply un-queued.
    """
    updated = record.model_copy(deep=True)
    noops: list[str] = []
    for name in names:
        if name in updated.pending_remove:
            updated.pending_remove.discard(name)
        elif name in updated.feature_modules or name in updated.pending_add:
            noops.append(name)
        else:
            updated.pending_add.add(name)
    return updated, noops


def plan_remove(record: InstalledVersion, names: list[str]) -> tuple[InstalledVersion, list[str]]:
    """Queue ``names`` for removal. Mirror of :func:`plan_add`.

    A name pending addition is un-queued.  An installed name is queued
    for removal.  Anything else (not installed, not pending, or already
    pending removal) is a no-op.
    """
    updated = record.model_copy(deep=True)
    noops: list[str] = []
    for name in names:
        if name in updated.pending_add:
            updated.pending_add.discard(name)
        elif name in updated.feature_modules and name not in updated.pending_remove:
            updated.pending_remove.add(name)
        else:
            noops.append(name)
    return updated, noops


def plan_replace(record: InstalledVersion, names: list[str]) -> InstalledVersion:
    """Make ``names`` the desired set exactly.

    pending_add = request − installed; pending_remove = installed − request.
    Applying twice yields the same record.
    """
    requested = set(names)
    updated = record.model_copy(deep=True)
    updated.pending_add = requested - updated.feature_modules
    updated.pending_remove = updated.feature_modules - requested
    return updated


def commit_pending(record: InstalledVersion) -> InstalledVersion:
    """Fold the pending sets into ``feature_modules`` and clear them."""
    updated = record.model_copy(deep=True)
    updated.feature_modules = record.desired_modules
    updated.pending_add = set()
    updated.pending_remove = set()
    return updated


def native_dependencies_for(names: set[str] | list[str]) -> list[str]:
    """Dependency ids required by ``names``, de-duplicated, in name order."""
    deps: list[str] = []
    for name in sorted(names):
        module = FEATURE_MODULES.get(name)
        if module is None:
            continue
        for dep in module.native_dependencies:
            if dep not in deps:
                deps.append(dep)
    return deps
