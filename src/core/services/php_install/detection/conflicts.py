"""
L3 Detection — PHP binaries we did not put there.

A ``php8.3`` on PATH (or at our publish path) that is not a symlink
into the managed tree would shadow or be clobbered by our build.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from src.core.services.php_install.domain.errors import ConflictingExternalInstallation

logger = logging.getLogger(__name__)


def is_managed(path: Path, managed_root: Path) -> bool:
    """True if ``path`` is a symlink resolving inside ``managed_root``."""
    if not path.is_symlink():
        return False
    target = Path(os.readlink(path))
    if not target.is_absolute():
        target = path.parent / target
    try:
        target.resolve(strict=False).relative_to(managed_root.resolve(strict=False))
    except ValueError:
        return False
    return True


def find_conflicts(
    release_line: str,
    *,
    managed_root: Path,
    link_path: Path,
    global_path: Path,
    which: Callable[[str], str | None] = shutil.which,
) -> dict[str, list[str]]:
    """Classify foreign PHP binaries.

    Returns:
        ``{"blocking": [...], "warnings": [...]}``.  Blocking entries are
        per-line binaries; a foreign global ``php`` is only a warning.
    """
    blocking: list[str] = []
    warnings: list[str] = []

    candidates = [link_path]
    found = which(f"php{release_line}")
    if found:
        candidates.append(Path(found))

    for candidate in candidates:
        if not (candidate.exists() or candidate.is_symlink()):
            continue
        if not is_managed(candidate, managed_root) and str(candidate) not in blocking:
            blocking.append(str(candidate))

    if (global_path.exists() or global_path.is_symlink()) and not is_managed(global_path, managed_root):
        warnings.append(str(global_path))

    return {"blocking": blocking, "warnings": warnings}


def check_conflicts(
    release_line: str,
    *,
    managed_root: Path,
    link_path: Path,
    global_path: Path,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    """Raise on blocking conflicts; log the rest.

    Raises:
        ConflictingExternalInstallation: A per-line binary is not ours.
    """
    result = find_conflicts(
        release_line,
        managed_root=managed_root,
        link_path=link_path,
        global_path=global_path,
        which=which,
    )
    for path in result["warnings"]:
        logger.warning("Unmanaged global php at %s", path)
    if result["blocking"]:
        raise ConflictingExternalInstallation(
            f"PHP {release_line} is already provided outside phpvm: "
            f"{', '.join(result['blocking'])}",
            paths=result["blocking"],
        )
