"""
L4 Execution — Symlink publishing and tree removal.

Everything here returns ``{"ok": ...}`` dicts; callers decide whether a
failure is fatal (publish) or a warning (cleanup).  When the process
lacks permission the operation is retried through the runner with
``sudo -n``.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any

from src.core.models.php import ExecContext
from src.core.services.php_install.execution.subprocess_runner import (
    CommandRunner,
    _run_subprocess,
)

logger = logging.getLogger(__name__)

_PRIVILEGED = ExecContext(privileged=True)


def publish_link(
    target: Path,
    link: Path,
    *,
    runner: CommandRunner = _run_subprocess,
) -> dict[str, Any]:
    """Point ``link`` at ``target``, replacing an existing symlink.

    An existing regular file or directory at ``link`` is never touched.
    """
    if link.exists() and not link.is_symlink():
        return {"ok": False, "error": f"{link} exists and is not a symlink — refusing to replace it"}

    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        tmp = link.with_name(f".{link.name}.phpvm-tmp")
        if tmp.is_symlink() or tmp.exists():
            tmp.unlink()
        os.symlink(target, tmp)
        os.replace(tmp, link)
    except PermissionError:
        result = runner(["ln", "-sfn", str(target), str(link)], ctx=_PRIVILEGED)
        if not result["ok"]:
            return {"ok": False, "error": f"Cannot link {link}: {result.get('error')}"}
    except OSError as e:
        return {"ok": False, "error": f"Cannot link {link}: {e}"}

    logger.info("Linked %s → %s", link, target)
    return {"ok": True, "link": str(link), "target": str(target)}


def remove_link(
    link: Path,
    *,
    runner: CommandRunner = _run_subprocess,
) -> dict[str, Any]:
    """Remove a symlink. Missing is fine; a non-symlink is refused."""
    if not link.is_symlink():
        if link.exists():
            return {"ok": False, "error": f"{link} is not a symlink — refusing to remove it"}
        return {"ok": True, "skipped": True}

    try:
        link.unlink()
    except PermissionError:
        result = runner(["rm", "-f", str(link)], ctx=_PRIVILEGED)
        if not result["ok"]:
            return {"ok": False, "error": f"Cannot remove {link}: {result.get('error')}"}
    except OSError as e:
        return {"ok": False, "error": f"Cannot remove {link}: {e}"}

    logger.debug("Removed link %s", link)
    return {"ok": True}


def read_link(link: Path) -> Path | None:
    """Current target of ``link``, or None if it is not a symlink."""
    if not link.is_symlink():
        return None
    return Path(os.readlink(link))


def remove_path(
    path: Path,
    *,
    runner: CommandRunner = _run_subprocess,
) -> dict[str, Any]:
    """Remove a file or a whole tree. Missing is fine."""
    if not (path.exists() or path.is_symlink()):
        return {"ok": True, "skipped": True}

    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except PermissionError:
        result = runner(["rm", "-rf", str(path)], ctx=_PRIVILEGED)
        if not result["ok"]:
            return {"ok": False, "error": f"Cannot remove {path}: {result.get('error')}"}
    except OSError as e:
        return {"ok": False, "error": f"Cannot remove {path}: {e}"}

    logger.debug("Removed %s", path)
    return {"ok": True}
