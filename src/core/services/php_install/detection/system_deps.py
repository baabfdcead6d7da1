"""
L3 Detection — Native dependency presence.

Read-only probes for package/library/binary availability.
Used directly by unprivileged runs (which cannot install anything) and
by privileged runs to skip packages that are already there.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from src.core.models.php import DependencySpec
from src.core.services.php_install.data.package_managers import PACKAGE_MANAGERS
from src.core.services.php_install.data.constants import LIBRARY_DIRS

logger = logging.getLogger(__name__)

_LIB_SUFFIXES = (".so", ".a", ".dylib")


def _is_pkg_installed(pkg: str, pkg_manager: str) -> bool:
    """Check if a single system package is installed.

    Uses the query command of the given package manager:
      apt    → dpkg-query -W -f='${Status}' PKG
      dnf    → rpm -q PKG
      yum    → rpm -q PKG
      zypper → rpm -q PKG
      apk    → apk info -e PKG
      pacman → pacman -Q PKG

    Returns:
        True if installed, False if not installed or check failed.
    """
    pm = PACKAGE_MANAGERS.get(pkg_manager)
    if pm is None:
        logger.warning("No query command for package manager %s", pkg_manager)
        return False

    try:
        r = subprocess.run(
            [pm.query_command, *pm.query_args, pkg],
            capture_output=True, text=True, timeout=10,
        )
        if pkg_manager == "apt":
            # dpkg-query exits 0 for removed-but-configured packages too
            return "install ok installed" in r.stdout
        return r.returncode == 0

    except FileNotFoundError:
        # Checker binary not on PATH (e.g. dpkg-query on Fedora)
        logger.warning(
            "Package checker not found for pm=%s (checking %s)",
            pkg_manager, pkg,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Timeout checking package %s with pm=%s",
            pkg, pkg_manager,
        )
    except OSError as exc:
        logger.warning(
            "OS error checking package %s with pm=%s: %s",
            pkg, pkg_manager, exc,
        )

    return False


def check_system_deps(
    packages: list[str],
    pkg_manager: str,
) -> dict[str, list[str]]:
    """Check which system packages are installed.

    Returns:
        {"missing": ["pkg1", ...], "installed": ["pkg2", ...]}
    """
    missing: list[str] = []
    installed: list[str] = []
    for pkg in packages:
        if _is_pkg_installed(pkg, pkg_manager):
            installed.append(pkg)
        else:
            missing.append(pkg)
    return {"missing": missing, "installed": installed}


# ── Fallback tiers (no package database needed) ─────────────────


def _pkg_config_exists(name: str) -> bool:
    try:
        r = subprocess.run(
            ["pkg-config", "--exists", name],
            capture_output=True, timeout=10,
        )
        return r.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return False


def _library_exists(name: str, library_dirs: tuple[str, ...] | list[str]) -> bool:
    """True if ``<dir>/<name>.so*`` (or .a / .dylib) exists in any dir."""
    for directory in library_dirs:
        base = Path(directory)
        if not base.is_dir():
            continue
        try:
            for entry in base.glob(f"{name}.*"):
                if any(entry.name.startswith(name + s) for s in _LIB_SUFFIXES):
                    return True
        except OSError:
            continue
    return False


def find_dependency(
    spec: DependencySpec,
    pkg_manager: str,
    library_dirs: tuple[str, ...] | list[str] = LIBRARY_DIRS,
) -> str | None:
    """Locate a dependency without installing anything.

    Tiers, first hit wins:
        package  — every mapped package reported installed
        pkg-config — any known module name exists
        library  — any known library file in the search dirs
        command  — any associated command on PATH

    Returns:
        The tier that found it, or None.
    """
    packages = spec.packages_for(pkg_manager)
    if packages and all(_is_pkg_installed(p, pkg_manager) for p in packages):
        return "package"

    hints = spec.detection
    if any(_pkg_config_exists(n) for n in hints.pkg_config_names):
        return "pkg-config"
    if any(_library_exists(n, library_dirs) for n in hints.library_names):
        return "library"
    if any(shutil.which(c) for c in hints.commands):
        return "command"
    return None
