"""
L3 Detection — Host distribution and package manager.

Three sources, first hit wins:

    1. /etc/os-release  (ID, then each ID_LIKE entry)
    2. release marker files (/etc/debian_version, …)
    3. package-manager executables on PATH, in priority order

Read-only.  ``root`` and ``which`` are injectable so tests can point
the probe at a fixture tree.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from src.core.models.php import PlatformInfo
from src.core.services.php_install.data.package_managers import (
    DISTRO_MANAGERS,
    PACKAGE_MANAGERS,
    PROBE_ORDER,
    RELEASE_MARKERS,
)
from src.core.services.php_install.domain.errors import UnsupportedPlatform

logger = logging.getLogger(__name__)

# RHEL-family ids that may predate dnf
_RPM_LEGACY = {"rhel", "centos", "rocky", "almalinux"}


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines, stripping optional quotes."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        fields[key.strip()] = value.strip().strip('"').strip("'")
    return fields


class PlatformProbe:
    """Detects the distribution and its package manager."""

    def __init__(
        self,
        root: Path = Path("/"),
        which: Callable[[str], str | None] = shutil.which,
    ):
        self._root = root
        self._which = which

    @property
    def os_release_path(self) -> Path:
        return self._root / "etc" / "os-release"

    def probe(self) -> PlatformInfo:
        """Return the detected platform.

        Raises:
            UnsupportedPlatform: No source identified a supported manager.
        """
        info = self._from_os_release() or self._from_markers() or self._from_path()
        if info is None:
            raise UnsupportedPlatform(
                "Could not detect a supported package manager "
                f"(looked for {', '.join(exe for exe, _ in PROBE_ORDER)})",
            )
        logger.info(
            "Platform: %s via %s (package manager: %s)",
            info.distribution_id, info.detected_by, info.package_manager_id,
        )
        return info

    # ── Sources ─────────────────────────────────────────────────

    def _from_os_release(self) -> PlatformInfo | None:
        try:
            fields = parse_os_release(self.os_release_path.read_text(encoding="utf-8"))
        except (FileNotFoundError, OSError):
            return None

        dist_id = fields.get("ID", "").lower()
        name = fields.get("PRETTY_NAME") or fields.get("NAME", "")
        candidates = [dist_id] + fields.get("ID_LIKE", "").lower().split()

        for candidate in candidates:
            manager_id = self._manager_for(candidate)
            if manager_id:
                return self._info(dist_id or candidate, name, manager_id, "os-release")

        if dist_id:
            logger.debug("os-release ID=%s is not a known distribution", dist_id)
        return None

    def _from_markers(self) -> PlatformInfo | None:
        for rel_path, dist_id in RELEASE_MARKERS:
            if (self._root / rel_path).exists():
                manager_id = self._manager_for(dist_id)
                if manager_id:
                    return self._info(dist_id, "", manager_id, "marker")
        return None

    def _from_path(self) -> PlatformInfo | None:
        for executable, manager_id in PROBE_ORDER:
            if self._which(executable):
                return self._info("unknown", "", manager_id, "path")
        return None

    # ── Helpers ─────────────────────────────────────────────────

    def _manager_for(self, dist_id: str) -> str | None:
        manager_id = DISTRO_MANAGERS.get(dist_id)
        if manager_id is None and dist_id.startswith("opensuse"):
            manager_id = "zypper"
        if manager_id == "dnf" and dist_id in _RPM_LEGACY and not self._which("dnf"):
            manager_id = "yum"
        return manager_id

    @staticmethod
    def _info(dist_id: str, name: str, manager_id: str, source: str) -> PlatformInfo:
        return PlatformInfo(
            distribution_id=dist_id,
            distribution_name=name,
            package_manager_id=manager_id,
            package_manager_executable=PACKAGE_MANAGERS[manager_id].executable,
            detected_by=source,
        )
