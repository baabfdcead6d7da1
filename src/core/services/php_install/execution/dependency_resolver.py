"""
L4 Execution — Native dependency resolution and installation.

Maps feature modules (and the fixed build toolchain) to package names
for the detected package manager.  Privileged runs install what is
missing in one batch; unprivileged runs can only look, and fail with
the list of what they could not find.
"""

from __future__ import annotations

import logging
from typing import Any

from src.core.models.php import DependencySpec, ExecContext, PlatformInfo
from src.core.services.php_install.data.constants import PACKAGE_INSTALL_TIMEOUT
from src.core.services.php_install.data.dependencies import (
    BUILD_DEPENDENCY_IDS,
    DEPENDENCY_CATALOG,
)
from src.core.services.php_install.data.package_managers import PACKAGE_MANAGERS
from src.core.services.php_install.detection.system_deps import (
    check_system_deps,
    find_dependency,
)
from src.core.services.php_install.domain.errors import DependencyInstallFailed
from src.core.services.php_install.domain.extensions import native_dependencies_for
from src.core.services.php_install.execution.subprocess_runner import (
    CommandRunner,
    _run_subprocess,
)

logger = logging.getLogger(__name__)

MODE_BUILD = "build"
MODE_FEATURE = "feature"


class DependencyResolver:
    """Ensures native dependencies exist before a build."""

    def __init__(
        self,
        platform: PlatformInfo,
        *,
        privileged: bool,
        runner: CommandRunner = _run_subprocess,
    ):
        self._platform = platform
        self._privileged = privileged
        self._run = runner
        self._index_updated = False

    @property
    def manager_id(self) -> str:
        return self._platform.package_manager_id

    def dependency_ids(self, feature_modules: set[str] | list[str], mode: str) -> list[str]:
        """Ordered, de-duplicated dependency ids for a request."""
        ids: list[str] = list(BUILD_DEPENDENCY_IDS) if mode == MODE_BUILD else []
        for dep_id in native_dependencies_for(feature_modules):
            if dep_id not in ids:
                ids.append(dep_id)
        return ids

    def _specs(self, dep_ids: list[str]) -> list[DependencySpec]:
        specs = []
        for dep_id in dep_ids:
            spec = DEPENDENCY_CATALOG.get(dep_id)
            if spec is None:
                logger.warning("Unknown dependency id %s — skipped", dep_id)
                continue
            specs.append(spec)
        return specs

    def package_names(self, dep_ids: list[str]) -> list[str]:
        """Package names for the current manager, order-preserving, no dupes."""
        names: list[str] = []
        for spec in self._specs(dep_ids):
            mapped = spec.packages_for(self.manager_id)
            if not mapped:
                logger.warning(
                    "No %s package mapped for dependency %s — skipped",
                    self.manager_id, spec.id,
                )
                continue
            for pkg in mapped:
                if pkg not in names:
                    names.append(pkg)
        return names

    def resolve(self, feature_modules: set[str] | list[str], mode: str = MODE_BUILD) -> dict[str, Any]:
        """Make sure every dependency of the request is present.

        Returns:
            ``{"installed": [...], "present": [...]}`` package names
            (privileged) or dependency ids (unprivileged).

        Raises:
            DependencyInstallFailed: Install failed, or (unprivileged)
                something is missing; ``needs_privilege`` is set then.
        """
        dep_ids = self.dependency_ids(feature_modules, mode)
        if self._privileged:
            return self._install_missing(self.package_names(dep_ids))
        return self._verify_present(dep_ids)

    # ── Privileged ──────────────────────────────────────────────

    def _install_missing(self, packages: list[str]) -> dict[str, Any]:
        if not packages:
            return {"installed": [], "present": []}

        status = check_system_deps(packages, self.manager_id)
        missing = status["missing"]
        if not missing:
            logger.info("All %d build dependencies already installed", len(packages))
            return {"installed": [], "present": status["installed"]}

        pm = PACKAGE_MANAGERS[self.manager_id]
        ctx = ExecContext(privileged=True)

        if pm.update_args and not self._index_updated:
            update = self._run([pm.executable, *pm.update_args], ctx=ctx, timeout=PACKAGE_INSTALL_TIMEOUT)
            if not update["ok"]:
                # A stale index still installs most of the time
                logger.warning("%s %s failed: %s", pm.executable, " ".join(pm.update_args), update.get("error"))
            self._index_updated = True

        logger.info("Installing %d packages via %s: %s", len(missing), pm.executable, " ".join(missing))
        result = self._run(
            [pm.executable, *pm.install_args, *missing],
            ctx=ctx,
            timeout=PACKAGE_INSTALL_TIMEOUT,
        )
        if not result["ok"]:
            raise DependencyInstallFailed(
                f"{pm.executable} could not install: {', '.join(missing)} "
                f"({result.get('error', 'unknown error')})",
                missing=missing,
                needs_privilege=bool(result.get("needs_privilege")),
                stderr=result.get("stderr", ""),
            )
        return {"installed": missing, "present": status["installed"]}

    # ── Unprivileged ────────────────────────────────────────────

    def _verify_present(self, dep_ids: list[str]) -> dict[str, Any]:
        present: list[str] = []
        missing: list[str] = []
        for spec in self._specs(dep_ids):
            tier = find_dependency(spec, self.manager_id)
            if tier:
                logger.debug("Dependency %s found (%s)", spec.id, tier)
                present.append(spec.id)
            else:
                missing.append(spec.id)

        if missing:
            packages = self.package_names(missing)
            pm = PACKAGE_MANAGERS[self.manager_id]
            raise DependencyInstallFailed(
                f"Missing build dependencies: {', '.join(missing)}. "
                f"Install them with: sudo {pm.executable} {' '.join(pm.install_args)} "
                f"{' '.join(packages)}",
                missing=missing,
                needs_privilege=True,
                packages=packages,
            )
        return {"installed": [], "present": present}
