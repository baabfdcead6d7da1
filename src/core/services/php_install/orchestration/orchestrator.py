"""
L5 Orchestration — Version lifecycle.

Public entry points for install / rebuild / upgrade / remove / default
switching and the extension operations.  Every public method returns
an ``Outcome``; engine errors are caught here and never reach the CLI
as exceptions.

Per release line the state is NotInstalled → Installing → Installed.
A build writes into a fresh install dir, so a failed rebuild or upgrade
leaves the previous binary and record exactly as they were.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.core.models.php import (
    BuildContext,
    InstalledVersion,
    Outcome,
    PlatformInfo,
    UserContext,
)
from src.core.models.settings import Settings
from src.core.persistence.config_store import ConfigStoreError
from src.core.services.php_install.data.catalog import DEFAULT_FEATURE_MODULES
from src.core.services.php_install.data.constants import VERSION_CACHE_FILE
from src.core.services.php_install.detection.conflicts import check_conflicts
from src.core.services.php_install.detection.environment import (
    cpu_count,
    detect_invoking_user,
    fpm_account,
    is_privileged,
)
from src.core.services.php_install.detection.platform_probe import PlatformProbe
from src.core.services.php_install.domain.errors import (
    AlreadyInstalled,
    InvalidReleaseLine,
    NotInstalled,
    PhpInstallError,
    PublishFailed,
)
from src.core.services.php_install.domain.extensions import validate_names
from src.core.services.php_install.domain.flags import build_configure_flags
from src.core.services.php_install.domain.versions import compare_versions, is_valid_release_line
from src.core.services.php_install.execution.build_pipeline import BuildDeps, run_pipeline
from src.core.services.php_install.execution.dependency_resolver import (
    MODE_BUILD,
    DependencyResolver,
)
from src.core.services.php_install.execution.filesystem import (
    publish_link,
    read_link,
    remove_link,
    remove_path,
)
from src.core.services.php_install.execution.registry import ConfigStore, InstallRegistry
from src.core.services.php_install.execution.services import SystemdServiceManager
from src.core.services.php_install.execution.source_fetcher import SourceFetcher
from src.core.services.php_install.execution.subprocess_runner import (
    CommandRunner,
    _run_subprocess,
)
from src.core.services.php_install.execution.version_cache import VersionCache
from src.core.services.php_install.orchestration.extensions import ExtensionLifecycleManager

logger = logging.getLogger(__name__)


def _new_build_id() -> str:
    return uuid.uuid4().hex[:8]


class VersionLifecycleOrchestrator:
    """Drives resolver → fetcher → pipeline → registry for one release line.

    Every collaborator is injectable; the defaults talk to the real
    system.
    """

    def __init__(
        self,
        settings: Settings,
        store: ConfigStore,
        *,
        runner: CommandRunner = _run_subprocess,
        user: UserContext | None = None,
        privileged: bool | None = None,
        platform: PlatformInfo | None = None,
        resolver: DependencyResolver | None = None,
        fetcher: SourceFetcher | None = None,
        services: SystemdServiceManager | None = None,
        which: Callable[[str], str | None] = shutil.which,
        jobs: int | None = None,
        build_id: Callable[[], str] = _new_build_id,
    ):
        self.settings = settings
        self.registry = InstallRegistry(store)
        self._run = runner
        self._user = user or detect_invoking_user()
        self._privileged = is_privileged() if privileged is None else privileged
        self._platform = platform
        self._resolver = resolver
        self._fetcher = fetcher or SourceFetcher(
            settings,
            owner=self._user,
            cache=VersionCache(
                Path(settings.config_dir) / VERSION_CACHE_FILE if settings.config_dir
                else settings.php_dir / VERSION_CACHE_FILE,
                ttl=settings.version_cache_ttl,
                owner=self._user,
            ),
        )
        self._services = services or SystemdServiceManager(runner)
        self._which = which
        self._jobs = jobs or cpu_count()
        self._build_id = build_id
        self.extensions = ExtensionLifecycleManager(
            self.registry, self._rebuild_record, retire=self._retire, discard=self._discard,
        )

    # ── Collaborators ───────────────────────────────────────────

    @property
    def resolver(self) -> DependencyResolver:
        """Dependency resolver, probing the platform on first use."""
        if self._resolver is None:
            platform = self._platform or PlatformProbe(which=self._which).probe()
            self._resolver = DependencyResolver(
                platform, privileged=self._privileged, runner=self._run,
            )
        return self._resolver

    # ── Boundary ────────────────────────────────────────────────

    def _guard(self, operation: str, release_line: str, fn: Callable[[], Outcome]) -> Outcome:
        try:
            return fn()
        except PhpInstallError as e:
            logger.error("%s %s failed: %s", operation, release_line or "", e.message)
            return Outcome.failure(
                operation, release_line, e.kind, e.message, detail=e.detail,
            )
        except ConfigStoreError as e:
            logger.error("%s %s failed: %s", operation, release_line or "", e)
            return Outcome.failure(operation, release_line, "config_store_error", str(e))

    def _require_line(self, release_line: str) -> None:
        supported = self.settings.supported_release_lines
        if not is_valid_release_line(release_line, supported):
            raise InvalidReleaseLine(release_line, supported)

    def _require_record(self, release_line: str) -> InstalledVersion:
        self._require_line(release_line)
        record = self.registry.get(release_line)
        if record is None:
            raise NotInstalled(release_line)
        return record

    # ── Build core ──────────────────────────────────────────────

    def _prepare_context(
        self,
        ctx: BuildContext,
        modules: set[str],
        is_default: bool,
    ) -> BuildContext:
        build_id = self._build_id()
        line = ctx.release_line
        install_path = self.settings.line_dir(line) / f"{ctx.exact_version}-{build_id}"
        log_path = self.settings.logs_dir / f"build-php{line}-{build_id}.log"
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create log dir %s: %s", log_path.parent, e)

        fpm_user, fpm_group = fpm_account(self._user)
        flags = build_configure_flags(
            install_path=str(install_path),
            config_path=str(self.settings.line_etc_dir(line)),
            fpm_user=fpm_user,
            fpm_group=fpm_group,
            feature_modules=modules,
        )
        return ctx.model_copy(update={
            "install_path": str(install_path),
            "log_path": str(log_path),
            "flags": flags,
            "build_id": build_id,
            "is_default": is_default,
            "feature_modules": set(modules),
        })

    def _build(
        self,
        release_line: str,
        *,
        modules: set[str],
        prior: InstalledVersion | None,
        bypass_cache: bool = False,
        exact_version: str | None = None,
        is_default: bool = False,
    ) -> InstalledVersion:
        """Build and publish one release line. Does NOT save the record.

        On failure the new install dir is removed and the links are put
        back the way they were; the error is re-raised.  The prior build
        stays on disk until ``_commit`` has saved the new record.
        """
        check_conflicts(
            release_line,
            managed_root=Path(self.settings.base_dir),
            link_path=self.settings.line_link_path(release_line),
            global_path=self.settings.global_php_path,
            which=self._which,
        )
        self.resolver.resolve(modules, MODE_BUILD)

        ctx: BuildContext | None = None
        try:
            fetched = self._fetcher.resolve_and_fetch(
                release_line, bypass_cache=bypass_cache, exact_version=exact_version,
            )
            ctx = self._prepare_context(fetched, modules, is_default)
            logger.info("Building PHP %s into %s", ctx.exact_version, ctx.install_path)
            run_pipeline(ctx, BuildDeps(
                settings=self.settings,
                user=self._user,
                privileged=self._privileged,
                jobs=self._jobs,
                runner=self._run,
            ))
        except PhpInstallError:
            self._rollback_build(release_line, ctx.install_path if ctx else None, prior)
            raise

        return InstalledVersion(
            release_line=release_line,
            exact_version=ctx.exact_version,
            install_path=ctx.install_path,
            is_default=is_default,
            feature_modules=set(modules),
            pending_add=(prior.pending_add - modules) if prior else set(),
            pending_remove=(prior.pending_remove & modules) if prior else set(),
        )

    def _commit(
        self,
        record: InstalledVersion,
        prior: InstalledVersion | None,
        save: Callable[[], None],
    ) -> None:
        """Persist a finished build, then retire the one it replaces.

        If the record cannot be saved the new build is rolled back and
        the prior one is left in place.
        """
        try:
            save()
        except ConfigStoreError:
            self._rollback_build(record.release_line, record.install_path, prior)
            raise
        self._retire(record, prior)

    def _retire(self, record: InstalledVersion, prior: InstalledVersion | None) -> None:
        """Drop the replaced build and (re)start FPM. Only after a save."""
        if prior and prior.install_path and prior.install_path != record.install_path:
            result = remove_path(Path(prior.install_path), runner=self._run)
            if not result["ok"]:
                logger.warning("Old build not removed: %s", result["error"])
        self._activate_service(record.release_line)

    def _discard(self, record: InstalledVersion, prior: InstalledVersion) -> None:
        self._rollback_build(record.release_line, record.install_path, prior)

    def _rollback_build(
        self,
        release_line: str,
        install_path: str | None,
        prior: InstalledVersion | None,
    ) -> None:
        """Best-effort undo of a failed build. Never raises."""
        line_link = self.settings.line_link_path(release_line)
        global_link = self.settings.global_php_path

        if install_path:
            result = remove_path(Path(install_path), runner=self._run)
            if not result["ok"]:
                logger.warning("Rollback: %s", result["error"])

        if prior is None:
            result = remove_path(self.settings.source_path(release_line), runner=self._run)
            if not result["ok"]:
                logger.warning("Rollback: %s", result["error"])

        # Links that now point at the failed build
        links = [line_link, global_link]
        for link in links:
            target = read_link(link)
            if not install_path or target is None or not str(target).startswith(install_path + "/"):
                continue
            if prior is not None and (link == line_link or prior.is_default):
                result = publish_link(Path(prior.install_path) / "bin" / "php", link, runner=self._run)
            else:
                result = remove_link(link, runner=self._run)
            if not result["ok"]:
                logger.warning("Rollback: %s", result["error"])

    def _activate_service(self, release_line: str) -> None:
        unit = self.settings.service_unit_path(release_line)
        if not unit.exists():
            logger.debug("No unit file %s — FPM activation skipped", unit)
            return
        result = self._services.activate(self.settings.service_name(release_line))
        if not result["ok"]:
            logger.warning("FPM for PHP %s not activated: %s", release_line, result.get("error"))

    def _rebuild_record(
        self,
        record: InstalledVersion,
        modules: set[str],
        bypass_cache: bool,
    ) -> InstalledVersion:
        rebuilt = self._build(
            record.release_line,
            modules=modules,
            prior=record,
            bypass_cache=bypass_cache,
            exact_version=record.exact_version or None,
            is_default=record.is_default,
        )
        rebuilt.installed_at = record.installed_at
        return rebuilt

    # ── Lifecycle operations ────────────────────────────────────

    def install(self, release_line: str, feature_modules: list[str] | None = None) -> Outcome:
        """Build and register a release line that is not installed yet."""
        def _do() -> Outcome:
            self._require_line(release_line)
            existing = self.registry.get(release_line)
            if existing is not None:
                raise AlreadyInstalled(release_line, existing.exact_version)

            modules = (
                set(validate_names(feature_modules)) if feature_modules
                else set(DEFAULT_FEATURE_MODULES)
            )
            first = self.registry.default() is None
            record = self._build(release_line, modules=modules, prior=None, is_default=first)
            self._commit(record, None, lambda: self.registry.save(record))
            return Outcome.success(
                "install", release_line,
                f"PHP {record.exact_version} installed",
                data={"record": record.model_dump(mode="json")},
            )
        return self._guard("install", release_line, _do)

    def rebuild(self, release_line: str, bypass_cache: bool = False) -> Outcome:
        """Rebuild with pending extension changes applied.

        ``bypass_cache`` also moves to the newest patch release.
        """
        def _do() -> Outcome:
            self._require_record(release_line)
            summary = self.extensions.commit(release_line, bypass_cache=bypass_cache, force=True)
            record = self.registry.get(release_line)
            return Outcome.success(
                "rebuild", release_line,
                f"PHP {record.exact_version} rebuilt",
                data={"record": record.model_dump(mode="json"), "extensions": summary},
            )
        return self._guard("rebuild", release_line, _do)

    def upgrade(self, release_line: str) -> Outcome:
        """Move to the newest patch release, keeping the extension set."""
        def _do() -> Outcome:
            record = self._require_record(release_line)
            latest = self._fetcher.latest_release(release_line, bypass_cache=True)
            try:
                newer = compare_versions(latest.version, record.exact_version) > 0
            except ValueError:
                newer = latest.version != record.exact_version
            if not newer:
                return Outcome.success(
                    "upgrade", release_line,
                    f"PHP {record.exact_version} is already the newest release",
                    data={"record": record.model_dump(mode="json"), "upgraded": False},
                )

            modules = set(record.feature_modules) or set(DEFAULT_FEATURE_MODULES)
            upgraded = self._build(
                release_line,
                modules=modules,
                prior=record,
                exact_version=latest.version,
                is_default=record.is_default,
            )
            self._commit(upgraded, record, lambda: self.registry.save(upgraded))
            return Outcome.success(
                "upgrade", release_line,
                f"PHP {record.exact_version} → {upgraded.exact_version}",
                data={
                    "record": upgraded.model_dump(mode="json"),
                    "upgraded": True,
                    "previous_version": record.exact_version,
                },
            )
        return self._guard("upgrade", release_line, _do)

    def remove(self, release_line: str) -> Outcome:
        """Remove every artifact of a line. Cleanup failures are warnings."""
        def _do() -> Outcome:
            record = self._require_record(release_line)
            warnings: list[str] = []

            def _step(result: dict[str, Any]) -> None:
                if not result.get("ok"):
                    warnings.append(result.get("error", "unknown error"))
                    logger.warning("Remove PHP %s: %s", release_line, warnings[-1])

            service = self.settings.service_name(release_line)
            unit = self.settings.service_unit_path(release_line)
            if unit.exists():
                _step(self._services.deactivate(service))
                _step(remove_path(unit, runner=self._run))
                _step(self._services.reload())

            line_link = self.settings.line_link_path(release_line)
            _step(remove_link(line_link, runner=self._run))
            if record.is_default:
                global_link = self.settings.global_php_path
                target = read_link(global_link)
                if target is not None and record.install_path and str(target).startswith(record.install_path + "/"):
                    _step(remove_link(global_link, runner=self._run))

            pid_file = self.settings.php_dir / "run" / f"php{release_line}-fpm.pid"
            for path in (
                pid_file,
                self.settings.line_dir(release_line),
                self.settings.line_etc_dir(release_line),
                self.settings.source_path(release_line),
            ):
                _step(remove_path(path, runner=self._run))

            self.registry.delete(release_line)
            return Outcome.success(
                "remove", release_line,
                f"PHP {release_line} removed"
                + (f" with {len(warnings)} warning(s)" if warnings else ""),
                data={"warnings": warnings, "was_default": record.is_default},
            )
        return self._guard("remove", release_line, _do)

    def set_default(self, release_line: str) -> Outcome:
        """Point the global ``php`` at an installed line."""
        def _do() -> Outcome:
            record = self._require_record(release_line)
            binary = Path(record.install_path) / "bin" / "php"
            result = publish_link(binary, self.settings.global_php_path, runner=self._run)
            if not result["ok"]:
                raise PublishFailed(result["error"], release_line=release_line)
            self.registry.set_default(release_line)
            return Outcome.success(
                "set_default", release_line,
                f"php now runs PHP {record.exact_version}",
                data={"link": str(self.settings.global_php_path), "target": str(binary)},
            )
        return self._guard("set_default", release_line, _do)

    # ── Extension operations ────────────────────────────────────

    def _extension_op(
        self,
        operation: str,
        release_line: str,
        action: Callable[[], dict[str, Any]],
    ) -> Outcome:
        def _do() -> Outcome:
            self._require_record(release_line)
            summary = action()
            if summary.get("rebuilt"):
                message = "extensions applied and PHP rebuilt"
            elif summary.get("message"):
                message = summary["message"]
            elif summary["pending_add"] or summary["pending_remove"]:
                message = "changes queued; run rebuild to apply"
            else:
                message = "nothing to change"
            return Outcome.success(operation, release_line, message, data=summary)
        return self._guard(operation, release_line, _do)

    def add_extensions(self, release_line: str, names: list[str], rebuild_now: bool = False) -> Outcome:
        return self._extension_op(
            "add_extensions", release_line,
            lambda: self.extensions.add(release_line, names, rebuild_now),
        )

    def remove_extensions(self, release_line: str, names: list[str], rebuild_now: bool = False) -> Outcome:
        return self._extension_op(
            "remove_extensions", release_line,
            lambda: self.extensions.remove(release_line, names, rebuild_now),
        )

    def replace_extensions(self, release_line: str, names: list[str], rebuild_now: bool = False) -> Outcome:
        return self._extension_op(
            "replace_extensions", release_line,
            lambda: self.extensions.replace(release_line, names, rebuild_now),
        )

    # ── Queries ─────────────────────────────────────────────────

    def list_installed(self) -> Outcome:
        records = self.registry.list()
        return Outcome.success(
            "list_installed",
            message=f"{len(records)} version(s) installed",
            data={"versions": [r.model_dump(mode="json") for r in records]},
        )

    def list_extensions(self, release_line: str) -> Outcome:
        def _do() -> Outcome:
            self._require_record(release_line)
            return Outcome.success(
                "list_extensions", release_line,
                data=self.extensions.list(release_line),
            )
        return self._guard("list_extensions", release_line, _do)

    def check_updates(self, bypass_cache: bool = False) -> Outcome:
        def _do() -> Outcome:
            report = self._fetcher.check_updates(self.registry.list(), bypass_cache=bypass_cache)
            available = [r for r in report if r.get("update_available")]
            return Outcome.success(
                "check_updates",
                message=f"{len(available)} update(s) available",
                data={"updates": report},
            )
        return self._guard("check_updates", "", _do)
