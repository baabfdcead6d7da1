"""
PHP install models — installed versions, catalogs, build context, outcomes.

These are the value types shared by every layer of
``src.core.services.php_install``.  Records are persisted through the
config store as plain JSON (sets serialize as sorted lists); everything
else is transient and lives only for the duration of one operation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


# ── Static catalogs ─────────────────────────────────────────────


class FeatureModule(BaseModel):
    """An optional compiled-in PHP extension selectable at configure time."""

    name: str
    build_flag: str
    native_dependencies: list[str] = Field(default_factory=list)


class DetectionHints(BaseModel):
    """How to find a native dependency without asking the package manager."""

    commands: list[str] = Field(default_factory=list)
    library_names: list[str] = Field(default_factory=list)
    pkg_config_names: list[str] = Field(default_factory=list)


class DependencySpec(BaseModel):
    """A native dependency and its package name on every supported manager."""

    id: str
    packages: dict[str, list[str]] = Field(default_factory=dict)
    detection: DetectionHints = Field(default_factory=DetectionHints)

    def packages_for(self, manager: str) -> list[str]:
        return list(self.packages.get(manager, []))


class PackageManagerCommand(BaseModel):
    """Command surface of one package manager."""

    id: str                             # apt, dnf, yum, pacman, zypper, apk
    executable: str                     # binary on PATH
    install_args: list[str]
    query_command: str
    query_args: list[str]
    update_args: list[str] = Field(default_factory=list)


# ── System context ──────────────────────────────────────────────


class PlatformInfo(BaseModel):
    """Result of probing the host OS."""

    distribution_id: str
    distribution_name: str = ""
    package_manager_id: str
    package_manager_executable: str
    detected_by: str = ""               # os-release, marker, path


class UserContext(BaseModel):
    """The account that invoked the tool (the sudo caller when elevated)."""

    username: str
    uid: int
    gid: int
    group: str = ""
    home: str = ""

    @property
    def is_root(self) -> bool:
        return self.uid == 0


class ExecContext(BaseModel):
    """Who runs an external command, and where.

    ``as_user`` drops privileges to that account when the process is
    root.  ``privileged`` asks for elevation when the process is not.
    """

    as_user: UserContext | None = None
    working_dir: str | None = None
    privileged: bool = False


# ── Installed state ─────────────────────────────────────────────


class InstalledVersion(BaseModel):
    """One installed release line, persisted at ``php.[<line>]``."""

    release_line: str
    exact_version: str = ""
    install_path: str = ""
    installed_at: str = Field(default_factory=_now_iso)
    is_default: bool = False
    feature_modules: set[str] = Field(default_factory=set)
    pending_add: set[str] = Field(default_factory=set)
    pending_remove: set[str] = Field(default_factory=set)

    @field_serializer("feature_modules", "pending_add", "pending_remove")
    def _sorted(self, value: set[str]) -> list[str]:
        return sorted(value)

    @property
    def desired_modules(self) -> set[str]:
        """The module set the next rebuild will produce."""
        return (self.feature_modules - self.pending_remove) | self.pending_add

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_add or self.pending_remove)


class ConfigSnapshot(BaseModel):
    """Record state captured right before a rebuild. Never persisted."""

    release_line: str
    feature_modules: frozenset[str]
    pending_add: frozenset[str] = frozenset()
    pending_remove: frozenset[str] = frozenset()


class ReleaseInfo(BaseModel):
    """One answer from the upstream release index."""

    release_line: str
    version: str
    download_url: str


class BuildContext(BaseModel):
    """Everything a single build attempt needs. Discarded afterwards."""

    release_line: str
    exact_version: str
    source_path: str
    install_path: str = ""
    flags: list[str] = Field(default_factory=list)
    log_path: str = ""
    build_id: str = ""
    is_default: bool = False
    feature_modules: set[str] = Field(default_factory=set)

    @property
    def binary_path(self) -> str:
        return f"{self.install_path}/bin/php"


# ── Operation results ───────────────────────────────────────────


class Outcome(BaseModel):
    """Result of a public lifecycle operation.

    The orchestrator NEVER lets a domain error escape to the CLI;
    failures are captured here with their kind and detail.
    """

    ok: bool = True
    operation: str
    release_line: str = ""
    message: str = ""
    error_kind: str | None = None
    error: str | None = None
    detail: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success(
        cls,
        operation: str,
        release_line: str = "",
        message: str = "",
        **kwargs: Any,
    ) -> Outcome:
        """Create a success outcome."""
        return cls(
            ok=True,
            operation=operation,
            release_line=release_line,
            message=message,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        operation: str,
        release_line: str,
        error_kind: str,
        error: str,
        **kwargs: Any,
    ) -> Outcome:
        """Create a failure outcome."""
        return cls(
            ok=False,
            operation=operation,
            release_line=release_line,
            error_kind=error_kind,
            error=error,
            **kwargs,
        )
