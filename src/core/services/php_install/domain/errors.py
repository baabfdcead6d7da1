"""
L1 Domain — Error taxonomy for the PHP install engine.

Lower layers raise these; the orchestrators catch them at the public
boundary and turn them into ``Outcome`` values.  ``kind`` is a stable
snake_case identifier for JSON output; ``detail`` carries structured
context (missing packages, suggestions, log path).
"""

from __future__ import annotations

from typing import Any


class PhpInstallError(Exception):
    """Base class. Never raised directly."""

    kind = "php_install_error"

    def __init__(self, message: str, **detail: Any):
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "detail": dict(self.detail)}


class UnsupportedPlatform(PhpInstallError):
    kind = "unsupported_platform"


class InvalidReleaseLine(PhpInstallError):
    kind = "invalid_release_line"

    def __init__(self, release_line: str, supported: list[str]):
        super().__init__(
            f"Unsupported PHP release line '{release_line}' "
            f"(supported: {', '.join(supported)})",
            release_line=release_line,
            supported=list(supported),
        )


class NotInstalled(PhpInstallError):
    kind = "not_installed"

    def __init__(self, release_line: str):
        super().__init__(f"PHP {release_line} is not installed", release_line=release_line)


class AlreadyInstalled(PhpInstallError):
    kind = "already_installed"

    def __init__(self, release_line: str, exact_version: str = ""):
        super().__init__(
            f"PHP {release_line} is already installed"
            + (f" ({exact_version})" if exact_version else ""),
            release_line=release_line,
            exact_version=exact_version,
        )


class DependencyInstallFailed(PhpInstallError):
    """Native dependencies could not be installed or were not found."""

    kind = "dependency_install_failed"

    def __init__(self, message: str, missing: list[str], needs_privilege: bool = False, **detail: Any):
        super().__init__(message, missing=list(missing), needs_privilege=needs_privilege, **detail)
        self.missing = list(missing)
        self.needs_privilege = needs_privilege


class VersionResolutionFailed(PhpInstallError):
    kind = "version_resolution_failed"


class DownloadFailed(PhpInstallError):
    kind = "download_failed"


class ExtractFailed(PhpInstallError):
    kind = "extract_failed"


class ConflictingExternalInstallation(PhpInstallError):
    kind = "conflicting_external_installation"


class InvalidFeatureModules(PhpInstallError):
    """One or more requested extension names are not in the catalog."""

    kind = "invalid_feature_modules"

    def __init__(self, invalid: list[str], suggestions: dict[str, list[str]]):
        parts = []
        for name in invalid:
            hint = suggestions.get(name) or []
            parts.append(f"{name} (did you mean: {', '.join(hint)}?)" if hint else name)
        super().__init__(
            f"Invalid extensions: {'; '.join(parts)}",
            invalid=list(invalid),
            suggestions={k: list(v) for k, v in suggestions.items()},
        )
        self.invalid = list(invalid)
        self.suggestions = suggestions


# ── Build stages ───────────────────────────────────────────────


class BuildStageFailed(PhpInstallError):
    """A build stage failed. ``stage`` names it; ``log_path`` keeps the tool output."""

    kind = "build_stage_failed"
    stage = ""

    def __init__(self, message: str, log_path: str = "", **detail: Any):
        super().__init__(
            f"{self.stage} failed: {message}" if self.stage else message,
            stage=self.stage,
            log_path=log_path,
            **detail,
        )
        self.log_path = log_path


class ConfigureFailed(BuildStageFailed):
    kind = "configure_failed"
    stage = "configure"


class CompileFailed(BuildStageFailed):
    kind = "compile_failed"
    stage = "compile"


class InstallFailed(BuildStageFailed):
    kind = "install_failed"
    stage = "install"


class PublishFailed(BuildStageFailed):
    kind = "publish_failed"
    stage = "publish"


class VerifyFailed(BuildStageFailed):
    kind = "verify_failed"
    stage = "verify"


STAGE_ERRORS: dict[str, type[BuildStageFailed]] = {
    cls.stage: cls
    for cls in (ConfigureFailed, CompileFailed, InstallFailed, PublishFailed, VerifyFailed)
}
