"""
L4 Execution — Staged native build.

    configure → compile → install → publish → verify   (then finalize, always)

Each stage is a plain function ``(BuildContext, BuildDeps) -> dict``
returning ``{"ok": True, ...}`` or ``{"ok": False, "error": ...}``.
The driver stops at the first failure and raises that stage's error
type; nothing is retried.  Tool output goes to the per-attempt log.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.core.models.php import BuildContext, ExecContext, UserContext
from src.core.models.settings import Settings
from src.core.services.php_install.data.constants import (
    COMPILE_TIMEOUT,
    CONFIGURE_TIMEOUT,
    INSTALL_TIMEOUT,
    VERIFY_TIMEOUT,
)
from src.core.services.php_install.domain.errors import STAGE_ERRORS
from src.core.services.php_install.execution.filesystem import publish_link, remove_path
from src.core.services.php_install.execution.subprocess_runner import (
    CommandRunner,
    _run_subprocess,
)

logger = logging.getLogger(__name__)


@dataclass
class BuildDeps:
    """Collaborators every stage may use."""

    settings: Settings
    user: UserContext
    privileged: bool
    jobs: int = 4
    runner: CommandRunner = _run_subprocess

    def as_user(self, working_dir: str | None = None) -> ExecContext:
        """Run as the invoking user: dropped from root when elevated."""
        drop = self.privileged and not self.user.is_root
        return ExecContext(as_user=self.user if drop else None, working_dir=working_dir)

    def as_root(self, working_dir: str | None = None) -> ExecContext:
        return ExecContext(privileged=True, working_dir=working_dir)


StageFn = Callable[[BuildContext, BuildDeps], dict[str, Any]]


def _stage_result(result: dict[str, Any], what: str) -> dict[str, Any]:
    if result["ok"]:
        return {"ok": True, "elapsed_ms": result.get("elapsed_ms", 0)}
    error = result.get("error", "unknown error")
    stderr = (result.get("stderr") or "").strip()
    if stderr:
        error = f"{error}: {stderr.splitlines()[-1]}"
    return {"ok": False, "error": f"{what} — {error}"}


# ── Stages ─────────────────────────────────────────────────────


def _configure(ctx: BuildContext, deps: BuildDeps) -> dict[str, Any]:
    result = deps.runner(
        ["/bin/bash", "./configure", *ctx.flags],
        ctx=deps.as_user(ctx.source_path),
        timeout=CONFIGURE_TIMEOUT,
        log_path=ctx.log_path,
    )
    return _stage_result(result, "./configure")


def _compile(ctx: BuildContext, deps: BuildDeps) -> dict[str, Any]:
    result = deps.runner(
        ["make", f"-j{deps.jobs}"],
        ctx=deps.as_user(ctx.source_path),
        timeout=COMPILE_TIMEOUT,
        log_path=ctx.log_path,
    )
    return _stage_result(result, "make")


def _install(ctx: BuildContext, deps: BuildDeps) -> dict[str, Any]:
    result = deps.runner(
        ["make", "install"],
        ctx=deps.as_root(ctx.source_path),
        timeout=INSTALL_TIMEOUT,
        log_path=ctx.log_path,
    )
    if not result["ok"]:
        return _stage_result(result, "make install")

    conf_d = deps.settings.line_etc_dir(ctx.release_line) / "conf.d"
    mkdir = deps.runner(["mkdir", "-p", str(conf_d)], ctx=deps.as_root(), log_path=ctx.log_path)
    return _stage_result(mkdir, f"mkdir {conf_d}")


def _publish(ctx: BuildContext, deps: BuildDeps) -> dict[str, Any]:
    binary = Path(ctx.binary_path)
    links = [deps.settings.line_link_path(ctx.release_line)]
    if ctx.is_default:
        links.append(deps.settings.global_php_path)

    for link in links:
        result = publish_link(binary, link, runner=deps.runner)
        if not result["ok"]:
            return {"ok": False, "error": result["error"]}
    return {"ok": True, "links": [str(p) for p in links]}


def _verify(ctx: BuildContext, deps: BuildDeps) -> dict[str, Any]:
    # Run through the published link so a broken link fails here
    binary = str(deps.settings.line_link_path(ctx.release_line))
    result = deps.runner(
        [binary, "-v"],
        ctx=deps.as_user(),
        timeout=VERIFY_TIMEOUT,
        log_path=ctx.log_path,
    )
    if not result["ok"]:
        return _stage_result(result, f"{binary} -v")

    lines = (result.get("stdout") or "").strip().splitlines()
    first = lines[0] if lines else ""
    expected = f"PHP {ctx.exact_version}"
    if not first.startswith(expected):
        return {"ok": False, "error": f"expected '{expected}…', got '{first or '<no output>'}'"}
    return {"ok": True, "version_line": first}


STAGES: list[tuple[str, StageFn]] = [
    ("configure", _configure),
    ("compile", _compile),
    ("install", _install),
    ("publish", _publish),
    ("verify", _verify),
]


# ── Driver ─────────────────────────────────────────────────────


def finalize(ctx: BuildContext, deps: BuildDeps, success: bool) -> None:
    """Always drop the source tree; keep the log only when something failed."""
    targets = [Path(ctx.source_path)]
    if success and ctx.log_path:
        targets.append(Path(ctx.log_path))
    elif ctx.log_path:
        logger.info("Build log kept at %s", ctx.log_path)

    for path in targets:
        result = remove_path(path, runner=deps.runner)
        if not result["ok"]:
            logger.warning("Cleanup: %s", result["error"])


def run_pipeline(
    ctx: BuildContext,
    deps: BuildDeps,
    stages: list[tuple[str, StageFn]] | None = None,
) -> dict[str, Any]:
    """Run every stage in order, then finalize.

    Returns:
        ``{"ok": True, "stages": {name: result, ...}}``

    Raises:
        BuildStageFailed: The subclass matching the first failed stage,
            carrying the stage name and the log path.
    """
    stages = STAGES if stages is None else stages
    results: dict[str, dict[str, Any]] = {}
    success = False
    try:
        for name, stage in stages:
            logger.info("PHP %s: %s", ctx.exact_version, name)
            result = stage(ctx, deps)
            results[name] = result
            if not result["ok"]:
                logger.error("PHP %s: %s failed — %s", ctx.exact_version, name, result["error"])
                raise STAGE_ERRORS[name](
                    result["error"],
                    log_path=ctx.log_path,
                    release_line=ctx.release_line,
                    exact_version=ctx.exact_version,
                )
        success = True
    finally:
        finalize(ctx, deps, success)

    return {"ok": True, "stages": results}
