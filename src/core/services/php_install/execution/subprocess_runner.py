"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for build and
install operations.  Privilege handling, logging, and error handling
are centralised here.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Any, Protocol

from src.core.models.php import ExecContext
from src.core.services.php_install.data.constants import COMMAND_TIMEOUT

logger = logging.getLogger(__name__)

_TAIL = 2000


class CommandRunner(Protocol):
    """Signature shared by ``_run_subprocess`` and test doubles."""

    def __call__(
        self,
        cmd: list[str],
        *,
        ctx: ExecContext | None = None,
        timeout: int = COMMAND_TIMEOUT,
        env_overrides: dict[str, str] | None = None,
        log_path: str | None = None,
    ) -> dict[str, Any]: ...


def _append_log(log_path: str, cmd: list[str], stdout: str, stderr: str) -> None:
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"$ {' '.join(cmd)}\n")
        if stdout:
            f.write(stdout)
        if stderr:
            f.write(stderr)
        f.write("\n")


def _run_subprocess(
    cmd: list[str],
    *,
    ctx: ExecContext | None = None,
    timeout: int = COMMAND_TIMEOUT,
    env_overrides: dict[str, str] | None = None,
    log_path: str | None = None,
) -> dict[str, Any]:
    """Run a command in an explicit execution context.

    Privilege invariants:
    - ``ctx.privileged`` and not root → ``sudo -n`` prefix; never prompts
    - root with ``ctx.as_user`` → the child runs as that user
      (setuid/setgid in the child), with its HOME and USER

    Args:
        cmd: Command list for ``subprocess.run()``.
        ctx: Who runs it and where. None = as self, in the current dir.
        timeout: Seconds before ``TimeoutExpired``.
        env_overrides: Extra env vars.
        log_path: Append the full command output to this file.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", ...}`` on failure.
    """
    ctx = ctx or ExecContext()
    is_root = os.geteuid() == 0

    # ── Privilege handling ──
    if ctx.privileged and not is_root:
        cmd = ["sudo", "-n"] + cmd

    # ── Environment ──
    env = os.environ.copy()
    run_kwargs: dict[str, Any] = {}
    if is_root and ctx.as_user is not None and not ctx.privileged and not ctx.as_user.is_root:
        user = ctx.as_user
        run_kwargs = {"user": user.uid, "group": user.gid, "extra_groups": [user.gid]}
        env["USER"] = user.username
        env["LOGNAME"] = user.username
        if user.home:
            env["HOME"] = user.home
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    # ── Execute ──
    logger.debug("exec: %s (cwd=%s)", " ".join(cmd), ctx.working_dir or ".")
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=ctx.working_dir,
            **run_kwargs,
        )
    except subprocess.TimeoutExpired:
        if log_path:
            _append_log(log_path, cmd, "", f"timed out after {timeout}s\n")
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except FileNotFoundError as e:
        return {"ok": False, "error": f"Command not found: {e.filename or cmd[0]}"}
    except Exception as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if log_path:
        try:
            _append_log(log_path, cmd, result.stdout or "", result.stderr or "")
        except OSError as e:
            logger.warning("Cannot write build log %s: %s", log_path, e)

    stdout = result.stdout[-_TAIL:] if result.stdout else ""
    if result.returncode == 0:
        return {"ok": True, "stdout": stdout, "elapsed_ms": elapsed_ms}

    stderr = result.stderr[-_TAIL:] if result.stderr else ""

    # sudo -n refused: no cached credentials and no NOPASSWD rule
    if ctx.privileged and not is_root and "password is required" in stderr.lower():
        return {
            "ok": False,
            "needs_privilege": True,
            "error": "This step requires root. Re-run with sudo.",
            "stderr": stderr,
        }

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
    }
