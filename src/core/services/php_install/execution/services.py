"""
L4 Execution — FPM worker-pool service control via systemd.

Unit files are written by the service templating collaborator; this
module only drives ``systemctl``.
"""

from __future__ import annotations

import logging
from typing import Any

from src.core.models.php import ExecContext
from src.core.services.php_install.execution.subprocess_runner import (
    CommandRunner,
    _run_subprocess,
)

logger = logging.getLogger(__name__)

_ACTIONS = ("start", "stop", "restart", "enable", "disable")


class SystemdServiceManager:
    """start / stop / enable / disable / daemon-reload through systemctl."""

    def __init__(self, runner: CommandRunner = _run_subprocess):
        self._run = runner
        self._ctx = ExecContext(privileged=True)

    def action(self, service: str, action: str) -> dict[str, Any]:
        if action not in _ACTIONS:
            return {"ok": False, "error": f"Unknown service action: {action}"}
        result = self._run(["systemctl", action, service], ctx=self._ctx, timeout=60)
        if not result["ok"]:
            logger.warning("systemctl %s %s failed: %s", action, service, result.get("error"))
        return result

    def reload(self) -> dict[str, Any]:
        result = self._run(["systemctl", "daemon-reload"], ctx=self._ctx, timeout=60)
        if not result["ok"]:
            logger.warning("systemctl daemon-reload failed: %s", result.get("error"))
        return result

    def activate(self, service: str) -> dict[str, Any]:
        """Reload units, then stop, start and enable ``service``.

        Stop failing is expected when the pool was not running.
        """
        failed: list[str] = []
        if not self.reload()["ok"]:
            failed.append("daemon-reload")
        self._run(["systemctl", "stop", service], ctx=self._ctx, timeout=60)
        for action in ("start", "enable"):
            if not self.action(service, action)["ok"]:
                failed.append(action)
        if failed:
            return {"ok": False, "service": service, "failed": failed,
                    "error": f"{service}: {', '.join(failed)} failed"}
        logger.info("Service %s active", service)
        return {"ok": True, "service": service}

    def deactivate(self, service: str) -> dict[str, Any]:
        """Stop and disable ``service``."""
        failed = [a for a in ("stop", "disable") if not self.action(service, a)["ok"]]
        if failed:
            return {"ok": False, "service": service, "failed": failed,
                    "error": f"{service}: {', '.join(failed)} failed"}
        return {"ok": True, "service": service}
