"""
L3 Detection — Process environment.

Who invoked us, whether we can elevate, how many CPUs to build with.
Read-only.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd

from src.core.models.php import UserContext
from src.core.services.php_install.data.constants import DEFAULT_JOBS

logger = logging.getLogger(__name__)


def is_privileged() -> bool:
    """True when the process runs as root."""
    return os.geteuid() == 0


def _user_from_pwd(entry: pwd.struct_passwd) -> UserContext:
    try:
        group = grp.getgrgid(entry.pw_gid).gr_name
    except KeyError:
        group = ""
    return UserContext(
        username=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        group=group,
        home=entry.pw_dir,
    )


def detect_invoking_user() -> UserContext:
    """The human account behind this process.

    Under ``sudo`` that is ``$SUDO_USER``, not root, so sources are
    owned by and compiled as the developer.  Otherwise the current uid.
    """
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root" and is_privileged():
        try:
            return _user_from_pwd(pwd.getpwnam(sudo_user))
        except KeyError:
            logger.warning("SUDO_USER=%s has no passwd entry — using current uid", sudo_user)

    uid = os.getuid()
    try:
        return _user_from_pwd(pwd.getpwuid(uid))
    except KeyError:
        return UserContext(
            username=os.environ.get("USER", str(uid)),
            uid=uid,
            gid=os.getgid(),
            home=os.environ.get("HOME", ""),
        )


def fpm_account(user: UserContext) -> tuple[str, str]:
    """(user, group) for the FPM pool. Root never runs the pool."""
    if user.is_root or not user.username:
        return "nobody", "nobody"
    return user.username, user.group or user.username


def cpu_count() -> int:
    """Parallel compile jobs. Falls back to DEFAULT_JOBS."""
    try:
        return len(os.sched_getaffinity(0)) or DEFAULT_JOBS
    except (AttributeError, OSError):
        return os.cpu_count() or DEFAULT_JOBS
