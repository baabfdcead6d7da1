"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
Subprocess calls, file reads, env var reads — all read-only.
"""

from src.core.services.php_install.detection.conflicts import (  # noqa: F401
    check_conflicts,
    find_conflicts,
    is_managed,
)
from src.core.services.php_install.detection.environment import (  # noqa: F401
    cpu_count,
    detect_invoking_user,
    fpm_account,
    is_privileged,
)
from src.core.services.php_install.detection.platform_probe import (  # noqa: F401
    PlatformProbe,
    parse_os_release,
)
from src.core.services.php_install.detection.system_deps import (  # noqa: F401
    _is_pkg_installed,
    check_system_deps,
    find_dependency,
)
