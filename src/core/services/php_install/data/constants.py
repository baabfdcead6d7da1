"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

USER_AGENT = "phpvm/1.0"

# Compile job factor when the CPU count cannot be detected.
DEFAULT_JOBS = 4

# Subprocess ceilings (seconds). Builds are bounded only loosely.
COMMAND_TIMEOUT = 120
PACKAGE_INSTALL_TIMEOUT = 1800
CONFIGURE_TIMEOUT = 1800
COMPILE_TIMEOUT = 7200
INSTALL_TIMEOUT = 1800
VERIFY_TIMEOUT = 30

# Library directories searched by the unprivileged dependency check.
LIBRARY_DIRS: tuple[str, ...] = (
    "/usr/lib",
    "/usr/lib64",
    "/usr/local/lib",
    "/lib",
    "/lib64",
    "/usr/lib/x86_64-linux-gnu",
    "/usr/lib/aarch64-linux-gnu",
    "/opt/homebrew/lib",
)

VERSION_CACHE_FILE = "version_cache.json"
