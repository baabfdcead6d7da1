"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from src.core.services.php_install.domain.errors import (  # noqa: F401
    STAGE_ERRORS,
    AlreadyInstalled,
    BuildStageFailed,
    CompileFailed,
    ConfigureFailed,
    ConflictingExternalInstallation,
    DependencyInstallFailed,
    DownloadFailed,
    ExtractFailed,
    InstallFailed,
    InvalidFeatureModules,
    InvalidReleaseLine,
    NotInstalled,
    PhpInstallError,
    PublishFailed,
    UnsupportedPlatform,
    VerifyFailed,
    VersionResolutionFailed,
)
from src.core.services.php_install.domain.extensions import (  # noqa: F401
    commit_pending,
    native_dependencies_for,
    plan_add,
    plan_remove,
    plan_replace,
    suggest_similar,
    validate_names,
)
from src.core.services.php_install.domain.flags import (  # noqa: F401
    build_configure_flags,
)
from src.core.services.php_install.domain.snapshot import (  # noqa: F401
    restore_snapshot,
    take_snapshot,
)
from src.core.services.php_install.domain.versions import (  # noqa: F401
    compare_versions,
    is_valid_release_line,
    matches_release_line,
)
