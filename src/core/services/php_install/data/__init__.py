"""
L0 Data — ``__init__.py`` re-exports all static catalogs.

Pure data: dicts, tuples and constants. No I/O.
"""

from src.core.services.php_install.data.catalog import (  # noqa: F401
    DEFAULT_FEATURE_MODULES,
    FEATURE_MODULES,
    available_feature_modules,
    get_feature_module,
)
from src.core.services.php_install.data.dependencies import (  # noqa: F401
    BUILD_DEPENDENCY_IDS,
    DEPENDENCY_CATALOG,
    get_dependency,
)
from src.core.services.php_install.data.package_managers import (  # noqa: F401
    DISTRO_MANAGERS,
    PACKAGE_MANAGERS,
    PROBE_ORDER,
    RELEASE_MARKERS,
    get_package_manager,
)
