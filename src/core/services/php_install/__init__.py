"""
PHP install service — package re-exports.

Builds side-by-side PHP versions from source.  Each symbol lives in its
single-responsibility module inside the appropriate onion layer
(data → domain → detection → execution → orchestration)::

    from src.core.services.php_install import VersionLifecycleOrchestrator
"""

# ── L0: Data ──
from src.core.services.php_install.data.catalog import (  # noqa: F401
    DEFAULT_FEATURE_MODULES,
    FEATURE_MODULES,
)

# ── L1: Domain ──
from src.core.services.php_install.domain.errors import (  # noqa: F401
    PhpInstallError,
)

# ── L3: Detection ──
from src.core.services.php_install.detection.platform_probe import (  # noqa: F401
    PlatformProbe,
)

# ── L4: Execution ──
from src.core.services.php_install.execution.dependency_resolver import (  # noqa: F401
    DependencyResolver,
)
from src.core.services.php_install.execution.registry import (  # noqa: F401
    InstallRegistry,
)
from src.core.services.php_install.execution.source_fetcher import (  # noqa: F401
    SourceFetcher,
)

# ── L5: Orchestration ──
from src.core.services.php_install.orchestration import (  # noqa: F401
    ExtensionLifecycleManager,
    VersionLifecycleOrchestrator,
)
