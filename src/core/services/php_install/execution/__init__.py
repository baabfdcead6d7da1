"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: subprocess calls, package
installs, downloads, source trees, symlinks, services, the registry.
"""

from src.core.services.php_install.execution.build_pipeline import (  # noqa: F401
    STAGES,
    BuildDeps,
    finalize,
    run_pipeline,
)
from src.core.services.php_install.execution.dependency_resolver import (  # noqa: F401
    MODE_BUILD,
    MODE_FEATURE,
    DependencyResolver,
)
from src.core.services.php_install.execution.filesystem import (  # noqa: F401
    publish_link,
    read_link,
    remove_link,
    remove_path,
)
from src.core.services.php_install.execution.registry import (  # noqa: F401
    InstallRegistry,
)
from src.core.services.php_install.execution.services import (  # noqa: F401
    SystemdServiceManager,
)
from src.core.services.php_install.execution.source_fetcher import (  # noqa: F401
    SourceFetcher,
)
from src.core.services.php_install.execution.subprocess_runner import (  # noqa: F401
    CommandRunner,
    _run_subprocess,
)
from src.core.services.php_install.execution.version_cache import (  # noqa: F401
    VersionCache,
)
