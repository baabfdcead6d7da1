"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from src.core.services.php_install.orchestration.extensions import (  # noqa: F401
    ExtensionLifecycleManager,
)
from src.core.services.php_install.orchestration.orchestrator import (  # noqa: F401
    VersionLifecycleOrchestrator,
)
