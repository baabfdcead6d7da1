"""
Domain models — Pydantic types for phpvm.

All models are re-exported here for convenient access:

    from src.core.models import InstalledVersion, BuildContext, Outcome, Settings
"""

from src.core.models.php import (
    BuildContext,
    ConfigSnapshot,
    DependencySpec,
    DetectionHints,
    ExecContext,
    FeatureModule,
    InstalledVersion,
    Outcome,
    PackageManagerCommand,
    PlatformInfo,
    ReleaseInfo,
    UserContext,
)
from src.core.models.settings import Settings

__all__ = [
    # php.py
    "BuildContext",
    "ConfigSnapshot",
    "DependencySpec",
    "DetectionHints",
    "ExecContext",
    "FeatureModule",
    "InstalledVersion",
    "Outcome",
    "PackageManagerCommand",
    "PlatformInfo",
    "ReleaseInfo",
    # settings.py
    "Settings",
    "UserContext",
]
