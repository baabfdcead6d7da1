"""
L1 Domain — Configure flag assembly (pure).

The same inputs always produce the same list in the same order, so a
rebuild with an unchanged module set reproduces the previous configure.
"""

from __future__ import annotations

from src.core.services.php_install.data.catalog import FEATURE_MODULES


def build_configure_flags(
    *,
    install_path: str,
    config_path: str,
    fpm_user: str,
    fpm_group: str,
    feature_modules: set[str] | list[str],
) -> list[str]:
    """Assemble the ``./configure`` argument list.

    Args:
        install_path: ``--prefix`` for this build.
        config_path: Directory holding php.ini; ``conf.d`` is scanned below it.
        fpm_user: Account the FPM pool runs as.
        fpm_group: Group the FPM pool runs as.
        feature_modules: Catalog names; unknown names and empty flags are skipped.
    """
    flags = [
        f"--prefix={install_path}",
        f"--with-config-file-path={config_path}",
        f"--with-config-file-scan-dir={config_path}/conf.d",
        "--enable-fpm",
        f"--with-fpm-user={fpm_user}",
        f"--with-fpm-group={fpm_group}",
        "--enable-cli",
    ]

    for name in sorted(set(feature_modules)):
        module = FEATURE_MODULES.get(name)
        if module is None or not module.build_flag:
            continue
        if module.build_flag not in flags:
            flags.append(module.build_flag)

    return flags
