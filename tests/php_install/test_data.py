"""
Consistency checks across the static catalogs.
"""

from src.core.services.php_install.data import (
    BUILD_DEPENDENCY_IDS,
    DEFAULT_FEATURE_MODULES,
    DEPENDENCY_CATALOG,
    DISTRO_MANAGERS,
    FEATURE_MODULES,
    PACKAGE_MANAGERS,
    PROBE_ORDER,
    get_dependency,
    get_feature_module,
    get_package_manager,
)


class TestCatalogConsistency:
    def test_defaults_are_known_modules(self):
        assert DEFAULT_FEATURE_MODULES <= set(FEATURE_MODULES)

    def test_module_dependencies_resolve(self):
        for module in FEATURE_MODULES.values():
            for dep_id in module.native_dependencies:
                assert get_dependency(dep_id) is not None, (module.name, dep_id)

    def test_build_dependencies_resolve(self):
        for dep_id in BUILD_DEPENDENCY_IDS:
            assert dep_id in DEPENDENCY_CATALOG

    def test_every_dependency_covers_every_manager(self):
        for spec in DEPENDENCY_CATALOG.values():
            assert set(spec.packages) == set(PACKAGE_MANAGERS), spec.id

    def test_distro_and_probe_tables_point_at_managers(self):
        assert set(DISTRO_MANAGERS.values()) <= set(PACKAGE_MANAGERS)
        assert {mid for _, mid in PROBE_ORDER} == set(PACKAGE_MANAGERS)


class TestLookups:
    def test_known(self):
        assert get_feature_module("gd").build_flag == "--enable-gd"
        assert get_package_manager("apt").executable == "apt-get"

    def test_unknown(self):
        assert get_feature_module("mysql") is None
        assert get_dependency("nope") is None
        assert get_package_manager("brew") is None
