"""
Tests for native dependency resolution — privileged installs and the
unprivileged presence check.
"""

from unittest.mock import patch

import pytest

from src.core.models.php import PlatformInfo
from src.core.services.php_install.domain.errors import DependencyInstallFailed
from src.core.services.php_install.execution.dependency_resolver import (
    MODE_BUILD,
    MODE_FEATURE,
    DependencyResolver,
)

_MOD = "src.core.services.php_install.execution.dependency_resolver"

DEBIAN = PlatformInfo(
    distribution_id="debian",
    package_manager_id="apt",
    package_manager_executable="apt-get",
    detected_by="os-release",
)
FEDORA = PlatformInfo(
    distribution_id="fedora",
    package_manager_id="dnf",
    package_manager_executable="dnf",
    detected_by="os-release",
)


def _all_missing(packages, _pm):
    return {"missing": list(packages), "installed": []}


class TestDependencyIds:
    def test_build_mode_includes_toolchain(self, runner):
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        ids = r.dependency_ids({"gd"}, MODE_BUILD)
        assert ids[:3] == ["buildtools", "autoconf", "pkgconfig"]
        assert ids[-1] == "gd"

    def test_feature_mode_only_modules(self, runner):
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        assert r.dependency_ids({"mysqli", "pdo-mysql", "bcmath"}, MODE_FEATURE) == ["mysql"]

    def test_package_names_per_manager(self, runner):
        apt = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        dnf = DependencyResolver(FEDORA, privileged=True, runner=runner)
        assert apt.package_names(["gd", "intl"]) == ["libgd-dev", "libicu-dev"]
        assert dnf.package_names(["buildtools"]) == ["gcc", "gcc-c++", "make"]

    def test_unknown_id_skipped(self, runner):
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        assert r.package_names(["nope", "zip"]) == ["libzip-dev"]


class TestPrivilegedResolve:
    """Debian host, running as root."""

    @patch(f"{_MOD}.check_system_deps", side_effect=_all_missing)
    def test_installs_missing_in_one_batch(self, _check, runner):
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        result = r.resolve({"gd", "intl"}, MODE_FEATURE)

        assert result["installed"] == ["libgd-dev", "libicu-dev"]
        assert runner.commands == [
            "apt-get update",
            "apt-get install -y libgd-dev libicu-dev",
        ]
        assert all(c.ctx.privileged for c in runner.calls)

    @patch(f"{_MOD}.check_system_deps", side_effect=_all_missing)
    def test_index_updated_once(self, _check, runner):
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        r.resolve({"gd"}, MODE_FEATURE)
        r.resolve({"intl"}, MODE_FEATURE)
        assert runner.commands.count("apt-get update") == 1

    @patch(f"{_MOD}.check_system_deps")
    def test_nothing_missing_runs_nothing(self, mock_check, runner):
        mock_check.side_effect = lambda pkgs, _pm: {"missing": [], "installed": list(pkgs)}
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        result = r.resolve({"gd"}, MODE_BUILD)
        assert result["installed"] == []
        assert "libgd-dev" in result["present"]
        assert runner.calls == []

    @patch(f"{_MOD}.check_system_deps", side_effect=_all_missing)
    def test_dnf_has_no_update_step(self, _check, runner):
        r = DependencyResolver(FEDORA, privileged=True, runner=runner)
        r.resolve({"zip"}, MODE_FEATURE)
        assert runner.commands == ["dnf install -y libzip-devel"]

    @patch(f"{_MOD}.check_system_deps", side_effect=_all_missing)
    def test_install_failure(self, _check, runner):
        runner.fail("apt-get install", stderr="E: Unable to locate package libgd-dev")
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        with pytest.raises(DependencyInstallFailed) as exc:
            r.resolve({"gd"}, MODE_FEATURE)
        assert exc.value.missing == ["libgd-dev"]
        assert exc.value.detail["stderr"].startswith("E: Unable")

    @patch(f"{_MOD}.check_system_deps", side_effect=_all_missing)
    def test_failed_update_still_installs(self, _check, runner):
        runner.fail("apt-get update")
        r = DependencyResolver(DEBIAN, privileged=True, runner=runner)
        r.resolve({"gd"}, MODE_FEATURE)
        assert runner.commands[-1] == "apt-get install -y libgd-dev"


class TestUnprivilegedResolve:
    @patch(f"{_MOD}.find_dependency", return_value="pkg-config")
    def test_all_present(self, _find, runner):
        r = DependencyResolver(DEBIAN, privileged=False, runner=runner)
        result = r.resolve({"gd"}, MODE_FEATURE)
        assert result == {"installed": [], "present": ["gd"]}
        assert runner.calls == []

    @patch(f"{_MOD}.find_dependency")
    def test_missing_needs_privilege(self, mock_find, runner):
        mock_find.side_effect = lambda spec, _pm: None if spec.id == "intl" else "library"
        r = DependencyResolver(DEBIAN, privileged=False, runner=runner)
        with pytest.raises(DependencyInstallFailed) as exc:
            r.resolve({"gd", "intl"}, MODE_FEATURE)

        err = exc.value
        assert err.needs_privilege is True
        assert err.missing == ["intl"]
        assert err.detail["packages"] == ["libicu-dev"]
        assert "sudo apt-get install -y libicu-dev" in str(err)
        assert runner.calls == []
