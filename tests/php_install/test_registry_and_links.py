"""
Tests for the install registry, symlink publishing and service control.
"""

import logging
import os
from pathlib import Path
from unittest.mock import patch

from src.core.models.php import InstalledVersion
from src.core.persistence.config_store import MemoryConfigStore
from src.core.services.php_install.execution import (
    InstallRegistry,
    SystemdServiceManager,
    publish_link,
    read_link,
    remove_link,
    remove_path,
)


def _rec(line: str, **kwargs) -> InstalledVersion:
    return InstalledVersion(release_line=line, exact_version=f"{line}.1", **kwargs)


# ═══════════════════════════════════════════════════════════════════
#  Registry
# ═══════════════════════════════════════════════════════════════════


class TestInstallRegistry:
    def test_save_and_get(self, store):
        reg = InstallRegistry(store)
        reg.save(_rec("8.3", feature_modules={"zip", "curl"}))

        assert store.get("php.[8.3].feature_modules") == ["curl", "zip"]
        record = reg.get("8.3")
        assert record.feature_modules == {"curl", "zip"}
        assert reg.is_installed("8.3")
        assert not reg.is_installed("8.2")

    def test_list_sorted_numerically(self, store):
        reg = InstallRegistry(store)
        for line in ("8.10", "8.2", "7.4"):
            reg.save(_rec(line))
        assert [r.release_line for r in reg.list()] == ["7.4", "8.2", "8.10"]

    def test_delete(self, store):
        reg = InstallRegistry(store)
        reg.save(_rec("8.3"))
        assert reg.delete("8.3") is True
        assert reg.get("8.3") is None
        assert reg.delete("8.3") is False

    def test_single_default(self, store):
        reg = InstallRegistry(store)
        reg.save(_rec("8.2", is_default=True))
        reg.save(_rec("8.3"))

        reg.set_default("8.3")
        assert [r.release_line for r in reg.list() if r.is_default] == ["8.3"]
        assert reg.default().release_line == "8.3"

        reg.set_default(None)
        assert reg.default() is None

    def test_invalid_record_salvaged(self):
        store = MemoryConfigStore({"php": {"8.3": {
            "exact_version": "8.3.12",
            "install_path": "/opt/x",
            "is_default": True,
            "feature_modules": 42,
        }}})
        record = InstallRegistry(store).get("8.3")
        assert record.exact_version == "8.3.12"
        assert record.is_default is True
        assert record.feature_modules == set()

    def test_malformed_entries_skipped(self):
        store = MemoryConfigStore({"php": {"8.3": "garbage", "8.2": {"exact_version": "8.2.1"}}})
        assert [r.release_line for r in InstallRegistry(store).list()] == ["8.2"]

    def test_root_not_object(self):
        assert InstallRegistry(MemoryConfigStore({"php": [1, 2]})).list() == []

    def test_missing_line_logs_nothing(self, store, caplog):
        with caplog.at_level(logging.WARNING):
            assert InstallRegistry(store).get("8.3") is None
        assert caplog.records == []


# ═══════════════════════════════════════════════════════════════════
#  Links and paths
# ═══════════════════════════════════════════════════════════════════


class TestLinks:
    def test_publish_creates_and_replaces(self, tmp_path: Path, runner):
        link = tmp_path / "bin" / "php8.3"
        assert publish_link(tmp_path / "a" / "php", link, runner=runner)["ok"]
        assert publish_link(tmp_path / "b" / "php", link, runner=runner)["ok"]
        assert read_link(link) == tmp_path / "b" / "php"
        assert not (tmp_path / "bin" / ".php8.3.phpvm-tmp").exists()
        assert runner.calls == []

    def test_publish_refuses_regular_file(self, tmp_path: Path, runner):
        link = tmp_path / "php"
        link.write_text("distro")
        result = publish_link(tmp_path / "x", link, runner=runner)
        assert result["ok"] is False
        assert link.read_text() == "distro"

    def test_publish_permission_falls_back_to_sudo(self, tmp_path: Path, runner):
        link = tmp_path / "php8.3"
        with patch("src.core.services.php_install.execution.filesystem.os.symlink",
                   side_effect=PermissionError(13, "denied")):
            result = publish_link(tmp_path / "x", link, runner=runner)
        assert result["ok"]
        assert runner.commands == [f"ln -sfn {tmp_path / 'x'} {link}"]
        assert runner.calls[0].ctx.privileged

    def test_remove_link(self, tmp_path: Path, runner):
        link = tmp_path / "php8.3"
        os.symlink(tmp_path / "x", link)
        assert remove_link(link, runner=runner)["ok"]
        assert not link.is_symlink()
        assert remove_link(link, runner=runner)["skipped"]

    def test_remove_link_refuses_regular_file(self, tmp_path: Path, runner):
        path = tmp_path / "php8.3"
        path.write_text("")
        assert remove_link(path, runner=runner)["ok"] is False
        assert path.exists()

    def test_read_link_not_symlink(self, tmp_path: Path):
        assert read_link(tmp_path / "nothing") is None

    def test_remove_path_tree(self, tmp_path: Path, runner):
        tree = tmp_path / "php8.3" / "8.3.12-b1"
        (tree / "bin").mkdir(parents=True)
        (tree / "bin" / "php").write_text("")
        assert remove_path(tmp_path / "php8.3", runner=runner)["ok"]
        assert not (tmp_path / "php8.3").exists()
        assert remove_path(tmp_path / "php8.3", runner=runner)["skipped"]


# ═══════════════════════════════════════════════════════════════════
#  Services
# ═══════════════════════════════════════════════════════════════════


class TestSystemdServiceManager:
    def test_activate_sequence(self, runner):
        result = SystemdServiceManager(runner).activate("phpvm-php8.3-fpm")
        assert result["ok"]
        assert runner.commands == [
            "systemctl daemon-reload",
            "systemctl stop phpvm-php8.3-fpm",
            "systemctl start phpvm-php8.3-fpm",
            "systemctl enable phpvm-php8.3-fpm",
        ]
        assert all(c.ctx.privileged for c in runner.calls)

    def test_stop_failure_is_expected(self, runner):
        runner.fail("systemctl stop")
        assert SystemdServiceManager(runner).activate("svc")["ok"]

    def test_start_failure_reported(self, runner):
        runner.fail("systemctl start")
        result = SystemdServiceManager(runner).activate("svc")
        assert result["ok"] is False
        assert result["failed"] == ["start"]

    def test_deactivate(self, runner):
        assert SystemdServiceManager(runner).deactivate("svc")["ok"]
        assert runner.commands == ["systemctl stop svc", "systemctl disable svc"]

    def test_unknown_action(self, runner):
        assert SystemdServiceManager(runner).action("svc", "explode")["ok"] is False
        assert runner.calls == []
