"""
Tests for the CLI — command wiring, rendering, exit codes.

The orchestrator is injected through ``obj`` so every command runs the
real engine against the temporary tree from conftest.
"""

import json

import pytest
from click.testing import CliRunner

from src.main import cli


@pytest.fixture
def invoke(orchestrator):
    runner = CliRunner()

    def _invoke(*args: str, input: str | None = None):
        return runner.invoke(cli, list(args), obj={"orchestrator": orchestrator}, input=input)

    return _invoke


class TestCLIBasics:
    """Basic CLI tests."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "phpvm" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.4.0" in result.output

    def test_php_help_lists_commands(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["php", "--help"])
        for name in ("install", "rebuild", "upgrade", "remove", "use", "list", "updates", "extensions"):
            assert name in result.output


class TestLifecycleCommands:
    def test_install(self, invoke):
        result = invoke("php", "install", "8.3")
        assert result.exit_code == 0
        assert "PHP 8.3.12 installed" in result.output

    def test_install_failure_exits_1(self, invoke):
        result = invoke("php", "install", "7.4")
        assert result.exit_code == 1
        assert "Unsupported PHP release line '7.4'" in result.output

    def test_install_suggestions(self, invoke):
        result = invoke("php", "install", "8.3", "-e", "gd,mysql")
        assert result.exit_code == 1
        assert "mysql: did you mean mysqli, pdo-mysql?" in result.output

    def test_build_log_shown(self, invoke, runner):
        runner.fail("make -j")
        result = invoke("php", "install", "8.3")
        assert result.exit_code == 1
        assert "Build log:" in result.output

    def test_install_json(self, invoke):
        result = invoke("php", "install", "8.3", "--json")
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["data"]["record"]["exact_version"] == "8.3.12"

    def test_list(self, invoke):
        invoke("php", "install", "8.3")
        result = invoke("php", "list")
        assert result.exit_code == 0
        assert "8.3.12" in result.output
        assert "(default)" in result.output

    def test_list_empty(self, invoke):
        result = invoke("php", "list")
        assert "No PHP versions installed" in result.output

    def test_remove_needs_confirmation(self, invoke, orchestrator):
        invoke("php", "install", "8.3")
        result = invoke("php", "remove", "8.3", input="n\n")
        assert result.exit_code == 1
        assert orchestrator.registry.is_installed("8.3")

        result = invoke("php", "remove", "8.3", "--yes")
        assert result.exit_code == 0
        assert not orchestrator.registry.is_installed("8.3")

    def test_use(self, invoke, orchestrator):
        invoke("php", "install", "8.3")
        invoke("php", "install", "8.2")
        result = invoke("php", "use", "8.2")
        assert result.exit_code == 0
        assert orchestrator.registry.default().release_line == "8.2"

    def test_updates(self, invoke, fetcher):
        invoke("php", "install", "8.3")
        fetcher.latest["8.3"] = "8.3.13"
        result = invoke("php", "updates")
        assert "8.3.12 → 8.3.13" in result.output


class TestExtensionCommands:
    def test_add_and_list(self, invoke):
        invoke("php", "install", "8.3")
        result = invoke("php", "extensions", "add", "8.3", "gd", "intl")
        assert result.exit_code == 0
        assert "changes queued" in result.output

        result = invoke("php", "extensions", "list", "8.3")
        assert "Pending add: gd, intl" in result.output

    def test_add_noop_reported(self, invoke):
        invoke("php", "install", "8.3")
        result = invoke("php", "extensions", "add", "8.3", "curl")
        assert "Already in place: curl" in result.output

    def test_replace_with_rebuild(self, invoke, orchestrator):
        invoke("php", "install", "8.3")
        result = invoke("php", "extensions", "replace", "8.3", "curl,intl", "--rebuild")
        assert result.exit_code == 0
        assert orchestrator.registry.get("8.3").feature_modules == {"curl", "intl"}

    def test_not_installed(self, invoke):
        result = invoke("php", "extensions", "remove", "8.3", "gd")
        assert result.exit_code == 1
        assert "not installed" in result.output
