"""
CLI commands for PHP version management.

Thin wrappers over ``src.core.services.php_install``.  Every command
renders an ``Outcome`` and exits 1 when it failed.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from src.core.models.php import Outcome


def _orchestrator(ctx: click.Context):
    """Build the orchestrator from settings (or take the injected one)."""
    injected = ctx.obj.get("orchestrator")
    if injected is not None:
        return injected

    from src.core.config.loader import ConfigError, load_settings
    from src.core.persistence.config_store import (
        DEFAULT_CONFIG_FILE,
        ConfigStoreError,
        JsonConfigStore,
    )
    from src.core.services.php_install import VersionLifecycleOrchestrator

    try:
        settings = load_settings(ctx.obj.get("config_path"))
        store = JsonConfigStore(Path(settings.config_dir) / DEFAULT_CONFIG_FILE)
    except (ConfigError, ConfigStoreError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    orchestrator = VersionLifecycleOrchestrator(settings, store)
    ctx.obj["orchestrator"] = orchestrator
    return orchestrator


def _render(outcome: Outcome, as_json: bool) -> None:
    """Print an outcome; exit 1 on failure."""
    if as_json:
        click.echo(json.dumps(outcome.model_dump(mode="json"), indent=2))
        if not outcome.ok:
            sys.exit(1)
        return

    if outcome.ok:
        if outcome.message:
            click.secho(f"✅ {outcome.message}", fg="green")
        return

    click.secho(f"❌ {outcome.error}", fg="red", err=True)
    detail = outcome.detail
    for name, hints in (detail.get("suggestions") or {}).items():
        if hints:
            click.echo(f"   {name}: did you mean {', '.join(hints)}?", err=True)
    if detail.get("log_path"):
        click.echo(f"   Build log: {detail['log_path']}", err=True)
    if detail.get("needs_privilege"):
        click.echo("   Re-run with sudo to install missing dependencies.", err=True)
    sys.exit(1)


def _names(values: tuple[str, ...]) -> list[str]:
    """Accept both ``gd intl`` and ``gd,intl``."""
    return [n for v in values for n in v.split(",") if n.strip()]


@click.group()
def php() -> None:
    """PHP — install, rebuild, upgrade, remove, switch versions."""


# ── Lifecycle ───────────────────────────────────────────────────


@php.command()
@click.argument("version")
@click.option("--extensions", "-e", "extensions", multiple=True,
              help="Extensions to build with (default: the standard set).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, version: str, extensions: tuple[str, ...], as_json: bool) -> None:
    """Build and install a PHP release line (e.g. 8.3)."""
    orch = _orchestrator(ctx)
    _render(orch.install(version, _names(extensions) or None), as_json)


@php.command()
@click.argument("version")
@click.option("--no-cache", "bypass_cache", is_flag=True,
              help="Ignore the version cache and build the newest patch release.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def rebuild(ctx: click.Context, version: str, bypass_cache: bool, as_json: bool) -> None:
    """Rebuild an installed version, applying pending extension changes."""
    orch = _orchestrator(ctx)
    _render(orch.rebuild(version, bypass_cache=bypass_cache), as_json)


@php.command()
@click.argument("version")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def upgrade(ctx: click.Context, version: str, as_json: bool) -> None:
    """Upgrade an installed version to its newest patch release."""
    orch = _orchestrator(ctx)
    _render(orch.upgrade(version), as_json)


@php.command()
@click.argument("version")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def remove(ctx: click.Context, version: str, yes: bool, as_json: bool) -> None:
    """Remove an installed version and everything it installed."""
    if not yes and not as_json:
        click.confirm(f"Remove PHP {version}?", abort=True)
    orch = _orchestrator(ctx)
    outcome = orch.remove(version)
    _render(outcome, as_json)
    if not as_json:
        for warning in outcome.data.get("warnings", []):
            click.secho(f"   ⚠️  {warning}", fg="yellow")


@php.command()
@click.argument("version")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def use(ctx: click.Context, version: str, as_json: bool) -> None:
    """Make VERSION the global `php`."""
    orch = _orchestrator(ctx)
    _render(orch.set_default(version), as_json)


# ── Observe ─────────────────────────────────────────────────────


@php.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_versions(ctx: click.Context, as_json: bool) -> None:
    """List installed versions."""
    orch = _orchestrator(ctx)
    outcome = orch.list_installed()
    if as_json:
        _render(outcome, as_json)
        return

    versions = outcome.data.get("versions", [])
    if not versions:
        click.secho("No PHP versions installed", fg="yellow")
        return

    click.secho("🐘 Installed PHP versions:", fg="cyan", bold=True)
    for v in versions:
        marker = " (default)" if v.get("is_default") else ""
        pending = len(v.get("pending_add", [])) + len(v.get("pending_remove", []))
        pending_label = f", {pending} pending" if pending else ""
        click.echo(
            f"   {v['release_line']:<5} {v.get('exact_version', '?'):<10}"
            f" {len(v.get('feature_modules', []))} extensions{pending_label}{marker}"
        )


@php.command()
@click.option("--no-cache", "bypass_cache", is_flag=True, help="Ignore the version cache.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def updates(ctx: click.Context, bypass_cache: bool, as_json: bool) -> None:
    """Check installed versions for newer patch releases."""
    orch = _orchestrator(ctx)
    outcome = orch.check_updates(bypass_cache=bypass_cache)
    if as_json or not outcome.ok:
        _render(outcome, as_json)
        return

    report = outcome.data.get("updates", [])
    if not report:
        click.secho("No PHP versions installed", fg="yellow")
        return
    for entry in report:
        if entry.get("error"):
            click.secho(f"   {entry['release_line']:<5} ⚠️  {entry['error']}", fg="yellow")
        elif entry.get("update_available"):
            click.secho(
                f"   {entry['release_line']:<5} {entry['installed']} → {entry['latest']}",
                fg="yellow",
            )
        else:
            click.secho(f"   {entry['release_line']:<5} {entry['installed']} ✓ up to date", fg="green")


# ── Extensions ──────────────────────────────────────────────────


@php.group()
def extensions() -> None:
    """Extensions — list, add, remove, replace."""


@extensions.command("list")
@click.argument("version")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def extensions_list(ctx: click.Context, version: str, as_json: bool) -> None:
    """Show installed, pending and available extensions."""
    orch = _orchestrator(ctx)
    outcome = orch.list_extensions(version)
    if as_json or not outcome.ok:
        _render(outcome, as_json)
        return

    data = outcome.data
    click.secho(f"🧩 PHP {version} extensions:", fg="cyan", bold=True)
    click.echo(f"   Installed: {', '.join(data['installed']) or '-'}")
    if data["pending_add"]:
        click.secho(f"   Pending add: {', '.join(data['pending_add'])}", fg="yellow")
    if data["pending_remove"]:
        click.secho(f"   Pending remove: {', '.join(data['pending_remove'])}", fg="yellow")
    click.echo(f"   Available: {', '.join(data['available']) or '-'}")


def _extension_command(name: str, help_text: str, method: str):
    @extensions.command(name, help=help_text)
    @click.argument("version")
    @click.argument("names", nargs=-1, required=True)
    @click.option("--rebuild", "rebuild_now", is_flag=True, help="Rebuild PHP now.")
    @click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def _command(
        ctx: click.Context,
        version: str,
        names: tuple[str, ...],
        rebuild_now: bool,
        as_json: bool,
    ) -> None:
        orch = _orchestrator(ctx)
        outcome = getattr(orch, method)(version, _names(names), rebuild_now=rebuild_now)
        _render(outcome, as_json)
        if not as_json and outcome.data.get("noops"):
            click.echo(f"   Already in place: {', '.join(outcome.data['noops'])}")

    return _command


extensions_add = _extension_command("add", "Add extensions to VERSION.", "add_extensions")
extensions_remove = _extension_command("remove", "Remove extensions from VERSION.", "remove_extensions")
extensions_replace = _extension_command(
    "replace", "Make NAMES the exact extension set of VERSION.", "replace_extensions",
)
