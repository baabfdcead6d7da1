"""
Shared test fixtures and configuration.

Orchestration tests run the real pipeline, registry and filesystem code
against a temporary tree; only external commands (FakeRunner), the
php.net fetcher (FakeFetcher) and the package manager (FakeResolver)
are replaced.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from src.core.models.php import (
    BuildContext,
    ExecContext,
    InstalledVersion,
    ReleaseInfo,
    UserContext,
)
from src.core.models.settings import Settings
from src.core.persistence.config_store import MemoryConfigStore
from src.core.services.php_install.orchestration.orchestrator import VersionLifecycleOrchestrator

_BINARY_VERSION = re.compile(r"/(\d+\.\d+\.\d+)-[^/]+/bin/php$")


@dataclass
class Call:
    cmd: list[str]
    ctx: ExecContext | None
    log_path: str | None


class FakeRunner:
    """Stands in for ``_run_subprocess``; records every command."""

    def __init__(self):
        self.calls: list[Call] = []
        self.failures: list[tuple[str, dict[str, Any]]] = []
        self.version_output: str | None = None

    def fail(self, match: str, error: str = "Command failed (exit 2)", **extra: Any) -> None:
        """Every command whose text contains ``match`` fails."""
        self.failures.append((match, {"ok": False, "error": error, **extra}))

    def __call__(
        self,
        cmd: list[str],
        *,
        ctx: ExecContext | None = None,
        timeout: int = 120,
        env_overrides: dict[str, str] | None = None,
        log_path: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(Call(cmd=list(cmd), ctx=ctx, log_path=log_path))
        line = " ".join(cmd)
        for match, result in self.failures:
            if match in line:
                return dict(result)

        if len(cmd) == 2 and cmd[1] == "-v":
            # The version comes from the build dir the binary (or link) points into
            m = _BINARY_VERSION.search(os.path.realpath(cmd[0]))
            version = self.version_output or (m.group(1) if m else "0.0.0")
            return {"ok": True, "stdout": f"PHP {version} (cli) (built: Oct 18 2026)\nZend Engine\n"}
        return {"ok": True, "stdout": "", "elapsed_ms": 1}

    @property
    def commands(self) -> list[str]:
        return [" ".join(c.cmd) for c in self.calls]

    def find(self, match: str) -> list[Call]:
        return [c for c in self.calls if match in " ".join(c.cmd)]


class FakeFetcher:
    """Serves fixed upstream versions and writes a stub source tree."""

    LATEST = {"8.1": "8.1.31", "8.2": "8.2.26", "8.3": "8.3.12", "8.4": "8.4.1"}

    def __init__(self, settings: Settings):
        self.settings = settings
        self.latest = dict(self.LATEST)
        self.calls: list[tuple[str, bool, str | None]] = []
        self.fail_with: Exception | None = None

    def latest_release(self, release_line: str, bypass_cache: bool = False) -> ReleaseInfo:
        version = self.latest[release_line]
        return ReleaseInfo(
            release_line=release_line,
            version=version,
            download_url=f"https://www.php.net/distributions/php-{version}.tar.gz",
        )

    def resolve_and_fetch(
        self,
        release_line: str,
        bypass_cache: bool = False,
        exact_version: str | None = None,
    ) -> BuildContext:
        self.calls.append((release_line, bypass_cache, exact_version))
        if self.fail_with is not None:
            raise self.fail_with
        version = exact_version if exact_version and not bypass_cache else self.latest[release_line]
        source = self.settings.source_path(release_line)
        source.mkdir(parents=True, exist_ok=True)
        (source / "configure").write_text("#!/bin/sh\n")
        return BuildContext(release_line=release_line, exact_version=version, source_path=str(source))

    def check_updates(self, installed: list[InstalledVersion], bypass_cache: bool = False) -> list[dict]:
        return [
            {
                "release_line": r.release_line,
                "installed": r.exact_version,
                "latest": self.latest[r.release_line],
                "update_available": self.latest[r.release_line] != r.exact_version,
            }
            for r in installed
        ]


class FakeResolver:
    def __init__(self):
        self.calls: list[tuple[set[str], str]] = []
        self.fail_with: Exception | None = None

    def resolve(self, feature_modules, mode: str = "build") -> dict:
        self.calls.append((set(feature_modules), mode))
        if self.fail_with is not None:
            raise self.fail_with
        return {"installed": [], "present": []}


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary tree."""
    return Settings(
        base_dir=str(tmp_path / "opt" / "phpvm"),
        system_bin_dir=str(tmp_path / "usr" / "local" / "bin"),
        systemd_dir=str(tmp_path / "systemd"),
        config_dir=str(tmp_path / "config"),
    )


@pytest.fixture
def user() -> UserContext:
    return UserContext(username="dev", uid=1000, gid=1000, group="dev", home="/home/dev")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fetcher(settings: Settings) -> FakeFetcher:
    return FakeFetcher(settings)


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def orchestrator(
    settings: Settings,
    store: MemoryConfigStore,
    runner: FakeRunner,
    fetcher: FakeFetcher,
    resolver: FakeResolver,
    user: UserContext,
) -> VersionLifecycleOrchestrator:
    """Orchestrator wired to fakes; build ids are b1, b2, ..."""
    counter = iter(range(1, 1000))
    return VersionLifecycleOrchestrator(
        settings,
        store,
        runner=runner,
        user=user,
        privileged=True,
        resolver=resolver,
        fetcher=fetcher,
        which=lambda name: None,
        jobs=4,
        build_id=lambda: f"b{next(counter)}",
    )
