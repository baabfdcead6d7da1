"""
L4 Execution — PHP source resolution, download and extraction.

Resolution asks the php.net release index for the newest patch of a
release line, or confirms an exact version (falling back to its
conventional tarball name).  The tarball is streamed to a scratch dir,
extracted, and moved into the per-line source directory, which is
always replaced.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tarfile
import tempfile
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.core.models.php import BuildContext, InstalledVersion, ReleaseInfo, UserContext
from src.core.models.settings import Settings
from src.core.services.php_install.data.constants import USER_AGENT
from src.core.services.php_install.domain.errors import (
    DownloadFailed,
    ExtractFailed,
    VersionResolutionFailed,
)
from src.core.services.php_install.domain.versions import compare_versions, matches_release_line
from src.core.services.php_install.execution.version_cache import VersionCache

logger = logging.getLogger(__name__)

_CHUNK = 8192


def _check_members(tf: tarfile.TarFile, dest: Path) -> None:
    """Reject members that would land outside ``dest``."""
    root = dest.resolve()
    for member in tf.getmembers():
        target = (dest / member.name).resolve()
        if target != root and root not in target.parents:
            raise ExtractFailed(f"Archive member escapes extraction dir: {member.name}")
        if member.issym() or member.islnk():
            link = Path(member.linkname)
            link_target = (
                (dest / link).resolve() if member.islnk()
                else (target.parent / link).resolve()
            )
            if link.is_absolute() or (link_target != root and root not in link_target.parents):
                raise ExtractFailed(f"Archive link escapes extraction dir: {member.name}")
        if member.isdev():
            raise ExtractFailed(f"Archive contains a device node: {member.name}")


def _chown_tree(path: Path, owner: UserContext) -> None:
    for dirpath, dirnames, filenames in os.walk(path):
        os.chown(dirpath, owner.uid, owner.gid)
        for name in filenames + dirnames:
            full = os.path.join(dirpath, name)
            os.chown(full, owner.uid, owner.gid, follow_symlinks=False)


class SourceFetcher:
    """Resolves versions against php.net and materialises source trees."""

    def __init__(
        self,
        settings: Settings,
        *,
        owner: UserContext | None = None,
        cache: VersionCache | None = None,
        urlopen: Callable[..., Any] = urllib.request.urlopen,
    ):
        self._settings = settings
        self._owner = owner
        self._cache = cache
        self._urlopen = urlopen

    # ── Resolution ──────────────────────────────────────────────

    def _query_index(self, version: str) -> dict[str, Any]:
        url = f"{self._settings.release_index_url}{version}"
        req = urllib.request.Request(
            url,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )
        try:
            with self._urlopen(req, timeout=self._settings.http_timeout) as resp:
                data = json.loads(resp.read())
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise VersionResolutionFailed(
                f"Release index query for {version} failed: {exc}", url=url,
            ) from exc

        if not isinstance(data, dict):
            raise VersionResolutionFailed(f"Unexpected release index answer for {version}", url=url)
        if data.get("error"):
            raise VersionResolutionFailed(
                f"Release index has no PHP {version}: {data['error']}", url=url,
            )
        return data

    def _release_from(self, release_line: str, data: dict[str, Any]) -> ReleaseInfo:
        version = str(data.get("version", ""))
        if not matches_release_line(version, release_line):
            raise VersionResolutionFailed(
                f"Release index answered {version or 'nothing'} for PHP {release_line}",
            )
        filename = next(
            (
                s.get("filename", "")
                for s in data.get("source", [])
                if isinstance(s, dict) and s.get("filename", "").endswith(".tar.gz")
            ),
            "",
        )
        if not filename:
            raise VersionResolutionFailed(f"No .tar.gz download listed for PHP {version}")
        return ReleaseInfo(
            release_line=release_line,
            version=version,
            download_url=f"{self._settings.distributions_url}{filename}",
        )

    def latest_release(self, release_line: str, bypass_cache: bool = False) -> ReleaseInfo:
        """Newest patch release of ``release_line``."""
        if self._cache is not None and not bypass_cache:
            cached = self._cache.get(release_line)
            if cached is not None:
                logger.debug("Version cache hit: %s → %s", release_line, cached.version)
                return cached

        info = self._release_from(release_line, self._query_index(release_line))
        if self._cache is not None:
            self._cache.put(info)
        logger.info("Latest PHP %s is %s", release_line, info.version)
        return info

    def exact_release(self, release_line: str, exact_version: str) -> ReleaseInfo:
        """Tarball for a recorded ``exact_version``.

        The release index is asked first.  When it cannot confirm the
        version (unreachable, or it answers with a different patch),
        the conventional ``php-<version>.tar.gz`` under the
        distributions URL is used and the download decides.
        """
        if not matches_release_line(exact_version, release_line):
            raise VersionResolutionFailed(
                f"PHP {exact_version} is not a {release_line} release",
            )
        try:
            info = self._release_from(release_line, self._query_index(exact_version))
        except VersionResolutionFailed as e:
            logger.info("Release index lookup for %s failed (%s); using direct download", exact_version, e)
        else:
            if info.version == exact_version:
                return info
            logger.info("Release index answered %s for %s; using direct download", info.version, exact_version)
        return ReleaseInfo(
            release_line=release_line,
            version=exact_version,
            download_url=f"{self._settings.distributions_url}php-{exact_version}.tar.gz",
        )

    def resolve(
        self,
        release_line: str,
        bypass_cache: bool = False,
        exact_version: str | None = None,
    ) -> ReleaseInfo:
        """Recorded exact version when given and not bypassing, else the newest."""
        if exact_version and not bypass_cache:
            return self.exact_release(release_line, exact_version)
        return self.latest_release(release_line, bypass_cache=bypass_cache)

    # ── Materialisation ─────────────────────────────────────────

    def _download(self, url: str, dest: Path) -> None:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with self._urlopen(req, timeout=self._settings.download_timeout) as resp:
                with open(dest, "wb") as f:
                    while True:
                        chunk = resp.read(_CHUNK)
                        if not chunk:
                            break
                        f.write(chunk)
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise DownloadFailed(f"Download of {url} failed: {exc}", url=url) from exc
        if dest.stat().st_size == 0:
            raise DownloadFailed(f"Download of {url} is empty", url=url)

    def _extract(self, archive: Path, extract_dir: Path) -> Path:
        """Extract and return the tree root (the single top dir, if any)."""
        extract_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive, "r:gz") as tf:
                _check_members(tf, extract_dir)
                tf.extractall(extract_dir)
        except ExtractFailed:
            raise
        except (tarfile.TarError, OSError, EOFError) as exc:
            raise ExtractFailed(f"Cannot extract {archive.name}: {exc}") from exc

        entries = list(extract_dir.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            return entries[0]
        return extract_dir

    def fetch(self, release: ReleaseInfo) -> Path:
        """Download and extract ``release`` into its source dir.

        Returns:
            The source path (``<src_dir>/php-<line>``), replaced wholesale.
        """
        source_path = self._settings.source_path(release.release_line)
        scratch = Path(tempfile.mkdtemp(prefix="phpvm-"))
        try:
            archive = scratch / release.download_url.rsplit("/", 1)[-1]
            logger.info("Downloading %s", release.download_url)
            self._download(release.download_url, archive)

            tree = self._extract(archive, scratch / "extract")
            if not (tree / "configure").is_file():
                raise ExtractFailed(f"{archive.name} has no configure script")

            if source_path.exists() or source_path.is_symlink():
                shutil.rmtree(source_path)
            source_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(tree), str(source_path))
        except OSError as exc:
            raise ExtractFailed(f"Cannot prepare source tree {source_path}: {exc}") from exc
        finally:
            try:
                shutil.rmtree(scratch)
            except OSError as e:
                logger.warning("Cannot remove scratch dir %s: %s", scratch, e)

        if self._owner is not None and not self._owner.is_root and os.geteuid() == 0:
            try:
                _chown_tree(source_path, self._owner)
            except OSError as exc:
                raise ExtractFailed(
                    f"Cannot chown {source_path} to {self._owner.username}: {exc}",
                ) from exc

        logger.info("PHP %s sources ready at %s", release.version, source_path)
        return source_path

    def resolve_and_fetch(
        self,
        release_line: str,
        bypass_cache: bool = False,
        exact_version: str | None = None,
    ) -> BuildContext:
        """Resolve, download and extract. The context still lacks build paths."""
        release = self.resolve(release_line, bypass_cache=bypass_cache, exact_version=exact_version)
        source_path = self.fetch(release)
        return BuildContext(
            release_line=release_line,
            exact_version=release.version,
            source_path=str(source_path),
        )

    # ── Queries ─────────────────────────────────────────────────

    def check_updates(
        self,
        installed: list[InstalledVersion],
        bypass_cache: bool = False,
    ) -> list[dict[str, Any]]:
        """Installed exact versions against the newest upstream patches."""
        report: list[dict[str, Any]] = []
        for record in installed:
            entry: dict[str, Any] = {
                "release_line": record.release_line,
                "installed": record.exact_version,
            }
            try:
                latest = self.latest_release(record.release_line, bypass_cache=bypass_cache)
            except VersionResolutionFailed as e:
                logger.warning("Cannot check PHP %s for updates: %s", record.release_line, e)
                entry.update(latest=None, update_available=False, error=str(e))
                report.append(entry)
                continue

            try:
                newer = compare_versions(latest.version, record.exact_version) > 0
            except ValueError:
                newer = latest.version != record.exact_version
            entry.update(latest=latest.version, update_available=newer)
            report.append(entry)
        return report
