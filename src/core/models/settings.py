"""
Settings — where phpvm puts things and how it talks to php.net.

Loaded from ``phpvm.yml`` by ``src.core.config.loader``; every field
has a working default so the file is optional.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Filesystem layout and upstream endpoints."""

    base_dir: str = "/opt/phpvm"
    system_bin_dir: str = "/usr/local/bin"
    systemd_dir: str = "/etc/systemd/system"
    service_prefix: str = "phpvm"
    config_dir: str = ""                # empty = invoking user's ~/.config/phpvm

    release_index_url: str = "https://www.php.net/releases/index.php?json&version="
    distributions_url: str = "https://www.php.net/distributions/"
    http_timeout: int = 10              # seconds, index queries
    download_timeout: int = 120         # seconds, per socket read
    version_cache_ttl: int = 3600       # seconds

    supported_release_lines: list[str] = Field(
        default_factory=lambda: ["8.1", "8.2", "8.3", "8.4"],
    )

    # ── Derived layout ──────────────────────────────────────────

    @property
    def bin_dir(self) -> Path:
        return Path(self.base_dir) / "bin"

    @property
    def php_dir(self) -> Path:
        return Path(self.base_dir) / "php"

    @property
    def etc_dir(self) -> Path:
        return Path(self.base_dir) / "etc"

    @property
    def src_dir(self) -> Path:
        return self.php_dir / "src"

    @property
    def logs_dir(self) -> Path:
        return self.php_dir / "logs"

    @property
    def global_php_path(self) -> Path:
        return Path(self.system_bin_dir) / "php"

    def line_dir(self, release_line: str) -> Path:
        """Parent of every build of one release line."""
        return self.php_dir / f"php{release_line}"

    def line_etc_dir(self, release_line: str) -> Path:
        return self.etc_dir / f"php{release_line}"

    def source_path(self, release_line: str) -> Path:
        return self.src_dir / f"php-{release_line}"

    def line_link_path(self, release_line: str) -> Path:
        return Path(self.system_bin_dir) / f"php{release_line}"

    def service_name(self, release_line: str) -> str:
        return f"{self.service_prefix}-php{release_line}-fpm"

    def service_unit_path(self, release_line: str) -> Path:
        return Path(self.systemd_dir) / f"{self.service_name(release_line)}.service"
