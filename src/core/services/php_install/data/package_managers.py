"""
L0 Data — Package manager command table.

How to install and how to query, per manager id. The probe order is
the priority used when no OS identity file settles the question.
"""

from __future__ import annotations

from src.core.models.php import PackageManagerCommand

PACKAGE_MANAGERS: dict[str, PackageManagerCommand] = {
    "apt": PackageManagerCommand(
        id="apt",
        executable="apt-get",
        install_args=["install", "-y"],
        query_command="dpkg-query",
        query_args=["-W", "-f=${Status}"],
        update_args=["update"],
    ),
    "dnf": PackageManagerCommand(
        id="dnf",
        executable="dnf",
        install_args=["install", "-y"],
        query_command="rpm",
        query_args=["-q"],
    ),
    "yum": PackageManagerCommand(
        id="yum",
        executable="yum",
        install_args=["install", "-y"],
        query_command="rpm",
        query_args=["-q"],
    ),
    "pacman": PackageManagerCommand(
        id="pacman",
        executable="pacman",
        install_args=["-S", "--needed", "--noconfirm"],
        query_command="pacman",
        query_args=["-Q"],
    ),
    "zypper": PackageManagerCommand(
        id="zypper",
        executable="zypper",
        install_args=["--non-interactive", "install"],
        query_command="rpm",
        query_args=["-q"],
    ),
    "apk": PackageManagerCommand(
        id="apk",
        executable="apk",
        install_args=["add", "--no-interactive"],
        query_command="apk",
        query_args=["info", "-e"],
    ),
}

# (executable, manager id) in probe priority order
PROBE_ORDER: tuple[tuple[str, str], ...] = (
    ("apt-get", "apt"),
    ("dnf", "dnf"),
    ("yum", "yum"),
    ("pacman", "pacman"),
    ("zypper", "zypper"),
    ("apk", "apk"),
)

# os-release ID (or ID_LIKE entry) → manager id
DISTRO_MANAGERS: dict[str, str] = {
    "debian": "apt",
    "ubuntu": "apt",
    "linuxmint": "apt",
    "pop": "apt",
    "raspbian": "apt",
    "fedora": "dnf",
    "rhel": "dnf",
    "centos": "dnf",
    "rocky": "dnf",
    "almalinux": "dnf",
    "arch": "pacman",
    "manjaro": "pacman",
    "endeavouros": "pacman",
    "opensuse": "zypper",
    "opensuse-leap": "zypper",
    "opensuse-tumbleweed": "zypper",
    "sles": "zypper",
    "suse": "zypper",
    "alpine": "apk",
}

# Release marker file → distribution id
RELEASE_MARKERS: tuple[tuple[str, str], ...] = (
    ("etc/debian_version", "debian"),
    ("etc/redhat-release", "rhel"),
    ("etc/fedora-release", "fedora"),
    ("etc/arch-release", "arch"),
    ("etc/SuSE-release", "opensuse"),
    ("etc/alpine-release", "alpine"),
)


def get_package_manager(manager_id: str) -> PackageManagerCommand | None:
    return PACKAGE_MANAGERS.get(manager_id)
