"""
L0 Data — Native dependency catalog.

One entry per dependency id: its package names per package manager and
the hints used to find it when we cannot install (unprivileged runs).

Pure data. Loaded once at import; read-only afterwards.
"""

from __future__ import annotations

from src.core.models.php import DependencySpec, DetectionHints

# Ids installed for every build regardless of the selected modules.
BUILD_DEPENDENCY_IDS: tuple[str, ...] = (
    "buildtools", "autoconf", "pkgconfig", "re2c", "oniguruma", "xml", "sqlite",
)


def _dep(
    dep_id: str,
    *,
    apt: list[str],
    dnf: list[str],
    yum: list[str] | None = None,
    pacman: list[str],
    zypper: list[str],
    apk: list[str],
    commands: list[str] | None = None,
    libraries: list[str] | None = None,
    pkg_config: list[str] | None = None,
) -> DependencySpec:
    return DependencySpec(
        id=dep_id,
        packages={
            "apt": apt,
            "dnf": dnf,
            "yum": yum if yum is not None else dnf,
            "pacman": pacman,
            "zypper": zypper,
            "apk": apk,
        },
        detection=DetectionHints(
            commands=commands or [],
            library_names=libraries or [],
            pkg_config_names=pkg_config or [],
        ),
    )


DEPENDENCY_CATALOG: dict[str, DependencySpec] = {
    d.id: d
    for d in (
        # ── Build toolchain ──
        _dep(
            "buildtools",
            apt=["build-essential"],
            dnf=["gcc", "gcc-c++", "make"],
            pacman=["base-devel"],
            zypper=["gcc", "gcc-c++", "make"],
            apk=["build-base"],
            commands=["gcc", "make"],
        ),
        _dep(
            "autoconf",
            apt=["autoconf"], dnf=["autoconf"], pacman=["autoconf"],
            zypper=["autoconf"], apk=["autoconf"],
            commands=["autoconf"],
        ),
        _dep(
            "pkgconfig",
            apt=["pkg-config"], dnf=["pkgconf"], yum=["pkgconfig"],
            pacman=["pkgconf"], zypper=["pkg-config"], apk=["pkgconf"],
            commands=["pkg-config"],
        ),
        _dep(
            "re2c",
            apt=["re2c"], dnf=["re2c"], pacman=["re2c"],
            zypper=["re2c"], apk=["re2c"],
            commands=["re2c"],
        ),
        _dep(
            "oniguruma",
            apt=["libonig-dev"], dnf=["oniguruma-devel"], pacman=["oniguruma"],
            zypper=["libonig-devel"], apk=["oniguruma-dev"],
            libraries=["libonig"], pkg_config=["oniguruma"],
        ),
        _dep(
            "xml",
            apt=["libxml2-dev"], dnf=["libxml2-devel"], pacman=["libxml2"],
            zypper=["libxml2-devel"], apk=["libxml2-dev"],
            libraries=["libxml2"], pkg_config=["libxml-2.0"],
        ),
        _dep(
            "sqlite",
            apt=["libsqlite3-dev"], dnf=["sqlite-devel"], pacman=["sqlite"],
            zypper=["sqlite3-devel"], apk=["sqlite-dev"],
            commands=["sqlite3"], libraries=["libsqlite3"], pkg_config=["sqlite3"],
        ),
        # ── Extension libraries ──
        _dep(
            "curl",
            apt=["libcurl4-openssl-dev"], dnf=["libcurl-devel"], pacman=["curl"],
            zypper=["libcurl-devel"], apk=["curl-dev"],
            libraries=["libcurl"], pkg_config=["libcurl"],
        ),
        _dep(
            "openssl",
            apt=["libssl-dev"], dnf=["openssl-devel"], pacman=["openssl"],
            zypper=["openssl-devel"], apk=["openssl-dev"],
            libraries=["libssl"], pkg_config=["openssl"],
        ),
        _dep(
            "zip",
            apt=["libzip-dev"], dnf=["libzip-devel"], pacman=["libzip"],
            zypper=["libzip-devel"], apk=["libzip-dev"],
            libraries=["libzip"], pkg_config=["libzip"],
        ),
        _dep(
            "gd",
            apt=["libgd-dev"], dnf=["gd-devel"], pacman=["gd"],
            zypper=["gd-devel"], apk=["gd-dev"],
            libraries=["libgd"], pkg_config=["gdlib"],
        ),
        _dep(
            "jpeg",
            apt=["libjpeg-dev"], dnf=["libjpeg-turbo-devel"], pacman=["libjpeg-turbo"],
            zypper=["libjpeg8-devel"], apk=["libjpeg-turbo-dev"],
            libraries=["libjpeg"], pkg_config=["libjpeg"],
        ),
        _dep(
            "freetype",
            apt=["libfreetype6-dev"], dnf=["freetype-devel"], pacman=["freetype2"],
            zypper=["freetype2-devel"], apk=["freetype-dev"],
            libraries=["libfreetype"], pkg_config=["freetype2"],
        ),
        _dep(
            "zlib",
            apt=["zlib1g-dev"], dnf=["zlib-devel"], pacman=["zlib"],
            zypper=["zlib-devel"], apk=["zlib-dev"],
            libraries=["libz"], pkg_config=["zlib"],
        ),
        _dep(
            "bz2",
            apt=["libbz2-dev"], dnf=["bzip2-devel"], pacman=["bzip2"],
            zypper=["libbz2-devel"], apk=["bzip2-dev"],
            libraries=["libbz2"], pkg_config=["bzip2"],
        ),
        _dep(
            "intl",
            apt=["libicu-dev"], dnf=["libicu-devel"], pacman=["icu"],
            zypper=["libicu-devel"], apk=["icu-dev"],
            libraries=["libicuuc"], pkg_config=["icu-uc", "icu-io"],
        ),
        _dep(
            "gettext",
            apt=["gettext"], dnf=["gettext-devel"], pacman=["gettext"],
            zypper=["gettext-tools"], apk=["gettext-dev"],
            commands=["gettext"], libraries=["libintl"],
        ),
        _dep(
            "gmp",
            apt=["libgmp-dev"], dnf=["gmp-devel"], pacman=["gmp"],
            zypper=["gmp-devel"], apk=["gmp-dev"],
            libraries=["libgmp"],
        ),
        _dep(
            "mysql",
            apt=["libmysqlclient-dev"], dnf=["mysql-devel"], pacman=["mariadb-libs"],
            zypper=["libmysqlclient-devel"], apk=["mysql-dev"],
            commands=["mysql_config"], libraries=["libmysqlclient", "libmariadb"],
        ),
        _dep(
            "postgresql",
            apt=["libpq-dev"], dnf=["postgresql-devel"], pacman=["postgresql-libs"],
            zypper=["postgresql-devel"], apk=["postgresql-dev"],
            commands=["pg_config"], libraries=["libpq"], pkg_config=["libpq"],
        ),
        _dep(
            "pcre2",
            apt=["libpcre2-dev"], dnf=["pcre2-devel"], pacman=["pcre2"],
            zypper=["pcre2-devel"], apk=["pcre2-dev"],
            libraries=["libpcre2-8"], pkg_config=["libpcre2-8"],
        ),
        _dep(
            "ldap",
            apt=["libldap2-dev"], dnf=["openldap-devel"], pacman=["libldap"],
            zypper=["openldap2-devel"], apk=["openldap-dev"],
            commands=["ldapsearch"], libraries=["libldap"], pkg_config=["ldap"],
        ),
        _dep(
            "imap",
            apt=["libc-client-dev", "libkrb5-dev"], dnf=["libc-client-devel"],
            pacman=["c-client"], zypper=["imap-devel"], apk=["imap-dev"],
            libraries=["libc-client"],
        ),
    )
}


def get_dependency(dep_id: str) -> DependencySpec | None:
    return DEPENDENCY_CATALOG.get(dep_id)
