"""
L0 Data — Feature module (extension) catalog.

Pure data. Each module maps to its configure flag and the ids of the
native dependencies it needs (keys of ``DEPENDENCY_CATALOG``).
"""

from __future__ import annotations

from src.core.models.php import FeatureModule


def _m(name: str, flag: str, *deps: str) -> FeatureModule:
    return FeatureModule(name=name, build_flag=flag, native_dependencies=list(deps))


FEATURE_MODULES: dict[str, FeatureModule] = {
    m.name: m
    for m in (
        _m("bcmath", "--enable-bcmath"),
        _m("bz2", "--with-bz2", "bz2"),
        _m("curl", "--with-curl", "curl"),
        _m("exif", "--enable-exif"),
        _m("fileinfo", "--enable-fileinfo"),
        _m("filter", "--enable-filter"),
        _m("freetype", "--with-freetype", "freetype"),
        _m("ftp", "--enable-ftp"),
        _m("gd", "--enable-gd", "gd"),
        _m("gettext", "--with-gettext", "gettext"),
        _m("gmp", "--with-gmp", "gmp"),
        _m("hash", "--enable-hash"),
        _m("iconv", "--with-iconv"),
        _m("imap", "--with-imap", "imap"),
        _m("intl", "--enable-intl", "intl"),
        _m("jpeg", "--with-jpeg", "jpeg"),
        _m("json", "--enable-json"),
        _m("ldap", "--with-ldap", "ldap"),
        _m("mbstring", "--enable-mbstring", "oniguruma"),
        _m("mysqli", "--with-mysqli", "mysql"),
        _m("opcache", "--enable-opcache"),
        _m("openssl", "--with-openssl", "openssl"),
        _m("pcntl", "--enable-pcntl"),
        _m("pcre", "--with-pcre-jit", "pcre2"),
        _m("pdo-mysql", "--with-pdo-mysql", "mysql"),
        _m("pdo-pgsql", "--with-pdo-pgsql", "postgresql"),
        _m("pdo-sqlite", "--with-pdo-sqlite", "sqlite"),
        _m("pgsql", "--with-pgsql", "postgresql"),
        _m("session", "--enable-session"),
        _m("soap", "--enable-soap", "xml"),
        _m("sockets", "--enable-sockets"),
        _m("sqlite3", "--with-sqlite3", "sqlite"),
        _m("xml", "--enable-xml", "xml"),
        _m("zip", "--with-zip", "zip"),
        _m("zlib", "--with-zlib", "zlib"),
    )
}

DEFAULT_FEATURE_MODULES: frozenset[str] = frozenset({
    "curl", "fileinfo", "filter", "hash", "mbstring", "mysqli",
    "openssl", "pcre", "pdo-mysql", "session", "sockets", "sqlite3",
    "xml", "zip", "zlib",
})


def get_feature_module(name: str) -> FeatureModule | None:
    return FEATURE_MODULES.get(name)


def available_feature_modules() -> list[str]:
    """All catalog names, sorted."""
    return sorted(FEATURE_MODULES)
