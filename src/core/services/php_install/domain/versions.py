"""
L1 Domain — PHP version string helpers (pure).

No I/O, no subprocess.
"""

from __future__ import annotations

import re

_RELEASE_LINE_RE = re.compile(r"^\d+\.\d+$")
_EXACT_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


def is_valid_release_line(release_line: str, supported: list[str]) -> bool:
    """``"8.3"`` is valid when it is well-formed AND supported."""
    return bool(_RELEASE_LINE_RE.match(release_line)) and release_line in supported


def matches_release_line(exact_version: str, release_line: str) -> bool:
    """``"8.3.12"`` belongs to ``"8.3"``; ``"8.30.1"`` does not."""
    return exact_version.startswith(release_line + ".")


def _parse(version: str) -> tuple[int, ...]:
    m = _EXACT_RE.match(version.strip())
    if not m:
        raise ValueError(f"Not a PHP version: {version!r}")
    return tuple(int(x) for x in m.groups())


def compare_versions(a: str, b: str) -> int:
    """Numeric dotted compare. Returns -1, 0 or 1.

    ``8.3.9`` < ``8.3.10``.  Suffixes after the patch number are ignored.

    Raises:
        ValueError: If either string has no ``major.minor.patch`` prefix.
    """
    pa, pb = _parse(a), _parse(b)
    if pa < pb:
        return -1
    if pa > pb:
        return 1
    return 0
