"""Version ordering for skill versions.

Skill versions are ``X.Y.Z`` numeric triplets, plus the literal ``latest``
which some registry entries use as a moving tag. ``latest`` never takes
part in numeric comparison; it is only ever matched by exact string.
"""

import re
from collections.abc import Callable, Iterable
from typing import TypeVar

LATEST_TAG = "latest"

# Registry entries accept the latest tag; manifests do not (see skill_md.VERSION_PATTERN)
ARTIFACT_VERSION_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+|latest")

T = TypeVar("T")


def _components(version: str) -> list[int]:
    parts = []
    for raw in version.split("."):
        try:
            parts.append(int(raw))
        except ValueError:
            parts.append(0)
    return parts


def compare_versions(a: str | None, b: str | None) -> int:
    """Compare two dotted version strings numerically.

    Missing trailing components count as 0 and non-numeric components
    count as 0. If either side is empty the versions are reported equal;
    that is a fallback, not a real equality signal.

    Returns:
        1 if a > b, -1 if a < b, 0 otherwise.
    """
    if not a or not b:
        return 0

    left = _components(a)
    right = _components(b)
    for index in range(max(len(left), len(right))):
        va = left[index] if index < len(left) else 0
        vb = right[index] if index < len(right) else 0
        if va > vb:
            return 1
        if va < vb:
            return -1
    return 0


def is_valid_version(version: str, allow_latest: bool = True) -> bool:
    """Check a version string against the X.Y.Z (or latest) format."""
    if not allow_latest and version == LATEST_TAG:
        return False
    return ARTIFACT_VERSION_PATTERN.fullmatch(version) is not None


def _identity(item: T) -> str:
    return str(item)


def latest_version(items: Iterable[T], key: Callable[[T], str] = _identity) -> T | None:
    """Pick the highest version among items.

    Ties keep the earliest item in iteration order. Items tagged ``latest``
    are skipped unless nothing else is available.

    Args:
        items: Version strings, or records carrying one.
        key: Extracts the version string from an item.

    Returns:
        The highest item, or None when items is empty.
    """
    best: T | None = None
    tagged: T | None = None
    for item in items:
        version = key(item)
        if version == LATEST_TAG:
            if tagged is None:
                tagged = item
            continue
        if best is None or compare_versions(version, key(best)) > 0:
            best = item
    return best if best is not None else tagged


def select_version(
    items: Iterable[T],
    requested: str | None = None,
    key: Callable[[T], str] = _identity,
) -> T | None:
    """Resolve a requested version against a version history.

    An explicit request is matched by exact string, so ``latest`` only finds
    an entry literally named ``latest``. Without a request the highest
    version wins.
    """
    if requested:
        return next((item for item in items if key(item) == requested), None)
    return latest_version(items, key)


def parse_specifier(specifier: str) -> tuple[str, str | None]:
    """Split ``name@version`` into its parts.

    Skill names may themselves contain ``@``, so the suffix after the last
    ``@`` is only taken as a version when it looks like one.

    Examples:
        ``pdf-parser@1.2.0`` -> ``("pdf-parser", "1.2.0")``
        ``user@tool`` -> ``("user@tool", None)``
    """
    text = specifier.strip()
    name, sep, suffix = text.rpartition("@")
    if sep and name.strip() and is_valid_version(suffix.strip()):
        return name.strip(), suffix.strip()
    return text, None
