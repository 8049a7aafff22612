"""
Version string helpers: normalisation, numeric-aware ordering and bumping.

Versions are conventionally ``vMAJOR.MINOR`` but freeform strings are
accepted; ordering splits them into digit and text runs so ``v1.10`` sorts
after ``v1.9``.
"""

import re
from typing import Iterable, List, Optional

from update_panel.errors import InvalidInput

_RUNS = re.compile(r"\d+|[^\d]+")
_ALLOWED = re.compile(r"[A-Za-z0-9._+-]+")
_SEPARATORS = ".-_+ "


def prefix_version(raw: Optional[str]) -> str:
    """Strip the version and prefix it with ``v`` when missing."""
    version = (raw or "").strip()
    if not version:
        raise InvalidInput("Version is required")
    if not version.lower().startswith("v"):
        version = f"v{version}"
    return version


def normalize_version(raw: Optional[str]) -> str:
    """``prefix_version`` plus a character check.

    Published versions end up in artifact filenames and download URLs, so
    only ASCII letters, digits and ``._+-`` are accepted.
    """
    version = prefix_version(raw)
    if not _ALLOWED.fullmatch(version):
        raise InvalidInput(f"Version '{version}' may only contain letters, digits and . _ + -")
    return version


def version_key(version: str) -> tuple:
    """Numeric-aware sort key.

    Each run becomes ``(0, number)`` or ``(1, text)`` so numbers order
    numerically and always before text at the same position.
    """
    body = version.strip()
    if body[:1] in ("v", "V"):
        body = body[1:]
    key = []
    for run in _RUNS.findall(body):
        if run.isdecimal():
            key.append((0, int(run), ""))
        else:
            text = run.strip(_SEPARATORS).lower()
            if text:
                key.append((1, 0, text))
    return tuple(key)


def compare_versions(a: str, b: str) -> int:
    ka, kb = version_key(a), version_key(b)
    return (ka > kb) - (ka < kb)


def sort_versions(versions: Iterable[str], reverse: bool = False) -> List[str]:
    return sorted(versions, key=version_key, reverse=reverse)


def bump_version(version: Optional[str], part: str = "minor") -> str:
    """Increment a ``vMAJOR.MINOR[.PATCH]`` version.

    ``bump_version("v1.4")`` -> ``"v1.5"``, ``part="major"`` -> ``"v2.0"``,
    ``part="patch"`` -> ``"v1.4.1"``. No version at all starts at ``v1.0``.
    """
    if not version or not version.strip():
        return "v1.0"

    numbers = [int(n) for n in re.findall(r"\d+", version)]
    if not numbers:
        raise InvalidInput(f"Cannot bump non-numeric version '{version}'")

    if part == "major":
        return f"v{numbers[0] + 1}.0"

    while len(numbers) < 2:
        numbers.append(0)
    if part == "minor":
        return f"v{numbers[0]}.{numbers[1] + 1}"
    if part == "patch":
        while len(numbers) < 3:
            numbers.append(0)
        return f"v{numbers[0]}.{numbers[1]}.{numbers[2] + 1}"

    raise ValueError(f"Unknown version part: {part}")
