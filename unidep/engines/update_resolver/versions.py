"""Version ordering used to decide whether an upstream release is an update.

Versions are split at the first ``-`` or ``+`` into a numeric part and a
qualifier. Numeric parts compare component-wise as integers (missing
components count as 0); with equal numeric parts a release beats a qualified
version. Anything else falls back to plain string comparison, as does any
version whose numeric part is not made of integers.
"""

from __future__ import annotations

import re
from functools import cmp_to_key

_QUALIFIER_SPLIT = re.compile(r"[-+]")
_PRERELEASE_TAGS = ("alpha", "beta", "-rc", ".rc", "snapshot", "-m", ".m", "-dev", "-pre")


def _split(version: str) -> tuple[list[int], str | None]:
    parts = _QUALIFIER_SPLIT.split(version, maxsplit=1)
    numbers = [int(p) for p in parts[0].split(".")]
    return numbers, parts[1] if len(parts) > 1 else None


def is_newer(candidate: str, current: str) -> bool:
    """True iff *candidate* is strictly newer than *current*."""
    if candidate == current:
        return False
    try:
        cand_nums, cand_qual = _split(candidate)
        curr_nums, curr_qual = _split(current)
    except ValueError:
        return candidate > current

    for i in range(max(len(cand_nums), len(curr_nums))):
        a = cand_nums[i] if i < len(cand_nums) else 0
        b = curr_nums[i] if i < len(curr_nums) else 0
        if a != b:
            return a > b

    if cand_qual is None and curr_qual is not None:
        return True
    if cand_qual is not None and curr_qual is None:
        return False
    return candidate > current


def compare_versions(a: str, b: str) -> int:
    """``cmp``-style ordering built on :func:`is_newer`."""
    if is_newer(a, b):
        return 1
    if is_newer(b, a):
        return -1
    return 0


version_key = cmp_to_key(compare_versions)


def is_prerelease(version: str) -> bool:
    lowered = version.lower()
    return any(tag in lowered for tag in _PRERELEASE_TAGS)


def latest_of(versions: list[str]) -> str | None:
    return max(versions, key=version_key) if versions else None
