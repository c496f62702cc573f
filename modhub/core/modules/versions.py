from __future__ import annotations

"""
Loose version comparison and constraint matching.

Versions are dot-separated segments compared left to right. Each segment is
split into a leading integer and a trailing suffix ("0-beta" -> (0, "-beta"));
a segment with a suffix sorts before the same number without one, so
1.0.0-beta < 1.0.0. Missing trailing segments count as 0 (1.0 == 1.0.0).

Constraint grammar:
    *          any version
    ^1.2       same first segment, and >= 1.2
    ~1.2       same first and second segment, and >= 1.2
    >=1.2  >1.2  <=1.2  <1.2
    1.2        exact (segment-wise) equality
"""

import re
from typing import List, Optional, Tuple

from modhub.core.modules.models import ANY_VERSION


_SEGMENT_RE = re.compile(r"(\d*)(.*)")

# longest prefixes first so ">=" is not read as ">"
_COMPARATORS = (">=", "<=", ">", "<")

Segment = Tuple[int, int, str]


def _segment(raw: str) -> Segment:
    m = _SEGMENT_RE.fullmatch(raw.strip())
    digits, suffix = (m.group(1), m.group(2)) if m else ("", raw)
    num = int(digits) if digits else 0
    # (number, has-no-suffix, suffix): "1-beta" < "1"
    return (num, 0 if suffix else 1, suffix)


def parse_version(version: str) -> List[Segment]:
    s = str(version or "").strip()
    if s[:1] in {"v", "V"}:
        s = s[1:]
    if not s:
        return []
    return [_segment(p) for p in s.split(".")]


def compare_versions(a: str, b: str) -> int:
    """-1 / 0 / 1 like cmp()."""
    pa, pb = parse_version(a), parse_version(b)
    width = max(len(pa), len(pb))
    zero: Segment = (0, 1, "")
    pa += [zero] * (width - len(pa))
    pb += [zero] * (width - len(pb))
    if pa == pb:
        return 0
    return -1 if pa < pb else 1


def _leading(version: str, count: int) -> List[Segment]:
    return parse_version(version)[:count]


def satisfies_caret(version: str, base: str) -> bool:
    head = _leading(base, 1)
    if not head or _leading(version, 1) != head:
        return False
    return compare_versions(version, base) >= 0


def satisfies_tilde(version: str, base: str) -> bool:
    width = min(2, len(parse_version(base)))
    if width == 0:
        return False
    head = _leading(base, width)
    if _leading(version, width) != head:
        return False
    return compare_versions(version, base) >= 0


def satisfies(version: Optional[str], constraint: str) -> bool:
    """
    True if `version` meets `constraint`. A module without a recorded
    version can only meet "*".
    """
    c = str(constraint or "").strip() or ANY_VERSION
    if c == ANY_VERSION:
        return True
    if version is None or not str(version).strip():
        return False
    v = str(version).strip()

    if c.startswith("^"):
        return satisfies_caret(v, c[1:].strip())
    if c.startswith("~"):
        return satisfies_tilde(v, c[1:].strip())
    for op in _COMPARATORS:
        if c.startswith(op):
            cmp = compare_versions(v, c[len(op):].strip())
            if op == ">=":
                return cmp >= 0
            if op == ">":
                return cmp > 0
            if op == "<=":
                return cmp <= 0
            return cmp < 0
    return compare_versions(v, c) == 0
