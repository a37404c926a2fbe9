"""Version-aware ordering of migration identifiers.

Identifiers are split into alternating digit and non-digit runs.  Digit
runs compare as integers, everything else compares as plain strings, and
a shorter identifier whose runs are a prefix of a longer one sorts first.
So ``1_foo`` < ``10_bar`` and ``20160126_1100`` < ``20160126_1200``,
where a plain string sort would get the first pair wrong.
"""

from __future__ import annotations

import functools
import re

_RUNS = re.compile(r"[0-9]+|[^0-9]+")
_LEADING_DIGITS = re.compile(r"[0-9]+")


def _is_digits(token: str) -> bool:
    return "0" <= token[0] <= "9"


def tokenize(identifier: str) -> list[str]:
    """Split into maximal digit / non-digit runs: ``"10_bar"`` -> ``["10", "_bar"]``."""
    return _RUNS.findall(identifier)


def compare(a: str, b: str) -> int:
    """Three-way comparison under version-aware ordering."""
    left, right = tokenize(a), tokenize(b)
    for x, y in zip(left, right):
        if _is_digits(x) and _is_digits(y):
            # Leading zeros do not change magnitude
            xi, yi = int(x), int(y)
            if xi != yi:
                return -1 if xi < yi else 1
        elif x != y:
            return -1 if x < y else 1
    if len(left) != len(right):
        return -1 if len(left) < len(right) else 1
    # Same magnitudes but different spelling ("007" vs "7")
    if a != b:
        return -1 if a < b else 1
    return 0


def less(a: str, b: str) -> bool:
    """True if identifier ``a`` sorts strictly before ``b``."""
    return compare(a, b) < 0


sort_key = functools.cmp_to_key(compare)


def version_int(identifier: str) -> int | None:
    """Integer value of the leading digit run, or None if there is none."""
    match = _LEADING_DIGITS.match(identifier)
    return int(match.group()) if match else None


__all__ = ["tokenize", "compare", "less", "sort_key", "version_int"]
