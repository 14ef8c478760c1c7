# auh/names.py
"""
Package-name gate. Names end up as arguments of pacman, git and makepkg
invocations, so anything outside the allowed alphabet is refused before a
network query or a worker is started.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

_VALID_NAME = re.compile(r"[A-Za-z0-9._+-]+")


def validate(name) -> bool:
    if not isinstance(name, str) or not name:
        return False
    return _VALID_NAME.fullmatch(name) is not None


def split_valid(names: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Partition names into (valid, invalid), preserving order."""
    valid: List[str] = []
    invalid: List[str] = []
    for n in names:
        (valid if validate(n) else invalid).append(n)
    return valid, invalid
