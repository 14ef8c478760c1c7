# auh/sync.py
"""
sync.py - report which explicitly installed packages come from the primary source

`pacman -Qeq` lists the explicit packages; valid names are looked up in the
catalog in batches and the ones it knows are reported.
"""

from __future__ import annotations

from typing import Any, Dict

from auh import fetcher, names, pkgtool
from auh.logging import get_logger

logger = get_logger("sync")


def sync_explicit() -> Dict[str, Any]:
    explicit = pkgtool.explicit_packages()
    if not explicit:
        logger.info("No explicitly installed packages found.")
        return {"ok": True, "found": [], "total": 0, "skipped": []}

    valid, invalid = names.split_valid(explicit)
    for n in invalid:
        logger.warning("Skipping invalid package name: %r", n)

    logger.info("Checking %d explicitly installed package(s) against the catalog...", len(valid))
    known = fetcher.query_catalog_many(valid)
    if known is None:
        return {"ok": False, "found": [], "total": 0, "skipped": invalid, "reason": "catalog-unavailable"}
    found = [n for n in valid if n in known]
    return {"ok": True, "found": found, "total": len(found), "skipped": invalid}
