# auh/remove.py
"""
remove.py - package removal through the native package manager

Names that fail validation are refused, names that are not installed are
skipped (not an error), everything else goes to `pacman -R` one at a time.
"""

from __future__ import annotations

from typing import Any, Dict, List

from auh import names, pkgtool
from auh.logging import get_logger

logger = get_logger("remove")


def remove_package(name: str, autoremove: bool = False) -> Dict[str, Any]:
    if not names.validate(name):
        logger.error("Invalid package name: %r", name)
        return {"ok": False, "name": name, "reason": "invalid-name"}
    if not pkgtool.is_installed(name):
        logger.info("%s is not installed; skipping removal.", name)
        return {"ok": True, "name": name, "skipped": True}
    logger.info("Removing %s...", name)
    rc = pkgtool.remove(name, autoremove=autoremove)
    if rc != 0:
        logger.error("Removal failed for %s (code %s)", name, rc)
        return {"ok": False, "name": name, "reason": "pacman", "rc": rc}
    return {"ok": True, "name": name, "skipped": False}


def remove_packages(package_names: List[str], autoremove: bool = False) -> Dict[str, Any]:
    """Remove each name in order; one failure does not stop the others."""
    removed: List[str] = []
    skipped: List[str] = []
    failed: List[str] = []
    for n in package_names:
        res = remove_package(n, autoremove=autoremove)
        if not res["ok"]:
            failed.append(n)
        elif res.get("skipped"):
            skipped.append(n)
        else:
            removed.append(n)
    return {"ok": not failed, "removed": removed, "skipped": skipped, "failed": failed}
