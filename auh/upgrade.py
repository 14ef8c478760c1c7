# auh/upgrade.py
# -*- coding: utf-8 -*-
"""
upgrade.py - system and per-package updates

Responsibilities:
 - Full system upgrade (pacman -Syu) when no package is named
 - Per-package update: repository packages through `pacman -S`, packages
   that no sync repository carries are rebuilt from the primary source

Notes:
 - Membership is decided up front with `pacman -Si`. A failing repository
   update is reported as a failure; it never falls through to a rebuild.
 - Rebuilds reuse the build job with the installed short-circuit disabled.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from auh import buildsystem, names, pkgtool
from auh.config import get_config
from auh.logging import get_logger

logger = get_logger("upgrade")


def _uid() -> str:
    return uuid.uuid4().hex[:8]


def full_upgrade() -> Dict[str, Any]:
    logger.info("Performing full system upgrade...")
    rc = pkgtool.full_upgrade()
    if rc != 0:
        logger.error("System update failed (code %s)", rc)
    return {"ok": rc == 0, "rc": rc}


def update_package(name: str, workdir_base: Optional[str] = None) -> Dict[str, Any]:
    if not names.validate(name):
        logger.error("Invalid package name: %r", name)
        return {"ok": False, "name": name, "via": None, "reason": "invalid-name"}

    if pkgtool.in_sync_repos(name):
        logger.info("Updating repo package %s...", name)
        rc = pkgtool.sync_install(name)
        if rc != 0:
            logger.error("Repository update failed for %s (code %s)", name, rc)
            return {"ok": False, "name": name, "via": "repo", "rc": rc}
        return {"ok": True, "name": name, "via": "repo"}

    logger.info("Rebuilding %s from the primary source...", name)
    base = Path(workdir_base or get_config().get("install.workdir"))
    workdir = base / f"update-{_uid()}-{name}"
    try:
        res = buildsystem.install_from_primary(name, workdir, check_installed=False)
    finally:
        if workdir.exists():
            buildsystem.cleanup(workdir)
    return {"ok": res.ok, "name": name, "via": "build", "status": res.status.value}


def update_packages(package_names: Optional[List[str]] = None, workdir_base: Optional[str] = None) -> Dict[str, Any]:
    if not package_names:
        return full_upgrade()
    results = [update_package(n, workdir_base=workdir_base) for n in package_names]
    failed = [r["name"] for r in results if not r["ok"]]
    return {"ok": not failed, "results": results, "failed": failed}
