# auh/fetcher.py
"""
fetcher.py - acquisition layer for build recipes

Features:
- Catalog lookup against the primary source RPC (info endpoint, JSON `results` array)
- Batched catalog lookup (arg[] form) for the sync report
- Full git clone of a package recipe from the primary source
- Shallow single-branch clone from the mirror, branch named after the package
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from auh.config import get_config, get_commands_config
from auh.logging import get_logger
from auh.pkgtool import run_command

logger = get_logger("fetcher")

# the RPC caps the number of arg[] entries it accepts per request
RPC_BATCH = 100

# -----------------------------------------------------------------------
# Catalog (RPC) helpers
# -----------------------------------------------------------------------
def _rpc_url(params: List[tuple]) -> str:
    base = get_config().get("sources.rpc_url")
    return f"{base}?{urllib.parse.urlencode(params)}"

def _fetch_json(url: str, timeout: Optional[float] = None) -> Dict[str, Any]:
    timeout = timeout if timeout is not None else float(get_config().get("sources.http_timeout", 30))
    req = urllib.request.Request(url, headers={"User-Agent": "auh", "Accept": "application/json"})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        data = json.loads(resp.read().decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("unexpected RPC payload")
    return data

def query_catalog(name: str) -> Optional[bool]:
    """
    Ask the primary catalog whether `name` exists.
    Returns True / False, or None when the lookup itself failed.
    """
    url = _rpc_url([("v", "5"), ("type", "info"), ("arg", name)])
    try:
        data = _fetch_json(url)
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
        logger.warning("Catalog lookup failed for %s: %s", name, e)
        return None
    results = data.get("results")
    if not isinstance(results, list):
        logger.warning("Catalog reply for %s has no results array", name)
        return None
    return len(results) > 0

def query_catalog_many(names: Iterable[str]) -> Optional[Set[str]]:
    """Return the subset of names known to the catalog, or None if any lookup failed."""
    names = list(names)
    found: Set[str] = set()
    for i in range(0, len(names), RPC_BATCH):
        chunk = names[i:i + RPC_BATCH]
        params = [("v", "5"), ("type", "info")] + [("arg[]", n) for n in chunk]
        try:
            data = _fetch_json(_rpc_url(params))
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            logger.error("Catalog batch lookup failed: %s", e)
            return None
        for entry in data.get("results") or []:
            if isinstance(entry, dict) and entry.get("Name"):
                found.add(entry["Name"])
    return found

# -----------------------------------------------------------------------
# git clone helpers
# -----------------------------------------------------------------------
def primary_clone_url(name: str) -> str:
    return f"{get_config().get('sources.aur_url')}/{name}.git"

def _git_clone(args: List[str], name: str) -> bool:
    git = get_commands_config().get("git") or "git"
    rc, out, err = run_command([git, "clone"] + args)
    if rc != 0:
        logger.debug("git clone for %s returned %s: %s", name, rc, err.strip())
        return False
    return True

def clone_primary(name: str, dest: Path) -> bool:
    """Full clone of the package recipe into dest (dest must not exist yet)."""
    return _git_clone([primary_clone_url(name), str(dest)], name)

def clone_mirror(name: str, dest: Path, mirror_base: Optional[str] = None) -> bool:
    """Shallow single-branch clone of branch `name` from the mirror into dest."""
    base = (mirror_base or get_config().get("sources.mirror_url")).rstrip("/")
    if base.endswith(".git"):
        base = base[:-4]
    args = ["--single-branch", "--branch", name, "--depth=1", f"{base}.git", str(dest)]
    return _git_clone(args, name)
