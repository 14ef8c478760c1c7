# auh/pkgtool.py
"""
pkgtool.py - thin wrappers around the native package manager (pacman)

Every call is an argument vector handed to subprocess without a shell.
Results come back as return codes / booleans; nothing here raises on a
failing command.

API:
  is_installed(name)         -> bool       (pacman -Q)
  in_sync_repos(name)        -> bool       (pacman -Si)
  explicit_packages()        -> [names]    (pacman -Qeq)
  remove(name, autoremove)   -> rc         (sudo pacman -R / -Rsn)
  sync_install(name)         -> rc         (sudo pacman -S)
  full_upgrade()             -> rc         (sudo pacman -Syu)
  clean_cache()              -> rc         (sudo pacman -Scc)
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from auh.config import get_commands_config
from auh.logging import get_logger

logger = get_logger("pkgtool")


def run_command(cmd: List[str], cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None, capture: bool = True) -> Tuple[int, str, str]:
    """Run command. Returns (rc, stdout, stderr); output is empty when not captured."""
    logger.debug("RUN: %s (cwd=%s)", " ".join(cmd), str(cwd) if cwd else None)
    try:
        if capture:
            p = subprocess.run(cmd, cwd=str(cwd) if cwd else None, env=(env or os.environ), stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
            return p.returncode, p.stdout or "", p.stderr or ""
        p = subprocess.run(cmd, cwd=str(cwd) if cwd else None, env=(env or os.environ))
        return p.returncode, "", ""
    except OSError as e:
        # executable missing or not runnable
        logger.error("Command failed to start: %s: %s", cmd[0], e)
        return 127, "", str(e)


def _cmd(key: str) -> str:
    return get_commands_config().get(key) or key


def _privileged(args: List[str]) -> List[str]:
    if os.geteuid() == 0:
        return args
    return [_cmd("sudo")] + args


def is_installed(name: str) -> bool:
    rc, _, _ = run_command([_cmd("pacman"), "-Q", "--", name])
    return rc == 0


def in_sync_repos(name: str) -> bool:
    rc, _, _ = run_command([_cmd("pacman"), "-Si", "--", name])
    return rc == 0


def explicit_packages() -> List[str]:
    rc, out, err = run_command([_cmd("pacman"), "-Qeq"])
    if rc != 0:
        logger.error("Listing explicitly installed packages failed (code %s): %s", rc, err.strip())
        return []
    return [line.strip() for line in out.splitlines() if line.strip()]


def remove(name: str, autoremove: bool = False) -> int:
    flags = "-Rsn" if autoremove else "-R"
    rc, _, _ = run_command(_privileged([_cmd("pacman"), flags, "--noconfirm", "--", name]), capture=False)
    return rc


def sync_install(name: str) -> int:
    rc, _, _ = run_command(_privileged([_cmd("pacman"), "-S", "--noconfirm", "--", name]), capture=False)
    return rc


def full_upgrade() -> int:
    rc, _, _ = run_command(_privileged([_cmd("pacman"), "-Syu", "--noconfirm"]), capture=False)
    return rc


def clean_cache() -> int:
    rc, _, _ = run_command(_privileged([_cmd("pacman"), "-Scc", "--noconfirm"]), capture=False)
    return rc
