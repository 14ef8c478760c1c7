# auh/config.py
# -*- coding: utf-8 -*-
"""
auh central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit, env override, cwd, user, system)
- Merge with authoritative DEFAULTS, normalize paths and coerce types
- Validate structure and types, warn or error (fatal optional)
- Provide typed access via Config dataclass (get_config(), dot-path get())
- Thread-safe load/reload and watcher notification (logging re-applies on reload)
"""

from __future__ import annotations
import os
import json
import re
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Callable

import yaml

logger = logging.getLogger("auh.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "color": True,
        "format": None,
        "datefmt": "%H:%M:%S",
        "file": None,
        "file_level": "DEBUG",
        "max_size": "10M",
        "backups": 5,
        "jsonl": {"enabled": False, "path": "~/.cache/auh/transparency.jsonl", "level": "INFO"},
        "module_levels": {},
    },
    "sources": {
        "aur_url": "https://aur.archlinux.org",
        "rpc_url": "https://aur.archlinux.org/rpc/",
        "mirror_url": "https://github.com/archlinux/aur",
        "http_timeout": 30,
    },
    "install": {
        "jobs": 4,
        "workdir": "~/.cache/auh/build",
        "keep_build_dirs": False,
        "skip_pgp_on_mirror": True,
    },
    "commands": {
        "pacman": "pacman",
        "makepkg": "makepkg",
        "git": "git",
        "sudo": "sudo",
    },
}

ENV_VAR = "AUH_CONFIG"

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def section(self, name: str) -> Dict[str, Any]:
        val = self.merged.get(name)
        return deepcopy(val) if isinstance(val, dict) else {}

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()
_WATCH_CALLBACKS: List[Callable[[Config], None]] = []

# ----------------------------
# Utilities
# ----------------------------
_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMG]?)B?\s*$", re.IGNORECASE)
_SIZE_MUL = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}

def _human_size_to_bytes(val: Any) -> Optional[int]:
    """'10M' / '512k' / '1.5GB' / 4096 -> bytes; None when unparsable."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    m = _SIZE_RE.match(str(val))
    if not m:
        logger.warning("config: cannot parse size %r", val)
        return None
    return int(float(m.group(1)) * _SIZE_MUL[m.group(2).upper()])

def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.abspath(os.path.expanduser(os.path.expandvars(str(val))))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get(ENV_VAR)
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "auh.yaml",
        Path.cwd() / "auh.json",
        Path.home() / ".config" / "auh" / "config.yaml",
        Path("/etc") / "auh" / "config.yaml",
    ])
    return candidates

def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    for p in _find_candidates(explicit):
        if p.is_file():
            return p
    return None

def _load_file(path: Path) -> Optional[Dict[str, Any]]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("config: failed reading %s: %s", path, e)
        return None
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(txt)
        else:
            data = yaml.safe_load(txt)
    except (yaml.YAMLError, ValueError) as e:
        logger.error("config: parse failure in %s: %s", path, e)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("config: top-level of %s must be a mapping", path)
        return None
    return data

def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize path fields, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    install = out.get("install")
    if isinstance(install, dict):
        if install.get("workdir"):
            install["workdir"] = _expand_path(install["workdir"])
        try:
            install["jobs"] = int(install.get("jobs", 4))
        except (TypeError, ValueError):
            logger.debug("config: failed to coerce install.jobs", exc_info=True)
        install["keep_build_dirs"] = bool(install.get("keep_build_dirs", False))
        install["skip_pgp_on_mirror"] = bool(install.get("skip_pgp_on_mirror", True))

    sources = out.get("sources")
    if isinstance(sources, dict):
        try:
            sources["http_timeout"] = float(sources.get("http_timeout", 30))
        except (TypeError, ValueError):
            logger.debug("config: failed to coerce sources.http_timeout", exc_info=True)
        for key in ("aur_url", "mirror_url"):
            if isinstance(sources.get(key), str):
                sources[key] = sources[key].rstrip("/")

    log_cfg = out.get("logging")
    if isinstance(log_cfg, dict):
        if log_cfg.get("file"):
            log_cfg["file"] = _expand_path(log_cfg["file"])
        jsonl = log_cfg.get("jsonl")
        if isinstance(jsonl, dict) and jsonl.get("path"):
            jsonl["path"] = _expand_path(jsonl["path"])
        ms = _human_size_to_bytes(log_cfg.get("max_size"))
        if ms is not None:
            log_cfg["max_size_bytes"] = ms
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list)."""
    warnings: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            warnings.append(f"Unknown top-level config key: {k}")
    for k in DEFAULTS:
        if not isinstance(cfg.get(k), dict):
            warnings.append(f"{k} must be a mapping")
    jobs = cfg.get("install", {}).get("jobs") if isinstance(cfg.get("install"), dict) else None
    if not isinstance(jobs, int) or jobs < 1:
        warnings.append("install.jobs must be integer >= 1")
    srcs = cfg.get("sources") if isinstance(cfg.get("sources"), dict) else {}
    for key in ("aur_url", "rpc_url", "mirror_url"):
        val = srcs.get(key)
        if not isinstance(val, str) or not val.startswith(("http://", "https://")):
            warnings.append(f"sources.{key} must be an http(s) URL")
    cmds = cfg.get("commands") if isinstance(cfg.get("commands"), dict) else {}
    for key, val in cmds.items():
        if not isinstance(val, str) or not val:
            warnings.append(f"commands.{key} must be a non-empty string")
    return (len(warnings) == 0, warnings)

# ----------------------------
# Loading / reloading
# ----------------------------
def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then structural validation failures raise.
    Returns Config object.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        cfg_path = _find_path(explicit_path)
        if explicit_path and cfg_path != Path(explicit_path):
            msg = f"config: explicit config file not found: {explicit_path}"
            if fatal:
                raise ValueError(msg)
            logger.warning(msg)
        raw: Dict[str, Any] = {}
        if cfg_path:
            data = _load_file(cfg_path)
            if data is None:
                if fatal:
                    raise ValueError(f"config: could not parse {cfg_path}")
                logger.warning("config: file found but could not be parsed: %s", cfg_path)
            else:
                raw = data
        merged = _deep_merge(DEFAULTS, raw)
        normalized = _normalize_and_coerce(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ValueError(msg)
            logger.warning(msg)
        _CONFIG = Config(raw=raw, merged=normalized, path=cfg_path)
        logger.debug("config: loaded merged config (from=%s)", cfg_path or "<defaults>")
        return _CONFIG

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def set_config(cfg: Config) -> Config:
    """Install an already loaded Config (used by worker processes to share the parent's view)."""
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = cfg
    _notify_watchers(cfg)
    return cfg

def reload(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    cfg = load(explicit_path, fatal=fatal)
    _notify_watchers(cfg)
    return cfg

# ----------------------------
# Watcher API
# ----------------------------
def register_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb not in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.append(cb)

def unregister_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.remove(cb)

def _notify_watchers(cfg: Config) -> None:
    with _CONFIG_LOCK:
        cbs = list(_WATCH_CALLBACKS)
    for cb in cbs:
        try:
            cb(cfg)
        except Exception:
            logger.exception("config: watcher callback error")

# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_commands_config() -> Dict[str, Any]:
    return get_config().section("commands")

