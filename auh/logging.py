# auh/logging.py
# -*- coding: utf-8 -*-
"""
auh logging

Features:
 - Integration with auh.config (re-applied on config reload)
 - Console color formatter
 - Rotating file handler
 - JSONL transparency log
 - Module-level configurable log levels (module_levels)
 - Thread-safe reconfiguration and metrics
"""

from __future__ import annotations
import sys
import json
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from auh.config import get_config, register_watch_callback

_logger = logging.getLogger("auh.logging")

DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(auh_module)s] %(message)s"

# ----------------------
# Console formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    """Wraps the whole line in an ANSI color picked by level."""

    PALETTE = {
        "DEBUG": "37",
        "INFO": "36",
        "WARNING": "33",
        "ERROR": "31",
        "CRITICAL": "41;37",
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        logging.Formatter.__init__(self, fmt, datefmt)
        self.use_color = color

    def format(self, record):
        line = logging.Formatter.format(self, record)
        code = self.PALETTE.get(record.levelname) if self.use_color else None
        return f"\033[{code}m{line}\033[0m" if code else line

# ----------------------
# One JSON object per line
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": round(record.created, 3),
            "level": record.levelname,
            "module": getattr(record, "auh_module", record.name),
            "pid": record.process,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, sort_keys=True)

# ----------------------
# logging.module_levels
# ----------------------
class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Optional[Dict[str, str]] = None):
        logging.Filter.__init__(self)
        self.thresholds = {
            mod: logging.getLevelName(str(lvl).upper()) if not isinstance(lvl, int) else lvl
            for mod, lvl in (module_levels or {}).items()
        }

    def filter(self, record):
        threshold = self.thresholds.get(getattr(record, "auh_module", None))
        if isinstance(threshold, int):
            return record.levelno >= threshold
        return True


class _ModuleDefaultFilter(logging.Filter):
    """Records emitted outside an adapter still need auh_module for the format string."""
    def filter(self, record):
        if not hasattr(record, "auh_module"):
            record.auh_module = record.name.rsplit(".", 1)[-1]
        return True

class _LevelCounter(logging.Handler):
    """Counts records per level name; writes nothing."""
    def __init__(self, metrics: Dict[str, int]):
        logging.Handler.__init__(self, logging.NOTSET)
        self.metrics = metrics

    def emit(self, record):
        if record.levelname in self.metrics:
            self.metrics[record.levelname] += 1

# ----------------------
# AuhLogger (singleton)
# ----------------------
class AuhLogger:
    """
    Owns the handlers of the "auh" logger. Created once per process; the
    handler set is rebuilt whenever the config changes.
    """
    _instance = None
    _guard = threading.Lock()

    def __new__(cls):
        with cls._guard:
            if cls._instance is None:
                inst = super().__new__(cls)
                inst._ready = False
                cls._instance = inst
        return cls._instance

    def __init__(self):
        if self._ready:
            return
        self._lock = threading.RLock()
        self._base = logging.getLogger("auh")
        self._handlers: List[logging.Handler] = []
        self._console: Optional[logging.Handler] = None
        self._module_filter = ModuleLevelFilter()
        self._metrics: Dict[str, int] = dict.fromkeys(("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"), 0)
        # a handler also sees records propagated from auh.* child loggers
        self._base.addHandler(_LevelCounter(self._metrics))
        self._apply_config(get_config().merged.get("logging", {}))
        register_watch_callback(lambda _cfg: self.reload_config())
        self._ready = True

    # ----------------------
    # handler builders
    # ----------------------
    @staticmethod
    def _level(value: Any, default: int) -> int:
        lvl = logging.getLevelName(str(value).upper())
        return lvl if isinstance(lvl, int) else default

    def _console_handler(self, cfg: Dict[str, Any], fmt: str, datefmt: str) -> logging.Handler:
        # stderr: stdout carries the command report
        h = logging.StreamHandler(sys.stderr)
        h.setLevel(self._level(cfg.get("level", "INFO"), logging.INFO))
        h.setFormatter(ColorFormatter(fmt, datefmt, color=bool(cfg.get("color", True)) and sys.stderr.isatty()))
        return h

    def _file_handler(self, cfg: Dict[str, Any], fmt: str, datefmt: str) -> Optional[logging.Handler]:
        target = Path(cfg["file"]).expanduser()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            h = logging.handlers.RotatingFileHandler(
                str(target),
                maxBytes=cfg.get("max_size_bytes") or 10 * 1024 * 1024,
                backupCount=int(cfg.get("backups", 5)),
                encoding="utf-8",
            )
        except OSError:
            _logger.exception("logging: cannot open log file %s", target)
            return None
        h.setLevel(self._level(cfg.get("file_level", "DEBUG"), logging.DEBUG))
        h.setFormatter(logging.Formatter(fmt, datefmt))
        return h

    def _jsonl_handler(self, jcfg: Dict[str, Any]) -> Optional[logging.Handler]:
        try:
            target = Path(jcfg["path"]).expanduser()
            target.parent.mkdir(parents=True, exist_ok=True)
            h = logging.FileHandler(str(target), encoding="utf-8")
        except (KeyError, TypeError, OSError):
            _logger.exception("logging: cannot open jsonl log")
            return None
        h.setLevel(self._level(jcfg.get("level", "INFO"), logging.INFO))
        h.setFormatter(JSONLineFormatter())
        return h

    def _apply_config(self, cfg: Dict[str, Any]):
        with self._lock:
            while self._handlers:
                h = self._handlers.pop()
                self._base.removeHandler(h)
                h.close()
            self._module_filter = ModuleLevelFilter(cfg.get("module_levels"))

            fmt = cfg.get("format") or DEFAULT_FORMAT
            datefmt = cfg.get("datefmt", "%H:%M:%S")
            self._console = self._console_handler(cfg, fmt, datefmt)
            built = [self._console]
            if cfg.get("file"):
                built.append(self._file_handler(cfg, fmt, datefmt))
            jcfg = cfg.get("jsonl") or {}
            if jcfg.get("enabled"):
                built.append(self._jsonl_handler(jcfg))

            fill = _ModuleDefaultFilter()
            for h in built:
                if h is None:
                    continue
                h.addFilter(fill)
                h.addFilter(self._module_filter)
                self._base.addHandler(h)
                self._handlers.append(h)
            # levels live on the handlers
            self._base.setLevel(logging.DEBUG)

    def reload_config(self):
        self._apply_config(get_config().merged.get("logging", {}))

    def set_level(self, level: int):
        """Console verbosity only; file and jsonl keep their configured levels."""
        with self._lock:
            if self._console is not None:
                self._console.setLevel(level)

    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(self._base, {"auh_module": module_name})

    def get_metrics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._metrics)

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = AuhLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def reload_config():
    return _GLOBAL_LOGGER.reload_config()

def set_level(level: int):
    return _GLOBAL_LOGGER.set_level(level)

def get_metrics():
    return _GLOBAL_LOGGER.get_metrics()
