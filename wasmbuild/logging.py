# wasmbuild/logging.py
# -*- coding: utf-8 -*-
"""
wasmbuild logging

Features:
 - Driven by the ``logging`` section of wasmbuild.config
 - Console color formatter (stderr, so stdout stays clean for progress lines)
 - Rotating file handler
 - JSONL build log
 - rich consoles for the user-facing progress and diagnostic lines
"""

from __future__ import annotations
import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List

from rich.console import Console
from rich.segment import Segment
from rich.style import Style

# Logger for this module
_logger = logging.getLogger("wasmbuild.logging")

# progress goes to stdout, diagnostics to stderr
console = Console(highlight=False, emoji=False)
err_console = Console(stderr=True, highlight=False, emoji=False)

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# JSONL formatter for the build log
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "wasmbuild_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


class _ModuleDefault(logging.Filter):
    """Records from plain getLogger() children lack wasmbuild_module; fill it in."""

    def filter(self, record):
        if not hasattr(record, "wasmbuild_module"):
            record.wasmbuild_module = record.name.rsplit(".", 1)[-1]
        return True

# ----------------------
# WasmbuildLogger (singleton)
# ----------------------
class WasmbuildLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()
        self._root = logging.getLogger("wasmbuild")
        self._root.setLevel(logging.DEBUG)  # capture everything; handlers filter
        self._root.propagate = False
        self._handlers: List[logging.Handler] = []
        self._inited = True

    def configure(self, cfg: Dict[str, Any]):
        """Apply a ``logging`` config section, replacing previously attached handlers."""
        with self._lock:
            for h in list(self._handlers):
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()

            default_filter = _ModuleDefault()
            fmt = cfg.get("format") or "[%(asctime)s] [%(levelname)s] [%(wasmbuild_module)s] %(message)s"
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            ch = logging.StreamHandler(sys.stderr)
            ch.setLevel(_level(cfg.get("level", "WARNING")))
            ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=cfg.get("color", True) and sys.stderr.isatty()))
            ch.addFilter(default_filter)
            self._add(ch)

            # rotating file handler
            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                file_path.parent.mkdir(parents=True, exist_ok=True)
                max_bytes = cfg.get("max_size_bytes") or 10 * 1024 * 1024
                fh = logging.handlers.RotatingFileHandler(
                    str(file_path), maxBytes=max_bytes, backupCount=int(cfg.get("backups", 3)), encoding="utf-8")
                fh.setLevel(_level(cfg.get("file_level", "DEBUG")))
                fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(wasmbuild_module)s] %(message)s"))
                fh.addFilter(default_filter)
                self._add(fh)

            jsonl_cfg = cfg.get("jsonl") or {}
            if jsonl_cfg.get("enabled"):
                path = Path(jsonl_cfg.get("path", "~/.cache/wasmbuild/build.jsonl")).expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                jh = logging.FileHandler(str(path), encoding="utf-8")
                jh.setLevel(_level(jsonl_cfg.get("level", "INFO")))
                jh.setFormatter(JSONLineFormatter())
                jh.addFilter(default_filter)
                self._add(jh)

            _logger.debug("logging: configuration applied")

    def _add(self, handler: logging.Handler):
        self._root.addHandler(handler)
        self._handlers.append(handler)

    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'wasmbuild_module' into records."""
        return logging.LoggerAdapter(self._root, {"wasmbuild_module": module_name})


def _level(name: Any) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)

# ----------------------
# User-facing output
# ----------------------
class _Verbatim:
    """One line emitted as a single segment: no emoji codes, markup, tab expansion or wrapping."""

    def __init__(self, text: str, style: Optional[str] = None):
        self.text = text
        self.style = Style.parse(style) if style else None

    def __rich_console__(self, console, options):
        yield Segment(self.text, self.style)
        yield Segment.line()

def print_info(msg: str):
    console.print(_Verbatim(msg), soft_wrap=True)

def print_ok(msg: str):
    console.print(_Verbatim(msg, "bold green"), soft_wrap=True)

def print_warn(msg: str):
    err_console.print(_Verbatim(msg, "yellow"), soft_wrap=True)

def print_err(msg: str):
    err_console.print(_Verbatim(msg, "bold red"), soft_wrap=True)

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = WasmbuildLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def configure(cfg: Dict[str, Any]):
    return _GLOBAL_LOGGER.configure(cfg)
