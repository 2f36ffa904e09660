# wasmbuild/config.py
# -*- coding: utf-8 -*-
"""
wasmbuild central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit, env override, cwd, user)
- Merge with authoritative DEFAULTS, normalize/coerce types (human sizes to bytes)
- Validate structure with pydantic models, warn or error (fatal optional)
- Provide typed access via Config dataclass (get_config(), get_section(), helpers)
"""

from __future__ import annotations
import os
import json
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from wasmbuild.errors import ConfigError

logger = logging.getLogger("wasmbuild.config")

ENV_CONFIG = "WASMBUILD_CONFIG"

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "tools": {
        "required": ["toml2json", "jq", "cargo", "wasm-bindgen"],
        "optional": ["wasm-opt"],
    },
    "manifest": {
        "path": "Cargo.toml",
        "converter": "toml2json",
        "query_tool": "jq",
        "query": ".package.name",
        "strict": False,
    },
    "phases": {
        "build": "./buildPhaseCargoCommand.sh",
        "install": "./installPhase.sh",
    },
    "output": {
        "clean": ["./outputs", "./result"],
        "default_out": "./outputs/out",
        "result_link": "./result",
        "env_var": "out",
        "name_var": "pname",
        "require_target": False,
    },
    "git": {
        "enabled": True,
    },
    "logging": {
        "level": "WARNING",  # console; progress lines are printed separately
        "color": True,
        "file": None,
        "file_level": "DEBUG",
        "max_size": "10M",  # human readable
        "backups": 3,
        "jsonl": {"enabled": False, "path": "~/.cache/wasmbuild/build.jsonl"},
    },
}

# ----------------------------
# Validation models
# ----------------------------
class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ToolsSection(_Section):
    required: List[str]
    optional: List[str]


class ManifestSection(_Section):
    path: str
    converter: str
    query_tool: str
    query: str
    strict: bool


class PhasesSection(_Section):
    build: str
    install: str


class OutputSection(_Section):
    clean: List[str]
    default_out: str
    result_link: str
    env_var: str
    name_var: str
    require_target: bool


class GitSection(_Section):
    enabled: bool


class JsonlSection(_Section):
    enabled: bool
    path: str
    level: str = "INFO"


class LoggingSection(_Section):
    level: str
    color: bool
    file: Optional[str] = None
    file_level: str
    format: Optional[str] = None
    datefmt: Optional[str] = None
    max_size: Union[str, int]
    max_size_bytes: Optional[int] = None
    backups: int
    jsonl: JsonlSection


class ConfigModel(_Section):
    tools: ToolsSection
    manifest: ManifestSection
    phases: PhasesSection
    output: OutputSection
    git: GitSection
    logging: LoggingSection


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

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()

# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "MB": 1024**2, "GB": 1024**3, "K": 1024, "M": 1024**2, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                num = float(s[: -len(suffix)].strip())
                return int(num * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None

def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.expanduser(os.path.expandvars(val))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates() -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get(ENV_CONFIG)
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "wasmbuild.yaml",
        Path.cwd() / "wasmbuild.yml",
        Path.cwd() / "wasmbuild.json",
        Path.home() / ".config" / "wasmbuild" / "config.yaml",
    ])
    return candidates

def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(f"config file not found: {explicit}")
        return p
    for p in _find_candidates():
        if p.exists():
            return p
    return None

def _load_file(path: Path) -> Dict[str, Any]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed reading {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(txt)
        else:
            # YAML is a superset of JSON, so anything else goes through PyYAML
            data = yaml.safe_load(txt)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"failed parsing {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data

def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Expand user paths in the logging section and convert human sizes."""
    out = deepcopy(cfg)
    log_cfg = out.get("logging")
    if isinstance(log_cfg, dict):
        if isinstance(log_cfg.get("file"), str):
            log_cfg["file"] = _expand_path(log_cfg["file"])
        jsonl = log_cfg.get("jsonl")
        if isinstance(jsonl, dict) and isinstance(jsonl.get("path"), str):
            jsonl["path"] = _expand_path(jsonl["path"])
        if "max_size" in log_cfg:
            ms = _human_size_to_bytes(log_cfg["max_size"])
            if ms is not None:
                log_cfg["max_size_bytes"] = ms
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list)."""
    try:
        ConfigModel.model_validate(cfg)
    except ValidationError as e:
        issues = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()))
            issues.append(f"{loc}: {err.get('msg')}")
        return False, issues
    return True, []

# ----------------------------
# Loading
# ----------------------------
def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then validation failures raise ConfigError.
    Returns Config object and installs it as the process-wide config.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = _load_file(cfg_path) if cfg_path else {}
        merged = _deep_merge(DEFAULTS, raw)
        normalized = _normalize_and_coerce(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                raise ConfigError(msg)
            logger.warning(msg)
        cfg_obj = Config(raw=raw, merged=normalized, path=cfg_path)
        _CONFIG = cfg_obj
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return cfg_obj

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def reset() -> None:
    """Forget the cached config; the next get_config() reloads from disk."""
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = None

# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_section(name: str) -> Dict[str, Any]:
    val = get_config().merged.get(name)
    return deepcopy(val) if isinstance(val, dict) else {}

def validate_config() -> Tuple[bool, List[str]]:
    return _validate_structure(get_config().merged)
