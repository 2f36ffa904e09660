# wasmbuild/toolchain.py
"""
Toolchain prerequisite checks.

- require_command: hard prerequisite, raises PrerequisiteMissing when absent
- check_installed: soft prerequisite, reports and returns False when absent
- discover_tools: table of configured tools with resolved paths (``wasmbuild check``)
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Any, Dict, Iterable, List, Optional, Tuple

from wasmbuild.config import get_config
from wasmbuild.errors import PrerequisiteMissing
from wasmbuild.logging import get_logger, print_err

logger = get_logger("toolchain")


def run_capture(cmd: List[str], cwd: Optional[str] = None, timeout: Optional[int] = None) -> Tuple[int, str, str]:
    """Run cmd returning (rc, stdout, stderr)."""
    try:
        p = subprocess.run(cmd, cwd=cwd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, timeout=timeout)
        return p.returncode, p.stdout or "", p.stderr or ""
    except subprocess.TimeoutExpired:
        return 124, "", "timeout"
    except OSError as e:
        return 1, "", str(e)


def which(tool: str) -> Optional[str]:
    return shutil.which(tool)


def require_command(tool: str) -> str:
    """Return the resolved path of ``tool`` or abort the run."""
    path = which(tool)
    if not path:
        err = PrerequisiteMissing(tool)
        print_err(err.message)
        logger.error("required tool missing: %s", tool)
        raise err
    logger.debug("found %s at %s", tool, path)
    return path


def check_installed(tool: str) -> bool:
    path = which(tool)
    if not path:
        print_err(f"{tool} is not installed. Please install it.")
        logger.warning("optional tool missing: %s", tool)
        return False
    logger.debug("found %s at %s", tool, path)
    return True


def check_prerequisites(required: Optional[Iterable[str]] = None, optional: Optional[Iterable[str]] = None) -> Dict[str, bool]:
    """
    Check required tools in order (first miss aborts), then optional tools.
    Returns {tool: available} for the optional tools.
    """
    cfg = get_config()
    for tool in (cfg.get("tools.required", []) if required is None else required):
        require_command(tool)
    soft: Dict[str, bool] = {}
    for tool in (cfg.get("tools.optional", []) if optional is None else optional):
        soft[tool] = check_installed(tool)
    return soft


def discover_tools(with_version: bool = True) -> List[Dict[str, Any]]:
    """Look up every configured tool without reporting or aborting."""
    cfg = get_config()
    results: List[Dict[str, Any]] = []
    tools = [(t, True) for t in cfg.get("tools.required", [])] + [(t, False) for t in cfg.get("tools.optional", [])]
    for name, required in tools:
        path = which(name)
        version = None
        if path and with_version:
            rc, out, _err = run_capture([path, "--version"], timeout=10)
            if rc == 0 and out.strip():
                version = out.strip().splitlines()[0]
        results.append({"name": name, "required": required, "path": path, "version": version})
    return results
