# wasmbuild/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - wasmbuild build engine

Main API:
  ctx = run_build(dry_run=False)

Sequence:
  1. hard prerequisites (toml2json, jq, cargo, wasm-bindgen), first miss aborts
  2. soft prerequisite (wasm-opt), reported only
  3. package name from the manifest
  4. best-effort removal of ./outputs and ./result
  5. output path: $out if set in the invoking environment, else ./outputs/out
  6. build phase script
  7. install phase script
  8. ./result -> output path

Every failure surfaces as a BuildAborted carrying the exit status the process
should end with; nothing here calls sys.exit.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from wasmbuild.config import get_config
from wasmbuild.errors import BuildAborted, CommandFailed, OutputMissing
from wasmbuild.logging import get_logger, print_err, print_info, print_warn
from wasmbuild.meta import read_package_name
from wasmbuild.toolchain import check_prerequisites, run_capture, which

logger = get_logger("buildsystem")


@dataclass(frozen=True)
class BuildContext:
    """Values shared with the phase scripts. Resolved once per run."""
    pname: str
    out: str
    out_from_env: bool = False
    extra_env: Dict[str, str] = field(default_factory=dict)

    def child_env(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Environment for a phase subprocess: base + build info + pname/out."""
        cfg = get_config()
        env = dict(os.environ if base is None else base)
        env.update(self.extra_env)
        env[cfg.get("output.name_var", "pname")] = self.pname
        env[cfg.get("output.env_var", "out")] = self.out
        return env

# --- command execution ---
def _status_from_returncode(rc: int) -> int:
    # subprocess reports death-by-signal as -N; shells report 128+N
    return 128 - rc if rc < 0 else rc

def run_or_fail(command: str, *args: str, env: Optional[Mapping[str, str]] = None, cwd: Optional[str] = None) -> None:
    """Run a command to completion; raise CommandFailed with its exit status if non-zero."""
    cmd = [command, *args]
    logger.debug("RUN: %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        rc = subprocess.call(cmd, env=dict(env) if env is not None else None, cwd=cwd)
    except FileNotFoundError as e:
        print_err(f"{command}: {e.strerror}")
        rc = 127
    except PermissionError as e:
        print_err(f"{command}: {e.strerror}")
        rc = 126
    status = _status_from_returncode(rc)
    if status != 0:
        err = CommandFailed(cmd, status)
        print_err(err.message)
        logger.error("%s", err.message)
        raise err

# --- output path ---
def resolve_output_path(environ: Optional[Mapping[str, str]] = None) -> Tuple[str, bool]:
    """
    Return (out, from_env). A variable that is set counts even when empty,
    matching the shell's ``[ -v out ]``.
    """
    cfg = get_config()
    environ = os.environ if environ is None else environ
    var = cfg.get("output.env_var", "out")
    if var in environ:
        out = environ[var]
        print_info(f"Will install package to {out} (defined outside installPhase.sh script)")
        return out, True
    out = cfg.get("output.default_out", "./outputs/out")
    print_info(f"Will install package to {out}")
    return out, False

# --- build info for the crate (GIT_COMMIT / GIT_DIRTY) ---
def git_build_info(environ: Optional[Mapping[str, str]] = None, cwd: Optional[str] = None) -> Dict[str, str]:
    """
    Values the crate embeds at compile time. Already-set variables win; outside
    a git checkout the commit is "unknown" and the tree is reported clean.
    """
    environ = os.environ if environ is None else environ
    info = {"GIT_COMMIT": "unknown", "GIT_DIRTY": "false"}
    if which("git"):
        rc, out, _ = run_capture(["git", "rev-parse", "HEAD"], cwd=cwd)
        if rc == 0 and out.strip():
            info["GIT_COMMIT"] = out.strip()
            rc, out, _ = run_capture(["git", "status", "--porcelain"], cwd=cwd)
            if rc == 0:
                info["GIT_DIRTY"] = "true" if out.strip() else "false"
    else:
        logger.debug("git not on PATH; build info defaults used")
    for key in info:
        if key in environ:
            info[key] = environ[key]
    return info

# --- cleanup ---
def clean_outputs(paths: Optional[Sequence[str]] = None) -> None:
    """Remove previous outputs. Absent paths and removal errors are ignored."""
    if paths is None:
        paths = get_config().get("output.clean", [])
    for p in paths:
        path = Path(p)
        try:
            if path.is_symlink() or path.is_file():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)
            else:
                continue
            logger.debug("removed %s", path)
        except OSError as e:
            logger.debug("could not remove %s: %s", path, e)

# --- phases ---
def _phase(key: str, ctx: BuildContext, environ: Optional[Mapping[str, str]] = None) -> None:
    script = get_config().get(f"phases.{key}")
    logger.info("%s phase: %s", key, script)
    run_or_fail(script, env=ctx.child_env(environ))

def run_build_phase(ctx: BuildContext, environ: Optional[Mapping[str, str]] = None) -> None:
    _phase("build", ctx, environ)

def run_install_phase(ctx: BuildContext, environ: Optional[Mapping[str, str]] = None) -> None:
    _phase("install", ctx, environ)

# --- result link ---
def link_result(ctx: BuildContext, link: Optional[str] = None, require_target: Optional[bool] = None) -> Path:
    cfg = get_config()
    link_path = Path(link or cfg.get("output.result_link", "./result"))
    if require_target is None:
        require_target = bool(cfg.get("output.require_target", False))
    if not os.path.exists(ctx.out):
        if require_target:
            raise OutputMissing(f"install phase did not create {ctx.out}", status=1)
        print_warn(f"warning: {ctx.out} does not exist; linking anyway")
        logger.warning("link target %s missing", ctx.out)
    try:
        os.symlink(ctx.out, link_path)
    except OSError as e:
        print_err(f"ln: failed to create symbolic link '{link_path}': {e.strerror}")
        raise BuildAborted(f"cannot link {link_path} -> {ctx.out}: {e}", status=1) from e
    logger.info("linked %s -> %s", link_path, ctx.out)
    return link_path

# --- orchestration ---
def run_build(dry_run: bool = False, environ: Optional[Mapping[str, str]] = None) -> BuildContext:
    """
    Full build. Returns the context used; raises BuildAborted on any hard failure.

    ``environ`` is the environment the phases see: it supplies ``out``, preset
    GIT_COMMIT/GIT_DIRTY and the base of the child environment. Tool lookup for
    the prerequisite checks and the manifest query always uses this process's PATH.
    """
    cfg = get_config()
    environ = os.environ if environ is None else environ
    check_prerequisites()
    pname = read_package_name()

    if dry_run:
        print_info(f"[dry-run] would remove {' '.join(cfg.get('output.clean', []))}")
    else:
        clean_outputs()

    out, from_env = resolve_output_path(environ)
    extra = git_build_info(environ) if cfg.get("git.enabled", True) else {}
    ctx = BuildContext(pname=pname, out=out, out_from_env=from_env, extra_env=extra)

    if dry_run:
        print_info(f"[dry-run] would run {cfg.get('phases.build')} with pname={pname} out={out}")
        print_info(f"[dry-run] would run {cfg.get('phases.install')}")
        print_info(f"[dry-run] would link {cfg.get('output.result_link')} -> {out}")
        return ctx

    run_build_phase(ctx, environ)
    run_install_phase(ctx, environ)
    link_result(ctx)
    return ctx
