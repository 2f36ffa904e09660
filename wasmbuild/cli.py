#!/usr/bin/env python3
# wasmbuild/cli.py
"""
wasmbuild CLI

Subcommands:
  build [--dry-run]    full sequence (default when no subcommand is given)
  check                prerequisite table; exits 1 when a required tool is missing
  name                 print the package name from the manifest
  clean                remove previous outputs
  config [--validate]  print the merged configuration
"""

from __future__ import annotations

import os
import sys
import json
import argparse
from typing import List, Optional

from rich.table import Table

from wasmbuild import buildsystem, config as config_mod, toolchain
from wasmbuild.errors import BuildAborted, ConfigError
from wasmbuild.logging import configure as configure_logging, console, get_logger, print_err, print_ok
from wasmbuild.meta import read_package_name

logger = get_logger("cli")

# -----------------------
# Subcommands
# -----------------------
def cmd_build(args) -> int:
    ctx = buildsystem.run_build(dry_run=args.dry_run)
    if not args.dry_run:
        logger.info("build finished: pname=%s out=%s", ctx.pname, ctx.out)
    return 0

def cmd_check(args) -> int:
    tools = toolchain.discover_tools()
    table = Table(title="Toolchain")
    table.add_column("tool")
    table.add_column("kind")
    table.add_column("path")
    table.add_column("version")
    missing_required = False
    for t in tools:
        kind = "required" if t["required"] else "optional"
        if t["path"] is None and t["required"]:
            missing_required = True
        table.add_row(t["name"], kind, t["path"] or "[red]missing[/red]", t["version"] or "")
    console.print(table)
    # run the real checks so diagnostics and exit status match a build
    toolchain.check_prerequisites()
    if not missing_required:
        print_ok("all required tools found")
    return 0

def cmd_name(args) -> int:
    print(read_package_name())
    return 0

def cmd_clean(args) -> int:
    buildsystem.clean_outputs()
    return 0

def cmd_config(args) -> int:
    cfg = config_mod.get_config()
    print(json.dumps(cfg.as_dict(), indent=2, ensure_ascii=False))
    if args.validate:
        ok, issues = config_mod.validate_config()
        for it in issues:
            print_err(f" - {it}")
        return 0 if ok else 1
    return 0

# -----------------------
# Argparse wiring
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="wasmbuild", description="Build and install a wasm crate via its phase scripts")
    ap.add_argument("--config", help="explicit config file")
    ap.add_argument("--chdir", "-C", help="run in this directory")
    ap.add_argument("--verbose", "-v", action="store_true", help="debug logging on the console")
    sub = ap.add_subparsers(dest="cmd")

    p_build = sub.add_parser("build", help="run the full build")
    p_build.add_argument("--dry-run", action="store_true")
    p_build.set_defaults(func=cmd_build)

    p_check = sub.add_parser("check", help="check toolchain prerequisites")
    p_check.set_defaults(func=cmd_check)

    p_name = sub.add_parser("name", help="print the package name")
    p_name.set_defaults(func=cmd_name)

    p_clean = sub.add_parser("clean", help="remove previous outputs")
    p_clean.set_defaults(func=cmd_clean)

    p_config = sub.add_parser("config", help="print merged configuration")
    p_config.add_argument("--validate", action="store_true")
    p_config.set_defaults(func=cmd_config)

    return ap

def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)
    if args.cmd is None:
        args.func, args.dry_run = cmd_build, False

    if args.chdir:
        os.chdir(args.chdir)

    try:
        config_mod.load(args.config)
    except ConfigError as e:
        print_err(f"config error: {e}")
        return 2
    log_cfg = config_mod.get_section("logging")
    if args.verbose:
        log_cfg["level"] = "DEBUG"
    configure_logging(log_cfg)

    try:
        return args.func(args)
    except BuildAborted as e:
        logger.debug("aborted with status %s: %s", e.status, e.message)
        return e.status
    except KeyboardInterrupt:
        # shell convention for SIGINT
        print_err("interrupted")
        return 130

if __name__ == "__main__":
    sys.exit(main())
