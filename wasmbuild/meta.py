# wasmbuild/meta.py
"""
Package metadata from the crate manifest.

The name is read the same way the phase scripts expect it to be read:
``toml2json < Cargo.toml | jq -r .package.name``. Both tools are treated as
opaque; their output is taken verbatim, minus trailing newlines.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional, Tuple, Union

from wasmbuild.config import get_config
from wasmbuild.errors import ManifestError
from wasmbuild.logging import get_logger

logger = get_logger("meta")


def _pipe(manifest: Path, converter: List[str], query: List[str]) -> Tuple[str, int, int]:
    """Run ``converter < manifest | query``; stderr of both passes through. Returns (stdout, converter_rc, query_rc)."""
    with open(manifest, "rb") as fh:
        conv = subprocess.Popen(converter, stdin=fh, stdout=subprocess.PIPE)
        try:
            q = subprocess.Popen(query, stdin=conv.stdout, stdout=subprocess.PIPE)
        except OSError:
            conv.kill()
            conv.wait()
            raise
        finally:
            # let the converter see SIGPIPE if the query tool exits early
            conv.stdout.close()
        out, _ = q.communicate()
        conv.wait()
    return out.decode("utf-8", errors="replace"), conv.returncode, q.returncode


def read_package_name(manifest: Optional[Union[str, Path]] = None, *, strict: Optional[bool] = None) -> str:
    """
    Return the package name declared in the manifest.

    An empty result (missing manifest, converter/query failure, empty name) is
    logged and returned as "" unless strict mode is on, in which case
    ManifestError is raised.
    """
    cfg = get_config()
    path = Path(manifest or cfg.get("manifest.path", "Cargo.toml"))
    if strict is None:
        strict = bool(cfg.get("manifest.strict", False))
    converter = [cfg.get("manifest.converter", "toml2json")]
    query = [cfg.get("manifest.query_tool", "jq"), "-r", cfg.get("manifest.query", ".package.name")]

    name = ""
    problem = None
    if not path.is_file():
        problem = f"manifest not found: {path}"
    else:
        try:
            out, conv_rc, q_rc = _pipe(path, converter, query)
        except OSError as e:
            problem = f"cannot run manifest query: {e}"
        else:
            name = out.rstrip("\n")
            if conv_rc != 0 or q_rc != 0:
                problem = f"manifest query failed (converter exit {conv_rc}, query exit {q_rc})"
            elif not name or name == "null":
                problem = f"no package name in {path}"

    if problem:
        if strict:
            raise ManifestError(problem, status=1)
        logger.warning("%s; continuing with pname=%r", problem, name)
    else:
        logger.info("package name: %s", name)
    return name
