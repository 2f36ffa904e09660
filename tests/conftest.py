import os
import stat
import textwrap

import pytest

from wasmbuild import config as config_mod

MANIFEST = textwrap.dedent(
    """\
    [package]
    name = "foo"
    version = "0.1.0"
    """
)

# PATH inside the fakes; the test PATH itself only holds the fake bin dir
_SYS_PATH = "PATH=/usr/bin:/bin:$PATH"

FAKE_TOOLS = {
    "toml2json": f"{_SYS_PATH}\nexec cat\n",
    "jq": f"{_SYS_PATH}\necho \"$@\" > jq.args\nsed -n 's/^name *= *\"\\(.*\\)\"$/\\1/p' | head -n 1\n",
    "cargo": "exit 0\n",
    "wasm-bindgen": "exit 0\n",
    "wasm-opt": "exit 0\n",
}

BUILD_PHASE = f"""{_SYS_PATH}
printf '%s\\n' "$pname" > build.pname
printf '%s\\n' "$out" > build.out
printf '%s\\n' "$GIT_COMMIT" > build.git
"""

INSTALL_PHASE = f"""{_SYS_PATH}
mkdir -p "$out"
printf '%s\\n' "$pname" > "$out/name"
touch install.ran
"""


def write_script(path, body):
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("WASMBUILD_CONFIG", raising=False)
    monkeypatch.delenv("out", raising=False)
    monkeypatch.delenv("pname", raising=False)
    monkeypatch.delenv("GIT_COMMIT", raising=False)
    monkeypatch.delenv("GIT_DIRTY", raising=False)
    config_mod.reset()
    yield
    config_mod.reset()


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    """Directory of fake tools; it is the whole PATH so real tools never leak in."""
    d = tmp_path / "bin"
    d.mkdir()
    monkeypatch.setenv("PATH", str(d))
    return d


@pytest.fixture
def install_tools(bin_dir):
    def _install(*names):
        for name in names or FAKE_TOOLS:
            write_script(bin_dir / name, FAKE_TOOLS[name])
        return bin_dir
    return _install


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """A crate checkout with manifest and both phase scripts, used as cwd."""
    ws = tmp_path / "crate"
    ws.mkdir()
    (ws / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")
    write_script(ws / "buildPhaseCargoCommand.sh", BUILD_PHASE)
    write_script(ws / "installPhase.sh", INSTALL_PHASE)
    monkeypatch.chdir(ws)
    return ws


def read(path):
    return open(path, encoding="utf-8").read().rstrip("\n")
