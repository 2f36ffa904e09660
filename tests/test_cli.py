import json
import os

from wasmbuild.cli import main


def test_check_all_present(install_tools, workspace, capsys):
    install_tools()
    assert main(["check"]) == 0
    out = capsys.readouterr().out
    assert "all required tools found" in out


def test_check_missing_required(install_tools, workspace, capsys):
    install_tools("toml2json", "jq", "cargo")
    assert main(["check"]) == 1
    assert "Error: wasm-bindgen is required but not installed." in capsys.readouterr().err


def test_name(install_tools, workspace, capsys):
    install_tools("toml2json", "jq")
    assert main(["name"]) == 0
    assert capsys.readouterr().out == "foo\n"


def test_clean(workspace):
    (workspace / "outputs").mkdir()
    os.symlink("outputs", "result")
    assert main(["clean"]) == 0
    assert not os.path.lexists("outputs")
    assert not os.path.lexists("result")


def test_config_print_and_validate(workspace, capsys):
    (workspace / "wasmbuild.yaml").write_text("phases:\n  build: ./b.sh\n", encoding="utf-8")
    assert main(["config", "--validate"]) == 0
    merged = json.loads(capsys.readouterr().out)
    assert merged["phases"]["build"] == "./b.sh"


def test_config_validation_failure(workspace):
    (workspace / "wasmbuild.yaml").write_text("bogus: 1\n", encoding="utf-8")
    assert main(["config", "--validate"]) == 1


def test_bad_config_file(workspace, capsys):
    assert main(["--config", "nope.yaml", "build"]) == 2
    assert "config error" in capsys.readouterr().err


def test_chdir(install_tools, workspace, tmp_path, monkeypatch):
    install_tools()
    monkeypatch.chdir(tmp_path)
    assert main(["--chdir", str(workspace), "build"]) == 0
    assert os.readlink(workspace / "result") == "./outputs/out"


def test_config_overrides_phase_script(install_tools, workspace):
    install_tools()
    (workspace / "wasmbuild.yaml").write_text("phases:\n  build: ./missing.sh\n", encoding="utf-8")
    assert main(["build"]) == 127
    assert not os.path.exists("install.ran")


def test_interrupt_exits_130(workspace, monkeypatch, capsys):
    def _interrupted(dry_run=False):
        raise KeyboardInterrupt

    monkeypatch.setattr("wasmbuild.buildsystem.run_build", _interrupted)
    assert main(["build"]) == 130
    assert "interrupted" in capsys.readouterr().err
