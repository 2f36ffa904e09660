import json
import logging

from wasmbuild import logging as wb_logging


def _flush():
    for h in logging.getLogger("wasmbuild").handlers:
        h.flush()


def test_file_and_jsonl_handlers(tmp_path):
    log_file = tmp_path / "logs" / "build.log"
    jsonl = tmp_path / "logs" / "build.jsonl"
    wb_logging.configure({
        "level": "WARNING",
        "color": False,
        "file": str(log_file),
        "max_size_bytes": 1024,
        "jsonl": {"enabled": True, "path": str(jsonl)},
    })
    try:
        wb_logging.get_logger("meta").info("package name: %s", "foo")
        logging.getLogger("wasmbuild.config").debug("plain child logger")
        _flush()
        text = log_file.read_text(encoding="utf-8")
        assert "INFO [meta] package name: foo" in text
        assert "[config] plain child logger" in text
        records = [json.loads(line) for line in jsonl.read_text(encoding="utf-8").splitlines()]
        assert records[0]["module"] == "meta"
        assert records[0]["message"] == "package name: foo"
        assert records[0]["level"] == "INFO"
    finally:
        wb_logging.configure({})


def test_reconfigure_replaces_handlers():
    root = logging.getLogger("wasmbuild")
    wb_logging.configure({})
    first = list(wb_logging._GLOBAL_LOGGER._handlers)
    wb_logging.configure({})
    second = list(wb_logging._GLOBAL_LOGGER._handlers)
    assert len(first) == len(second) == 1
    assert first[0] is not second[0]
    assert first[0] not in root.handlers
    assert second[0] in root.handlers


def test_color_formatter():
    record = logging.LogRecord("wasmbuild", logging.ERROR, __file__, 1, "boom", None, None)
    colored = wb_logging.ColorFormatter("%(message)s", color=True).format(record)
    plain = wb_logging.ColorFormatter("%(message)s", color=False).format(record)
    assert plain == "boom"
    assert colored.startswith("\033[31m") and colored.endswith("\033[0m")


def test_user_lines_are_not_rewritten(capsys):
    wb_logging.print_info("a :smile: b\tc [red]d[/red]")
    wb_logging.print_err("e :x:\tf")
    captured = capsys.readouterr()
    assert captured.out == "a :smile: b\tc [red]d[/red]\n"
    assert captured.err == "e :x:\tf\n"


def test_long_lines_are_not_wrapped(capsys):
    line = "Will install package to /" + "x" * 300
    wb_logging.print_info(line)
    assert capsys.readouterr().out == line + "\n"
