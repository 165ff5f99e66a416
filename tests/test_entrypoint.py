from __future__ import annotations

import json
import logging

import pytest

import nc_exporter.__main__ as entry
from nc_exporter.utils.env_flags import is_truthy, parse_bool, split_csv
from nc_exporter.utils.logging_utils import _JsonFormatter, setup_logging


def test_parse_arguments_defaults():
    args = entry.parse_arguments([])
    assert args.config is None
    assert args.host == "0.0.0.0"
    assert args.log_level == "INFO"
    assert args.log_file is None
    assert args.env_file == ".env"


def test_parse_arguments_overrides():
    args = entry.parse_arguments(["--config", "c.yaml", "--host", "127.0.0.1", "--log-level", "DEBUG"])
    assert (args.config, args.host, args.log_level) == ("c.yaml", "127.0.0.1", "DEBUG")


def test_main_returns_startup_error_on_invalid_config(tmp_path, monkeypatch):
    bad = tmp_path / "config.yaml"
    bad.write_text("port: -1\n", encoding="utf-8")
    monkeypatch.setattr(entry, "setup_logging", lambda *a, **k: None)
    assert entry.main(["--config", str(bad), "--env-file", str(tmp_path / "missing.env")]) == entry.EXIT_STARTUP_ERROR


@pytest.mark.parametrize("value,expected", [("1", True), ("Yes", True), (" on ", True), ("0", False), ("", False), (None, False)])
def test_is_truthy(value, expected):
    assert is_truthy(value) is expected


def test_parse_bool_rejects_unknown_tokens():
    assert parse_bool("TRUE") is True
    assert parse_bool("off") is False
    with pytest.raises(ValueError):
        parse_bool("maybe")


def test_split_csv():
    assert split_csv(" a, ,b ,") == ["a", "b"]
    assert split_csv(None) == []


def test_json_formatter_emits_one_object():
    record = logging.LogRecord("nc_exporter.x", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["msg"] == "hello world"
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "nc_exporter.x"


def test_setup_logging_adds_file_handler(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "logs" / "exporter.log"
    try:
        setup_logging("DEBUG", str(log_file))
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert logging.getLogger("urllib3").level == logging.WARNING
        logging.getLogger("nc_exporter.test").info("written")
    finally:
        for h in root.handlers[:]:
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
    assert "written" in log_file.read_text(encoding="utf-8")
