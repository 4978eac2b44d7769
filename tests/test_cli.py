"""Tests for the CLI entry point and logging setup."""

import json
import logging
import sys

import pytest

from apt_s3.cli import VERSION, main, parse_args
from apt_s3.logging_config import JSONFormatter, configure_logging


class TestParseArgs:
    """Tests for parse_args()."""

    def test_defaults(self):
        args = parse_args([])
        assert args.version is False
        assert args.config is None
        assert args.log_level is None
        assert args.log_format is None

    def test_overrides(self):
        args = parse_args(["--log-level", "DEBUG", "--log-format", "json", "--config", "x.yaml"])
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"
        assert str(args.config) == "x.yaml"

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            parse_args(["--log-level", "LOUD"])


class TestMain:
    """Tests for main() exit paths."""

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert out.startswith(f"apt-s3 {VERSION} (Python ")

    def test_missing_config_exits_nonzero(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1
        assert capsys.readouterr().out == ""

    def test_stdin_redirected_from_file(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "input.txt"
        path.write_text("601 Configuration\nConfig-Item: Dir=/\n\n")
        with open(path) as stdin:
            monkeypatch.setattr(sys, "stdin", stdin)
            try:
                with pytest.raises(SystemExit) as exc_info:
                    main([])
            finally:
                configure_logging(level="WARNING")
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("100 Capabilities\n")


class TestLogging:
    """Tests for configure_logging() and JSONFormatter."""

    def test_json_formatter_includes_extras(self):
        record = logging.LogRecord(
            name="apt_s3.method",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Fetched %s",
            args=("a.deb",),
            exc_info=None,
        )
        record.bucket = "apt-repo"
        record.key = "pool/a.deb"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "apt_s3.method"
        assert entry["message"] == "Fetched a.deb"
        assert entry["bucket"] == "apt-repo"
        assert entry["key"] == "pool/a.deb"
        assert "uri" not in entry

    def test_configure_logging_uses_stderr(self):
        configure_logging(level="DEBUG", fmt="json")
        root = logging.getLogger()
        try:
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            handler = root.handlers[0]
            assert handler.stream is sys.stderr
            assert isinstance(handler.formatter, JSONFormatter)
        finally:
            configure_logging(level="WARNING")

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging(level="chatty")
        assert logging.getLogger().level == logging.WARNING
