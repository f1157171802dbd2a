"""Tests for the structured logger."""

import json
import logging

from shared.config import PortexConfig
from shared.logger import PortexLogger


def _records(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestPortexLogger:

    def test_logger_name_and_level(self):
        log = PortexLogger("unit", console_output=False, log_level="info")
        assert log.component == "unit"
        assert log.underlying.name == "portex.unit"
        assert log.underlying.level == logging.INFO
        assert log.underlying.handlers == []

    def test_json_fields_and_operation(self, tmp_path):
        path = tmp_path / "logs" / "portex.json"
        log = PortexLogger(
            "unit.json", console_output=False, log_level="DEBUG",
            log_file=path, json_logs=True,
        )
        with log.operation("decode"):
            log.info("Decoded %s", "app.exe", sections=3)
        log.info("outside")

        first, second = _records(path)
        assert first["message"] == "Decoded app.exe"
        assert first["component"] == "unit.json"
        assert first["operation"] == "decode"
        assert first["fields"] == {"sections": 3}
        assert "operation" not in second
        assert "fields" not in second

    def test_nested_operations_restore(self, tmp_path):
        path = tmp_path / "nested.json"
        log = PortexLogger(
            "unit.nested", console_output=False, log_level="DEBUG",
            log_file=path, json_logs=True,
        )
        with log.operation("read"):
            with log.operation("decode"):
                log.debug("inner")
            log.debug("outer")

        inner, outer = _records(path)
        assert inner["operation"] == "decode"
        assert outer["operation"] == "read"

    def test_level_filters(self, tmp_path):
        path = tmp_path / "filtered.json"
        log = PortexLogger(
            "unit.filtered", console_output=False, log_level="WARNING",
            log_file=path, json_logs=True,
        )
        log.debug("hidden")
        log.info("hidden")
        log.error("shown", code=7)

        (record,) = _records(path)
        assert record["level"] == "ERROR"
        assert record["fields"] == {"code": 7}

    def test_text_file_format(self, tmp_path):
        path = tmp_path / "portex.log"
        log = PortexLogger("unit.text", console_output=False, log_file=path)
        log.warning("plain %d", 5)
        line = path.read_text(encoding="utf-8").strip()
        assert "WARNING" in line
        assert "portex.unit.text" in line
        assert line.endswith("plain 5")

    def test_timed(self, tmp_path):
        path = tmp_path / "timed.json"
        log = PortexLogger(
            "unit.timed", console_output=False, log_level="DEBUG",
            log_file=path, json_logs=True,
        )
        with log.timed("work") as timer:
            pass
        assert timer.elapsed >= 0.0
        (record,) = _records(path)
        assert record["message"].startswith("work took")
        assert "elapsed_ms" in record["fields"]

    def test_from_config(self, tmp_path):
        config = PortexConfig()
        config.global_config.log_level = "ERROR"
        config.global_config.log_file = str(tmp_path / "cfg.log")
        log = PortexLogger.from_config("unit.cfg", config)
        assert log.underlying.level == logging.ERROR
        assert len(log.underlying.handlers) == 2

        verbose = PortexLogger.from_config("unit.cfg", config, log_level="DEBUG")
        assert verbose.underlying.level == logging.DEBUG
