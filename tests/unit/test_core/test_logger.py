# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for log level mapping and the console/NDJSON formatters."""
from __future__ import annotations

import json
import logging

import pytest

from img2kvm.core.exceptions import FileIoError
from img2kvm.core.logger import TRACE, EmojiFormatter, JsonFormatter, Log, LogStyle


def _record(msg, level=logging.INFO, **extra):
    rec = logging.LogRecord("img2kvm", level, __file__, 10, msg, (), None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


@pytest.mark.unit
class TestLevelFromFlags:
    @pytest.mark.parametrize(
        "verbose,quiet,level",
        [
            (0, 0, logging.INFO),
            (1, 0, logging.INFO),
            (2, 0, logging.DEBUG),
            (3, 0, TRACE),
            (0, 1, logging.WARNING),
            (0, 2, logging.ERROR),
            (3, 1, logging.WARNING),
        ],
    )
    def test_mapping(self, verbose, quiet, level):
        assert Log._level_from_flags(verbose, quiet) == level


@pytest.mark.unit
class TestFormatters:
    def test_emoji_line(self):
        fmt = EmojiFormatter(LogStyle(color=False, emoji=False))
        line = fmt.format(_record("--- convert img to qcow2...", ctx={"path": "/w/disk.img"}))
        assert "INFO" in line
        assert line.endswith("--- convert img to qcow2... path=/w/disk.img")

    def test_json_record_shape(self):
        rec = _record("Error: resolve: Failed to open x", level=logging.ERROR, ctx={"phase": "resolve"})
        obj = json.loads(JsonFormatter().format(rec))
        assert obj["level"] == "ERROR"
        assert obj["logger"] == "img2kvm"
        assert obj["msg"] == "Error: resolve: Failed to open x"
        assert obj["ctx"] == {"phase": "resolve"}
        assert obj["ts"].endswith("+00:00")
        assert "error" not in obj

    def test_json_carries_structured_error(self):
        err = FileIoError(msg="Failed to open x", context={"path": "x", "phase": "resolve"})
        obj = json.loads(JsonFormatter().format(_record("Error: x", level=logging.ERROR, error=err.to_dict())))
        assert obj["error"]["type"] == "FileIoError"
        assert obj["error"]["code"] == 3
        assert obj["error"]["context"] == {"path": "x", "phase": "resolve"}


@pytest.mark.unit
class TestSetup:
    def test_json_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "img2kvm.log"
        logger = Log.setup(0, str(log_file), json_logs=True, logger_name="img2kvm.test.json")
        try:
            logger.info("decompress gz file %s...", "/a.gz")
            logger.debug("hidden at INFO")
        finally:
            for h in list(logger.handlers):
                h.close()
                logger.removeHandler(h)

        lines = [json.loads(ln) for ln in log_file.read_text(encoding="utf-8").splitlines()]
        assert [ln["msg"] for ln in lines] == ["decompress gz file /a.gz..."]
        assert logger.level == logging.INFO

    def test_setup_replaces_handlers(self):
        name = "img2kvm.test.handlers"
        Log.setup(0, logger_name=name)
        logger = Log.setup(2, logger_name=name)
        try:
            assert len(logger.handlers) == 1
            assert logger.level == logging.DEBUG
        finally:
            for h in list(logger.handlers):
                h.close()
                logger.removeHandler(h)
