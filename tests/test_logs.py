"""Tests for core.logs — level names and log rotation."""

import logging

from cfddns.core.logs import SUCCESS, rotate_log


def _write_lines(path, count):
    path.write_text("".join(f"line {i}\n" for i in range(1, count + 1)))


class TestLevels:
    def test_level_names(self):
        assert SUCCESS == 25
        assert logging.getLevelName(SUCCESS) == "SUCCESS"
        assert logging.getLevelName(logging.WARNING) == "WARN"


class TestRotateLog:
    def test_keeps_last_lines(self, tmp_path):
        log = tmp_path / "cf-ddns.log"
        _write_lines(log, 20)

        assert rotate_log(log, 5) is True
        assert log.read_text().splitlines() == [f"line {i}" for i in range(16, 21)]
        # no temp files left next to the log
        assert [p.name for p in tmp_path.iterdir()] == ["cf-ddns.log"]

    def test_under_limit_untouched(self, tmp_path):
        log = tmp_path / "cf-ddns.log"
        _write_lines(log, 5)
        before = log.stat().st_ino

        assert rotate_log(log, 5) is False
        assert log.stat().st_ino == before
        assert len(log.read_text().splitlines()) == 5

    def test_missing_file(self, tmp_path):
        assert rotate_log(tmp_path / "absent.log", 10) is False

    def test_non_positive_limit_uses_default(self, tmp_path):
        log = tmp_path / "cf-ddns.log"
        _write_lines(log, 1200)

        assert rotate_log(log, 0) is True
        lines = log.read_text().splitlines()
        assert len(lines) == 1000
        assert lines[-1] == "line 1200"
