"""Tests for the heartbeat demo service."""

from __future__ import annotations

import time

import pytest

from teleboot.heartbeat import HeartbeatService


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestHeartbeatService:
    @pytest.mark.usefixtures("_caplog_teleboot")
    def test_logs_every_level(self, caplog):
        service = HeartbeatService(step_seconds=0.01, interval_seconds=0.01)
        with caplog.at_level("INFO", logger="teleboot.heartbeat"):
            service.start()
            try:
                assert _wait_for(lambda: service.cycles >= 1)
            finally:
                service.stop()
        levels = {record.levelname for record in caplog.records if record.name == "teleboot.heartbeat"}
        assert {"INFO", "WARNING", "ERROR", "CRITICAL"} <= levels
        assert "Service running at" in caplog.text
        assert "This is a critical error test: Critical Error info" in caplog.text

    def test_stop_interrupts_long_interval(self):
        service = HeartbeatService(step_seconds=0.01, interval_seconds=60.0)
        service.start()
        assert _wait_for(lambda: service.cycles >= 1)
        started = time.monotonic()
        service.stop()
        assert time.monotonic() - started < 5.0
        assert service.running is False

    def test_not_running_before_start(self):
        assert HeartbeatService().running is False

    def test_restart(self):
        service = HeartbeatService(step_seconds=0.01, interval_seconds=0.01)
        service.start()
        service.stop()
        service.start()
        try:
            assert service.running is True
        finally:
            service.stop()
