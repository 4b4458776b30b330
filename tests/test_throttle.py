"""Tests for the page-side throttle gate and page storage."""

from __future__ import annotations

import logging

import pytest

from pagepulse.client.storage import JsonFileStorage, MemoryStorage
from pagepulse.client.throttle import THROTTLE_KEY, ThrottleGate, epoch_ms

from conftest import FakeClock


class TestThrottleGate:

    def test_fresh_page_may_emit(self, clock: FakeClock):
        assert ThrottleGate(MemoryStorage(), clock=clock).should_emit() is True

    def test_blocked_right_after_attempt(self, clock: FakeClock):
        gate = ThrottleGate(MemoryStorage(), clock=clock)
        gate.record_attempt()
        assert gate.should_emit() is False

    def test_blocked_just_inside_window(self, clock: FakeClock):
        gate = ThrottleGate(MemoryStorage(), clock=clock)
        gate.record_attempt()
        clock.advance(59.999)
        assert gate.should_emit() is False

    def test_open_at_window_boundary(self, clock: FakeClock):
        gate = ThrottleGate(MemoryStorage(), clock=clock)
        gate.record_attempt()
        clock.advance(60)
        assert gate.should_emit() is True

    def test_record_attempt_stores_epoch_ms(self, clock: FakeClock):
        storage = MemoryStorage()
        ThrottleGate(storage, clock=clock).record_attempt()
        assert storage.get(THROTTLE_KEY) == str(epoch_ms(clock()))

    def test_garbage_timestamp_reads_as_never(self, clock: FakeClock):
        gate = ThrottleGate(MemoryStorage({THROTTLE_KEY: "yesterday"}), clock=clock)
        assert gate.last_sent_at == 0
        assert gate.should_emit() is True

    def test_custom_window(self, clock: FakeClock):
        gate = ThrottleGate(MemoryStorage(), clock=clock, window_ms=1_000)
        gate.record_attempt()
        clock.advance(1)
        assert gate.should_emit() is True

    def test_survives_reload(self, tmp_path, clock: FakeClock):
        path = str(tmp_path / "page" / "storage.json")
        ThrottleGate(JsonFileStorage(path), clock=clock).record_attempt()

        clock.advance(10)
        reloaded = ThrottleGate(JsonFileStorage(path), clock=clock)
        assert reloaded.should_emit() is False


class TestJsonFileStorage:

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileStorage(str(tmp_path / "none.json")).get("k") is None

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert JsonFileStorage(str(path)).get("k") is None

    def test_undecodable_file_is_empty(self, tmp_path, caplog: pytest.LogCaptureFixture):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with caplog.at_level(logging.WARNING, logger="pagepulse.client"):
            storage = JsonFileStorage(str(path))
        assert storage.get("k") is None
        assert any("Could not read page storage" in r.getMessage() for r in caplog.records)

    def test_directory_path_is_empty(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        assert storage.get("k") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"

    def test_values_are_strings(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "s.json"))
        storage.set("n", 5)
        assert JsonFileStorage(str(tmp_path / "s.json")).get("n") == "5"
