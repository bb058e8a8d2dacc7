"""Tests for escort_dispatch.core.locks."""

import threading

import pytest

from escort_dispatch.core.errors import LockTimeoutError
from escort_dispatch.core.locks import KeyedLock


class TestKeyedLock:
    def test_busy_key_times_out(self):
        locks = KeyedLock(timeout=0.05)
        with locks.hold("request:b-02-24"):
            with pytest.raises(LockTimeoutError):
                with locks.hold("request:b-02-24"):
                    pass

    def test_keys_are_independent(self):
        locks = KeyedLock(timeout=0.05)
        with locks.hold("request:b-02-24"):
            with locks.hold("assignment-ids"):
                pass

    def test_released_after_error(self):
        locks = KeyedLock(timeout=0.05)
        with pytest.raises(RuntimeError):
            with locks.hold("k"):
                raise RuntimeError("boom")
        with locks.hold("k"):
            pass

    def test_serializes_threads(self):
        locks = KeyedLock(timeout=5)
        counter = {"value": 0}

        def bump():
            for _ in range(200):
                with locks.hold("counter"):
                    current = counter["value"]
                    counter["value"] = current + 1

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert counter["value"] == 800

    def test_idle_keys_are_dropped(self):
        locks = KeyedLock(timeout=0.05)
        for n in range(50):
            with locks.hold(f"request:b-{n:02d}-24"):
                assert len(locks) == 1
        assert len(locks) == 0

    def test_timed_out_waiter_is_dropped(self):
        locks = KeyedLock(timeout=0.05)
        with locks.hold("k"):
            with pytest.raises(LockTimeoutError):
                with locks.hold("k"):
                    pass
            assert len(locks) == 1
        assert len(locks) == 0
