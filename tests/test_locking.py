"""
Tests for the per-record lock registry
"""

import threading
import time

from bank_ledger.locking import LockRegistry


class TestLockRegistry:

    def setup_method(self):
        self.locks = LockRegistry("accounts")

    def test_one_lock_per_key(self):
        with self.locks.hold(100, 200):
            pass
        with self.locks.hold(200, 100, 100):
            pass
        assert len(self.locks) == 2

    def test_hold_is_reentrant(self):
        with self.locks.hold(100):
            with self.locks.hold(100, 200):
                pass

    def test_hold_excludes_other_threads(self):
        events = []

        def contender():
            with self.locks.hold(200, 100):
                events.append("contender")

        with self.locks.hold(100):
            thread = threading.Thread(target=contender)
            thread.start()
            time.sleep(0.05)
            events.append("holder")

        thread.join(timeout=5)
        assert events == ["holder", "contender"]

    def test_unrelated_keys_do_not_block(self):
        acquired = threading.Event()

        def other():
            with self.locks.hold(300):
                acquired.set()

        with self.locks.hold(100):
            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(timeout=5)

        thread.join(timeout=5)
