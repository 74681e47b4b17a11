"""
Unit tests for the scoped orientation lock.
"""

from rcguidance.mobile.orientation import OrientationLock


class TestOrientationLock:
    def test_context_manager_releases(self):
        lock = OrientationLock("desktop")
        with lock:
            assert lock.is_held
        assert not lock.is_held

    def test_release_without_acquire(self):
        lock = OrientationLock()
        lock.release()
        assert not lock.is_held

    def test_acquire_twice(self):
        lock = OrientationLock()
        lock.acquire()
        lock.acquire()
        lock.release()
        assert not lock.is_held
