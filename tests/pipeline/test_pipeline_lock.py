import json
import unittest
from unittest.mock import patch

from carslots.config import Settings
from carslots.errors import LockHeldError
from carslots.index import IndexKind, IndexStore, LockMarker
from carslots.local import InMemoryDisk
from carslots.pipeline import SlotLock

SLOT = "/Фото/R1/car/slot"
LOCK = f"{SLOT}/_LOCK.json"


def _marker(expires_at: str, token: str = "other") -> str:
    return json.dumps(
        {
            "locked_by": "someone",
            "locked_at": "2024-01-01T00:00:00Z",
            "expires_at": expires_at,
            "operation": "upload",
            "slot_path": SLOT,
            "token": token,
        }
    )


class TestSlotLock(unittest.TestCase):
    def setUp(self) -> None:
        self.disk = InMemoryDisk()
        self.disk.ensure_dir(SLOT)
        self.store = IndexStore(self.disk)
        self.settings = Settings(lock_wait_seconds=0.05, lock_poll_interval_seconds=0.01)
        self.lock = SlotLock(self.store, self.settings, owner="tester")

    def test_acquire_and_release(self) -> None:
        handle = self.lock.acquire(SLOT, operation="upload")
        marker = self.store.read(IndexKind.LOCK, LOCK)
        self.assertIsInstance(marker, LockMarker)
        self.assertEqual(marker.locked_by, "tester")
        self.assertEqual(marker.token, handle.token)

        self.assertTrue(self.lock.release(handle))
        self.assertFalse(self.disk.exists(LOCK))
        self.assertFalse(handle.lost)

    def test_hold_releases_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with self.lock.hold(SLOT, operation="upload"):
                self.assertTrue(self.disk.exists(LOCK))
                raise RuntimeError("boom")
        self.assertFalse(self.disk.exists(LOCK))

    def test_expired_marker_is_taken_over(self) -> None:
        self.disk.upload_text(LOCK, _marker("2020-01-01T00:00:00Z"))
        handle = self.lock.acquire(SLOT, operation="upload")
        self.assertEqual(self.store.read(IndexKind.LOCK, LOCK).token, handle.token)

    def test_invalid_marker_is_taken_over(self) -> None:
        self.disk.upload_text(LOCK, "{not json")
        handle = self.lock.acquire(SLOT, operation="delete")
        self.assertEqual(self.store.read(IndexKind.LOCK, LOCK).operation, "delete")
        self.lock.release(handle)

    def test_live_marker_raises_after_wait(self) -> None:
        self.disk.upload_text(LOCK, _marker("2999-01-01T00:00:00Z"))
        with patch("time.sleep") as sleep:
            with self.assertRaises(LockHeldError) as ctx:
                self.lock.acquire(SLOT, operation="upload")
        self.assertEqual(ctx.exception.details["locked_by"], "someone")
        self.assertEqual(self.store.read(IndexKind.LOCK, LOCK).token, "other")
        self.assertTrue(sleep.called)

    def test_release_of_stolen_lock_marks_lost(self) -> None:
        handle = self.lock.acquire(SLOT, operation="upload")
        self.disk.upload_text(LOCK, _marker("2999-01-01T00:00:00Z", token="thief"))

        self.assertFalse(self.lock.release(handle))
        self.assertTrue(handle.lost)
        self.assertEqual(self.store.read(IndexKind.LOCK, LOCK).token, "thief")

    def test_takeover_keeps_marker_replaced_by_another_writer(self) -> None:
        self.disk.upload_text(LOCK, _marker("2020-01-01T00:00:00Z"))
        store = _TakeoverRaceStore(self.disk)
        lock = SlotLock(store, self.settings, owner="tester")

        with patch("time.sleep"):
            with self.assertRaises(LockHeldError):
                lock.acquire(SLOT, operation="upload")

        self.assertEqual(self.store.read(IndexKind.LOCK, LOCK).token, "winner")


class _TakeoverRaceStore(IndexStore):
    """Lets another writer replace an expired marker right after it was read."""

    def __init__(self, disk: InMemoryDisk) -> None:
        super().__init__(disk)
        self._raced = False

    def load(self, kind: IndexKind, path: str):
        loaded = super().load(kind, path)
        if not self._raced and loaded.state == "ok" and loaded.document.is_expired():
            self._raced = True
            self.disk.upload_text(path, _marker("2999-01-01T00:00:00Z", token="winner"))
        return loaded



if __name__ == "__main__":
    unittest.main()
