import threading
import unittest

from carslots.config import Settings
from carslots.errors import (
    ConflictError,
    DataCommitError,
    InvalidArgumentError,
    LimitExceededError,
    NetworkError,
    NotFoundError,
    SlotLockedError,
)
from carslots.index import IndexKind, IndexStore, PhotoIndex, SlotSummary
from carslots.local import InMemoryDisk
from carslots.models import PhotoUpload
from carslots.pipeline import WritePipeline
from carslots.reconcile import Reconciler

SLOT = "/Фото/R1/Lada Niva XTA21099012345678/1. Дилер фото/Lada Niva XTA21099012345678"


def _photo(name: str, data: bytes = b"img") -> PhotoUpload:
    return PhotoUpload(name=name, data=data)


class _DroppingIndexDisk(InMemoryDisk):
    """Accepts _PHOTOS.json uploads without storing them."""

    def upload_text(self, path: str, text: str, *, overwrite: bool = True) -> None:
        if path.endswith("/_PHOTOS.json"):
            return
        super().upload_text(path, text, overwrite=overwrite)


class WriteTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.disk = InMemoryDisk()
        self.store = IndexStore(self.disk)
        self.settings = Settings(lock_wait_seconds=5, lock_poll_interval_seconds=0.01)
        self.writer = WritePipeline(self.disk, self.settings, store=self.store, owner="tester")

    def seed(self, *names: str) -> PhotoIndex:
        for name in names:
            self.disk.upload_bytes(f"{SLOT}/{name}", b"old")
        return Reconciler(self.disk, self.settings, store=self.store).reconcile_slot(SLOT).document

    def index(self) -> PhotoIndex:
        return self.store.read(IndexKind.PHOTOS, f"{SLOT}/_PHOTOS.json")


class TestUpload(WriteTestCase):
    def test_upload_into_empty_slot(self) -> None:
        result = self.writer.upload(SLOT, [_photo("b.jpg"), _photo("a.jpg")])

        self.assertTrue(result.verified)
        self.assertFalse(result.dirty)
        self.assertEqual(result.count, 2)
        index = self.index()
        self.assertEqual(index.names, ["a.jpg", "b.jpg"])
        self.assertEqual(index.cover, "a.jpg")
        summary = self.store.read(IndexKind.SLOT, f"{SLOT}/_SLOT.json")
        self.assertIsInstance(summary, SlotSummary)
        self.assertEqual(summary.count, 2)
        self.assertFalse(self.disk.exists(f"{SLOT}/_LOCK.json"))
        self.assertFalse(self.disk.exists(f"{SLOT}/_DIRTY.json"))

    def test_upload_keeps_request_order_after_existing_index(self) -> None:
        self.seed()
        self.writer.upload(SLOT, [_photo("b.jpg"), _photo("a.jpg")])
        self.assertEqual(self.index().names, ["b.jpg", "a.jpg"])
        self.assertEqual(self.index().cover, "b.jpg")

    def test_duplicate_names_last_wins(self) -> None:
        self.writer.upload(SLOT, [_photo("a.jpg", b"first"), _photo("a.jpg", b"second!")])
        self.assertEqual(self.index().count, 1)
        self.assertEqual(self.disk.download_file(f"{SLOT}/a.jpg"), b"second!")
        self.assertEqual(self.index().items[0].size, 7)

    def test_reserved_names_are_rejected(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.writer.upload(SLOT, [_photo("_PHOTOS.json")])

    def test_append_false_on_non_empty_slot(self) -> None:
        self.seed("x.jpg")
        with self.assertRaises(SlotLockedError):
            self.writer.upload(SLOT, [_photo("a.jpg")], append=False)

    def test_append_adds_to_existing(self) -> None:
        self.seed("x.jpg")
        self.writer.upload(SLOT, [_photo("a.jpg")])
        self.assertEqual(self.index().names, ["x.jpg", "a.jpg"])
        self.assertEqual(self.index().cover, "x.jpg")

    def test_limit_rejected_before_any_upload(self) -> None:
        self.seed(*[f"{i:02d}.jpg" for i in range(39)])
        self.disk.reset_calls()

        with self.assertRaises(LimitExceededError):
            self.writer.upload(SLOT, [_photo("a.jpg"), _photo("b.jpg")])

        self.assertEqual(self.disk.count_calls("upload_bytes"), 0)
        self.assertEqual(self.index().count, 39)

    def test_failed_upload_rolls_back_new_files(self) -> None:
        self.seed("x.jpg")
        self.disk.inject_failure("upload_bytes", NetworkError("down"), path=f"{SLOT}/b.jpg")

        with self.assertRaises(DataCommitError):
            self.writer.upload(SLOT, [_photo("a.jpg"), _photo("b.jpg")])

        self.assertFalse(self.disk.exists(f"{SLOT}/a.jpg"))
        self.assertEqual(self.index().names, ["x.jpg"])
        self.assertFalse(self.disk.exists(f"{SLOT}/_DIRTY.json"))

    def test_failed_upload_after_overwrite_marks_dirty(self) -> None:
        self.seed("x.jpg")
        self.disk.inject_failure("upload_bytes", NetworkError("down"), path=f"{SLOT}/b.jpg")

        with self.assertRaises(DataCommitError):
            self.writer.upload(SLOT, [_photo("x.jpg", b"new"), _photo("b.jpg")])

        self.assertTrue(self.disk.exists(f"{SLOT}/x.jpg"))
        self.assertTrue(self.disk.exists(f"{SLOT}/_DIRTY.json"))

    def test_concurrent_uploads_converge(self) -> None:
        self.seed()
        other = WritePipeline(self.disk, self.settings, owner="other")
        errors: list[BaseException] = []

        def run(writer: WritePipeline, prefix: str) -> None:
            try:
                writer.upload(SLOT, [_photo(f"{prefix}{i}.jpg") for i in range(5)])
            except Exception as exc:
                errors.append(exc)

        threads = [
            threading.Thread(target=run, args=(self.writer, "a")),
            threading.Thread(target=run, args=(other, "b")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        index = self.index()
        self.assertEqual(index.count, 10)
        self.assertEqual(sorted(index.names), sorted([f"a{i}.jpg" for i in range(5)] + [f"b{i}.jpg" for i in range(5)]))
        self.assertFalse(self.disk.exists(f"{SLOT}/_LOCK.json"))


class TestDeleteRename(WriteTestCase):
    def test_delete(self) -> None:
        self.seed("a.jpg", "b.jpg", "c.jpg")
        result = self.writer.delete(SLOT, ["a.jpg"])
        self.assertTrue(result.verified)
        self.assertEqual(self.index().names, ["b.jpg", "c.jpg"])
        self.assertEqual(self.index().cover, "b.jpg")
        self.assertFalse(self.disk.exists(f"{SLOT}/a.jpg"))

    def test_delete_unknown_name(self) -> None:
        self.seed("a.jpg")
        with self.assertRaises(NotFoundError):
            self.writer.delete(SLOT, ["nope.jpg"])
        self.assertTrue(self.disk.exists(f"{SLOT}/a.jpg"))

    def test_delete_partial_failure_marks_dirty(self) -> None:
        self.seed("a.jpg", "b.jpg")
        self.disk.inject_failure("delete", NetworkError("down"), path=f"{SLOT}/b.jpg")

        with self.assertRaises(DataCommitError) as ctx:
            self.writer.delete(SLOT, ["a.jpg", "b.jpg"])

        self.assertEqual(ctx.exception.details["deleted"], ["a.jpg"])
        self.assertEqual(self.index().names, ["b.jpg"])
        self.assertTrue(self.disk.exists(f"{SLOT}/_DIRTY.json"))

    def test_rename_moves_cover(self) -> None:
        self.seed("a.jpg", "b.jpg")
        result = self.writer.rename(SLOT, "a.jpg", "front.jpg")
        self.assertTrue(result.verified)
        self.assertEqual(self.index().names, ["front.jpg", "b.jpg"])
        self.assertEqual(self.index().cover, "front.jpg")
        self.assertTrue(self.disk.exists(f"{SLOT}/front.jpg"))
        self.assertFalse(self.disk.exists(f"{SLOT}/a.jpg"))

    def test_rename_conflict_and_missing(self) -> None:
        self.seed("a.jpg", "b.jpg")
        with self.assertRaises(ConflictError):
            self.writer.rename(SLOT, "a.jpg", "b.jpg")
        with self.assertRaises(NotFoundError):
            self.writer.rename(SLOT, "zzz.jpg", "c.jpg")


class TestFlagsAndVerify(WriteTestCase):
    def test_update_flags(self) -> None:
        self.seed("a.jpg")
        index = self.writer.update_flags(SLOT, used=True, public_url="https://disk.local/public/x")
        self.assertTrue(index.used)
        self.assertEqual(self.index().public_url, "https://disk.local/public/x")
        self.assertTrue(self.store.read(IndexKind.SLOT, f"{SLOT}/_SLOT.json").used)

    def test_verify_mismatch_marks_dirty(self) -> None:
        index = self.seed("a.jpg")
        result = self.writer.verify(SLOT, "upload", index, present=["a.jpg", "ghost.jpg"], absent=[])
        self.assertFalse(result.verified)
        self.assertTrue(result.dirty)
        self.assertEqual(result.missing, ["ghost.jpg"])
        self.assertTrue(self.disk.exists(f"{SLOT}/_DIRTY.json"))

    def test_lost_lock_marks_dirty(self) -> None:
        index = self.seed("a.jpg")
        result = self.writer.verify(SLOT, "upload", index, present=["a.jpg"], absent=[], lock_lost=True)
        self.assertTrue(result.verified)
        self.assertTrue(result.dirty)

    def test_index_write_lost_after_commit_marks_dirty(self) -> None:
        disk = _DroppingIndexDisk()
        writer = WritePipeline(disk, self.settings, owner="tester")

        result = writer.upload(SLOT, [_photo("a.jpg")])

        self.assertFalse(result.verified)
        self.assertTrue(result.dirty)
        self.assertEqual(result.missing, ["a.jpg"])
        self.assertFalse(disk.exists(f"{SLOT}/_PHOTOS.json"))
        marker = IndexStore(disk).read(IndexKind.DIRTY, f"{SLOT}/_DIRTY.json")
        self.assertEqual(marker.reason, "index missing after commit")

    def test_index_without_uploaded_name_marks_dirty(self) -> None:
        index = self.seed("a.jpg")
        self.disk.upload_bytes(f"{SLOT}/b.jpg", b"new")
        result = self.writer.verify(SLOT, "upload", index, present=["b.jpg"], absent=[])
        self.assertFalse(result.verified)
        self.assertEqual(result.missing, ["b.jpg"])
        self.assertTrue(self.disk.exists(f"{SLOT}/_DIRTY.json"))



if __name__ == "__main__":
    unittest.main()
