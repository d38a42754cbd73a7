import unittest

from carslots.errors import ConflictError, NotFoundError
from carslots.models import CallResult, PreflightResult, ReconcileResult, SlotStats, WriteResult, call_safely


class TestResults(unittest.TestCase):
    def test_call_result_ok_and_fail(self) -> None:
        ok = CallResult.ok(5)
        self.assertTrue(ok.success)
        self.assertEqual(ok.value, 5)
        self.assertIsNone(ok.error_code)

        failed = CallResult.fail(ConflictError("exists"))
        self.assertFalse(failed.success)
        self.assertEqual(failed.error, "exists")
        self.assertEqual(failed.error_code, "conflict")

    def test_call_safely_wraps_library_errors_only(self) -> None:
        def missing() -> None:
            raise NotFoundError("gone")

        result = call_safely(missing)
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, NotFoundError.code)

        self.assertEqual(call_safely(lambda a, b: a + b, 1, b=2).value, 3)

        with self.assertRaises(ZeroDivisionError):
            call_safely(lambda: 1 / 0)

    def test_reconcile_result_merge(self) -> None:
        parent = ReconcileResult(path="/a", depth="car")
        child = ReconcileResult(path="/a/s", depth="slot", actions=["x"], repaired_files=["/a/s/_PHOTOS.json"])
        parent.merge(child)
        self.assertEqual(parent.actions, ["x"])
        self.assertTrue(parent.success)
        child.errors.append("bad")
        parent.merge(child)
        self.assertFalse(parent.success)

    def test_projections_and_defaults(self) -> None:
        pre = PreflightResult(allowed=True, current_count=30, incoming_count=10, current_size_bytes=5, incoming_size_bytes=7)
        self.assertEqual(pre.projected_count, 40)
        self.assertEqual(pre.projected_size_bytes, 12)

        wr = WriteResult(slot_path="/s", operation="upload")
        self.assertTrue(wr.verified)
        self.assertFalse(wr.dirty)
        self.assertEqual(wr.missing, [])

    def test_slot_stats_locked(self) -> None:
        self.assertFalse(SlotStats(count=0).locked)
        stats = SlotStats(count=2, total_size_bytes=3 * 1024 * 1024)
        self.assertTrue(stats.locked)
        self.assertEqual(stats.total_size_mb, 3.0)


if __name__ == "__main__":
    unittest.main()
