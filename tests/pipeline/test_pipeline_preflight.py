import unittest

from carslots.config import Settings
from carslots.index import PhotoItem, build_photo_index
from carslots.models import PhotoUpload
from carslots.pipeline import preflight


def _index(count: int, size: int = 10):
    items = [PhotoItem(name=f"{i:02d}.jpg", size=size) for i in range(count)]
    return build_photo_index(items, updated_at="2024-01-01T00:00:00.000Z")


def _files(*names: str, size: int = 10) -> list[PhotoUpload]:
    return [PhotoUpload(name=n, data=b"x" * size) for n in names]


class TestPreflight(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings()

    def test_over_capacity_is_rejected(self) -> None:
        result = preflight(_index(38), _files("a.jpg", "b.jpg", "c.jpg"), self.settings)
        self.assertFalse(result.allowed)
        self.assertEqual(result.projected_count, 41)
        self.assertIn("limit", result.reason)

    def test_within_capacity_is_allowed(self) -> None:
        names = [f"new{i}.jpg" for i in range(10)]
        result = preflight(_index(30), _files(*names), self.settings)
        self.assertTrue(result.allowed)
        self.assertEqual(result.projected_count, 40)
        self.assertIsNone(result.reason)

    def test_replacement_does_not_count(self) -> None:
        result = preflight(_index(40), _files("00.jpg", "01.jpg", size=20), self.settings)
        self.assertTrue(result.allowed)
        self.assertEqual(result.incoming_count, 0)
        self.assertEqual(result.projected_size_bytes, 40 * 10 + 2 * 10)

    def test_missing_index_counts_as_empty(self) -> None:
        result = preflight(None, _files("a.jpg"), self.settings)
        self.assertTrue(result.allowed)
        self.assertEqual(result.current_count, 0)

    def test_no_files(self) -> None:
        self.assertFalse(preflight(_index(0), [], self.settings).allowed)

    def test_too_many_files_per_request(self) -> None:
        settings = Settings(max_files_per_upload=2)
        result = preflight(_index(0), _files("a.jpg", "b.jpg", "c.jpg"), settings)
        self.assertFalse(result.allowed)
        self.assertIn("Too many", result.reason)

    def test_file_too_large(self) -> None:
        settings = Settings(max_file_size_mb=0.001)
        result = preflight(_index(0), _files("big.jpg", size=2048), settings)
        self.assertFalse(result.allowed)
        self.assertIn("big.jpg", result.reason)

    def test_slot_size_limit(self) -> None:
        settings = Settings(max_slot_size_mb=0.001)
        result = preflight(_index(1, size=1000), _files("a.jpg", size=100), settings)
        self.assertFalse(result.allowed)
        self.assertIn("size", result.reason)


if __name__ == "__main__":
    unittest.main()
