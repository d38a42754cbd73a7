import unittest

from carslots.models import ResourceInfo


class TestResourceInfo(unittest.TestCase):
    def test_folder_defaults(self) -> None:
        info = ResourceInfo(name="R1", path="/Фото/R1", type="dir")
        self.assertTrue(info.is_dir)
        self.assertFalse(info.is_file)
        self.assertIsNone(info.size)
        self.assertIsNone(info.public_url)

    def test_file_fields(self) -> None:
        info = ResourceInfo(
            name="a.jpg",
            path="/Фото/R1/a.jpg",
            type="file",
            size=123,
            modified="2025-01-01T00:00:00.000Z",
            mime_type="image/jpeg",
            md5="abc",
        )
        self.assertTrue(info.is_file)
        self.assertEqual(info.size, 123)
        self.assertEqual(info.md5, "abc")


if __name__ == "__main__":
    unittest.main()
