import unittest

from carslots.util.mime import DEFAULT_MIME, guess_content_type, is_image


class TestUtilMime(unittest.TestCase):
    def test_guess_content_type_for_common_images(self) -> None:
        self.assertEqual(guess_content_type("a.jpg"), "image/jpeg")
        self.assertEqual(guess_content_type("B.PNG"), "image/png")

    def test_guess_content_type_heic(self) -> None:
        self.assertEqual(guess_content_type("IMG_0001.HEIC"), "image/heic")

    def test_guess_content_type_unknown_falls_back(self) -> None:
        self.assertEqual(guess_content_type("blob.unknownext"), DEFAULT_MIME)

    def test_is_image(self) -> None:
        self.assertTrue(is_image("photo.jpeg"))
        self.assertTrue(is_image("photo.WEBP"))
        self.assertFalse(is_image("notes.txt"))
        self.assertFalse(is_image("noext"))


if __name__ == "__main__":
    unittest.main()
